"""
Match Registry - Creates and owns live matches.

LIFECYCLE:
1. Challenge accepted / bot match requested -> create() in SETUP
2. Every command fetches the match fresh with get() and mutates it in place
3. Exit or disconnect-forfeit -> remove()
4. A FINISHED match may be replayed in place; its id does not change

PERSISTENCE RULES:
- In-memory only, nothing survives the process
- One registry per composition root (the API service); tests build their own

The registry does not validate commands. It is an index plus the
lifetime owner of every MatchState.
"""

from __future__ import annotations
import logging
import uuid

from ..engine_core.state import MatchState, BotParticipant, Participant


logger = logging.getLogger(__name__)


class MatchRegistry:
    """
    Manages live matches.

    Responsibilities:
    - Create matches for two participants
    - Look matches up by id or by participant connection
    - Drop matches that have ended
    """

    def __init__(self):
        self._matches: dict[str, MatchState] = {}

    def create(
        self,
        participants: list[Participant],
        is_bot_match: bool = False,
        seed: int | None = None,
    ) -> MatchState:
        """
        Create a new match.

        Args:
            participants: Exactly two participants, side 0 first
            is_bot_match: Side 1 is played by a bot policy
            seed: Optional seed for reproducible deals

        Returns:
            New MatchState in SETUP with a freshly dealt board
        """
        if len(participants) != 2:
            raise ValueError(f"A match needs exactly 2 participants, got {len(participants)}")
        if is_bot_match and not isinstance(participants[1], BotParticipant):
            raise ValueError("Side 1 of a bot match must be a BotParticipant")
        if not is_bot_match and any(isinstance(p, BotParticipant) for p in participants):
            raise ValueError("Bot participants are only allowed in bot matches")

        match_id = str(uuid.uuid4())
        match = MatchState.create(
            match_id=match_id,
            participants=participants,
            is_bot_match=is_bot_match,
            seed=seed,
        )
        self._matches[match_id] = match

        logger.info(
            "Match %s created: %s vs %s%s",
            match_id,
            participants[0].username,
            participants[1].username,
            " (bot)" if is_bot_match else "",
        )
        return match

    def get(self, match_id: str) -> MatchState | None:
        """Get a match by ID."""
        return self._matches.get(match_id)

    def remove(self, match_id: str) -> MatchState | None:
        """
        Drop a match.

        Called on exit, on disconnect-forfeit, and by stale cleanup.
        Returns the removed match, if it existed.
        """
        match = self._matches.pop(match_id, None)
        if match:
            logger.info("Match %s removed (phase=%s)", match_id, match.phase.value)
        return match

    def find_by_participant(self, connection_id: str) -> MatchState | None:
        """The match a human connection is playing in, if any."""
        for match in self._matches.values():
            if match.side_of(connection_id) is not None:
                return match
        return None

    def list_matches(self) -> list[str]:
        """List IDs of live matches."""
        return list(self._matches.keys())

    def __len__(self) -> int:
        return len(self._matches)

    def __contains__(self, match_id: str) -> bool:
        return match_id in self._matches
