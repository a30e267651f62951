"""
Game Loop - Routes commands to matches and runs bot turns.

The loop, for every inbound command:
1. Fetch the match fresh from the registry
2. Validate and apply the command via the reducer
3. Publish the resulting events
4. If a bot now owes a move or a tie-break pick, run it through the same path
5. Drop the match from the registry if the command ended its life

Every step is synchronous. A command is processed to completion, bot
replies included, before the caller can hand in the next one, so two
commands never interleave on the same match.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable
import logging

from ..engine_core.action import Action, ActionType, EventType, MatchEvent
from ..engine_core.action_generator import legal_actions
from ..engine_core.reducer import Reducer
from ..engine_core.state import MatchState, MatchPhase, BotParticipant, Participant
from .manager import MatchRegistry


logger = logging.getLogger(__name__)

# Safety limit on consecutive bot actions per command
MAX_BOT_ACTIONS = 10

Publisher = Callable[[MatchState, MatchEvent], None]


class DispatchStatus(Enum):
    """What happened to a command."""
    APPLIED = "applied"
    REJECTED = "rejected"
    MATCH_NOT_FOUND = "match_not_found"
    NOT_IN_MATCH = "not_in_match"


@dataclass
class TurnResult:
    """
    Result of processing a command.

    Contains the events published (in order), what the bot did,
    and why a command was dropped if it was.
    """
    status: DispatchStatus
    match_id: str | None = None

    events: list[MatchEvent] = field(default_factory=list)
    changes: list[str] = field(default_factory=list)
    bot_actions: list[str] = field(default_factory=list)

    error: str | None = None
    error_code: str | None = None

    match_removed: bool = False

    @property
    def success(self) -> bool:
        return self.status == DispatchStatus.APPLIED

    @property
    def event_types(self) -> list[EventType]:
        return [e.event_type for e in self.events]


class GameLoop:
    """
    The command dispatcher.

    Usage:
        loop = GameLoop(registry, publish=deliver)

        match_id = loop.start_match([alice, bob]).match_id
        loop.dispatch(match_id, Action.ready(0))
        loop.dispatch(match_id, Action.move(0, (1, 3), (2, 3)))

        # socket closed
        loop.handle_disconnect(connection_id)
    """

    def __init__(
        self,
        registry: MatchRegistry,
        publish: Publisher | None = None,
        reducer: Reducer | None = None,
    ):
        self.registry = registry
        self.publish = publish
        self.reducer = reducer or Reducer()

    def start_match(
        self,
        participants: list[Participant],
        is_bot_match: bool = False,
        seed: int | None = None,
    ) -> TurnResult:
        """Create a match and announce it to both sides."""
        match = self.registry.create(participants, is_bot_match=is_bot_match, seed=seed)
        result = TurnResult(status=DispatchStatus.APPLIED, match_id=match.match_id)
        self._emit(match, MatchEvent(EventType.MATCH_STARTED), result)
        return result

    def dispatch(self, match_id: str, action: Action) -> TurnResult:
        """
        Apply one command to a match, then let the bot answer.

        Rejected commands publish nothing.
        """
        match = self.registry.get(match_id)
        if match is None:
            logger.debug("Dropping %s for unknown match %s", action.action_type.value, match_id)
            return TurnResult(status=DispatchStatus.MATCH_NOT_FOUND, match_id=match_id)

        result = TurnResult(status=DispatchStatus.APPLIED, match_id=match_id)
        applied = self.reducer.apply(match, action)
        if not applied.success:
            logger.debug(
                "Rejected %s in match %s: %s (%s)",
                action.action_type.value, match_id, applied.error, applied.error_code,
            )
            result.status = DispatchStatus.REJECTED
            result.error = applied.error
            result.error_code = applied.error_code
            return result

        result.changes.extend(applied.changes)
        for event in applied.events:
            self._emit(match, event, result)

        if action.action_type in {ActionType.EXIT, ActionType.FORFEIT}:
            self.registry.remove(match_id)
            result.match_removed = True
            return result

        self._run_bot_turns(match, result)
        return result

    def dispatch_for(self, match_id: str, connection_id: str, build: Callable[[int], Action]) -> TurnResult:
        """
        Dispatch a command on behalf of a human connection.

        `build` receives the connection's side and returns the action.
        Connections that are not part of the match are ignored.
        """
        match = self.registry.get(match_id)
        if match is None:
            logger.debug("Connection %s named unknown match %s", connection_id, match_id)
            return TurnResult(status=DispatchStatus.MATCH_NOT_FOUND, match_id=match_id)

        side = match.side_of(connection_id)
        if side is None:
            logger.debug("Connection %s is not in match %s", connection_id, match_id)
            return TurnResult(status=DispatchStatus.NOT_IN_MATCH, match_id=match_id)

        return self.dispatch(match_id, build(side))

    def handle_disconnect(self, connection_id: str) -> TurnResult:
        """
        A participant's connection went away.

        An unfinished match is forfeited to the other side. A finished one
        sends the other side back to the lobby. The match is dropped from
        the registry either way.
        """
        match = self.registry.find_by_participant(connection_id)
        if match is None:
            return TurnResult(status=DispatchStatus.NOT_IN_MATCH)

        side = match.side_of(connection_id)
        if match.is_finished:
            result = TurnResult(
                status=DispatchStatus.APPLIED,
                match_id=match.match_id,
                match_removed=True,
            )
            event = MatchEvent(EventType.RETURNED_TO_LOBBY, recipients=[match.other(side)])
            self._emit(match, event, result)
            self.registry.remove(match.match_id)
            logger.info("Connection %s left finished match %s", connection_id, match.match_id)
            return result

        logger.info("Connection %s left match %s - forfeit", connection_id, match.match_id)
        return self.dispatch(match.match_id, Action.forfeit(side))

    # -------------------------------------------------------------------------
    # Bot turns
    # -------------------------------------------------------------------------

    def _run_bot_turns(self, match: MatchState, result: TurnResult):
        """Let the bot act until it owes nothing."""
        bot_side = match.bot_side()
        if bot_side is None:
            return

        for _ in range(MAX_BOT_ACTIONS):
            action = self._next_bot_action(match, bot_side)
            if action is None:
                return

            applied = self.reducer.apply(match, action)
            if not applied.success:
                # Policies only pick from legal actions, so this is a bug
                logger.warning(
                    "Bot action %s rejected in match %s: %s",
                    action.action_type.value, match.match_id, applied.error,
                )
                return

            result.bot_actions.append(action.action_type.value)
            result.changes.extend(applied.changes)
            for event in applied.events:
                self._emit(match, event, result)

        logger.warning("Bot in match %s hit the %d action limit", match.match_id, MAX_BOT_ACTIONS)

    def _next_bot_action(self, match: MatchState, bot_side: int) -> Action | None:
        participant = match.participant(bot_side)
        if not isinstance(participant, BotParticipant):
            return None
        policy = participant.policy

        if match.phase == MatchPhase.PLAYING and match.turn == bot_side:
            legal = legal_actions(match, bot_side)
            if not legal:
                return None
            decision = policy.select_action(match, bot_side, legal)
            logger.debug("Bot %s in match %s: %s", bot_side, match.match_id, decision.explanation)
            return decision.action

        if match.phase == MatchPhase.TIE_BREAK and not match.tie[bot_side].has_chosen:
            decision = policy.select_tie_choice(match, bot_side)
            logger.debug("Bot %s tie choice in match %s: %s", bot_side, match.match_id, decision.explanation)
            return Action.tie_choice(bot_side, decision.item)

        return None

    def _emit(self, match: MatchState, event: MatchEvent, result: TurnResult):
        result.events.append(event)
        if self.publish:
            self.publish(match, event)
