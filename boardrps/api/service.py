"""
API Service - Business logic layer between the transport and the engine.

The service:
1. Tracks connections and the lobby (join, challenge, accept/decline)
2. Translates validated commands into engine actions
3. Renders per-recipient snapshots of every published event
4. Returns the resulting deliveries to the transport

This layer is framework-agnostic: it never awaits and never touches a
socket. app.py sends the deliveries once a command has been processed
to completion.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging
import uuid

from pydantic import BaseModel, ValidationError

from .models import Delivery, LobbyEntry
from .schemas import (
    # Commands
    JoinLobbyCommand,
    ChallengeCommand,
    ChallengeResponseCommand,
    PlayWithBotCommand,
    ReshuffleCommand,
    ReadyCommand,
    MoveCommand,
    TieChoiceCommand,
    ReplayCommand,
    ExitCommand,
    PingCommand,
    parse_command,
    # Events
    WelcomeEvent,
    LobbyUser,
    LobbyUpdatedEvent,
    ChallengeRequestEvent,
    ChallengeDeclinedEvent,
    MatchStartedEvent,
    StateChangedEvent,
    TieRoundRepeatedEvent,
    ReturnedToLobbyEvent,
    PongEvent,
    ErrorEvent,
    # Snapshot
    MatchSnapshot,
    SoldierCell,
    TieCell,
    SideInfo,
    WinnerInfo,
    TieInfo,
    ItemName,
    PhaseName,
    WinReasonName,
)
from ..bots import RandomPolicy
from ..engine_core.action import Action, EventType, MatchEvent
from ..engine_core.board import Soldier, TieMarker
from ..engine_core.combat import Item
from ..engine_core.state import MatchState, HumanParticipant, BotParticipant
from ..session import MatchRegistry, GameLoop


logger = logging.getLogger(__name__)


def build_snapshot(
    match: MatchState,
    viewer_side: int | None = None,
    redact: bool = True,
) -> MatchSnapshot:
    """
    Render a match for one viewer.

    With redact on, unrevealed soldiers not owned by the viewer show no
    item, and the opponent's pending tie-break pick is hidden. A viewer
    of None (neutral view) sees no unrevealed item at all.
    """
    def visible(owner: int) -> bool:
        return not redact or owner == viewer_side

    board = []
    for row in match.board.cells:
        cells = []
        for occupant in row:
            if isinstance(occupant, Soldier):
                show = occupant.revealed or visible(occupant.owner)
                cells.append(SoldierCell(
                    soldier_id=occupant.soldier_id,
                    owner=occupant.owner,
                    item=ItemName(occupant.item.value) if show else None,
                    revealed=occupant.revealed,
                ))
            elif isinstance(occupant, TieMarker):
                cells.append(TieCell())
            else:
                cells.append(None)
        board.append(cells)

    counts = match.board.count_by_side()
    sides = [
        SideInfo(
            side=index,
            username=side.username,
            is_bot=side.is_bot,
            reshuffles_remaining=side.reshuffles_remaining,
            ready=side.ready,
            soldier_count=counts[index],
        )
        for index, side in enumerate(match.sides)
    ]

    winner = None
    if match.winner:
        winner = WinnerInfo(
            side=match.winner.side,
            username=match.sides[match.winner.side].username if match.winner.side is not None else None,
            reason=WinReasonName(match.winner.reason.value),
        )

    tie = None
    if match.tie:
        tie = [
            TieInfo(
                side=index,
                row=record.position.row,
                col=record.position.col,
                soldier_id=record.soldier_id,
                has_chosen=record.has_chosen,
                chosen_item=(
                    ItemName(record.chosen_item.value)
                    if record.has_chosen and visible(index)
                    else None
                ),
            )
            for index, record in enumerate(match.tie)
        ]

    return MatchSnapshot(
        match_id=match.match_id,
        rows=match.board.rows,
        cols=match.board.cols,
        board=board,
        sides=sides,
        turn=match.turn,
        phase=PhaseName(match.phase.value),
        winner=winner,
        tie=tie,
        is_bot_match=match.is_bot_match,
        viewer_side=viewer_side,
    )


@dataclass
class APIService:
    """
    Main API service for connected clients.

    Usage:
        service = APIService()

        connection_id, deliveries = service.connect()
        deliveries = service.handle_message(connection_id, '{"type": "join_lobby", ...}')
        deliveries = service.disconnect(connection_id)
    """
    registry: MatchRegistry = field(default_factory=MatchRegistry)
    redact_hidden: bool = True
    bot_seed: int | None = None

    # Connected sockets and lobby membership
    _connections: set[str] = field(default_factory=set)
    _lobby: dict[str, LobbyEntry] = field(default_factory=dict)

    # Deliveries accumulated while one command is processed
    _outbox: list[Delivery] = field(default_factory=list)

    _game_loop: GameLoop | None = None

    def __post_init__(self):
        self._game_loop = GameLoop(self.registry, publish=self._publish)
        self._handlers = {
            JoinLobbyCommand: self._handle_join_lobby,
            ChallengeCommand: self._handle_challenge,
            ChallengeResponseCommand: self._handle_challenge_response,
            PlayWithBotCommand: self._handle_play_with_bot,
            ReshuffleCommand: self._handle_reshuffle,
            ReadyCommand: self._handle_ready,
            MoveCommand: self._handle_move,
            TieChoiceCommand: self._handle_tie_choice,
            ReplayCommand: self._handle_replay,
            ExitCommand: self._handle_exit,
            PingCommand: self._handle_ping,
        }

    @property
    def game_loop(self) -> GameLoop:
        return self._game_loop

    # =========================================================================
    # Connection lifecycle
    # =========================================================================

    def connect(self, connection_id: str | None = None) -> tuple[str, list[Delivery]]:
        """Register a new connection and greet it."""
        connection_id = connection_id or str(uuid.uuid4())
        self._connections.add(connection_id)
        logger.info("Connection %s opened", connection_id)
        self._send(connection_id, WelcomeEvent(connection_id=connection_id))
        self._send(connection_id, self._lobby_event())
        return connection_id, self._drain()

    def disconnect(self, connection_id: str) -> list[Delivery]:
        """
        A connection closed.

        Leaves the lobby and forfeits any unfinished match. The opponent
        in a finished match is sent back to the lobby.
        """
        self._connections.discard(connection_id)
        entry = self._lobby.pop(connection_id, None)
        logger.info("Connection %s closed", connection_id)

        match = self.registry.find_by_participant(connection_id)
        if match:
            others = [c for c in match.human_connections() if c != connection_id]
            self._game_loop.handle_disconnect(connection_id)
            for other in others:
                self._set_in_game(other, False)

        if entry or match:
            self._broadcast_lobby()
        return self._drain()

    def handle_message(self, connection_id: str, raw: str | bytes | dict) -> list[Delivery]:
        """Validate one inbound frame and process it."""
        try:
            command = parse_command(raw)
        except ValidationError as e:
            errors = e.errors()
            detail = errors[0]["msg"] if errors else "validation failed"
            logger.debug("Invalid message from %s: %s", connection_id, detail)
            return [Delivery(connection_id, ErrorEvent(message=f"Invalid message: {detail}"))]
        return self.handle_command(connection_id, command)

    def handle_command(self, connection_id: str, command: BaseModel) -> list[Delivery]:
        """Process an already validated command."""
        handler = self._handlers.get(type(command))
        if handler:
            handler(connection_id, command)
        return self._drain()

    # =========================================================================
    # Queries
    # =========================================================================

    def get_snapshot(self, match_id: str, viewer_side: int | None = None) -> MatchSnapshot | None:
        match = self.registry.get(match_id)
        if not match:
            return None
        return build_snapshot(match, viewer_side=viewer_side, redact=self.redact_hidden)

    def list_matches(self) -> list[str]:
        return self.registry.list_matches()

    def lobby_users(self) -> list[LobbyUser]:
        return [
            LobbyUser(connection_id=e.connection_id, username=e.username, in_game=e.in_game)
            for e in self._lobby.values()
        ]

    # =========================================================================
    # Lobby handlers
    # =========================================================================

    def _handle_join_lobby(self, connection_id: str, command: JoinLobbyCommand):
        entry = self._lobby.get(connection_id)
        if entry:
            entry.username = command.username
        else:
            self._lobby[connection_id] = LobbyEntry(connection_id, command.username)
        logger.info("%s joined the lobby as %s", connection_id, command.username)
        self._broadcast_lobby()

    def _handle_challenge(self, connection_id: str, command: ChallengeCommand):
        challenger = self._lobby.get(connection_id)
        opponent = self._lobby.get(command.opponent_id)
        if not challenger or not opponent or challenger is opponent:
            return
        if challenger.in_game or opponent.in_game:
            return
        self._send(
            opponent.connection_id,
            ChallengeRequestEvent(from_id=connection_id, from_username=challenger.username),
        )

    def _handle_challenge_response(self, connection_id: str, command: ChallengeResponseCommand):
        challenger = self._lobby.get(command.from_id)
        responder = self._lobby.get(connection_id)
        if not challenger or not responder or challenger is responder:
            return

        if command.accepted and not challenger.in_game and not responder.in_game:
            self._game_loop.start_match([
                HumanParticipant(challenger.connection_id, challenger.username),
                HumanParticipant(responder.connection_id, responder.username),
            ])
            challenger.in_game = True
            responder.in_game = True
            self._broadcast_lobby()
        else:
            self._send(
                challenger.connection_id,
                ChallengeDeclinedEvent(reason=f"{responder.username} declined your challenge."),
            )

    def _handle_play_with_bot(self, connection_id: str, command: PlayWithBotCommand):
        user = self._lobby.get(connection_id)
        if not user or user.in_game:
            return

        self._game_loop.start_match(
            [
                HumanParticipant(user.connection_id, user.username),
                BotParticipant(policy=RandomPolicy(seed=self.bot_seed)),
            ],
            is_bot_match=True,
        )
        user.in_game = True
        self._broadcast_lobby()

    def _handle_ping(self, connection_id: str, command: PingCommand):
        self._send(connection_id, PongEvent())

    # =========================================================================
    # Match handlers
    # =========================================================================

    def _handle_reshuffle(self, connection_id: str, command: ReshuffleCommand):
        self._game_loop.dispatch_for(command.match_id, connection_id, Action.reshuffle)

    def _handle_ready(self, connection_id: str, command: ReadyCommand):
        self._game_loop.dispatch_for(command.match_id, connection_id, Action.ready)

    def _handle_move(self, connection_id: str, command: MoveCommand):
        self._game_loop.dispatch_for(
            command.match_id,
            connection_id,
            lambda side: Action.move(
                side,
                (command.from_row, command.from_col),
                (command.to_row, command.to_col),
            ),
        )

    def _handle_tie_choice(self, connection_id: str, command: TieChoiceCommand):
        item = Item(command.item.value)
        self._game_loop.dispatch_for(
            command.match_id,
            connection_id,
            lambda side: Action.tie_choice(side, item),
        )

    def _handle_replay(self, connection_id: str, command: ReplayCommand):
        self._game_loop.dispatch_for(command.match_id, connection_id, Action.replay)

    def _handle_exit(self, connection_id: str, command: ExitCommand):
        match = self.registry.get(command.match_id)
        if not match:
            return
        humans = match.human_connections()

        result = self._game_loop.dispatch_for(command.match_id, connection_id, Action.exit)
        if result.success:
            for human in humans:
                self._set_in_game(human, False)
            self._broadcast_lobby()

    # =========================================================================
    # Delivery helpers
    # =========================================================================

    def _publish(self, match: MatchState, event: MatchEvent):
        """Engine publisher: render the event for each human recipient."""
        recipients = event.recipients if event.recipients is not None else range(len(match.sides))
        for side in recipients:
            participant = match.participant(side)
            if not isinstance(participant, HumanParticipant):
                continue
            self._send(participant.connection_id, self._render_event(match, event, side))

    def _render_event(self, match: MatchState, event: MatchEvent, side: int) -> BaseModel:
        if event.event_type == EventType.RETURNED_TO_LOBBY:
            return ReturnedToLobbyEvent()

        snapshot = build_snapshot(match, viewer_side=side, redact=self.redact_hidden)
        if event.event_type == EventType.MATCH_STARTED:
            return MatchStartedEvent(snapshot=snapshot)
        if event.event_type == EventType.TIE_ROUND_REPEATED:
            return TieRoundRepeatedEvent(
                snapshot=snapshot,
                tied_item=ItemName(event.data["tied_item"]),
            )
        return StateChangedEvent(snapshot=snapshot)

    def _lobby_event(self) -> LobbyUpdatedEvent:
        return LobbyUpdatedEvent(users=self.lobby_users())

    def _broadcast_lobby(self):
        event = self._lobby_event()
        for connection_id in sorted(self._connections):
            self._send(connection_id, event)

    def _set_in_game(self, connection_id: str, in_game: bool):
        entry = self._lobby.get(connection_id)
        if entry:
            entry.in_game = in_game

    def _send(self, connection_id: str, event: BaseModel):
        self._outbox.append(Delivery(connection_id, event))

    def _drain(self) -> list[Delivery]:
        deliveries = self._outbox
        self._outbox = []
        return deliveries


