"""
Pydantic Schemas for API - Wire contract for clients.

Inbound commands and outbound events are closed tagged unions keyed by
`type`. Every message is validated here, before it reaches the engine.

Error Codes:
- INVALID_MESSAGE: Frame is not JSON or does not match any command
- MATCH_NOT_FOUND: Match does not exist or has ended
"""

from enum import Enum
from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, Field, TypeAdapter


# =============================================================================
# Enums
# =============================================================================

class ItemName(str, Enum):
    """Items on the wire."""
    ROCK = "rock"
    PAPER = "paper"
    SCISSORS = "scissors"


class PhaseName(str, Enum):
    """Match phases on the wire."""
    SETUP = "setup"
    PLAYING = "playing"
    TIE_BREAK = "tie_break"
    FINISHED = "finished"


class WinReasonName(str, Enum):
    """How a match finished."""
    ELIMINATION = "elimination"
    FORFEIT = "forfeit"
    ABANDONED = "abandoned"
    STALEMATE = "stalemate"


class ErrorCode(str, Enum):
    """Structured error codes."""
    INVALID_MESSAGE = "INVALID_MESSAGE"
    MATCH_NOT_FOUND = "MATCH_NOT_FOUND"


# =============================================================================
# Inbound commands (client -> server)
# =============================================================================

class JoinLobbyCommand(BaseModel):
    """Enter the lobby under a display name."""
    type: Literal["join_lobby"]
    username: str = Field(..., min_length=1, max_length=24)


class ChallengeCommand(BaseModel):
    """Invite another lobby user to a match."""
    type: Literal["challenge"]
    opponent_id: str


class ChallengeResponseCommand(BaseModel):
    """Accept or decline an invitation."""
    type: Literal["challenge_response"]
    from_id: str = Field(..., description="Connection id of the challenger")
    accepted: bool


class PlayWithBotCommand(BaseModel):
    """Start a match against the server's bot."""
    type: Literal["play_with_bot"]


class ReshuffleCommand(BaseModel):
    type: Literal["reshuffle"]
    match_id: str


class ReadyCommand(BaseModel):
    type: Literal["ready"]
    match_id: str


class MoveCommand(BaseModel):
    """Step a soldier one cell in any direction."""
    type: Literal["move"]
    match_id: str
    from_row: int
    from_col: int
    to_row: int
    to_col: int


class TieChoiceCommand(BaseModel):
    """Re-pick an item for the contested soldier."""
    type: Literal["tie_choice"]
    match_id: str
    item: ItemName


class ReplayCommand(BaseModel):
    type: Literal["replay"]
    match_id: str


class ExitCommand(BaseModel):
    """Leave the match and go back to the lobby."""
    type: Literal["exit"]
    match_id: str


class PingCommand(BaseModel):
    """Keep-alive."""
    type: Literal["ping"]


ClientCommand = Annotated[
    Union[
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
    ],
    Field(discriminator="type"),
]

client_command_adapter = TypeAdapter(ClientCommand)


def parse_command(raw: Union[str, bytes, dict]):
    """
    Validate one inbound frame.

    Raises pydantic.ValidationError for malformed JSON, unknown types
    and bad fields alike.
    """
    if isinstance(raw, (str, bytes)):
        return client_command_adapter.validate_json(raw)
    return client_command_adapter.validate_python(raw)


# =============================================================================
# Snapshot
# =============================================================================

class SoldierCell(BaseModel):
    """A soldier on the board. item is null when hidden from the viewer."""
    kind: Literal["soldier"] = "soldier"
    soldier_id: str
    owner: int
    item: Optional[ItemName] = None
    revealed: bool = False


class TieCell(BaseModel):
    """A cell whose combat is being re-picked."""
    kind: Literal["tie"] = "tie"


Cell = Optional[Annotated[Union[SoldierCell, TieCell], Field(discriminator="kind")]]


class SideInfo(BaseModel):
    """One side of the match for display."""
    side: int
    username: str
    is_bot: bool = False
    reshuffles_remaining: int = 0
    ready: bool = False
    soldier_count: int = 0


class WinnerInfo(BaseModel):
    """Result of a finished match. side is null for abandoned / stalemate."""
    side: Optional[int] = None
    username: Optional[str] = None
    reason: WinReasonName


class TieInfo(BaseModel):
    """A side's record in an ongoing tie-break."""
    side: int
    row: int
    col: int
    soldier_id: str
    has_chosen: bool = False
    chosen_item: Optional[ItemName] = None


class MatchSnapshot(BaseModel):
    """Everything a renderer needs to draw a match."""
    match_id: str
    rows: int
    cols: int
    board: list[list[Cell]]
    sides: list[SideInfo]
    turn: int
    phase: PhaseName
    winner: Optional[WinnerInfo] = None
    tie: Optional[list[TieInfo]] = None
    is_bot_match: bool = False
    viewer_side: Optional[int] = Field(
        None, description="Side the snapshot was rendered for; null for a neutral view"
    )


# =============================================================================
# Outbound events (server -> client)
# =============================================================================

class WelcomeEvent(BaseModel):
    type: Literal["welcome"] = "welcome"
    connection_id: str


class LobbyUser(BaseModel):
    connection_id: str
    username: str
    in_game: bool = False


class LobbyUpdatedEvent(BaseModel):
    type: Literal["lobby_updated"] = "lobby_updated"
    users: list[LobbyUser] = Field(default_factory=list)


class ChallengeRequestEvent(BaseModel):
    type: Literal["challenge_request"] = "challenge_request"
    from_id: str
    from_username: str


class ChallengeDeclinedEvent(BaseModel):
    type: Literal["challenge_declined"] = "challenge_declined"
    reason: str


class MatchStartedEvent(BaseModel):
    type: Literal["match_started"] = "match_started"
    snapshot: MatchSnapshot


class StateChangedEvent(BaseModel):
    type: Literal["state_changed"] = "state_changed"
    snapshot: MatchSnapshot


class TieRoundRepeatedEvent(BaseModel):
    type: Literal["tie_round_repeated"] = "tie_round_repeated"
    snapshot: MatchSnapshot
    tied_item: ItemName


class ReturnedToLobbyEvent(BaseModel):
    type: Literal["returned_to_lobby"] = "returned_to_lobby"


class PongEvent(BaseModel):
    type: Literal["pong"] = "pong"


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    message: str
    error_code: ErrorCode = ErrorCode.INVALID_MESSAGE


ServerEvent = Annotated[
    Union[
        WelcomeEvent,
        LobbyUpdatedEvent,
        ChallengeRequestEvent,
        ChallengeDeclinedEvent,
        MatchStartedEvent,
        StateChangedEvent,
        TieRoundRepeatedEvent,
        ReturnedToLobbyEvent,
        PongEvent,
        ErrorEvent,
    ],
    Field(discriminator="type"),
]

server_event_adapter = TypeAdapter(ServerEvent)


# =============================================================================
# REST responses
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    error_code: ErrorCode
    details: Optional[dict] = None


class MatchListResponse(BaseModel):
    """List of live match ids."""
    matches: list[str]
    count: int


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "healthy"
    service: str = "boardrps"
    version: str
