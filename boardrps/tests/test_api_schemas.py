"""
Tests for API schemas (command parsing and event serialization).
"""

import pytest
from pydantic import ValidationError

from ..api.schemas import (
    ChallengeResponseCommand,
    ErrorEvent,
    ErrorCode,
    ItemName,
    JoinLobbyCommand,
    MatchSnapshot,
    MoveCommand,
    PingCommand,
    PlayWithBotCommand,
    SoldierCell,
    StateChangedEvent,
    TieCell,
    TieChoiceCommand,
    parse_command,
    server_event_adapter,
)


class TestParseCommand:
    """Tests for inbound command validation."""

    def test_join_lobby(self):
        command = parse_command('{"type": "join_lobby", "username": "Alice"}')
        assert isinstance(command, JoinLobbyCommand)
        assert command.username == "Alice"

    def test_move(self):
        command = parse_command({
            "type": "move",
            "match_id": "m1",
            "from_row": 1, "from_col": 3,
            "to_row": 2, "to_col": 3,
        })
        assert isinstance(command, MoveCommand)
        assert (command.from_row, command.to_row) == (1, 2)

    def test_tie_choice_item(self):
        command = parse_command({"type": "tie_choice", "match_id": "m1", "item": "paper"})
        assert isinstance(command, TieChoiceCommand)
        assert command.item == ItemName.PAPER

    def test_challenge_response(self):
        command = parse_command(b'{"type": "challenge_response", "from_id": "c1", "accepted": false}')
        assert isinstance(command, ChallengeResponseCommand)
        assert command.accepted is False

    def test_bare_commands(self):
        assert isinstance(parse_command({"type": "ping"}), PingCommand)
        assert isinstance(parse_command({"type": "play_with_bot"}), PlayWithBotCommand)

    def test_unknown_type(self):
        with pytest.raises(ValidationError):
            parse_command({"type": "teleport", "match_id": "m1"})

    def test_missing_type(self):
        with pytest.raises(ValidationError):
            parse_command({"username": "Alice"})

    def test_not_json(self):
        with pytest.raises(ValidationError):
            parse_command("not json at all")

    def test_bad_item(self):
        with pytest.raises(ValidationError):
            parse_command({"type": "tie_choice", "match_id": "m1", "item": "lizard"})

    def test_missing_match_id(self):
        with pytest.raises(ValidationError):
            parse_command({"type": "ready"})

    @pytest.mark.parametrize("username", ["", "x" * 25])
    def test_username_length(self, username):
        with pytest.raises(ValidationError):
            parse_command({"type": "join_lobby", "username": username})


class TestEvents:
    """Tests for outbound event models."""

    @pytest.fixture
    def snapshot(self) -> MatchSnapshot:
        return MatchSnapshot(
            match_id="m1",
            rows=1,
            cols=3,
            board=[[SoldierCell(soldier_id="p0_00", owner=0, item=None), TieCell(), None]],
            sides=[],
            turn=0,
            phase="tie_break",
        )

    def test_event_type_tag(self, snapshot):
        data = StateChangedEvent(snapshot=snapshot).model_dump(mode="json")
        assert data["type"] == "state_changed"
        assert data["snapshot"]["board"][0] == [
            {"kind": "soldier", "soldier_id": "p0_00", "owner": 0, "item": None, "revealed": False},
            {"kind": "tie"},
            None,
        ]

    def test_server_event_adapter_dispatches_on_type(self, snapshot):
        data = StateChangedEvent(snapshot=snapshot).model_dump(mode="json")
        event = server_event_adapter.validate_python(data)
        assert isinstance(event, StateChangedEvent)
        assert isinstance(event.snapshot.board[0][1], TieCell)

    def test_error_event_default_code(self):
        event = ErrorEvent(message="bad frame")
        assert event.model_dump(mode="json") == {
            "type": "error",
            "message": "bad frame",
            "error_code": ErrorCode.INVALID_MESSAGE.value,
        }

    def test_error_codes_are_the_emitted_ones(self):
        assert [code.value for code in ErrorCode] == ["INVALID_MESSAGE", "MATCH_NOT_FOUND"]
