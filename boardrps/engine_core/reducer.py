"""
Reducer - Applies actions to a match.

The reducer is the single point of state mutation.
All state changes must go through apply_action().

Design principles:
- Validates before applying: a rejected action leaves the match untouched
- Mutates the registry-owned MatchState in place
- Returns ActionResult with success/failure and the events to deliver
- Rejections are data, not exceptions; callers decide whether to surface them

Phase machine:
  setup --reshuffle/ready--> setup | playing
  playing --move--> playing | tie_break | finished
  tie_break --tie_choice--> tie_break | playing | finished
  finished --replay--> setup
  any --forfeit/exit--> finished
"""

from __future__ import annotations
from dataclasses import dataclass

from .action import Action, ActionType, ActionResult, EventType, MatchEvent, ErrorCode
from .action_generator import has_legal_move
from .board import Soldier, TIE_MARKER
from .combat import Outcome, compare
from .state import MatchState, MatchPhase, TieRecord, Winner, WinReason


ALLOWED_PHASES: dict[ActionType, set[MatchPhase]] = {
    ActionType.RESHUFFLE: {MatchPhase.SETUP},
    ActionType.READY: {MatchPhase.SETUP},
    ActionType.MOVE: {MatchPhase.PLAYING},
    ActionType.TIE_CHOICE: {MatchPhase.TIE_BREAK},
    ActionType.REPLAY: {MatchPhase.FINISHED},
    ActionType.FORFEIT: {MatchPhase.SETUP, MatchPhase.PLAYING, MatchPhase.TIE_BREAK},
    ActionType.EXIT: set(MatchPhase),
}

# Actions that may be issued without naming a side
SIDELESS_ACTIONS = {ActionType.REPLAY}

# Actions left out of history; replay starts a fresh one
UNRECORDED_ACTIONS = {ActionType.REPLAY}


def _broadcast(event_type: EventType, **data) -> MatchEvent:
    return MatchEvent(event_type=event_type, recipients=None, data=data)


@dataclass
class Reducer:
    """
    Reducer applies actions to match state.

    Stateless - all state is in MatchState.
    """

    def apply(self, state: MatchState, action: Action) -> ActionResult:
        """
        Apply an action to the match.

        Returns ActionResult with events or a rejection.
        """
        validation_error = self._validate_action(state, action)
        if validation_error:
            message, code = validation_error
            return ActionResult.failure(message, error_code=code)

        handler = self._get_handler(action.action_type)
        if not handler:
            return ActionResult.failure(
                f"No handler for action type: {action.action_type}",
                error_code=ErrorCode.NO_HANDLER,
            )

        result = handler(state, action)
        if result.success and action.action_type not in UNRECORDED_ACTIONS:
            state.history.append(action)
        return result

    def _validate_action(self, state: MatchState, action: Action) -> tuple[str, str] | None:
        """
        Checks shared by every action type: side and phase.

        Returns (message, error_code) if invalid, None if valid.
        """
        side = action.payload.side
        if side is None:
            if action.action_type not in SIDELESS_ACTIONS:
                return "Action does not name a side", ErrorCode.INVALID_SIDE
        elif side not in (0, 1) or side >= len(state.sides):
            return f"No side {side} in this match", ErrorCode.INVALID_SIDE

        allowed = ALLOWED_PHASES.get(action.action_type, set())
        if state.phase not in allowed:
            return (
                f"{action.action_type.value} not allowed during {state.phase.value}",
                ErrorCode.WRONG_PHASE,
            )
        return None

    def _get_handler(self, action_type: ActionType):
        """Get the handler function for an action type."""
        handlers = {
            ActionType.RESHUFFLE: self._handle_reshuffle,
            ActionType.READY: self._handle_ready,
            ActionType.MOVE: self._handle_move,
            ActionType.TIE_CHOICE: self._handle_tie_choice,
            ActionType.REPLAY: self._handle_replay,
            ActionType.FORFEIT: self._handle_forfeit,
            ActionType.EXIT: self._handle_exit,
        }
        return handlers.get(action_type)

    # -------------------------------------------------------------------------
    # Setup
    # -------------------------------------------------------------------------

    def _handle_reshuffle(self, state: MatchState, action: Action) -> ActionResult:
        side = action.payload.side
        side_state = state.sides[side]
        if side_state.reshuffles_remaining <= 0:
            return ActionResult.failure(
                f"{side_state.username} has no reshuffles left",
                error_code=ErrorCode.NO_RESHUFFLES,
            )

        side_state.reshuffles_remaining -= 1
        state.board.reshuffle(side, state.rng)

        return ActionResult.applied(
            events=[_broadcast(EventType.STATE_CHANGED)],
            changes=[
                f"{side_state.username} reshuffled "
                f"({side_state.reshuffles_remaining} left)"
            ],
        )

    def _handle_ready(self, state: MatchState, action: Action) -> ActionResult:
        side = action.payload.side
        side_state = state.sides[side]
        if side_state.ready:
            return ActionResult.failure(
                f"{side_state.username} is already ready",
                error_code=ErrorCode.ALREADY_READY,
            )

        side_state.ready = True
        changes = [f"{side_state.username} is ready"]

        if all(s.ready for s in state.sides):
            state.phase = MatchPhase.PLAYING
            state.turn = 0
            changes.append("Both sides ready - match started")

        return ActionResult.applied(
            events=[_broadcast(EventType.STATE_CHANGED)],
            changes=changes,
        )

    # -------------------------------------------------------------------------
    # Play
    # -------------------------------------------------------------------------

    def _handle_move(self, state: MatchState, action: Action) -> ActionResult:
        side = action.payload.side
        source = action.payload.source
        target = action.payload.target

        if state.turn != side:
            return ActionResult.failure(f"Not side {side}'s turn", error_code=ErrorCode.NOT_YOUR_TURN)
        if source is None or target is None:
            return ActionResult.failure("Move needs a source and a target", error_code=ErrorCode.ILLEGAL_MOVE)

        board = state.board
        mover = board.soldier_at(source)
        if mover is None or mover.owner != side:
            return ActionResult.failure(
                f"No soldier of side {side} at {tuple(source)}",
                error_code=ErrorCode.NOT_YOUR_SOLDIER,
            )
        if not board.is_legal_destination(source, target, side):
            return ActionResult.failure(
                f"Cannot move {tuple(source)} -> {tuple(target)}",
                error_code=ErrorCode.ILLEGAL_MOVE,
            )

        # Validation complete; mutate from here on
        username = state.sides[side].username
        defender = board.soldier_at(target)
        board.vacate(source)

        if defender is None:
            board.place(target, mover)
            changes = [f"{username} moved {tuple(source)} -> {tuple(target)}"]
            changes.extend(self._end_turn(state))
            return ActionResult.applied(events=[_broadcast(EventType.STATE_CHANGED)], changes=changes)

        mover.revealed = True
        defender.revealed = True
        outcome = compare(mover.item, defender.item)

        if outcome == Outcome.TIE:
            other = state.other(side)
            records: list[TieRecord | None] = [None, None]
            records[side] = TieRecord(position=target, soldier_id=mover.soldier_id)
            records[other] = TieRecord(position=target, soldier_id=defender.soldier_id)
            state.tie = records
            state.phase = MatchPhase.TIE_BREAK
            board.place(target, TIE_MARKER)
            return ActionResult.applied(
                events=[_broadcast(EventType.STATE_CHANGED)],
                changes=[f"{username} attacked {tuple(target)}: {mover.item.value} ties - tie-break"],
            )

        survivor = mover if outcome == Outcome.FIRST_WINS else defender
        board.place(target, survivor)
        changes = [
            f"{username} attacked {tuple(target)}: {mover.item.value} vs "
            f"{defender.item.value}, {state.sides[survivor.owner].username} holds the cell"
        ]
        changes.extend(self._end_turn(state))
        return ActionResult.applied(events=[_broadcast(EventType.STATE_CHANGED)], changes=changes)

    def _handle_tie_choice(self, state: MatchState, action: Action) -> ActionResult:
        side = action.payload.side
        item = action.payload.item
        if item is None:
            return ActionResult.failure("Tie choice needs an item", error_code=ErrorCode.ILLEGAL_MOVE)

        records = state.tie
        records[side].chosen_item = item

        if not all(r.has_chosen for r in records):
            return ActionResult.applied(
                events=[_broadcast(EventType.STATE_CHANGED)],
                changes=[f"{state.sides[side].username} picked for the tie-break"],
            )

        outcome = compare(records[0].chosen_item, records[1].chosen_item)
        if outcome == Outcome.TIE:
            tied_item = records[0].chosen_item
            for record in records:
                record.chosen_item = None
            return ActionResult.applied(
                events=[_broadcast(EventType.TIE_ROUND_REPEATED, tied_item=tied_item.value)],
                changes=[f"Tie again on {tied_item.value} - pick again"],
            )

        winning_side = 0 if outcome == Outcome.FIRST_WINS else 1
        record = records[winning_side]
        state.board.place(
            record.position,
            Soldier(
                soldier_id=record.soldier_id,
                owner=winning_side,
                item=record.chosen_item,
                revealed=True,
            ),
        )
        state.tie = None
        state.phase = MatchPhase.PLAYING

        changes = [
            f"{state.sides[winning_side].username} wins the tie-break with "
            f"{record.chosen_item.value}"
        ]
        changes.extend(self._end_turn(state))
        return ActionResult.applied(events=[_broadcast(EventType.STATE_CHANGED)], changes=changes)

    def _end_turn(self, state: MatchState) -> list[str]:
        """
        Win check, then hand the turn over.

        A side left with no legal move ends the match as a stalemate
        rather than waiting forever.
        """
        counts = state.board.count_by_side()
        for side in (0, 1):
            if counts[side] == 0:
                winning_side = state.other(side)
                state.winner = Winner(side=winning_side, reason=WinReason.ELIMINATION)
                state.phase = MatchPhase.FINISHED
                return [f"{state.sides[winning_side].username} wins"]

        state.turn = state.other(state.turn)
        if not has_legal_move(state.board, state.turn):
            state.winner = Winner(side=None, reason=WinReason.STALEMATE)
            state.phase = MatchPhase.FINISHED
            return [f"{state.sides[state.turn].username} cannot move - stalemate"]
        return []

    # -------------------------------------------------------------------------
    # Finished / lifecycle
    # -------------------------------------------------------------------------

    def _handle_replay(self, state: MatchState, action: Action) -> ActionResult:
        state.reset()
        return ActionResult.applied(
            events=[_broadcast(EventType.STATE_CHANGED)],
            changes=["Board reset for a new round"],
        )

    def _handle_forfeit(self, state: MatchState, action: Action) -> ActionResult:
        side = action.payload.side
        other = state.other(side)

        if state.sides[other].is_bot:
            state.winner = Winner.abandoned()
        else:
            state.winner = Winner(side=other, reason=WinReason.FORFEIT)
        state.phase = MatchPhase.FINISHED
        state.tie = None

        return ActionResult.applied(
            events=[MatchEvent(EventType.STATE_CHANGED, recipients=[other])],
            changes=[f"{state.sides[side].username} disconnected"],
        )

    def _handle_exit(self, state: MatchState, action: Action) -> ActionResult:
        side = action.payload.side
        other = state.other(side)

        state.winner = Winner.abandoned()
        state.phase = MatchPhase.FINISHED
        state.tie = None

        return ActionResult.applied(
            events=[
                MatchEvent(EventType.STATE_CHANGED, recipients=[other]),
                MatchEvent(EventType.RETURNED_TO_LOBBY, recipients=[side]),
            ],
            changes=[f"{state.sides[side].username} left the match"],
        )


def apply_action(state: MatchState, action: Action) -> ActionResult:
    """Convenience function to apply an action."""
    return Reducer().apply(state, action)
