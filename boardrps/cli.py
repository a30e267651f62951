"""
Board RPS CLI - Command-line interface for the engine.

Usage:
    boardrps serve [--host HOST] [--port PORT]    Run the WebSocket server
    boardrps play [--seed N] [--name NAME]        Play the bot in the terminal
"""

import argparse
import logging
import os
import sys

from .bots import RandomPolicy
from .engine_core import Action, Item, MatchPhase, MatchState, Soldier, TieMarker
from .engine_core.state import BotParticipant, HumanParticipant
from .session import GameLoop, MatchRegistry


LOCAL_CONNECTION = "local"

ITEM_LETTERS = {Item.ROCK: "R", Item.PAPER: "P", Item.SCISSORS: "S"}

PLAY_HELP = """Commands:
  reshuffle               Redraw your items (setup only)
  ready                   Start the match (setup only)
  m ROW COL ROW COL       Move a soldier one cell, e.g. "m 1 3 2 3"
  t rock|paper|scissors   Pick an item during a tie-break
  replay                  Deal a new board after the match ends
  help                    Show this text
  quit                    Leave the match"""


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Board RPS - Rock-Paper-Scissors on a board",
        prog="boardrps",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the WebSocket server")
    serve_parser.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"), help="Bind address")
    serve_parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "3000")), help="Bind port")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")

    # Play command
    play_parser = subparsers.add_parser("play", help="Play against the bot in the terminal")
    play_parser.add_argument("--seed", type=int, default=None, help="Seed for board and bot")
    play_parser.add_argument("--name", default="You", help="Your display name")

    args = parser.parse_args()

    logging.basicConfig(
        level=os.getenv("BOARDRPS_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "serve":
        cmd_serve(args)
    elif args.command == "play":
        cmd_play(args)
    else:
        parser.print_help()
        sys.exit(1)


def cmd_serve(args):
    """Run the server under uvicorn."""
    import uvicorn

    uvicorn.run(
        "boardrps.api.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=os.getenv("BOARDRPS_LOG_LEVEL", "info").lower(),
    )


def cmd_play(args):
    """Interactive match against the random bot."""
    registry = MatchRegistry()
    loop = GameLoop(registry)
    started = loop.start_match(
        [
            HumanParticipant(LOCAL_CONNECTION, args.name),
            BotParticipant(policy=RandomPolicy(seed=args.seed)),
        ],
        is_bot_match=True,
        seed=args.seed,
    )
    match_id = started.match_id
    match = registry.get(match_id)

    print(PLAY_HELP)
    while True:
        print()
        print(render_board(match, viewer_side=0))
        print(describe_status(match, viewer_side=0))

        try:
            line = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            line = "quit"
        if not line:
            continue

        if line in ("help", "?"):
            print(PLAY_HELP)
            continue
        if line in ("quit", "exit", "q"):
            loop.dispatch(match_id, Action.exit(0))
            print("Left the match.")
            return

        try:
            action = parse_play_command(line)
        except ValueError as e:
            print(f"Error: {e}")
            continue

        result = loop.dispatch(match_id, action)
        if not result.success:
            print(f"Rejected: {result.error}")
            continue
        for change in result.changes:
            print(f"  - {change}")


def parse_play_command(line: str) -> Action:
    """Turn one terminal line into an action for side 0."""
    parts = line.split()
    verb = parts[0].lower()

    if verb == "reshuffle":
        return Action.reshuffle(0)
    if verb == "ready":
        return Action.ready(0)
    if verb == "replay":
        return Action.replay(0)
    if verb in ("m", "move"):
        if len(parts) != 5:
            raise ValueError("move needs four numbers: ROW COL ROW COL")
        try:
            r1, c1, r2, c2 = (int(p) for p in parts[1:])
        except ValueError:
            raise ValueError("move coordinates must be integers")
        return Action.move(0, (r1, c1), (r2, c2))
    if verb in ("t", "tie"):
        if len(parts) != 2:
            raise ValueError("tie choice needs one item")
        try:
            return Action.tie_choice(0, Item(parts[1].lower()))
        except ValueError:
            raise ValueError(f"unknown item: {parts[1]}")
    raise ValueError(f"unknown command: {verb} (type 'help')")


def render_board(match: MatchState, viewer_side: int) -> str:
    """
    Text board for one viewer.

    Own soldiers show their item in upper case, revealed enemies in
    lower case, hidden enemies as '?', tie cells as 'X'.
    """
    board = match.board
    lines = ["   " + " ".join(str(c) for c in range(board.cols))]
    for r, row in enumerate(board.cells):
        cells = []
        for occupant in row:
            if isinstance(occupant, Soldier):
                letter = ITEM_LETTERS[occupant.item]
                if occupant.owner == viewer_side:
                    cells.append(letter)
                elif occupant.revealed:
                    cells.append(letter.lower())
                else:
                    cells.append("?")
            elif isinstance(occupant, TieMarker):
                cells.append("X")
            else:
                cells.append(".")
        lines.append(f"{r:2d} " + " ".join(cells))
    return "\n".join(lines)


def describe_status(match: MatchState, viewer_side: int) -> str:
    """One-line summary of phase, turn and result."""
    you = match.sides[viewer_side]
    if match.phase == MatchPhase.SETUP:
        return f"Setup: {you.reshuffles_remaining} reshuffle(s) left. Type 'ready' to start."
    if match.phase == MatchPhase.PLAYING:
        whose = "Your" if match.turn == viewer_side else f"{match.sides[match.turn].username}'s"
        return f"{whose} turn."
    if match.phase == MatchPhase.TIE_BREAK:
        record = match.tie[viewer_side]
        where = f"({record.position.row}, {record.position.col})"
        if record.has_chosen:
            return f"Tie-break at {where}: waiting for the opponent."
        return f"Tie-break at {where}: pick rock, paper or scissors with 't ITEM'."

    winner = match.winner
    if winner is None or winner.side is None:
        reason = winner.reason.value if winner else "over"
        return f"Match finished ({reason}). Type 'replay' or 'quit'."
    name = match.sides[winner.side].username
    return f"{name} wins by {winner.reason.value}. Type 'replay' or 'quit'."


if __name__ == "__main__":
    main()
