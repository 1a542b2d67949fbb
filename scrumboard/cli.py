"""
Scrumboard CLI - Command-line interface for the engine.

Usage:
    scrumboard simulate [--turns N] [--seed S]   Play an automatic game
    scrumboard serve [--host H] [--port P]       Run the REST API
"""

import argparse
import json
import logging
import sys


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Scrumboard - Scrum Board Workflow Engine",
        prog="scrumboard",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log engine activity")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Simulate command
    simulate_parser = subparsers.add_parser("simulate", help="Play an automatic game")
    simulate_parser.add_argument("--turns", type=int, default=None, help="Turns to play")
    simulate_parser.add_argument("--seed", type=int, default=None, help="Seed for cards and dice")
    simulate_parser.add_argument("--json", action="store_true", help="Print the summary as JSON")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the REST API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "simulate":
        cmd_simulate(args)
    elif args.command == "serve":
        cmd_serve(args)
    else:
        parser.print_help()
        sys.exit(1)


def cmd_simulate(args):
    """Play a seeded game and print its metrics."""
    from .engine_core.config import GameConfig
    from .engine_core.errors import EngineError
    from .session.simulator import simulate_game

    try:
        game, reports = simulate_game(turns=args.turns, seed=args.seed, config=GameConfig.from_env())
    except EngineError as e:
        print(f"Error: {e.error_code}: {e.message}")
        sys.exit(1)

    summary = game.summary()
    if args.json:
        print(json.dumps(summary.to_dict(), indent=2))
        return

    for report in reports:
        rolls = ", ".join(f"{card_id}={roll}" for card_id, roll in report.rolls) or "-"
        print(f"Turn {report.turn}: delivered {report.delivered}, tokens {report.tokens_used}, rolls: {rolls}")

    print()
    print(f"Turns played: {summary.turns_played}")
    print(f"Total velocity: {summary.total_velocity}")
    print(f"Average velocity: {summary.average_velocity:.2f}")
    print(f"Accumulated score: {summary.accumulated_score}")
    print(f"Revert events: {summary.revert_events}")
    print(f"Tokens used: {summary.tokens_used}")
    if summary.average_cycle_time is not None:
        print(f"Average cycle time: {summary.average_cycle_time:.2f} turns")


def cmd_serve(args):
    """Run the API with uvicorn."""
    import uvicorn

    uvicorn.run("scrumboard.api.app:app", host=args.host, port=args.port)


if __name__ == "__main__":
    main()
