"""CLI commands for WasteNot."""

import argparse
import asyncio
import sys
import tempfile
from pathlib import Path
from typing import Optional

from wastenot.exceptions import InvalidImageError
from wastenot.services.ai_service import ClaudeService
from wastenot.services.file_service import FileService
from wastenot.services.reward_engine import (
    badge_level_for_streak,
    is_badge_milestone,
    points_for_waste,
)
from wastenot.services.waste_resolver import WasteResolver


def score(
    after: str,
    before: Optional[str] = None,
    waste: Optional[int] = None,
    streak: Optional[int] = None,
    vision=None,
) -> dict:
    """
    Score a meal from photo files without touching any user data.

    Photos are copied to a scratch directory and resolved exactly as a meal
    completion would resolve them.
    """
    with tempfile.TemporaryDirectory() as scratch:
        file_service = FileService(upload_dir=scratch)
        try:
            after_url = file_service.save_bytes(
                Path(after).read_bytes(), Path(after).suffix.lower()
            )
            before_url = None
            if before:
                before_url = file_service.save_bytes(
                    Path(before).read_bytes(), Path(before).suffix.lower()
                )
        except (OSError, InvalidImageError) as e:
            print(f"Error: {e}")
            sys.exit(1)

        resolver = WasteResolver(
            estimator=vision or ClaudeService(), file_service=file_service
        )
        resolved = asyncio.run(resolver.resolve(before_url, after_url, waste))

    result = {"waste_percentage": resolved, "points": points_for_waste(resolved)}
    print(f"Waste: {resolved}%")
    print(f"Points: {result['points']}")

    if streak is not None:
        badge = badge_level_for_streak(streak).value if is_badge_milestone(streak) else None
        result["badge"] = badge
        print(f"Badge at streak {streak}: {badge or 'none'}")

    return result


def serve(host: str, port: int) -> None:
    import uvicorn

    # Factory: the app and its services are built only when the server starts
    uvicorn.run("wastenot.main:create_app", factory=True, host=host, port=port)


def main(argv: Optional[list] = None):
    parser = argparse.ArgumentParser(description="WasteNot CLI")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    # score command
    score_parser = subparsers.add_parser(
        "score", help="Resolve waste and points for a pair of meal photos"
    )
    score_parser.add_argument("--after", required=True, help="After-meal photo")
    score_parser.add_argument("--before", help="Before-meal photo")
    score_parser.add_argument(
        "--waste", type=int, help="Waste percentage to use instead of the estimate"
    )
    score_parser.add_argument(
        "--streak", type=int, help="Completed-meal count to check for a badge"
    )

    args = parser.parse_args(argv)

    if args.command == "serve":
        serve(args.host, args.port)
    elif args.command == "score":
        score(args.after, args.before, args.waste, args.streak)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
