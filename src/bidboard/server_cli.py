"""``bidboard-server``: run the board API under uvicorn.

Options are handed to the app through ``BIDBOARD_*`` environment variables,
which settings read when ``bidboard.main`` is imported by uvicorn.
"""

import argparse
import os


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bidboard-server",
        description="Proposal workflow board API",
    )
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8080)
    parser.add_argument(
        "--local",
        action="store_true",
        help="SQLite file database with the default board templates seeded",
    )
    parser.add_argument("--database-url", help="Async SQLAlchemy URL (ignored with --local)")
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        help="Overrides BIDBOARD_LOG_LEVEL",
    )
    return parser


def environment_for(args: argparse.Namespace) -> dict[str, str]:
    env = {}
    if args.local:
        env["BIDBOARD_LOCAL_MODE"] = "1"
    if args.database_url:
        env["BIDBOARD_DATABASE_URL"] = args.database_url
    if args.log_level:
        env["BIDBOARD_LOG_LEVEL"] = args.log_level
    return env


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    os.environ.update(environment_for(args))

    import uvicorn

    uvicorn.run("bidboard.main:app", host=args.host, port=args.port, log_level=args.log_level or "info")


if __name__ == "__main__":
    main()
