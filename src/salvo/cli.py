"""Command-line entry point for the Salvo game server."""

from __future__ import annotations

import argparse
from typing import Sequence

from salvo.config import ServerConfig
from salvo.server import run_server
from salvo.telemetry import configure_console_logging, init_telemetry


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the authoritative Battleship room server.")
    parser.add_argument("--host", default=None, help="Interface to bind (default 127.0.0.1 or SALVO_HOST).")
    parser.add_argument("--port", type=int, default=None, help="Port to listen on (default 3000 or SALVO_PORT).")
    parser.add_argument(
        "--debug-log",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Log connection and game events.",
    )
    parser.add_argument(
        "--conceal-fleets",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Hide each player's fleet layout from their opponent in snapshots.",
    )
    return parser


def load_config(argv: Sequence[str] | None = None) -> ServerConfig:
    args = build_parser().parse_args(argv)
    return ServerConfig.from_env(
        host=args.host,
        port=args.port,
        debug_log=args.debug_log,
        conceal_fleets=args.conceal_fleets,
    )


def main(argv: Sequence[str] | None = None) -> None:
    config = load_config(argv)
    configure_console_logging(config.debug_log)
    init_telemetry()
    run_server(config)


if __name__ == "__main__":
    main()
