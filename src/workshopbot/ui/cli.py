from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import find_dotenv, load_dotenv

from workshopbot.app import Settings, inspect_user, run_bot
from workshopbot.config import (
    ConfigurationError,
    configure_logging,
    get_bot_config,
    get_keycloak_config,
    get_matrix_config,
    get_synapse_admin_config,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Provision workshop spaces on Matrix")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--env-file",
        type=str,
        help="Load environment variables from this file (default: .env if present)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("run", help="Connect to the homeserver and handle events")

    whois = subparsers.add_parser(
        "whois",
        help="Show the directory identity and workshops of a Matrix user",
    )
    whois.add_argument("user_id", type=str, help="Matrix user id, e.g. @alice:example.org")

    return parser.parse_args(list(argv))


def _load_settings() -> Settings:
    matrix = get_matrix_config()
    return Settings(
        matrix=matrix,
        synapse=get_synapse_admin_config(matrix),
        keycloak=get_keycloak_config(),
        bot=get_bot_config(),
    )


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)
    load_dotenv(parsed_args.env_file or find_dotenv(usecwd=True))

    try:
        settings = _load_settings()
    except ConfigurationError:
        log.exception("Invalid configuration")
        sys.exit(2)

    try:
        if parsed_args.command == "run":
            asyncio.run(run_bot(settings))
        elif parsed_args.command == "whois":
            if not parsed_args.user_id.startswith("@"):
                raise ValueError(f"Not a Matrix user id: {parsed_args.user_id}")  # noqa: TRY301
            workshops = asyncio.run(inspect_user(settings, parsed_args.user_id))
            if not workshops:
                log.info("No workshops for %s", parsed_args.user_id)
            for slug, workshop in sorted(workshops.items()):
                log.info("%s: %s (%s)", slug, workshop.display_name, workshop.role)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except KeyboardInterrupt:
        log.info("Closed by user (Ctrl+C)")
    except ConfigurationError:
        log.exception("Invalid configuration")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    signal(SIGINT, sigint_handler)
    main()
