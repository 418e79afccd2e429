"""Command line entry point.

    python -m freebox_exporter [-c CONFIG] [-v LEVEL] register [--poll-interval N]
    python -m freebox_exporter [-c CONFIG] [-v LEVEL] session-diagnostic [--show-token]

Exit code is 0 on success and 1 on any authentication or configuration error.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import signal
import sys

from .config import ExporterConfig, check_data_directory, load_config
from .const import VERSION
from .core.auth import Authenticator, FileCredentialStore
from .core.exceptions import ConfigError, FreeboxAuthError
from .core.log_buffer import setup_logging

_LOGGER = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(prog="freebox_exporter", description="Freebox OS API authentication")
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("-c", "--config", help="Path to the YAML configuration file")
    parser.add_argument(
        "-v",
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Log level, overrides the configuration file",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    register = subparsers.add_parser("register", help="Pair the application with the box")
    register.add_argument(
        "--poll-interval",
        type=float,
        help="Seconds between authorization status checks",
    )

    diagnostic = subparsers.add_parser("session-diagnostic", help="Open a session and report on it")
    diagnostic.add_argument(
        "--show-token",
        action="store_true",
        help="Print the session token in clear",
    )

    return parser


def _build_authenticator(config: ExporterConfig) -> Authenticator:
    data_directory = check_data_directory(config.core.data_directory)
    return Authenticator(
        config.core.api_url,
        FileCredentialStore.from_data_directory(data_directory),
        identity=config.identity(),
        config=config.to_auth_config(),
    )


def _install_signal_handlers(stop_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Not available on Windows event loops
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop_event.set)


async def run_register(config: ExporterConfig, poll_interval: float | None = None) -> int:
    """Pair the application unless a credential is already stored."""
    async with _build_authenticator(config) as auth:
        if await auth.is_registered():
            _LOGGER.info("Application already registered, nothing to do")
            return 0

        stop_event = asyncio.Event()
        _install_signal_handlers(stop_event)
        attempt = await auth.register(poll_interval=poll_interval, stop_event=stop_event)

    if not attempt.persisted:
        print("The application credential could not be saved, store it manually:")
        print(attempt.credential)
    return 0


async def run_session_diagnostic(config: ExporterConfig, show_token: bool = False) -> int:
    """Open a session and print the diagnostic as JSON."""
    async with _build_authenticator(config) as auth:
        diagnostic = await auth.diagnostic(show_token=show_token)
    print(json.dumps(diagnostic.to_dict(), indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as err:
        print(f"Error: {err}", file=sys.stderr)
        return 1

    setup_logging(args.log_level or config.log.level)

    try:
        if args.command == "register":
            return asyncio.run(run_register(config, args.poll_interval))
        return asyncio.run(run_session_diagnostic(config, args.show_token))
    except (FreeboxAuthError, ConfigError) as err:
        _LOGGER.error("%s", err)
        return 1
