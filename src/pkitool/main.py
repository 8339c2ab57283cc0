"""
Application entry point: wires dependencies and runs one CLI command.

Composition root: creates the concrete storage adapter and codec, injects
them into PkiManager, and runs the selected command inside a
LoggingExecutionContext.

This is the ONLY place where concrete adapters are instantiated.

Responsibilities:
  1. Load and validate configuration from environment
  2. Configure structlog (human-readable, on stderr)
  3. Parse arguments and build the manager for the target directory
  4. Print the command output, or the failure, and set the exit code
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Sequence
from pathlib import Path

import structlog
from pydantic import ValidationError

from pkitool import __version__
from pkitool.adapters.pem_codec import PemPairCodec
from pkitool.adapters.storage import FilesystemAliasStorage
from pkitool.cli import build_parser
from pkitool.config import AppSettings
from pkitool.issuance import PkiManager
from pkitool.railway import FailureDescription, LoggingExecutionContext
from pkitool.railway.result import Result


def configure_structlog(log_level: str = "WARNING") -> None:
    """
    Configure structlog for colored, human-readable console output.

    Logs go to stderr so command output on stdout stays pipeable.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.WARNING)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=True,
    )


def build_manager(directory: Path) -> PkiManager:
    """Filesystem storage plus PEM codec over the same directory."""
    storage = FilesystemAliasStorage(directory)
    return PkiManager(storage, PemPairCodec(storage))


def run(argv: Sequence[str] | None, settings: AppSettings) -> int:
    """Parse, execute and report one command. Returns the process exit code."""
    args = build_parser().parse_args(argv)
    directory = args.directory if args.directory is not None else settings.directory
    manager = build_manager(directory)

    structlog.get_logger().debug(
        "app.command", version=__version__, operation=args.operation, directory=str(directory)
    )

    ctx = LoggingExecutionContext(operation=args.operation)
    result: Result[str] = ctx.execute(lambda: args.handler(args, manager, settings))
    return result.either(_print_output, _print_failure)


def _print_output(text: str) -> int:
    if text:
        print(text)  # noqa: T201
    return 0


def _print_failure(error: FailureDescription) -> int:
    print(f"error: {error}", file=sys.stderr)  # noqa: T201
    return 1


def main(argv: Sequence[str] | None = None) -> None:
    """Console script entry point."""
    try:
        settings = AppSettings()
    except ValidationError as e:
        print(f"FATAL: Configuration error: {e}", file=sys.stderr)  # noqa: T201
        sys.exit(1)

    configure_structlog(settings.log_level)
    sys.exit(run(argv, settings))


if __name__ == "__main__":
    main()
