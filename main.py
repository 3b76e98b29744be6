import argparse
import logging
import os
import sys
from typing import IO, List, Optional

import structlog

from config import Settings, get_settings_for_environment
from errors import ExitCode, LedgerError, UsageError
from services import get_ledger_engine
from storage import read_transactions, write_accounts


def configure_logging(settings: Settings) -> None:
    """Route structured logs to stderr; stdout carries the account report."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=settings.log_level.upper(),
        force=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.log_format == "json"
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


class ArgumentParser(argparse.ArgumentParser):
    def error(self, message):
        raise UsageError(f"Malformed input ({message})")


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="ledger",
        add_help=False,
        description="Apply a CSV transaction stream and print the resulting client accounts",
    )
    parser.add_argument("path", help="CSV file with type, client, tx, amount columns")
    return parser


def run(path: str, out: IO[str], settings: Settings) -> None:
    transactions = read_transactions(path)
    engine = get_ledger_engine(settings)
    accounts = engine.process(transactions)
    write_accounts(accounts, out)


def parse_args(argv: List[str]) -> argparse.Namespace:
    """Exactly one argument, taken as the path even when it starts with a dash."""
    if len(argv) != 1:
        raise UsageError(f"Malformed input (expected 1 argument, got {len(argv)})")
    return build_parser().parse_args(["--", *argv])


def main(argv: Optional[List[str]] = None, settings: Optional[Settings] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    if settings is None:
        settings = get_settings_for_environment(os.environ.get("LEDGER_ENV", "production"))
    configure_logging(settings)
    logger = structlog.get_logger()

    try:
        args = parse_args(argv)
        logger.info("Starting ledger run", app=settings.app_name, version=settings.app_version, path=args.path)
        run(args.path, sys.stdout, settings)
    except LedgerError as e:
        logger.debug("Run failed", category=e.category, error=str(e))
        print(f"{e.category}: {e}", file=sys.stderr)
        return int(e.exit_code)

    return int(ExitCode.OK)


if __name__ == "__main__":
    sys.exit(main())
