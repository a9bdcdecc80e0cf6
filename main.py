import argparse
import logging
import sys
from typing import IO, List, Optional
import structlog

from config import ENVIRONMENTS, Settings, get_settings, get_settings_for_environment
from exceptions import LedgerError
from services import get_ledger_service
from storage import CsvAccountWriter, CsvTransactionReader

logger = structlog.get_logger()


def configure_logging(settings: Settings) -> None:
    """Configure structured logging to stderr; stdout carries the report."""
    logging.basicConfig(
        stream=sys.stderr,
        level=settings.log_level.upper(),
        format="%(message)s",
        force=True,
    )

    if settings.log_format == "text":
        renderer = structlog.dev.ConsoleRenderer(colors=False)
    else:
        renderer = structlog.processors.JSONRenderer()

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
        cache_logger_on_first_use=not settings.debug,
    )


def run(path: str, output: IO[str], settings: Settings) -> int:
    """Process the transactions in ``path`` and write the account report to ``output``.

    Returns the number of accounts written. Raises LedgerError if the input
    cannot be read or the report cannot be written.
    """
    service = get_ledger_service(settings)

    with CsvTransactionReader.from_path(path, trim=settings.csv_trim_whitespace) as reader:
        accounts = service.process(reader.read())

    return CsvAccountWriter(output).write_accounts(accounts)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ledger-engine",
        description="Replay a CSV of transactions and print the resulting client accounts"
    )
    parser.add_argument("filename", help="CSV file with type,client,tx,amount columns")
    parser.add_argument(
        "--env",
        choices=ENVIRONMENTS,
        help="Use the settings preset for this environment"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    settings = get_settings_for_environment(args.env) if args.env else get_settings()
    configure_logging(settings)

    logger.debug("Starting ledger run", app=settings.app_name, version=settings.app_version, filename=args.filename)

    try:
        run(args.filename, sys.stdout, settings)
    except LedgerError as e:
        logger.error("Ledger run failed", error=str(e), filename=args.filename)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
