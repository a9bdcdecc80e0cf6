import csv
from typing import IO, Iterator, List, Mapping
from pydantic import ValidationError
import structlog

from exceptions import RecordSourceError, ReportSinkError
from models import Account, AccountSummary, ClientId, MalformedRecord, RawRecord, TransactionRecord

logger = structlog.get_logger()

REQUIRED_INPUT_FIELDS = ("type", "client", "tx")
OUTPUT_FIELDS = ("client", "available", "held", "total", "locked")


def _describe(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'record'}: {err['msg']}"
        for err in error.errors()
    )


class CsvTransactionReader:
    """Streams transaction records from CSV input.

    The first row is a header naming the ``type``, ``client``, ``tx`` and
    (optionally) ``amount`` columns. Rows that fail validation, including
    every row under a header that lacks a required column and rows the CSV
    parser rejects, are yielded as MalformedRecord so the caller can skip
    them. Only failures to read the input itself raise RecordSourceError.
    """

    def __init__(self, stream: IO[str], trim: bool = True, name: str = "<stream>"):
        self.stream = stream
        self.trim = trim
        self.name = name

    @classmethod
    def from_path(cls, path, trim: bool = True) -> "CsvTransactionReader":
        try:
            stream = open(path, newline="", encoding="utf-8")
        except OSError as e:
            raise RecordSourceError(f"{e.strerror or e}: {path}") from e
        return cls(stream, trim=trim, name=str(path))

    def __enter__(self) -> "CsvTransactionReader":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self.stream.close()

    def read(self) -> Iterator[RawRecord]:
        reader = csv.reader(self.stream)
        try:
            header = next(reader, None)
            if header is None:
                logger.warning("Transaction input is empty", source=self.name)
                return

            columns = [column.strip().lower() for column in header]
            missing = [column for column in REQUIRED_INPUT_FIELDS if column not in columns]
            if missing:
                # Every row will fail validation and be skipped individually
                logger.warning("Transaction header is missing columns", source=self.name, missing=missing)

            while True:
                try:
                    row = next(reader)
                except StopIteration:
                    return
                except csv.Error as e:
                    # The reader resets on the next line, so only this row is lost
                    yield MalformedRecord(line=reader.line_num, error=str(e))
                    continue

                if not any(cell.strip() for cell in row):
                    continue
                yield self._parse_row(columns, row, reader.line_num)
        except (csv.Error, UnicodeDecodeError) as e:
            raise RecordSourceError(f"{self.name}, line {reader.line_num}: {e}") from e
        except OSError as e:
            raise RecordSourceError(f"Could not read {self.name}: {e}") from e

    def _parse_row(self, columns: List[str], row: List[str], line: int) -> RawRecord:
        if len(row) > len(columns):
            return MalformedRecord(
                line=line,
                error=f"expected at most {len(columns)} fields, got {len(row)}"
            )

        values = [cell.strip() for cell in row] if self.trim else row
        data = dict(zip(columns, values))
        try:
            return TransactionRecord.model_validate(data)
        except ValidationError as e:
            return MalformedRecord(line=line, error=_describe(e))


class CsvAccountWriter:
    """Writes the final account snapshot as CSV, one row per client."""

    def __init__(self, stream: IO[str]):
        self.stream = stream
        self.writer = csv.DictWriter(stream, fieldnames=OUTPUT_FIELDS, lineterminator="\n")

    def write_accounts(self, accounts: Mapping[ClientId, Account]) -> int:
        try:
            if accounts:
                self.writer.writeheader()
            for client in sorted(accounts):
                summary = AccountSummary.from_account(accounts[client])
                self.writer.writerow(summary.to_row())
            self.stream.flush()
        except OSError as e:
            raise ReportSinkError(f"Could not write account report: {e}") from e

        logger.debug("Account report written", accounts=len(accounts))
        return len(accounts)
