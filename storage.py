"""CSV adapters between the ledger engine and the outside world.

The transaction source is read whole before processing starts so that a
malformed record is reported before any account is touched. The account
report is written in client order so repeated runs produce identical bytes.
"""
import csv
from decimal import Decimal
from pathlib import Path
from typing import IO, Iterable, Iterator, List, Union

from pydantic import ValidationError
import structlog

from errors import InputError, OutputError
from models import Account, Transaction

logger = structlog.get_logger()

COLUMN_ALIASES = {
    "type": "type",
    "kind": "type",
    "client": "client",
    "client_id": "client",
    "tx": "tx",
    "transaction_id": "tx",
    "amount": "amount",
}
REQUIRED_COLUMNS = ("type", "client", "tx")
ACCOUNT_COLUMNS = ("client", "available", "held", "total", "locked")


def format_amount(value: Decimal) -> str:
    """Fixed-point rendering with exactly four decimals."""
    return f"{value:.4f}"


def _describe(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc']) or 'row'}: {error['msg']}"
        for error in exc.errors()
    )


def _read_header(reader) -> List[str]:
    try:
        header = next(reader)
    except StopIteration:
        raise InputError("missing header row", line=1)

    columns = [COLUMN_ALIASES.get(name.strip().lower(), name.strip().lower()) for name in header]
    missing = [name for name in REQUIRED_COLUMNS if name not in columns]
    if missing:
        raise InputError(f"missing column(s): {', '.join(missing)}", line=1)
    return columns


def parse_transactions(lines: Iterable[str]) -> Iterator[Transaction]:
    """Decode CSV text lines into transactions, in input order."""
    reader = csv.reader(lines, skipinitialspace=True)
    try:
        columns = _read_header(reader)
        for row in reader:
            if not any(cell.strip() for cell in row):
                continue
            if len(row) > len(columns):
                raise InputError(
                    f"expected at most {len(columns)} fields, found {len(row)}",
                    line=reader.line_num
                )
            record = {name: cell.strip() for name, cell in zip(columns, row)}
            try:
                yield Transaction.model_validate(record)
            except ValidationError as e:
                raise InputError(_describe(e), line=reader.line_num) from e
    except csv.Error as e:
        raise InputError(str(e), line=reader.line_num) from e


def read_transactions(path: Union[str, Path]) -> List[Transaction]:
    """Read and decode every transaction of a CSV file."""
    try:
        with open(path, newline="", encoding="utf-8-sig") as handle:
            transactions = list(parse_transactions(handle))
    except InputError:
        raise
    except (OSError, UnicodeDecodeError) as e:
        raise InputError(f"cannot read {path}: {e}") from e

    logger.info("Transactions loaded", path=str(path), transactions=len(transactions))
    return transactions


def write_accounts(accounts: Iterable[Account], stream: IO[str]) -> None:
    """Write the account report, one row per client, ordered by client id."""
    try:
        writer = csv.writer(stream, lineterminator="\n")
        writer.writerow(ACCOUNT_COLUMNS)
        for account in sorted(accounts, key=lambda a: a.client_id):
            writer.writerow([
                account.client_id,
                format_amount(account.available),
                format_amount(account.held),
                format_amount(account.total),
                "true" if account.locked else "false",
            ])
        stream.flush()
    except (OSError, ValueError, csv.Error) as e:
        raise OutputError(f"cannot write accounts: {e}") from e
