from decimal import Decimal
from enum import IntEnum
from typing import Optional


class ExitCode(IntEnum):
    OK = 0
    USAGE = 1
    INPUT = 2
    PROCESS = 3
    OUTPUT = 4


class LedgerError(Exception):
    """Base class for every failure surfaced to the command line."""

    category = "error"
    exit_code = ExitCode.PROCESS


class UsageError(LedgerError):
    category = "input error"
    exit_code = ExitCode.USAGE


class InputError(LedgerError):
    """The transaction source is unreadable or holds a malformed record."""

    category = "input error"
    exit_code = ExitCode.INPUT

    def __init__(self, message: str, line: Optional[int] = None):
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


class EngineError(LedgerError):
    category = "process error"
    exit_code = ExitCode.PROCESS


class InsufficientFunds(EngineError):
    def __init__(self, client_id: int, transaction_id: int, available: Decimal, requested: Decimal):
        self.client_id = client_id
        self.transaction_id = transaction_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"insufficient funds for client {client_id} "
            f"(tx {transaction_id}: requested {requested}, available {available})"
        )


class BalanceOverflow(EngineError):
    def __init__(self, client_id: int, transaction_id: int):
        self.client_id = client_id
        self.transaction_id = transaction_id
        super().__init__(
            f"balance of client {client_id} exceeds the supported precision (tx {transaction_id})"
        )


class OutputError(LedgerError):
    category = "writing error"
    exit_code = ExitCode.OUTPUT
