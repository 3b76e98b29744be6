from decimal import Decimal, Inexact, localcontext
from typing import Callable, Dict, Iterable, List, Optional
import structlog

from config import Settings, get_settings
from errors import BalanceOverflow, InsufficientFunds
from models import Account, Transaction, TransactionType
from repositories import (
    AccountRepository,
    DisputeRepository,
    InMemoryAccountRepository,
    InMemoryDisputeRepository,
    InMemoryTransactionRepository,
    TransactionRepository,
)

# Configure structured logging
logger = structlog.get_logger()


class LedgerEngine:
    """Applies an ordered transaction stream to per-client accounts.

    All state (accounts, applied deposits and withdrawals, open disputes) is
    owned by the engine instance. Dispute, resolve and chargeback events only
    see transactions applied before them; a reference that cannot be resolved
    is ignored rather than reported.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        account_repo: Optional[AccountRepository] = None,
        transaction_repo: Optional[TransactionRepository] = None,
        dispute_repo: Optional[DisputeRepository] = None,
    ):
        self.settings = settings or get_settings()
        self.account_repo = account_repo or InMemoryAccountRepository()
        self.transaction_repo = transaction_repo or InMemoryTransactionRepository()
        self.dispute_repo = dispute_repo or InMemoryDisputeRepository()
        self.handlers: Dict[TransactionType, Callable[[Transaction, Account], None]] = {
            TransactionType.deposit: self._process_deposit,
            TransactionType.withdrawal: self._process_withdrawal,
            TransactionType.dispute: self._process_dispute,
            TransactionType.resolve: self._process_resolve,
            TransactionType.chargeback: self._process_chargeback,
        }

    def apply(self, transaction: Transaction) -> None:
        """Apply a single transaction.

        Raises InsufficientFunds when configured to abort, and BalanceOverflow
        when a balance would need more digits than the decimal context holds.
        """
        logger.debug(
            "Processing transaction",
            type=transaction.kind.value,
            client_id=transaction.client_id,
            transaction_id=transaction.transaction_id,
            amount=str(transaction.amount) if transaction.amount is not None else None
        )

        account = self.account_repo.get_or_create(transaction.client_id)

        if account.locked and self.settings.freeze_locked_accounts:
            logger.warning(
                "Transaction ignored for locked account",
                type=transaction.kind.value,
                client_id=transaction.client_id,
                transaction_id=transaction.transaction_id
            )
            return

        try:
            with localcontext() as ctx:
                ctx.traps[Inexact] = True
                self.handlers[transaction.kind](transaction, account)
        except Inexact:
            logger.warning(
                "Balance overflow",
                client_id=transaction.client_id,
                transaction_id=transaction.transaction_id
            )
            raise BalanceOverflow(transaction.client_id, transaction.transaction_id)

    def process(self, transactions: Iterable[Transaction]) -> List[Account]:
        """Apply transactions in order and export the resulting accounts."""
        processed = 0
        for transaction in transactions:
            self.apply(transaction)
            processed += 1

        logger.info(
            "Transaction stream processed",
            transactions=processed,
            accounts=self.account_repo.count(),
            recorded_transactions=self.transaction_repo.count(),
            open_disputes=self.dispute_repo.count()
        )
        return self.export()

    def export(self) -> List[Account]:
        """Snapshot of every account referenced so far."""
        return [account.model_copy() for account in self.account_repo.list_accounts()]

    def _process_deposit(self, transaction: Transaction, account: Account) -> None:
        self._set_balances(account, account.available + transaction.amount, account.held)
        self.transaction_repo.add(transaction)

    def _process_withdrawal(self, transaction: Transaction, account: Account) -> None:
        if account.available < transaction.amount:
            logger.warning(
                "Insufficient funds for withdrawal",
                client_id=account.client_id,
                transaction_id=transaction.transaction_id,
                available=str(account.available),
                requested_amount=str(transaction.amount)
            )
            if self.settings.abort_on_insufficient_funds:
                raise InsufficientFunds(
                    account.client_id,
                    transaction.transaction_id,
                    account.available,
                    transaction.amount
                )
            return

        self._set_balances(account, account.available - transaction.amount, account.held)
        self.transaction_repo.add(transaction)

    def _process_dispute(self, transaction: Transaction, account: Account) -> None:
        original = self._find_original(transaction)
        if original is None:
            return

        if self.dispute_repo.is_disputed(original.transaction_id):
            logger.debug("Transaction already disputed", transaction_id=original.transaction_id)
            return
        if self.dispute_repo.is_charged_back(original.transaction_id):
            logger.debug("Transaction already charged back", transaction_id=original.transaction_id)
            return

        self._set_balances(account, account.available - original.amount, account.held + original.amount)
        self.dispute_repo.open(original.transaction_id)

    def _process_resolve(self, transaction: Transaction, account: Account) -> None:
        original = self._find_disputed(transaction)
        if original is None:
            return

        self._set_balances(account, account.available + original.amount, account.held - original.amount)
        self.dispute_repo.close(original.transaction_id)

    def _process_chargeback(self, transaction: Transaction, account: Account) -> None:
        original = self._find_disputed(transaction)
        if original is None:
            return

        self._set_balances(account, account.available, account.held - original.amount)
        account.locked = True
        self.dispute_repo.close(original.transaction_id, charged_back=True)

        logger.info(
            "Chargeback applied, account locked",
            client_id=account.client_id,
            transaction_id=original.transaction_id,
            amount=str(original.amount)
        )

    def _set_balances(self, account: Account, available: Decimal, held: Decimal) -> None:
        # Runs under the engine context, so a total that does not fit raises before assignment
        total = available + held
        logger.debug(
            "Balances updated",
            client_id=account.client_id,
            available=str(available),
            held=str(held),
            total=str(total)
        )
        account.available = available
        account.held = held

    def _find_original(self, transaction: Transaction) -> Optional[Transaction]:
        original = self.transaction_repo.get(transaction.transaction_id)
        if original is None or original.client_id != transaction.client_id:
            logger.debug(
                "Referenced transaction not found",
                type=transaction.kind.value,
                client_id=transaction.client_id,
                transaction_id=transaction.transaction_id
            )
            return None
        return original

    def _find_disputed(self, transaction: Transaction) -> Optional[Transaction]:
        original = self._find_original(transaction)
        if original is None:
            return None
        if not self.dispute_repo.is_disputed(original.transaction_id):
            logger.debug(
                "Referenced transaction not under dispute",
                type=transaction.kind.value,
                client_id=transaction.client_id,
                transaction_id=transaction.transaction_id
            )
            return None
        return original


# Factory function for dependency injection
def get_ledger_engine(settings: Optional[Settings] = None) -> LedgerEngine:
    return LedgerEngine(settings=settings)
