from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Set
from models import Account, Transaction


class AccountRepository(ABC):
    @abstractmethod
    def get(self, client_id: int) -> Optional[Account]:
        """Get account. Returns None if the client was never referenced."""
        pass

    @abstractmethod
    def get_or_create(self, client_id: int) -> Account:
        """Get account, opening it with zero balances on first reference."""
        pass

    @abstractmethod
    def list_accounts(self) -> List[Account]:
        """List every account in first-reference order."""
        pass

    @abstractmethod
    def count(self) -> int:
        pass


class TransactionRepository(ABC):
    @abstractmethod
    def get(self, transaction_id: int) -> Optional[Transaction]:
        """Get an applied deposit or withdrawal by id."""
        pass

    @abstractmethod
    def add(self, transaction: Transaction) -> None:
        """Record an applied deposit or withdrawal."""
        pass

    @abstractmethod
    def count(self) -> int:
        pass


class DisputeRepository(ABC):
    @abstractmethod
    def is_disputed(self, transaction_id: int) -> bool:
        pass

    @abstractmethod
    def is_charged_back(self, transaction_id: int) -> bool:
        pass

    @abstractmethod
    def open(self, transaction_id: int) -> None:
        pass

    @abstractmethod
    def close(self, transaction_id: int, charged_back: bool = False) -> None:
        pass

    @abstractmethod
    def count(self) -> int:
        """Number of disputes currently open."""
        pass


class InMemoryAccountRepository(AccountRepository):
    def __init__(self):
        self.accounts: Dict[int, Account] = {}

    def get(self, client_id: int) -> Optional[Account]:
        return self.accounts.get(client_id)

    def get_or_create(self, client_id: int) -> Account:
        account = self.accounts.get(client_id)
        if account is None:
            account = Account(client_id=client_id)
            self.accounts[client_id] = account
        return account

    def list_accounts(self) -> List[Account]:
        return list(self.accounts.values())

    def count(self) -> int:
        return len(self.accounts)


class InMemoryTransactionRepository(TransactionRepository):
    def __init__(self):
        self.transactions: Dict[int, Transaction] = {}

    def get(self, transaction_id: int) -> Optional[Transaction]:
        return self.transactions.get(transaction_id)

    def add(self, transaction: Transaction) -> None:
        # Ids are not checked for uniqueness; the first occurrence stays referenceable.
        self.transactions.setdefault(transaction.transaction_id, transaction)

    def count(self) -> int:
        return len(self.transactions)


class InMemoryDisputeRepository(DisputeRepository):
    def __init__(self):
        self.disputed: Set[int] = set()
        self.charged_back: Set[int] = set()

    def is_disputed(self, transaction_id: int) -> bool:
        return transaction_id in self.disputed

    def is_charged_back(self, transaction_id: int) -> bool:
        return transaction_id in self.charged_back

    def open(self, transaction_id: int) -> None:
        self.disputed.add(transaction_id)

    def close(self, transaction_id: int, charged_back: bool = False) -> None:
        self.disputed.discard(transaction_id)
        if charged_back:
            self.charged_back.add(transaction_id)

    def count(self) -> int:
        return len(self.disputed)
