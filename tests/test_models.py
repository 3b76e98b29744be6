import pytest
from decimal import Decimal
from pydantic import ValidationError

from models import Account, Transaction, TransactionType


class TestTransaction:
    """Transaction model validation."""

    def test_aliases_from_csv_headers(self):
        transaction = Transaction.model_validate(
            {"type": "withdrawal", "client": "2", "tx": "5", "amount": "0.5"}
        )

        assert transaction.kind == TransactionType.withdrawal
        assert transaction.client_id == 2
        assert transaction.transaction_id == 5
        assert transaction.amount == Decimal("0.5000")

    def test_is_immutable(self):
        transaction = Transaction(kind="deposit", client_id=1, transaction_id=1, amount="1.0")

        with pytest.raises(ValidationError):
            transaction.amount = Decimal("2.0")

    def test_deposit_requires_amount(self):
        with pytest.raises(ValidationError) as exc_info:
            Transaction(kind="deposit", client_id=1, transaction_id=1)

        assert "require an amount" in str(exc_info.value)

    def test_lifecycle_kinds_drop_amount(self):
        transaction = Transaction(kind="resolve", client_id=1, transaction_id=1, amount="3.0")

        assert transaction.amount is None

    def test_rejects_more_than_four_decimals(self):
        with pytest.raises(ValidationError):
            Transaction(kind="deposit", client_id=1, transaction_id=1, amount="0.12345")

    def test_accepts_trailing_zeros_beyond_four_places(self):
        transaction = Transaction(kind="deposit", client_id=1, transaction_id=1, amount="0.123400")

        assert transaction.amount == Decimal("0.1234")

    @pytest.mark.parametrize("client_id,tx_id", [(65535, 4294967295), (0, 0)])
    def test_identifier_bounds(self, client_id, tx_id):
        transaction = Transaction(kind="dispute", client_id=client_id, transaction_id=tx_id)

        assert (transaction.client_id, transaction.transaction_id) == (client_id, tx_id)

    def test_carries_amount(self):
        assert TransactionType.deposit.carries_amount
        assert TransactionType.withdrawal.carries_amount
        assert not TransactionType.dispute.carries_amount
        assert not TransactionType.chargeback.carries_amount


class TestAccount:

    def test_new_account_is_empty(self):
        account = Account(client_id=4)

        assert account.available == account.held == account.total == Decimal("0")
        assert account.locked is False

    def test_total_tracks_available_and_held(self):
        account = Account(client_id=4, available=Decimal("1.5"), held=Decimal("2.25"))
        account.held -= Decimal("0.25")

        assert account.total == Decimal("3.5")
        assert account.model_dump()["total"] == Decimal("3.5")
