from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationInfo, computed_field, field_validator
from enum import Enum
from typing import Optional
from decimal import Decimal, InvalidOperation


AMOUNT_QUANTUM = Decimal("0.0001")
ZERO = Decimal("0.0000")

MAX_CLIENT_ID = 2**16 - 1
MAX_TRANSACTION_ID = 2**32 - 1


class TransactionType(str, Enum):
    deposit = "deposit"
    withdrawal = "withdrawal"
    dispute = "dispute"
    resolve = "resolve"
    chargeback = "chargeback"

    @property
    def carries_amount(self) -> bool:
        return self in (TransactionType.deposit, TransactionType.withdrawal)


def quantize_amount(value: Decimal) -> Decimal:
    """Pin an amount to four decimal places, refusing to drop precision."""
    try:
        quantized = value.quantize(AMOUNT_QUANTUM)
    except InvalidOperation:
        raise ValueError("Amount is out of range")
    if quantized != value:
        raise ValueError("Amount supports at most four decimal places")
    return quantized


class Transaction(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    kind: TransactionType = Field(
        ...,
        validation_alias=AliasChoices("type", "kind"),
        description="Transaction type"
    )
    client_id: int = Field(
        ...,
        ge=0,
        le=MAX_CLIENT_ID,
        validation_alias=AliasChoices("client", "client_id"),
        description="Client identifier"
    )
    transaction_id: int = Field(
        ...,
        ge=0,
        le=MAX_TRANSACTION_ID,
        validation_alias=AliasChoices("tx", "transaction_id"),
        description="Transaction identifier, or the referenced one for dispute-lifecycle kinds"
    )
    amount: Optional[Decimal] = Field(
        default=None,
        validate_default=True,
        description="Monetary amount, deposits and withdrawals only"
    )

    @field_validator('kind', mode='before')
    @classmethod
    def normalize_kind(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator('amount', mode='before')
    @classmethod
    def blank_amount_is_missing(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v, info: ValidationInfo):
        kind = info.data.get('kind')
        if kind is None:
            return v
        if not kind.carries_amount:
            return None
        if v is None:
            raise ValueError(f"{kind.value.capitalize()} transactions require an amount")
        return quantize_amount(v)


class Account(BaseModel):
    client_id: int = Field(..., ge=0, le=MAX_CLIENT_ID, description="Client identifier")
    available: Decimal = Field(default=ZERO, description="Funds not held")
    held: Decimal = Field(default=ZERO, description="Funds frozen by open disputes")
    locked: bool = Field(default=False, description="Set once a chargeback has been applied")

    @computed_field
    @property
    def total(self) -> Decimal:
        return self.available + self.held
