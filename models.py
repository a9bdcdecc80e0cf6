from pydantic import BaseModel, Field, field_validator
from enum import Enum
from typing import ClassVar, Dict, Optional, Union
from dataclasses import dataclass, field
from collections import Counter

from amounts import Amount


ClientId = int
TransactionId = int

MAX_CLIENT_ID = 2 ** 16 - 1
MAX_TRANSACTION_ID = 2 ** 32 - 1


class TransactionType(str, Enum):
    deposit = "deposit"
    withdrawal = "withdrawal"
    dispute = "dispute"
    resolve = "resolve"
    chargeback = "chargeback"


class DisputeStatus(str, Enum):
    open = "open"
    closed = "closed"


class RejectionReason(str, Enum):
    malformed_record = "malformed_record"
    account_locked = "account_locked"
    duplicate_transaction = "duplicate_transaction"
    insufficient_funds = "insufficient_funds"
    unknown_transaction = "unknown_transaction"
    client_mismatch = "client_mismatch"
    already_disputed = "already_disputed"
    not_disputed = "not_disputed"
    dispute_closed = "dispute_closed"


# Typed transactions. Only deposits and withdrawals carry an amount.

@dataclass(frozen=True)
class Deposit:
    type: ClassVar[TransactionType] = TransactionType.deposit
    client: ClientId
    tx: TransactionId
    amount: Amount


@dataclass(frozen=True)
class Withdrawal:
    type: ClassVar[TransactionType] = TransactionType.withdrawal
    client: ClientId
    tx: TransactionId
    amount: Amount


@dataclass(frozen=True)
class Dispute:
    type: ClassVar[TransactionType] = TransactionType.dispute
    client: ClientId
    tx: TransactionId


@dataclass(frozen=True)
class Resolve:
    type: ClassVar[TransactionType] = TransactionType.resolve
    client: ClientId
    tx: TransactionId


@dataclass(frozen=True)
class Chargeback:
    type: ClassVar[TransactionType] = TransactionType.chargeback
    client: ClientId
    tx: TransactionId


Transaction = Union[Deposit, Withdrawal, Dispute, Resolve, Chargeback]

_AMOUNT_TYPES = {
    TransactionType.deposit: Deposit,
    TransactionType.withdrawal: Withdrawal,
}
_REFERENCE_TYPES = {
    TransactionType.dispute: Dispute,
    TransactionType.resolve: Resolve,
    TransactionType.chargeback: Chargeback,
}


class TransactionRecord(BaseModel):
    """One well-formed row of transaction input."""

    type: TransactionType = Field(..., description="Transaction type, case-insensitive")
    client: ClientId = Field(
        ...,
        ge=0,
        le=MAX_CLIENT_ID,
        description="Client identifier (unsigned 16-bit)"
    )
    tx: TransactionId = Field(
        ...,
        ge=0,
        le=MAX_TRANSACTION_ID,
        description="Transaction identifier (unsigned 32-bit)"
    )
    amount: Optional[str] = Field(
        None,
        description="Decimal amount, only present for deposits and withdrawals"
    )

    @field_validator('type', mode='before')
    @classmethod
    def normalize_type(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator('amount', mode='before')
    @classmethod
    def blank_amount_is_absent(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def to_transaction(self) -> Transaction:
        """Convert to the typed transaction for this record's type.

        Raises ValueError when the amount is missing, unexpected, unparsable
        or not strictly positive.
        """
        if self.type in _REFERENCE_TYPES:
            if self.amount is not None:
                raise ValueError(f"Unexpected amount for {self.type.value} transaction {self.tx}")
            return _REFERENCE_TYPES[self.type](client=self.client, tx=self.tx)

        if self.amount is None:
            raise ValueError(f"Expected amount for {self.type.value} transaction {self.tx}")
        amount = Amount.parse(self.amount)
        if not amount.is_positive():
            raise ValueError(f"Expected positive amount for {self.type.value} transaction {self.tx}")
        return _AMOUNT_TYPES[self.type](client=self.client, tx=self.tx, amount=amount)


@dataclass(frozen=True)
class MalformedRecord:
    """An input row that could not be read as a TransactionRecord."""
    line: int
    error: str


RawRecord = Union[TransactionRecord, MalformedRecord]


@dataclass(frozen=True)
class Account:
    client: ClientId
    available: Amount = Amount(0)
    held: Amount = Amount(0)
    locked: bool = False

    @property
    def total(self) -> Amount:
        return self.available + self.held


@dataclass(frozen=True)
class DepositRecord:
    client: ClientId
    amount: Amount


@dataclass(frozen=True)
class TransactionResult:
    applied: bool
    reason: Optional[RejectionReason] = None
    detail: str = ""

    @classmethod
    def ok(cls) -> "TransactionResult":
        return cls(applied=True)

    @classmethod
    def rejected(cls, reason: RejectionReason, detail: str) -> "TransactionResult":
        return cls(applied=False, reason=reason, detail=detail)


@dataclass
class LedgerStats:
    """Counters for one processing run."""
    records: int = 0
    applied: int = 0
    rejected: Counter = field(default_factory=Counter)

    def record(self, result: TransactionResult) -> None:
        self.records += 1
        if result.applied:
            self.applied += 1
        else:
            self.rejected[result.reason] += 1

    def as_dict(self) -> Dict[str, object]:
        return {
            "records": self.records,
            "applied": self.applied,
            "rejected": {reason.value: count for reason, count in self.rejected.items()},
        }


class AccountSummary(BaseModel):
    client: ClientId = Field(..., description="Client identifier")
    available: str = Field(..., description="Funds available, four decimal places")
    held: str = Field(..., description="Funds held by open disputes, four decimal places")
    total: str = Field(..., description="available + held, four decimal places")
    locked: bool = Field(..., description="Whether a chargeback froze the account")

    @classmethod
    def from_account(cls, account: Account) -> "AccountSummary":
        return cls(
            client=account.client,
            available=str(account.available),
            held=str(account.held),
            total=str(account.total),
            locked=account.locked
        )

    def to_row(self) -> Dict[str, object]:
        row = self.model_dump()
        row["locked"] = "true" if self.locked else "false"
        return row
