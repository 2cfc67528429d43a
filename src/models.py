from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_EVEN, localcontext
from enum import Enum
from typing import Dict, Optional, Union

DECIMAL_PLACES = 4
MAX_CLIENT_ID = 2**16 - 1
MAX_TRANSACTION_ID = 2**32 - 1
# Keeps every balance sum exact within the default 28-digit context.
MAX_AMOUNT = Decimal(10) ** 14

_QUANTUM = Decimal(1).scaleb(-DECIMAL_PLACES)


def quantize_amount(value: Decimal) -> Decimal:
    """Round to four fractional digits (banker's rounding)."""
    with localcontext() as ctx:
        # quantize raises InvalidOperation if the result outgrows the precision
        ctx.prec = max(ctx.prec, value.adjusted() + DECIMAL_PLACES + 2)
        return value.quantize(_QUANTUM, rounding=ROUND_HALF_EVEN)


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"

    @property
    def carries_amount(self) -> bool:
        return self in (TransactionType.DEPOSIT, TransactionType.WITHDRAWAL)


class DisputeState(Enum):
    CLEAN = "clean"
    DISPUTED = "disputed"
    CHARGED_BACK = "charged_back"


class RejectionReason(Enum):
    DUPLICATE_TX = "DuplicateTx"
    ACCOUNT_LOCKED = "AccountLocked"
    INSUFFICIENT_FUNDS = "InsufficientFunds"
    UNKNOWN_TX = "UnknownTx"
    CLIENT_MISMATCH = "ClientMismatch"
    ALREADY_DISPUTED = "AlreadyDisputed"
    NOT_DISPUTED = "NotDisputed"
    INVALID_AMOUNT = "InvalidAmount"
    MALFORMED_RECORD = "MalformedRecord"


@dataclass
class Transaction:
    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Optional[Decimal] = None

    @property
    def label(self) -> str:
        return self.transaction_type.value.capitalize()

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id}, amount={self.amount})"


@dataclass
class MalformedRecord:
    """A source row that could not be turned into a Transaction."""

    line_number: int
    raw: Dict[str, Optional[str]]
    error: str

    def __repr__(self) -> str:
        return f"MalformedRecord(line={self.line_number}, error={self.error!r}, raw={self.raw})"


Record = Union[Transaction, MalformedRecord]


@dataclass
class ClientAccount:
    """Balances for one client; total is derived so it always equals available + held."""

    client_id: int
    available: Decimal = Decimal("0")
    held: Decimal = Decimal("0")
    locked: bool = False

    @property
    def total(self) -> Decimal:
        return self.available + self.held

    def can_cover(self, amount: Decimal) -> bool:
        """Whether available funds can absorb a debit or hold of amount."""
        return self.available >= amount

    def credit(self, amount: Decimal) -> None:
        self.available += amount

    def debit(self, amount: Decimal) -> None:
        self.available -= amount

    def hold(self, amount: Decimal) -> None:
        self.available -= amount
        self.held += amount

    def release_hold(self, amount: Decimal) -> None:
        self.held -= amount
        self.available += amount

    def remove_held(self, amount: Decimal) -> None:
        self.held -= amount


@dataclass
class HistoricalTransaction:
    """
    An accepted deposit or withdrawal, kept so later dispute records can be
    validated against it. Deposits store a positive amount, withdrawals a
    negative one.
    """

    transaction_id: int
    client_id: int
    amount: Decimal
    dispute_state: DisputeState = DisputeState.CLEAN

    @property
    def disputed_amount(self) -> Decimal:
        return abs(self.amount)


@dataclass(frozen=True)
class AccountSnapshot:
    client_id: int
    available: Decimal
    held: Decimal
    total: Decimal
    locked: bool

    @classmethod
    def from_account(cls, account: ClientAccount) -> "AccountSnapshot":
        return cls(
            client_id=account.client_id,
            available=quantize_amount(account.available),
            held=quantize_amount(account.held),
            total=quantize_amount(account.total),
            locked=account.locked,
        )


@dataclass
class Rejection:
    reason: RejectionReason
    record: Record
    detail: str = ""

    def __str__(self) -> str:
        message = f"{self.reason.value}: {self.record!r}"
        if self.detail:
            message += f" ({self.detail})"
        return message


@dataclass
class ProcessingStats:
    """Counters for a single ledger run."""

    applied: int = 0
    rejected: int = 0
    rejections_by_reason: Counter = field(default_factory=Counter)

    def record_success(self) -> None:
        self.applied += 1

    def record_rejection(self, reason: RejectionReason) -> None:
        self.rejected += 1
        self.rejections_by_reason[reason] += 1
