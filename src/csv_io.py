import csv
import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, Iterator, Optional, TextIO

from models import (
    Transaction,
    TransactionType,
    MalformedRecord,
    Record,
    AccountSnapshot,
    DECIMAL_PLACES,
    MAX_AMOUNT,
    MAX_CLIENT_ID,
    MAX_TRANSACTION_ID,
    quantize_amount,
)

logger = logging.getLogger(__name__)

SNAPSHOT_HEADER = ["client", "available", "held", "total", "locked"]


def read_transactions(stream: TextIO) -> Iterator[Record]:
    """
    Lazily parse CSV rows into Transactions.
    Rows that cannot be parsed are yielded as MalformedRecord so the caller
    can report them; they never stop the stream. A row the csv module itself
    refuses (an oversized field, say) is reported the same way, with no raw data.
    """
    reader = csv.DictReader(stream)
    while True:
        try:
            row = next(reader)
        except StopIteration:
            return
        except csv.Error as e:
            logger.debug(f"Unreadable row at line {reader.line_num}: {e}")
            yield MalformedRecord(line_number=reader.line_num, raw={}, error=str(e))
            continue

        try:
            record = parse_row(row)
        except (KeyError, ValueError, InvalidOperation) as e:
            logger.debug(f"Failed to parse row {row}: {e}")
            record = MalformedRecord(line_number=reader.line_num, raw=dict(row), error=str(e) or type(e).__name__)
        yield record


def parse_row(row: Dict[Optional[str], Optional[str]]) -> Transaction:
    """Parse one CSV row. Raises KeyError, ValueError or InvalidOperation."""
    # Extra columns land under a None key; missing trailing columns are None.
    normalized = {k.strip().lower(): (v or "").strip() for k, v in row.items() if k is not None}

    transaction_type = TransactionType(normalized["type"].lower())
    client_id = _parse_id(normalized["client"], "client", MAX_CLIENT_ID)
    transaction_id = _parse_id(normalized["tx"], "tx", MAX_TRANSACTION_ID)

    amount = None
    if transaction_type.carries_amount:
        amount = _parse_amount(normalized.get("amount", ""))

    return Transaction(
        transaction_type=transaction_type,
        client_id=client_id,
        transaction_id=transaction_id,
        amount=amount,
    )


def _parse_id(value: str, name: str, maximum: int) -> int:
    parsed = int(value)
    if not 0 <= parsed <= maximum:
        raise ValueError(f"{name} {parsed} out of range 0..{maximum}")
    return parsed


def _parse_amount(value: str) -> Decimal:
    if not value:
        raise ValueError("amount is required")
    amount = Decimal(value)
    if not amount.is_finite():
        raise ValueError(f"amount {value} is not a finite number")
    if amount < 0:
        raise ValueError(f"amount {value} is negative")
    if amount > MAX_AMOUNT:
        raise ValueError(f"amount {value} exceeds {MAX_AMOUNT}")
    if amount.as_tuple().exponent < -DECIMAL_PLACES:
        raise ValueError(f"amount {value} has more than {DECIMAL_PLACES} decimal places")
    return amount


def format_amount(value: Decimal) -> str:
    """Format with exactly four decimal places."""
    return f"{quantize_amount(value):.{DECIMAL_PLACES}f}"


def write_snapshot(snapshot: Iterable[AccountSnapshot], stream: TextIO) -> None:
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(SNAPSHOT_HEADER)
    for entry in snapshot:
        writer.writerow([
            entry.client_id,
            format_amount(entry.available),
            format_amount(entry.held),
            format_amount(entry.total),
            str(entry.locked).lower(),
        ])
