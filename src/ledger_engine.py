import logging
from typing import Iterable, List, Optional

from models import (
    MalformedRecord,
    Record,
    AccountSnapshot,
    ProcessingStats,
    Rejection,
    RejectionReason,
)
from account_store import AccountStore
from transaction_history import TransactionHistory
from transaction_processor import TransactionProcessor
from error_reporter import ErrorReporter
from csv_io import read_transactions

logger = logging.getLogger(__name__)


class LedgerEngine:
    """
    Feeds records to the transaction processor strictly in input order.
    Each engine owns its own account store and history, so runs are isolated.
    Rejections are counted and, when a reporter is given, forwarded to it.
    """

    def __init__(self, error_reporter: Optional[ErrorReporter] = None):
        self._error_reporter = error_reporter
        self._accounts = AccountStore()
        self._history = TransactionHistory()
        self._processor = TransactionProcessor(self._accounts, self._history)
        self._stats = ProcessingStats()

    @property
    def accounts(self) -> AccountStore:
        return self._accounts

    @property
    def history(self) -> TransactionHistory:
        return self._history

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    def process_file(self, filepath: str) -> List[AccountSnapshot]:
        """Process CSV file and return final account states."""
        # Undecodable bytes become U+FFFD and surface as malformed rows.
        with open(filepath, "r", newline="", encoding="utf-8", errors="replace") as f:
            return self.run(read_transactions(f))

    def run(self, records: Iterable[Record]) -> List[AccountSnapshot]:
        """Apply every record in order and return the final snapshot."""
        for record in records:
            self.process_record(record)

        locked = sum(1 for account in self._accounts.accounts() if account.locked)
        logger.info(
            f"Applied: {self._stats.applied}, Rejected: {self._stats.rejected}, "
            f"Accounts: {len(self._accounts)}, Locked: {locked}"
        )
        return self._accounts.snapshot()

    def process_record(self, record: Record) -> Optional[RejectionReason]:
        if isinstance(record, MalformedRecord):
            self._reject(Rejection(RejectionReason.MALFORMED_RECORD, record, record.error))
            return RejectionReason.MALFORMED_RECORD

        reason = self._processor.process_transaction(record)
        if reason is None:
            self._stats.record_success()
        else:
            self._reject(Rejection(reason, record))
        return reason

    def _reject(self, rejection: Rejection) -> None:
        self._stats.record_rejection(rejection.reason)
        if self._error_reporter is not None:
            self._error_reporter(rejection)
