from decimal import Decimal
from typing import Dict, Optional

from models import DisputeState, HistoricalTransaction


class DuplicateTransactionError(Exception):
    def __init__(self, transaction_id: int):
        super().__init__(f"transaction {transaction_id} already recorded")
        self.transaction_id = transaction_id


class TransactionHistory:
    """
    Accepted deposits and withdrawals, keyed by transaction id.
    Entries are never removed so disputes can always be checked against them.
    """

    def __init__(self):
        self._transactions: Dict[int, HistoricalTransaction] = {}

    def __len__(self) -> int:
        return len(self._transactions)

    def __contains__(self, transaction_id: int) -> bool:
        return transaction_id in self._transactions

    def record(self, transaction_id: int, client_id: int, amount: Decimal) -> HistoricalTransaction:
        """Store a new clean entry. Raises DuplicateTransactionError if the id is taken."""
        if transaction_id in self._transactions:
            raise DuplicateTransactionError(transaction_id)
        entry = HistoricalTransaction(
            transaction_id=transaction_id,
            client_id=client_id,
            amount=amount,
        )
        self._transactions[transaction_id] = entry
        return entry

    def lookup(self, transaction_id: int) -> Optional[HistoricalTransaction]:
        return self._transactions.get(transaction_id)

    def set_state(self, transaction_id: int, new_state: DisputeState) -> None:
        """
        Change the dispute state of an entry.
        Caller is responsible for checking the transition is legal.
        """
        self._transactions[transaction_id].dispute_state = new_state
