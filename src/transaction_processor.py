import logging
from typing import Optional, Tuple, Union

from models import (
    Transaction,
    TransactionType,
    ClientAccount,
    DisputeState,
    HistoricalTransaction,
    RejectionReason,
    MAX_AMOUNT,
)
from account_store import AccountStore
from transaction_history import TransactionHistory

logger = logging.getLogger(__name__)


class TransactionProcessor:
    """
    Applies transactions against an account store and transaction history.
    Returns None when a transaction is applied, or the RejectionReason when it
    is not. A rejected transaction leaves balances and history untouched.
    """

    def __init__(self, accounts: AccountStore, history: TransactionHistory):
        self._accounts = accounts
        self._history = history

    def process_transaction(self, transaction: Transaction) -> Optional[RejectionReason]:
        """
        Process a single transaction.

        Returns:
            None: Applied
            RejectionReason: Why the transaction was refused
        """
        match transaction.transaction_type:
            case TransactionType.DEPOSIT:
                return self._handle_deposit(transaction)
            case TransactionType.WITHDRAWAL:
                return self._handle_withdrawal(transaction)
            case TransactionType.DISPUTE:
                return self._handle_dispute(transaction)
            case TransactionType.RESOLVE:
                return self._handle_resolve(transaction)
            case TransactionType.CHARGEBACK:
                return self._handle_chargeback(transaction)
        raise ValueError(f"unhandled transaction type {transaction.transaction_type!r}")

    def _check_funds_movement(self, account: ClientAccount, transaction: Transaction) -> Optional[RejectionReason]:
        """Shared deposit/withdrawal preconditions."""
        if transaction.amount is None or not 0 <= transaction.amount <= MAX_AMOUNT:
            logger.warning(f"{transaction.label} tx {transaction.transaction_id}: invalid amount {transaction.amount}")
            return RejectionReason.INVALID_AMOUNT

        if account.locked:
            logger.info(f"{transaction.label} tx {transaction.transaction_id}: account {account.client_id} is locked")
            return RejectionReason.ACCOUNT_LOCKED

        if transaction.transaction_id in self._history:
            logger.warning(f"{transaction.label} tx {transaction.transaction_id}: transaction id already used")
            return RejectionReason.DUPLICATE_TX

        return None

    def _handle_deposit(self, transaction: Transaction) -> Optional[RejectionReason]:
        account = self._accounts.get_or_create_account(transaction.client_id)

        rejection = self._check_funds_movement(account, transaction)
        if rejection is not None:
            return rejection

        account.credit(transaction.amount)
        self._history.record(transaction.transaction_id, transaction.client_id, transaction.amount)
        logger.debug(f"Deposit tx {transaction.transaction_id}: credited {transaction.amount} to client {transaction.client_id}")
        return None

    def _handle_withdrawal(self, transaction: Transaction) -> Optional[RejectionReason]:
        account = self._accounts.get_or_create_account(transaction.client_id)

        rejection = self._check_funds_movement(account, transaction)
        if rejection is not None:
            return rejection

        if not account.can_cover(transaction.amount):
            logger.info(f"Withdrawal tx {transaction.transaction_id}: insufficient funds ({account.available} < {transaction.amount})")
            return RejectionReason.INSUFFICIENT_FUNDS

        account.debit(transaction.amount)
        self._history.record(transaction.transaction_id, transaction.client_id, -transaction.amount)
        logger.debug(f"Withdrawal tx {transaction.transaction_id}: debited {transaction.amount} from client {transaction.client_id}")
        return None

    def _find_referenced(
        self, transaction: Transaction
    ) -> Union[Tuple[HistoricalTransaction, ClientAccount], RejectionReason]:
        """Look up the deposit/withdrawal a dispute-family record refers to."""
        original = self._history.lookup(transaction.transaction_id)

        if original is None:
            logger.info(f"{transaction.label} for tx {transaction.transaction_id}: transaction not found")
            return RejectionReason.UNKNOWN_TX

        if original.client_id != transaction.client_id:
            logger.warning(f"{transaction.label} for tx {transaction.transaction_id}: client mismatch (expected {original.client_id}, got {transaction.client_id})")
            return RejectionReason.CLIENT_MISMATCH

        return original, self._accounts.get_account(original.client_id)

    def _handle_dispute(self, transaction: Transaction) -> Optional[RejectionReason]:
        found = self._find_referenced(transaction)
        if isinstance(found, RejectionReason):
            return found
        original, account = found

        if original.dispute_state != DisputeState.CLEAN:
            logger.warning(f"Dispute for tx {transaction.transaction_id}: transaction is {original.dispute_state.value}")
            return RejectionReason.ALREADY_DISPUTED

        # Withdrawals are held the same way as deposits, by magnitude.
        amount = original.disputed_amount
        if not account.can_cover(amount):
            logger.warning(f"Dispute for tx {transaction.transaction_id}: available {account.available} cannot cover hold of {amount}")
            return RejectionReason.INSUFFICIENT_FUNDS

        account.hold(amount)
        self._history.set_state(original.transaction_id, DisputeState.DISPUTED)
        logger.debug(f"Dispute for tx {transaction.transaction_id}: held {amount} for client {account.client_id}")
        return None

    def _handle_resolve(self, transaction: Transaction) -> Optional[RejectionReason]:
        found = self._find_referenced(transaction)
        if isinstance(found, RejectionReason):
            return found
        original, account = found

        if original.dispute_state != DisputeState.DISPUTED:
            logger.info(f"Resolve for tx {transaction.transaction_id}: transaction is not under dispute")
            return RejectionReason.NOT_DISPUTED

        account.release_hold(original.disputed_amount)
        self._history.set_state(original.transaction_id, DisputeState.CLEAN)
        logger.debug(f"Resolve for tx {transaction.transaction_id}: released {original.disputed_amount} for client {account.client_id}")
        return None

    def _handle_chargeback(self, transaction: Transaction) -> Optional[RejectionReason]:
        found = self._find_referenced(transaction)
        if isinstance(found, RejectionReason):
            return found
        original, account = found

        if original.dispute_state != DisputeState.DISPUTED:
            logger.info(f"Chargeback for tx {transaction.transaction_id}: transaction is not under dispute")
            return RejectionReason.NOT_DISPUTED

        account.remove_held(original.disputed_amount)
        account.locked = True
        self._history.set_state(original.transaction_id, DisputeState.CHARGED_BACK)
        logger.info(f"Chargeback for tx {transaction.transaction_id}: removed {original.disputed_amount}, client {account.client_id} locked")
        return None
