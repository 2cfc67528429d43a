"""
Property-based tests for the ledger.

    ∀ accounts, after every record:  total = available + held,  available ≥ 0,  held ≥ 0
    ∀ inputs I:                      engine1.run(I) = engine2.run(I)
"""

import sys
import os
from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models import Transaction, TransactionType, DisputeState
from account_store import AccountStore
from transaction_history import TransactionHistory
from transaction_processor import TransactionProcessor
from ledger_engine import LedgerEngine

CLIENTS = st.integers(min_value=1, max_value=3)
TX_IDS = st.integers(min_value=1, max_value=12)
AMOUNTS = st.decimals(min_value=0, max_value=1000, places=4, allow_nan=False, allow_infinity=False)


@st.composite
def transactions(draw):
    transaction_type = draw(st.sampled_from(list(TransactionType)))
    amount = draw(AMOUNTS) if transaction_type.carries_amount else None
    return Transaction(
        transaction_type=transaction_type,
        client_id=draw(CLIENTS),
        transaction_id=draw(TX_IDS),
        amount=amount,
    )


TRANSACTION_LISTS = st.lists(transactions(), max_size=60)


def balances(accounts: AccountStore):
    return {a.client_id: (a.available, a.held, a.locked) for a in accounts.accounts()}


class TestLedgerProperties:
    @given(TRANSACTION_LISTS)
    @settings(max_examples=200)
    def test_balance_invariants_hold_after_every_record(self, records):
        accounts = AccountStore()
        processor = TransactionProcessor(accounts, TransactionHistory())

        for record in records:
            processor.process_transaction(record)
            for account in accounts.accounts():
                assert account.total == account.available + account.held
                assert account.available >= 0
                assert account.held >= 0

    @given(TRANSACTION_LISTS)
    @settings(max_examples=100)
    def test_rejected_records_change_nothing(self, records):
        accounts = AccountStore()
        history = TransactionHistory()
        processor = TransactionProcessor(accounts, history)

        for record in records:
            before = balances(accounts)
            states_before = {tx_id: history.lookup(tx_id).dispute_state for tx_id in range(1, 13) if tx_id in history}
            history_size = len(history)

            if processor.process_transaction(record) is not None:
                after = balances(accounts)
                # A rejected deposit/withdrawal may still open a zeroed account.
                for client_id, values in after.items():
                    assert values == before.get(client_id, (Decimal("0"), Decimal("0"), False))
                assert len(history) == history_size
                for tx_id, state in states_before.items():
                    assert history.lookup(tx_id).dispute_state == state

    @given(TRANSACTION_LISTS)
    @settings(max_examples=100)
    def test_locked_accounts_ignore_deposits_and_withdrawals(self, records):
        accounts = AccountStore()
        processor = TransactionProcessor(accounts, TransactionHistory())

        for record in records:
            account = accounts.get_account(record.client_id)
            was_locked = account is not None and account.locked
            before = (account.available, account.held) if was_locked else None

            processor.process_transaction(record)

            if was_locked and record.transaction_type.carries_amount:
                assert (account.available, account.held) == before

    @given(TRANSACTION_LISTS)
    @settings(max_examples=50)
    def test_replay_is_deterministic(self, records):
        assert LedgerEngine().run(records) == LedgerEngine().run(records)

    @given(TRANSACTION_LISTS, AMOUNTS, CLIENTS)
    @settings(max_examples=100)
    def test_dispute_then_resolve_round_trips(self, records, amount, client_id):
        accounts = AccountStore()
        history = TransactionHistory()
        processor = TransactionProcessor(accounts, history)
        for record in records:
            processor.process_transaction(record)

        # A fresh id outside the generated range, so the deposit is always new.
        deposit = Transaction(TransactionType.DEPOSIT, client_id=client_id, transaction_id=1000, amount=amount)
        account = accounts.get_or_create_account(client_id)
        if account.locked:
            return
        assert processor.process_transaction(deposit) is None

        before = (account.available, account.held)
        assert processor.process_transaction(Transaction(TransactionType.DISPUTE, client_id, 1000)) is None
        assert processor.process_transaction(Transaction(TransactionType.RESOLVE, client_id, 1000)) is None

        assert (account.available, account.held) == before
        assert history.lookup(1000).dispute_state == DisputeState.CLEAN
