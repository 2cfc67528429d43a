import sys
import os
from decimal import Decimal

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models import DisputeState
from transaction_history import TransactionHistory, DuplicateTransactionError


class TestTransactionHistory:
    def setup_method(self):
        self.history = TransactionHistory()

    def test_record_and_lookup(self):
        entry = self.history.record(1, client_id=2, amount=Decimal("10"))

        assert self.history.lookup(1) is entry
        assert entry.client_id == 2
        assert entry.amount == Decimal("10")
        assert entry.dispute_state == DisputeState.CLEAN
        assert 1 in self.history
        assert len(self.history) == 1

    def test_lookup_missing(self):
        assert self.history.lookup(42) is None

    def test_duplicate_raises(self):
        self.history.record(1, client_id=1, amount=Decimal("10"))

        with pytest.raises(DuplicateTransactionError) as exc_info:
            self.history.record(1, client_id=1, amount=Decimal("20"))

        assert exc_info.value.transaction_id == 1
        assert self.history.lookup(1).amount == Decimal("10")

    def test_set_state(self):
        self.history.record(1, client_id=1, amount=Decimal("10"))
        self.history.set_state(1, DisputeState.DISPUTED)
        assert self.history.lookup(1).dispute_state == DisputeState.DISPUTED

    def test_set_state_unknown_transaction(self):
        with pytest.raises(KeyError):
            self.history.set_state(99, DisputeState.DISPUTED)
