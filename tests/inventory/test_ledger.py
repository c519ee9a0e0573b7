"""
Unit tests for PositionLedger.
"""

import pytest

from optmm.inventory.ledger import PositionLedger


class TestPositionLedger:
    """Test ledger bookkeeping."""

    def test_unknown_contract(self, ledger, spy_call):
        """Test a contract never filled has no position."""
        assert ledger.get(spy_call) is None
        assert ledger.quantity(spy_call) == 0.0
        assert spy_call not in ledger

    def test_first_fill_creates_position(self, ledger, spy_call):
        """Test the first fill opens a ledger entry."""
        ledger.apply_fill(spy_call, -10, 5.30)

        assert spy_call in ledger
        assert len(ledger) == 1
        assert ledger.quantity(spy_call) == -10

    def test_get_returns_copy(self, ledger, spy_call):
        """Test mutating a returned position does not touch the ledger."""
        ledger.apply_fill(spy_call, 10, 5.0)

        ledger.get(spy_call).apply_fill(10, 5.0)

        assert ledger.quantity(spy_call) == 10

    def test_realized_pnl(self, ledger, spy_call):
        """Test realized P&L from the ledger."""
        ledger.apply_fill(spy_call, 10, 100.0)
        result = ledger.apply_fill(spy_call, -10, 110.0)

        assert result.realized_pnl == pytest.approx(100.0)
        assert ledger.total_realized_pnl() == pytest.approx(100.0)

    def test_snapshot_and_open_contracts(self, ledger, spy_call, spy_put):
        """Test flat positions stay in the snapshot but are not open."""
        ledger.apply_fill(spy_call, 10, 5.0)
        ledger.apply_fill(spy_call, -10, 5.5)
        ledger.apply_fill(spy_put, 3, 4.0)

        snapshot = ledger.snapshot()

        assert set(snapshot) == {spy_call, spy_put}
        assert snapshot[spy_call].is_flat
        assert ledger.open_contracts() == [spy_put]
        assert set(ledger.contracts()) == {spy_call, spy_put}

    def test_rejected_fill_leaves_position(self, ledger, spy_call):
        """Test a malformed fill raises and changes nothing."""
        ledger.apply_fill(spy_call, 10, 5.0)

        with pytest.raises(ValueError):
            ledger.apply_fill(spy_call, 0, 5.0)

        assert ledger.quantity(spy_call) == 10
