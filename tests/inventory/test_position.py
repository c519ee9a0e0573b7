"""
Unit tests for Position fill accounting.

Tests average price re-weighting, realized P&L on closing fills, sign flips
and input validation.
"""

import math

import pytest

from optmm.inventory.position import Position


class TestOpeningFills:
    """Test fills in the direction of the position."""

    def test_first_fill(self):
        """Test a fill on a flat position opens at the fill price."""
        position = Position()

        result = position.apply_fill(10, 100.0)

        assert position.quantity == 10
        assert position.average_price == 100.0
        assert result.opened_quantity == 10
        assert result.realized_pnl == 0.0

    def test_average_price_reweighted(self):
        """Test adding to a position re-weights the average price."""
        position = Position()
        position.apply_fill(10, 100.0)
        position.apply_fill(10, 110.0)

        assert position.quantity == 20
        assert position.average_price == pytest.approx(105.0)

    def test_short_average(self):
        """Test average price for a short position."""
        position = Position()
        position.apply_fill(-5, 4.0)
        position.apply_fill(-15, 4.4)

        assert position.quantity == -20
        assert position.average_price == pytest.approx(4.3)


class TestClosingFills:
    """Test fills against the position."""

    def test_round_trip(self):
        """Test buy 10 @ 100 then sell 10 @ 110 realizes 100."""
        position = Position()
        position.apply_fill(10, 100.0)

        result = position.apply_fill(-10, 110.0)

        assert result.realized_pnl == pytest.approx(100.0)
        assert position.realized_pnl == pytest.approx(100.0)
        assert position.quantity == 0
        assert position.is_flat
        assert position.unrealized_pnl(120.0) == 0.0

    def test_round_trip_with_multiplier(self):
        """Test realized and unrealized P&L scale with the contract multiplier."""
        position = Position(multiplier=10.0)
        position.apply_fill(10, 100.0)

        assert position.unrealized_pnl(105.0) == pytest.approx(500.0)

        result = position.apply_fill(-10, 110.0)

        assert result.realized_pnl == pytest.approx(1000.0)
        assert position.average_price == 0.0
        assert position.unrealized_pnl(120.0) == 0.0

    def test_partial_close(self):
        """Test a partial close realizes only the closed quantity."""
        position = Position()
        position.apply_fill(10, 100.0)

        result = position.apply_fill(-4, 110.0)

        assert result.realized_pnl == pytest.approx(40.0)
        assert result.closed_quantity == 4
        assert position.quantity == 6
        assert position.average_price == 100.0

    def test_short_round_trip(self):
        """Test covering a short below the entry realizes a gain."""
        position = Position()
        position.apply_fill(-5, 10.0)

        result = position.apply_fill(5, 8.0)

        assert result.realized_pnl == pytest.approx(10.0)
        assert position.is_flat

    def test_flip(self):
        """Test a fill larger than the position closes it and opens the residual."""
        position = Position()
        position.apply_fill(10, 100.0)

        result = position.apply_fill(-15, 90.0)

        assert result.flipped
        assert result.realized_pnl == pytest.approx(-100.0)
        assert result.closed_quantity == 10
        assert result.opened_quantity == 5
        assert position.quantity == -5
        assert position.average_price == 90.0

    def test_quantity_is_signed_sum(self):
        """Test quantity equals the signed sum of fills for any sequence."""
        fills = [(10, 5.0), (-3, 5.2), (-12, 5.1), (4, 4.9), (6, 5.0), (-1, 5.3)]
        position = Position()

        for qty, price in fills:
            position.apply_fill(qty, price)

        assert position.quantity == sum(qty for qty, _ in fills)
        assert position.fill_count == len(fills)


class TestUnrealized:
    """Test unrealized P&L."""

    def test_long(self):
        """Test long position gains when the mark rises."""
        position = Position()
        position.apply_fill(10, 100.0)

        assert position.unrealized_pnl(103.0) == pytest.approx(30.0)
        assert position.total_pnl(103.0) == pytest.approx(30.0)

    def test_short(self):
        """Test short position loses when the mark rises."""
        position = Position()
        position.apply_fill(-10, 100.0)

        assert position.unrealized_pnl(103.0) == pytest.approx(-30.0)


class TestValidation:
    """Test malformed fills are rejected."""

    @pytest.mark.parametrize(
        "qty,price,fee",
        [
            (0, 1.0, 0.0),
            (math.nan, 1.0, 0.0),
            (1, -1.0, 0.0),
            (1, 0.0, 0.0),
            (1, math.inf, 0.0),
            (1, 1.0, -0.5),
        ],
    )
    def test_invalid_fill(self, qty, price, fee):
        """Test zero quantity, non-positive price or negative fee raise ValueError."""
        position = Position()

        with pytest.raises(ValueError):
            position.apply_fill(qty, price, fee=fee)

        assert position.is_flat
        assert position.fill_count == 0

    def test_fees_accumulate(self):
        """Test fees are tracked separately from realized P&L."""
        position = Position()
        position.apply_fill(10, 1.0, fee=0.65)
        position.apply_fill(-10, 1.0, fee=0.65)

        assert position.fees == pytest.approx(1.30)
        assert position.realized_pnl == 0.0

    def test_copy_is_independent(self):
        """Test copies do not share state with the original."""
        position = Position()
        position.apply_fill(10, 1.0)

        copy = position.copy()
        copy.apply_fill(5, 1.0)

        assert position.quantity == 10
        assert copy.quantity == 15
