"""
Unit tests for RiskLimits and RiskBreach.
"""

import pytest

from optmm.chain.keys import LevelKey
from optmm.risk.limits import BreachKind, BreachSeverity, RiskBreach, RiskLimits


class TestBreachSeverity:
    """Test severity thresholds."""

    @pytest.mark.parametrize(
        "ratio,severity",
        [
            (1.01, BreachSeverity.WARNING),
            (1.25, BreachSeverity.WARNING),
            (1.26, BreachSeverity.SEVERE),
            (2.0, BreachSeverity.SEVERE),
            (2.01, BreachSeverity.CRITICAL),
        ],
    )
    def test_for_ratio(self, ratio, severity):
        """Test severity from |current| / threshold."""
        assert BreachSeverity.for_ratio(ratio) is severity

    def test_ordering(self):
        """Test severities compare for halt policies."""
        assert BreachSeverity.CRITICAL > BreachSeverity.SEVERE > BreachSeverity.WARNING


class TestRiskBreach:
    """Test breach records."""

    def test_create(self):
        """Test create derives severity."""
        breach = RiskBreach.create(BreachKind.VEGA, current=300.0, threshold=100.0)

        assert breach.severity is BreachSeverity.CRITICAL
        assert breach.level_key is None

    def test_str(self):
        """Test readable breach description."""
        breach = RiskBreach.create(
            BreachKind.DELTA, 150.0, 100.0, level_key=LevelKey.for_underlying("SPY")
        )

        assert str(breach) == "delta limit breached at SPY: 150.00 > 100.00 (SEVERE)"


class TestRiskLimits:
    """Test RiskLimits validation."""

    def test_non_positive_limit(self):
        """Test every limit must be positive."""
        with pytest.raises(ValueError, match="max_drawdown"):
            RiskLimits(max_drawdown=0.0)

    def test_from_dict(self):
        """Test partial dict keeps defaults."""
        limits = RiskLimits.from_dict({"max_delta": 500.0, "max_position_value": 250000.0})

        assert limits.max_delta == 500.0
        assert limits.max_position_value == 250000.0
        assert limits.max_loss == 10000.0
