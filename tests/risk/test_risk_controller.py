"""
Unit tests for RiskController.

Tests Greek cap breaches, loss and drawdown tracking, and the configurable
halt policy.
"""

import pytest

from optmm.chain.keys import LevelKey
from optmm.core.models import Greeks
from optmm.inventory.aggregator import AggregatedSnapshot
from optmm.risk.controller import RiskController
from optmm.risk.halt import TradingHaltState
from optmm.risk.limits import BreachKind, BreachSeverity, RiskLimits


def aggregate(
    underlying="SPY",
    delta=0.0,
    gamma=0.0,
    vega=0.0,
    theta=0.0,
    realized=0.0,
    unrealized=0.0,
    notional=0.0,
):
    """AggregatedSnapshot for one underlying with the given Greeks and P&L."""
    return AggregatedSnapshot(
        level_key=LevelKey.for_underlying(underlying),
        greeks=Greeks(delta=delta, gamma=gamma, vega=vega, theta=theta),
        net_quantity=0.0,
        gross_quantity=0.0,
        net_notional=notional,
        dollar_delta=0.0,
        position_count=0,
        realized_pnl=realized,
        unrealized_pnl=unrealized,
        fees=0.0,
        pricing_tick=1,
    )


class TestGreekLimits:
    """Test check_greek_limits."""

    def test_single_delta_breach(self):
        """Test delta 150 against max_delta 100 yields exactly one breach."""
        controller = RiskController(RiskLimits(max_delta=100.0))

        breaches = controller.check_greek_limits(Greeks(delta=150.0))

        assert len(breaches) == 1
        assert breaches[0].kind is BreachKind.DELTA
        assert breaches[0].current == 150.0
        assert breaches[0].threshold == 100.0
        assert breaches[0].severity is BreachSeverity.SEVERE

    def test_negative_delta(self):
        """Test short delta is compared by magnitude."""
        controller = RiskController(RiskLimits(max_delta=100.0))

        breaches = controller.check_greek_limits(Greeks(delta=-150.0))

        assert breaches[0].current == 150.0

    def test_at_limit_is_not_breach(self):
        """Test |value| equal to the limit is within limits."""
        controller = RiskController(RiskLimits(max_delta=100.0))

        assert controller.check_greek_limits(Greeks(delta=100.0)) == []

    def test_every_greek(self):
        """Test one breach per exceeded Greek."""
        limits = RiskLimits(max_delta=10.0, max_gamma=1.0, max_vega=5.0, max_theta=2.0)
        controller = RiskController(limits)

        breaches = controller.check_greek_limits(Greeks(delta=11.0, gamma=-2.0, vega=5.0, theta=-3.0))

        assert [b.kind for b in breaches] == [BreachKind.DELTA, BreachKind.GAMMA, BreachKind.THETA]

    def test_level_key_recorded(self):
        """Test breaches carry the node they were checked at."""
        controller = RiskController(RiskLimits(max_delta=1.0))
        key = LevelKey.for_underlying("SPY")

        breaches = controller.check_greek_limits(Greeks(delta=2.0), level_key=key)

        assert breaches[0].level_key == key


class TestPnLLimits:
    """Test loss and drawdown checks."""

    def test_loss(self):
        """Test a loss past max_loss is reported as a positive amount."""
        controller = RiskController(RiskLimits(max_loss=1000.0))

        breaches = controller.check_pnl(-1500.0)

        assert [b.kind for b in breaches] == [BreachKind.LOSS]
        assert breaches[0].current == 1500.0

    def test_drawdown_from_peak(self):
        """Test drawdown is measured from the highest P&L seen."""
        controller = RiskController(RiskLimits(max_loss=10000.0, max_drawdown=500.0))

        assert controller.check_pnl(1000.0) == []
        breaches = controller.check_pnl(400.0)

        assert controller.peak_pnl == 1000.0
        assert [b.kind for b in breaches] == [BreachKind.DRAWDOWN]
        assert breaches[0].current == pytest.approx(600.0)

    def test_reset_daily_clears_peak(self):
        """Test a new day starts drawdown tracking from zero."""
        controller = RiskController(RiskLimits(max_drawdown=500.0))
        controller.check_pnl(1000.0)

        controller.reset_daily()

        assert controller.peak_pnl == 0.0
        assert controller.check_pnl(400.0) == []


class TestEvaluate:
    """Test evaluate and evaluate_portfolio."""

    def test_evaluate_uses_snapshot_pnl(self):
        """Test evaluate checks the snapshot's own P&L by default."""
        controller = RiskController(RiskLimits(max_loss=100.0))

        breaches = controller.evaluate(aggregate(realized=-50.0, unrealized=-100.0))

        assert [b.kind for b in breaches] == [BreachKind.LOSS]
        assert breaches[0].current == pytest.approx(150.0)
        assert controller.last_breaches == breaches

    def test_portfolio_checks_pnl_once(self):
        """Test Greeks are checked per underlying and P&L once for the portfolio."""
        controller = RiskController(RiskLimits(max_delta=100.0, max_loss=100.0))
        snapshots = [aggregate("SPY", delta=150.0), aggregate("QQQ", delta=-120.0)]

        breaches = controller.evaluate_portfolio(snapshots, total_pnl=-500.0)

        kinds = [b.kind for b in breaches]
        assert kinds.count(BreachKind.DELTA) == 2
        assert kinds.count(BreachKind.LOSS) == 1
        assert {b.level_key.underlying for b in breaches if b.kind is BreachKind.DELTA} == {"SPY", "QQQ"}

    def test_portfolio_pnl_defaults_to_aggregates(self):
        """Test portfolio loss is summed from the aggregates when no P&L is given."""
        controller = RiskController(RiskLimits(max_loss=100.0))
        snapshots = [aggregate("SPY", realized=-80.0), aggregate("QQQ", unrealized=-70.0)]

        breaches = controller.evaluate_portfolio(snapshots)

        assert [b.kind for b in breaches] == [BreachKind.LOSS]
        assert breaches[0].current == pytest.approx(150.0)


class TestPositionValue:
    """Test the portfolio position value limit."""

    def test_within_limit(self):
        """Test |value| at the limit is not a breach."""
        controller = RiskController(RiskLimits(max_position_value=50000.0))

        assert controller.check_position_value(-50000.0) == []

    def test_short_value_breach(self):
        """Test a short book is compared by magnitude."""
        controller = RiskController(RiskLimits(max_position_value=50000.0))

        breaches = controller.check_position_value(-60000.0)

        assert len(breaches) == 1
        assert breaches[0].kind is BreachKind.NOTIONAL
        assert breaches[0].current == 60000.0
        assert breaches[0].threshold == 50000.0

    def test_portfolio_sums_notional(self):
        """Test net notional is summed across underlyings before the check."""
        controller = RiskController(RiskLimits(max_position_value=50000.0))
        snapshots = [aggregate("SPY", notional=30000.0), aggregate("QQQ", notional=25000.0)]

        breaches = controller.evaluate_portfolio(snapshots, total_pnl=0.0)

        assert [b.kind for b in breaches] == [BreachKind.NOTIONAL]
        assert breaches[0].current == pytest.approx(55000.0)

    def test_offsetting_notional(self):
        """Test long and short notional net against each other."""
        controller = RiskController(RiskLimits(max_position_value=50000.0))
        snapshots = [aggregate("SPY", notional=40000.0), aggregate("QQQ", notional=-30000.0)]

        assert controller.evaluate_portfolio(snapshots, total_pnl=0.0) == []


class TestHaltPolicy:
    """Test the configurable halt policy."""

    def test_advisory_by_default(self):
        """Test breaches never halt without a halt severity."""
        controller = RiskController(RiskLimits(max_delta=100.0))

        controller.evaluate(aggregate(delta=1000.0))

        assert not controller.halt_state.is_halted

    def test_halt_at_severity(self):
        """Test a breach at the configured severity halts trading."""
        halt_state = TradingHaltState()
        controller = RiskController(RiskLimits(max_delta=100.0), halt_state, BreachSeverity.SEVERE)

        controller.evaluate(aggregate(delta=150.0))

        assert halt_state.is_halted
        assert "delta" in halt_state.reason

    def test_below_severity_no_halt(self):
        """Test a breach below the configured severity stays advisory."""
        halt_state = TradingHaltState()
        controller = RiskController(RiskLimits(max_delta=100.0), halt_state, BreachSeverity.CRITICAL)

        controller.evaluate(aggregate(delta=150.0))
        assert not halt_state.is_halted

        controller.evaluate(aggregate(delta=250.0))
        assert halt_state.is_halted

    def test_controller_never_clears_halt(self):
        """Test a clean evaluation or a daily reset leaves an existing halt in place."""
        halt_state = TradingHaltState()
        controller = RiskController(RiskLimits(), halt_state, BreachSeverity.WARNING)
        halt_state.halt("operator")

        controller.evaluate(aggregate())
        controller.reset_daily()

        assert halt_state.is_halted
        assert halt_state.reason == "operator"
