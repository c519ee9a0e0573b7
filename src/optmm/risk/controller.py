"""
Risk Controller

Compares aggregated Greeks and P&L against RiskLimits and returns a breach
record for every exceeded limit.

Key features:
- check_greek_limits: |delta|, |gamma|, |vega|, |theta| against their caps
- evaluate: Greek caps + position value + cumulative loss + drawdown from
  the P&L peak
- Configurable halt policy: halt_severity=None keeps every breach advisory;
  otherwise any breach at or above that severity halts trading through the
  shared TradingHaltState
- The controller never clears a halt; only TradingHaltState.reset() does

Usage:
    >>> controller = RiskController(RiskLimits(max_delta=100.0))
    >>> breaches = controller.check_greek_limits(Greeks(delta=150.0))
    >>> breaches[0].kind, breaches[0].current, breaches[0].threshold
    (<BreachKind.DELTA: 'delta'>, 150.0, 100.0)
"""

from datetime import datetime
from typing import TYPE_CHECKING

from loguru import logger

from optmm.core.models import Greeks
from optmm.risk.halt import TradingHaltState
from optmm.risk.limits import BreachKind, BreachSeverity, RiskBreach, RiskLimits, greek_breaches

if TYPE_CHECKING:
    from optmm.chain.keys import LevelKey
    from optmm.inventory.aggregator import AggregatedSnapshot


class RiskController:
    """
    Per-cycle risk limit evaluator.

    Attributes:
        limits: Risk limits to evaluate against
        halt_state: Shared halt flag (a fresh one is created if omitted)
        halt_severity: Minimum breach severity that halts trading
            (None = breaches are advisory only)
        peak_pnl: Highest total P&L seen since the last reset_daily()
        last_breaches: Breaches from the most recent evaluate()
    """

    def __init__(
        self,
        limits: RiskLimits,
        halt_state: TradingHaltState | None = None,
        halt_severity: BreachSeverity | None = None,
    ):
        self.limits = limits
        self.halt_state = halt_state if halt_state is not None else TradingHaltState()
        self.halt_severity = halt_severity
        self.peak_pnl = 0.0
        self.last_breaches: list[RiskBreach] = []
        self.logger = logger.bind(component="RiskController")

    def check_greek_limits(
        self,
        greeks: Greeks,
        level_key: "LevelKey | None" = None,
        timestamp: datetime | None = None,
    ) -> list[RiskBreach]:
        """
        Check Greeks against their caps (breach when |value| > limit).

        Args:
            greeks: Aggregated (quantity-weighted) Greeks
            level_key: Node the Greeks belong to, recorded on each breach
            timestamp: Check time (default: now)

        Returns:
            One RiskBreach per exceeded Greek (empty if within limits)
        """
        return greek_breaches(greeks, self.limits, level_key, timestamp)

    def check_pnl(
        self,
        total_pnl: float,
        level_key: "LevelKey | None" = None,
        timestamp: datetime | None = None,
    ) -> list[RiskBreach]:
        """
        Check cumulative loss and drawdown; updates the tracked P&L peak.

        Args:
            total_pnl: Realized + unrealized P&L (negative = loss)

        Returns:
            LOSS breach if -total_pnl > max_loss, DRAWDOWN breach if
            peak - total_pnl > max_drawdown
        """
        timestamp = timestamp or datetime.now()
        breaches = []

        self.peak_pnl = max(self.peak_pnl, total_pnl)

        loss = -total_pnl
        if loss > self.limits.max_loss:
            breaches.append(
                RiskBreach.create(BreachKind.LOSS, loss, self.limits.max_loss, level_key, timestamp)
            )

        drawdown = self.peak_pnl - total_pnl
        if drawdown > self.limits.max_drawdown:
            breaches.append(
                RiskBreach.create(
                    BreachKind.DRAWDOWN, drawdown, self.limits.max_drawdown, level_key, timestamp
                )
            )

        return breaches

    def check_position_value(
        self,
        position_value: float,
        level_key: "LevelKey | None" = None,
        timestamp: datetime | None = None,
    ) -> list[RiskBreach]:
        """NOTIONAL breach if |position_value| > max_position_value."""
        if abs(position_value) <= self.limits.max_position_value:
            return []
        return [
            RiskBreach.create(
                BreachKind.NOTIONAL,
                abs(position_value),
                self.limits.max_position_value,
                level_key,
                timestamp or datetime.now(),
            )
        ]

    def evaluate(
        self,
        snapshot: "AggregatedSnapshot",
        total_pnl: float | None = None,
    ) -> list[RiskBreach]:
        """
        Evaluate one aggregated snapshot.

        Args:
            snapshot: Aggregate from the current evaluation cycle
            total_pnl: P&L to check (default: the snapshot's realized + unrealized)

        Returns:
            Every breach found; trading is halted if the halt policy says so
        """
        pnl = snapshot.total_pnl if total_pnl is None else total_pnl
        return self.evaluate_portfolio([snapshot], pnl, pnl_level_key=snapshot.level_key)

    def evaluate_portfolio(
        self,
        snapshots: list["AggregatedSnapshot"],
        total_pnl: float | None = None,
        pnl_level_key: "LevelKey | None" = None,
    ) -> list[RiskBreach]:
        """
        Evaluate several aggregates from one cycle (typically one per underlying).

        Greek limits are checked per snapshot; position value (Σ net notional),
        loss and drawdown are checked once for the portfolio, so the P&L peak
        is tracked per portfolio.

        Args:
            snapshots: Aggregates taken from one EvaluationSnapshot
            total_pnl: Portfolio P&L (default: Σ realized + unrealized of the
                snapshots)

        Returns:
            Every breach found; trading is halted if the halt policy says so
        """
        timestamp = datetime.now()
        breaches = []
        for snapshot in snapshots:
            breaches.extend(self.check_greek_limits(snapshot.greeks, snapshot.level_key, timestamp))
        if total_pnl is None:
            total_pnl = sum(snapshot.total_pnl for snapshot in snapshots)
        position_value = sum(snapshot.net_notional for snapshot in snapshots)
        breaches.extend(self.check_position_value(position_value, pnl_level_key, timestamp))
        breaches.extend(self.check_pnl(total_pnl, pnl_level_key, timestamp))

        for breach in breaches:
            self.logger.warning(f"Risk breach: {breach}")

        self.last_breaches = breaches
        self.apply_halt_policy(breaches)
        return breaches

    def apply_halt_policy(self, breaches: list[RiskBreach]) -> bool:
        """
        Halt trading if any breach reaches the configured severity.

        Returns:
            True if this call halted trading
        """
        if self.halt_severity is None or not breaches:
            return False

        worst = max(breaches, key=lambda b: b.severity)
        if worst.severity < self.halt_severity:
            return False

        return self.halt_state.halt(f"Risk breach: {worst}")

    def reset_daily(self) -> None:
        """Start a new trading day: clear the P&L peak (does not clear a halt)."""
        self.peak_pnl = 0.0
        self.last_breaches = []
        self.logger.info("Daily risk tracking reset")
