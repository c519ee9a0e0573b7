"""
Delta Hedger

Hysteresis controller that emits hedge orders in the underlying when the
aggregate delta of an underlying leaves its band.

States (per underlying):
    WITHIN_BAND: no hedging activity
    BREACHED: exposure was hedged and has not yet come back inside the band

Transitions:
    WITHIN_BAND → BREACHED: |delta| >= enter_threshold, emits one order
    BREACHED → BREACHED: |delta| > exit_threshold, re-emits only if
        min_reemit_interval_secs elapsed or delta moved by reemit_delta_move
        since the last order
    BREACHED → WITHIN_BAND: |delta| <= exit_threshold, no order

The two thresholds stop orders chattering while delta hovers near one level.

A computed order is suppressed (HedgeSkipped) when trading is halted, when
the resulting hedge position notional would exceed max_hedge_notional, or
when the projected Greeks would newly breach the RiskLimits, worsen an
existing breach, or over-hedge a breach through zero to the other side. A skipped order is not counted as sent, so the next evaluation
while breached tries again.

Usage:
    >>> hedger = DeltaHedger(HedgeParams(enter_threshold=100.0, exit_threshold=80.0))
    >>> decision = hedger.evaluate("SPY", net_delta=105.0, spot=455.0)
    >>> decision.order
    HedgeOrder(SELL 105 SPY MKT, reason=delta_threshold, urgency=low)
"""

import math
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from loguru import logger

from optmm.chain.keys import LevelKey
from optmm.core.errors import HedgeSkipped
from optmm.core.models import Greeks, Side
from optmm.hedging.order import HedgeOrder, HedgeReason, Urgency
from optmm.hedging.params import HedgeParams
from optmm.risk.halt import TradingHaltState
from optmm.risk.limits import BreachKind, RiskBreach, RiskLimits, greek_breaches


class HedgeState(str, Enum):
    """Hysteresis state of one underlying."""

    WITHIN_BAND = "within_band"
    BREACHED = "breached"


@dataclass(slots=True)
class _UnderlyingHedgeState:
    state: HedgeState = HedgeState.WITHIN_BAND
    net_delta: float = 0.0
    hedge_position: float = 0.0
    delta_at_last_order: float | None = None
    last_order_at: datetime | None = None
    orders_emitted: int = 0


@dataclass(slots=True, frozen=True)
class HedgeDecision:
    """
    Result of one hedger evaluation.

    Attributes:
        underlying: Underlying evaluated
        previous_state: State before the evaluation
        state: State after the evaluation
        exposure: Options delta + hedge position the decision was based on
        order: Emitted order (None if nothing to send)
        skipped: Reason a computed order was suppressed (None otherwise)
    """

    underlying: str
    previous_state: HedgeState
    state: HedgeState
    exposure: float
    order: HedgeOrder | None = None
    skipped: HedgeSkipped | None = None
    evaluated_at: datetime = field(default_factory=datetime.now)

    @property
    def transitioned(self) -> bool:
        return self.previous_state is not self.state


class DeltaHedger:
    """
    Per-underlying hysteresis delta hedger.

    Attributes:
        params: Band and sizing parameters
        risk_limits: Limits a hedge must not breach (None = no projection check)
        halt_state: Shared halt flag checked before emitting
    """

    def __init__(
        self,
        params: HedgeParams | None = None,
        risk_limits: RiskLimits | None = None,
        halt_state: TradingHaltState | None = None,
    ):
        self.params = params or HedgeParams()
        self.risk_limits = risk_limits
        self.halt_state = halt_state if halt_state is not None else TradingHaltState()
        self._states: dict[str, _UnderlyingHedgeState] = {}
        self._lock = threading.Lock()
        self.logger = logger.bind(component="DeltaHedger")

    def _entry(self, underlying: str) -> _UnderlyingHedgeState:
        entry = self._states.get(underlying)
        if entry is None:
            entry = _UnderlyingHedgeState()
            self._states[underlying] = entry
        return entry

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def state(self, underlying: str) -> HedgeState:
        entry = self._states.get(underlying)
        return entry.state if entry is not None else HedgeState.WITHIN_BAND

    def hedge_position(self, underlying: str) -> float:
        entry = self._states.get(underlying)
        return entry.hedge_position if entry is not None else 0.0

    def update_delta(self, underlying: str, net_delta: float) -> None:
        """Record the latest aggregate options delta for an underlying."""
        with self._lock:
            self._entry(underlying).net_delta = net_delta

    def record_hedge(self, underlying: str, quantity: float) -> float:
        """
        Record an executed hedge fill (signed quantity in the underlying).

        Returns:
            New hedge position
        """
        with self._lock:
            entry = self._entry(underlying)
            entry.hedge_position += quantity
            position = entry.hedge_position

        self.logger.info(f"Recorded hedge fill {underlying} {quantity:+g}, position {position:+g}")
        return position

    def reset(self, underlying: str | None = None) -> None:
        """Forget hedging state for one underlying, or for all of them."""
        with self._lock:
            if underlying is None:
                self._states.clear()
            else:
                self._states.pop(underlying, None)

    def evaluate(
        self,
        underlying: str,
        net_delta: float,
        spot: float,
        current_hedge_position: float | None = None,
        greeks: Greeks | None = None,
        now: datetime | None = None,
    ) -> HedgeDecision:
        """
        Record the latest delta and run the state machine.

        The delta update, the state transition and both state reads happen
        under one lock acquisition, so concurrent evaluations of the same
        underlying see consistent before/after states.

        Args:
            underlying: Underlying symbol
            net_delta: Aggregate options delta of the underlying
            spot: Underlying price
            current_hedge_position: Hedge position in the underlying
                (default: the position accumulated by record_hedge)
            greeks: Aggregate options Greeks, used for the projected limit check
            now: Evaluation time (default: now)

        Returns:
            HedgeDecision (a suppressed order is reported in ``skipped``)
        """
        if not spot > 0:
            raise ValueError(f"Spot must be positive, got {spot}")
        now = now or datetime.now()

        order = None
        skipped = None
        with self._lock:
            entry = self._entry(underlying)
            entry.net_delta = net_delta
            previous = entry.state
            hedge_position = current_hedge_position
            if hedge_position is None:
                hedge_position = entry.hedge_position
            try:
                order = self._step(entry, underlying, spot, hedge_position, greeks, now)
            except HedgeSkipped as e:
                skipped = e
            state = entry.state

        return HedgeDecision(
            underlying=underlying,
            previous_state=previous,
            state=state,
            exposure=net_delta + hedge_position,
            order=order,
            skipped=skipped,
            evaluated_at=now,
        )

    def calculate_hedge(
        self,
        underlying: str,
        spot: float,
        current_hedge_position: float = 0.0,
        greeks: Greeks | None = None,
        now: datetime | None = None,
    ) -> HedgeOrder | None:
        """
        Run the hysteresis state machine on the last recorded delta.

        Args:
            underlying: Underlying symbol
            spot: Underlying price
            current_hedge_position: Hedge position already held in the underlying
            greeks: Aggregate options Greeks for the projected limit check
            now: Evaluation time (default: now)

        Returns:
            HedgeOrder to send, or None

        Raises:
            HedgeSkipped: If an order was due but is suppressed
            ValueError: If spot is not positive
        """
        if not spot > 0:
            raise ValueError(f"Spot must be positive, got {spot}")
        now = now or datetime.now()

        with self._lock:
            entry = self._entry(underlying)
            return self._step(entry, underlying, spot, current_hedge_position, greeks, now)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _step(
        self,
        entry: _UnderlyingHedgeState,
        underlying: str,
        spot: float,
        current_hedge_position: float,
        greeks: Greeks | None,
        now: datetime,
    ) -> HedgeOrder | None:
        # Caller holds self._lock
        params = self.params
        exposure = entry.net_delta + current_hedge_position
        magnitude = abs(exposure)

        if entry.state is HedgeState.WITHIN_BAND:
            if magnitude < params.enter_threshold:
                return None
            entry.state = HedgeState.BREACHED
            self.logger.info(
                f"{underlying} delta {exposure:+.2f} crossed enter threshold "
                f"{params.enter_threshold:g}: BREACHED"
            )
            reason = HedgeReason.DELTA_THRESHOLD
        else:
            if magnitude <= params.exit_threshold:
                entry.state = HedgeState.WITHIN_BAND
                entry.delta_at_last_order = None
                entry.last_order_at = None
                self.logger.info(
                    f"{underlying} delta {exposure:+.2f} back within exit threshold "
                    f"{params.exit_threshold:g}: WITHIN_BAND"
                )
                return None
            reason = self._reemit_reason(entry, exposure, now)
            if reason is None:
                return None

        order = self._size_order(underlying, exposure, spot, reason, now)
        if order is None:
            return None

        self._check_order(underlying, order, exposure, spot, current_hedge_position, greeks)

        entry.delta_at_last_order = exposure
        entry.last_order_at = now
        entry.orders_emitted += 1

        self.logger.info(f"Hedge emitted: {order!r} (delta {exposure:+.2f})")
        return order

    def _reemit_reason(
        self, entry: _UnderlyingHedgeState, exposure: float, now: datetime
    ) -> HedgeReason | None:
        if entry.last_order_at is None or entry.delta_at_last_order is None:
            # Entered BREACHED without a sent order (skipped or below min size)
            return HedgeReason.DELTA_THRESHOLD
        if abs(exposure - entry.delta_at_last_order) >= self.params.reemit_delta_move:
            return HedgeReason.DELTA_DRIFT
        elapsed = (now - entry.last_order_at).total_seconds()
        if elapsed >= self.params.min_reemit_interval_secs:
            return HedgeReason.SCHEDULED_REBALANCE
        return None

    def _size_order(
        self,
        underlying: str,
        exposure: float,
        spot: float,
        reason: HedgeReason,
        now: datetime,
    ) -> HedgeOrder | None:
        params = self.params
        raw = params.target_delta - exposure
        lots = math.floor(abs(raw) / params.lot_size + 1e-9)
        size = min(lots * params.lot_size, params.max_hedge_size)

        if size < params.min_hedge_size:
            self.logger.debug(
                f"{underlying} hedge size {size:g} below minimum {params.min_hedge_size:g}"
            )
            return None

        side = Side.from_quantity(raw)
        limit_price = None
        if params.use_limit_orders:
            offset = spot * params.limit_offset_bps / 10000.0
            limit_price = spot - offset if side is Side.BUY else spot + offset

        score = abs(exposure) / params.enter_threshold
        return HedgeOrder(
            underlying=underlying,
            side=side,
            quantity=size,
            reason=reason,
            urgency=Urgency.from_score(score),
            urgency_score=score,
            delta_before=exposure,
            limit_price=limit_price,
            timestamp=now,
        )

    def _check_order(
        self,
        underlying: str,
        order: HedgeOrder,
        exposure: float,
        spot: float,
        current_hedge_position: float,
        greeks: Greeks | None,
    ) -> None:
        if self.halt_state.is_halted:
            self.logger.warning(f"Hedge skipped for {underlying}: trading halted")
            raise HedgeSkipped(
                f"Trading halted ({self.halt_state.reason}), hedge not sent",
                underlying=underlying,
                reason="halted",
                proposed=order,
            )

        if self.risk_limits is None:
            return

        level_key = LevelKey.for_underlying(underlying)
        notional = abs(current_hedge_position + order.signed_quantity) * spot
        if notional > self.risk_limits.max_hedge_notional:
            breach = RiskBreach.create(
                BreachKind.NOTIONAL, notional, self.risk_limits.max_hedge_notional, level_key
            )
            self.logger.warning(f"Hedge skipped for {underlying}: {breach}")
            raise HedgeSkipped(
                f"Hedge would take hedge notional to ${notional:,.0f}",
                underlying=underlying,
                reason="notional_limit",
                proposed=order,
                breaches=[breach],
            )

        base = greeks or Greeks()
        current = Greeks(delta=exposure, gamma=base.gamma, vega=base.vega, theta=base.theta)
        projected = Greeks(
            delta=exposure + order.signed_quantity,
            gamma=base.gamma,
            vega=base.vega,
            theta=base.theta,
        )
        existing = {b.kind for b in greek_breaches(current, self.risk_limits, level_key)}
        caused = []
        for breach in greek_breaches(projected, self.risk_limits, level_key):
            before = getattr(current, breach.kind.value)
            after = getattr(projected, breach.kind.value)
            # New, worse, or overshot through zero into the opposite side
            if breach.kind not in existing or abs(after) > abs(before) or before * after < 0:
                caused.append(breach)
        if caused:
            self.logger.warning(
                f"Hedge skipped for {underlying}: would breach {', '.join(str(b) for b in caused)}"
            )
            raise HedgeSkipped(
                f"Hedge would breach {len(caused)} risk limit(s)",
                underlying=underlying,
                reason="risk_limit",
                proposed=order,
                breaches=caused,
            )
