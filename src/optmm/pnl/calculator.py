"""
P&L Calculator

Realized/unrealized P&L per contract with Greek attribution of
mark-to-market moves, plus PnLBook which keeps one calculator per contract.

Accounting rules:
- Fill: realized += closed_quantity × (exit_price − average_entry) × sign × multiplier
- Mark: unrealized = open_quantity × (mark − average_entry) × multiplier
- Attribution: the mark-to-market change since the last mark is split into
  delta/gamma/vega/theta slices with the previous mark's Greeks × quantity ×
  multiplier; the residual goes to ``other``
- A fill re-bases the mark reference so the fill's own price is never counted
  as a market move
- The multiplier defaults to 1 (P&L per unit of price); PnLBook uses each
  contract's own multiplier

Usage:
    >>> calc = PnLCalculator()
    >>> calc.record_fill(10, 100.0)
    >>> calc.record_fill(-10, 110.0)
    >>> calc.mark_to_market(112.0)
    0.0
    >>> calc.attribution().realized
    100.0
"""

import threading
from datetime import datetime

import polars as pl
from loguru import logger

from optmm.core.models import Greeks, OptionContract
from optmm.inventory.position import FillResult, Position
from optmm.market_data.store import PricingSnapshot
from optmm.pnl.attribution import PnLAttribution


class PnLCalculator:
    """
    P&L for a single contract.

    Attributes:
        position: Accounting position driven by record_fill
        last_tick: Attribution of the most recent mark-to-market change
    """

    def __init__(self, multiplier: float = 1.0):
        if multiplier <= 0:
            raise ValueError(f"Multiplier must be positive, got {multiplier}")
        self.position = Position(multiplier=multiplier)
        self.last_tick = PnLAttribution()
        self._unrealized = 0.0
        self._last_mark: float | None = None
        self._last_greeks: Greeks | None = None
        self._last_spot: float | None = None
        self._last_vol: float | None = None
        self._last_as_of: datetime | None = None
        self._slices = PnLAttribution()
        self._lock = threading.Lock()

    def record_fill(
        self,
        signed_qty: float,
        price: float,
        fee: float = 0.0,
        timestamp: datetime | None = None,
    ) -> FillResult:
        """
        Apply a fill and accumulate its realized P&L.

        Raises:
            ValueError: If the fill is malformed
        """
        with self._lock:
            result = self.position.apply_fill(signed_qty, price, fee=fee, timestamp=timestamp)
            if self._last_mark is None:
                self._last_mark = price
            self._unrealized = self.position.unrealized_pnl(self._last_mark)
        return result

    def mark_to_market(
        self,
        mark_price: float,
        greeks: Greeks | None = None,
        underlying_price: float | None = None,
        volatility: float | None = None,
        as_of: datetime | None = None,
    ) -> float:
        """
        Revalue the open quantity.

        Args:
            mark_price: Current mark
            greeks: Per-unit Greeks at this mark (used to attribute the next move)
            underlying_price: Spot at this mark
            volatility: Volatility at this mark
            as_of: Mark time (default: now)

        Returns:
            Unrealized P&L after the mark
        """
        if mark_price < 0:
            raise ValueError(f"Mark price must be non-negative, got {mark_price}")
        as_of = as_of or datetime.now()

        with self._lock:
            unrealized = self.position.unrealized_pnl(mark_price)
            change = unrealized - self._unrealized
            quantity = self.position.quantity

            if (
                self._last_greeks is not None
                and self._last_spot is not None
                and self._last_vol is not None
                and underlying_price is not None
                and volatility is not None
            ):
                days = (as_of - self._last_as_of).total_seconds() / 86400.0
                tick = PnLAttribution.from_move(
                    self._last_greeks.scale(quantity * self.position.multiplier),
                    spot_change=underlying_price - self._last_spot,
                    vol_change=volatility - self._last_vol,
                    days_passed=days,
                    actual_change=change,
                )
            else:
                tick = PnLAttribution(unrealized=change, other=change)

            self._slices = self._slices + tick
            self.last_tick = tick
            self._unrealized = unrealized
            self._last_mark = mark_price
            self._last_greeks = greeks
            self._last_spot = underlying_price
            self._last_vol = volatility
            self._last_as_of = as_of

        return unrealized

    def attribution(self) -> PnLAttribution:
        """Cumulative attribution: realized, current unrealized, summed Greek slices, fees."""
        with self._lock:
            return PnLAttribution(
                realized=self.position.realized_pnl,
                unrealized=self._unrealized,
                delta=self._slices.delta,
                gamma=self._slices.gamma,
                vega=self._slices.vega,
                theta=self._slices.theta,
                other=self._slices.other,
                fees=self.position.fees,
            )

    @property
    def realized_pnl(self) -> float:
        return self.position.realized_pnl

    @property
    def unrealized_pnl(self) -> float:
        return self._unrealized

    def total_pnl(self) -> float:
        return self.position.realized_pnl + self._unrealized


class PnLBook:
    """
    One PnLCalculator per contract.

    Example:
        >>> book = PnLBook()
        >>> book.record_fill(contract, 10, 5.00)
        >>> book.mark_to_market(market_data.current())
        >>> book.attribution().net
    """

    def __init__(self):
        self._calculators: dict[OptionContract, PnLCalculator] = {}
        self._lock = threading.Lock()
        self.logger = logger.bind(component="PnLBook")

    def calculator(self, contract: OptionContract) -> PnLCalculator:
        calc = self._calculators.get(contract)
        if calc is not None:
            return calc
        with self._lock:
            return self._calculators.setdefault(contract, PnLCalculator(contract.multiplier))

    def record_fill(
        self,
        contract: OptionContract,
        signed_qty: float,
        price: float,
        fee: float = 0.0,
        timestamp: datetime | None = None,
    ) -> FillResult:
        result = self.calculator(contract).record_fill(signed_qty, price, fee, timestamp)
        if result.realized_pnl:
            self.logger.debug(f"Realized {result.realized_pnl:+.2f} on {contract.symbol}")
        return result

    def mark_to_market(self, pricing: PricingSnapshot) -> float:
        """
        Mark every contract priced in ``pricing``.

        Returns:
            Total unrealized P&L across the book
        """
        total = 0.0
        for contract, calc in list(self._calculators.items()):
            value = pricing.value(contract)
            if value is None:
                total += calc.unrealized_pnl
                continue
            total += calc.mark_to_market(
                value.mid,
                greeks=value.greeks,
                underlying_price=value.underlying_price,
                volatility=value.volatility,
                as_of=value.as_of,
            )
        return total

    def attribution(self, underlying: str | None = None) -> PnLAttribution:
        """Summed attribution, optionally for one underlying."""
        result = PnLAttribution()
        for contract, calc in list(self._calculators.items()):
            if underlying is None or contract.underlying == underlying:
                result = result + calc.attribution()
        return result

    def total_pnl(self) -> float:
        return self.attribution().total

    def to_frame(self) -> pl.DataFrame:
        """Per-contract attribution as a Polars frame (for reporting)."""
        rows = [
            {
                "symbol": contract.symbol,
                "underlying": contract.underlying,
                "quantity": calc.position.quantity,
                **calc.attribution().to_dict(),
            }
            for contract, calc in list(self._calculators.items())
        ]
        if not rows:
            return pl.DataFrame()
        return pl.DataFrame(rows).sort("symbol")

    def __len__(self) -> int:
        return len(self._calculators)
