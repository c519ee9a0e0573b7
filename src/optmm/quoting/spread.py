"""
Spread Calculator (Avellaneda-Stoikov)

Computes the inventory-adjusted reservation price, the optimal full spread
and the inventory skew for one contract.

Model:
    reservation   r = mid − q·γ·σ²·T
    full spread   δ = γ·σ²·T + (2/γ)·ln(1 + γ/k), clamped to [min_spread, max_spread]
    skew          s = −skew_factor · (q / inventory_limit) · δ
    bid           r − δ/2 + s   (floored at 0)
    ask           r + δ/2 + s

Skew is zero at q = 0, strictly monotonic in |q| and opposite in sign to q:
a long book lowers both sides (favors selling), a short book raises them.

Usage:
    >>> calc = SpreadCalculator(SpreadConfig(risk_aversion=0.1, arrival_intensity=1.5))
    >>> params = QuoteParams(mid=5.50, inventory=0, volatility=0.20, time_to_expiry=0.25)
    >>> calc.optimal_spread(params)
    >>> calc.generate_quote(params, bid_size=10, ask_size=10)
"""

import math
from datetime import datetime

from optmm.quoting.params import QuoteParams, SpreadConfig
from optmm.quoting.quote import GeneratedQuote


class SpreadCalculator:
    """
    Avellaneda-Stoikov spread and skew.

    Attributes:
        config: γ, k, clamps and skew factor
    """

    def __init__(self, config: SpreadConfig | None = None):
        self.config = config or SpreadConfig()

    def _variance_term(self, params: QuoteParams) -> float:
        return self.config.risk_aversion * params.volatility**2 * params.time_to_expiry

    def raw_spread(self, params: QuoteParams) -> float:
        """Model spread before clamping."""
        params.validate()
        gamma = self.config.risk_aversion
        k = self.config.arrival_intensity
        intensity_term = (2.0 / gamma) * math.log1p(gamma / k)
        return (self._variance_term(params) + intensity_term) * self.config.volatility_factor

    def optimal_spread(self, params: QuoteParams) -> float:
        """
        Full spread δ clamped to [min_spread, max_spread].

        Raises:
            InvalidQuoteParameters: On degenerate inputs (T <= 0, σ < 0, ...)
        """
        return min(max(self.raw_spread(params), self.config.min_spread), self.config.max_spread)

    def reservation_price(self, params: QuoteParams) -> float:
        params.validate()
        return params.mid - params.inventory * self._variance_term(params)

    def inventory_skew(self, params: QuoteParams) -> float:
        """Signed skew applied to both sides, opposite in sign to inventory."""
        spread = self.optimal_spread(params)
        return -self.config.skew_factor * params.inventory_ratio * spread

    def generate_quote(
        self,
        params: QuoteParams,
        bid_size: float = 0.0,
        ask_size: float = 0.0,
        timestamp: datetime | None = None,
    ) -> GeneratedQuote:
        """
        Build a quote from the model prices.

        Args:
            params: Market inputs
            bid_size: Size to attach to the bid
            ask_size: Size to attach to the ask
            timestamp: Quote time (default: now)

        Returns:
            GeneratedQuote with bid floored at 0

        Raises:
            InvalidQuoteParameters: On degenerate inputs
        """
        spread = self.optimal_spread(params)
        reservation = self.reservation_price(params)
        skew = -self.config.skew_factor * params.inventory_ratio * spread

        bid = max(reservation - spread / 2.0 + skew, 0.0)
        ask = reservation + spread / 2.0 + skew

        return GeneratedQuote(
            bid_price=bid,
            bid_size=bid_size,
            ask_price=ask,
            ask_size=ask_size,
            mid=params.mid,
            reservation_price=reservation,
            spread=spread,
            skew=skew,
            timestamp=timestamp or datetime.now(),
        )
