"""
Generated Quote

Two-sided (or one-sided) quote produced by the Spread Calculator and sized by
the Quote Generator. A side with size 0 is not submitted.
"""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(slots=True, frozen=True)
class GeneratedQuote:
    """
    Quote for one contract.

    Attributes:
        bid_price: Bid price (floored at 0)
        bid_size: Bid size (0 = no bid)
        ask_price: Ask price
        ask_size: Ask size (0 = no ask)
        mid: Theoretical mid the quote was built from
        reservation_price: Inventory-adjusted fair value
        spread: Clamped model spread δ (before tick rounding)
        skew: Inventory skew applied to both sides
        timestamp: When the quote was generated
    """

    bid_price: float
    bid_size: float
    ask_price: float
    ask_size: float
    mid: float
    reservation_price: float
    spread: float
    skew: float
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def has_bid(self) -> bool:
        return self.bid_size > 0 and self.bid_price > 0

    @property
    def has_ask(self) -> bool:
        return self.ask_size > 0 and self.ask_price > 0

    @property
    def two_sided(self) -> bool:
        return self.has_bid and self.has_ask

    @property
    def width(self) -> float:
        """Quoted width ask − bid (after flooring and rounding)."""
        return self.ask_price - self.bid_price

    @property
    def spread_bps(self) -> float | None:
        if self.mid <= 0:
            return None
        return self.width / self.mid * 10000.0

    def is_valid(self) -> bool:
        """At least one side, and bid < ask when both are present."""
        if not (self.has_bid or self.has_ask):
            return False
        if self.two_sided:
            return self.bid_price < self.ask_price
        return True

    def __repr__(self) -> str:
        return (
            f"GeneratedQuote({self.bid_size:g} @ {self.bid_price:.4f} / "
            f"{self.ask_size:g} @ {self.ask_price:.4f}, mid={self.mid:.4f}, "
            f"skew={self.skew:+.4f})"
        )
