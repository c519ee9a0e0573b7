"""
Hedge Order

Ephemeral order produced by the Delta Hedger: created once per triggering
evaluation and handed to the caller, never stored by the hedger.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from optmm.core.models import Side


class HedgeReason(str, Enum):
    """Why a hedge order was emitted."""

    DELTA_THRESHOLD = "delta_threshold"  # Entered the breached state
    DELTA_DRIFT = "delta_drift"  # Breached, delta moved since the last order
    SCHEDULED_REBALANCE = "scheduled_rebalance"  # Breached, re-emit interval elapsed


class Urgency(str, Enum):
    """How aggressively the hedge should be worked."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @classmethod
    def from_score(cls, score: float) -> "Urgency":
        """
        Map |delta| / enter_threshold to an urgency level.

        < 1.1 → LOW, < 1.5 → MEDIUM, < 2.0 → HIGH, otherwise CRITICAL
        """
        if score < 1.1:
            return cls.LOW
        if score < 1.5:
            return cls.MEDIUM
        if score < 2.0:
            return cls.HIGH
        return cls.CRITICAL


@dataclass(slots=True, frozen=True)
class HedgeOrder:
    """
    Order in the hedge instrument.

    Attributes:
        underlying: Hedge instrument (the underlying symbol)
        side: BUY or SELL
        quantity: Unsigned order size (> 0)
        reason: Why the order was emitted
        urgency: Urgency level
        urgency_score: |delta| / enter_threshold at emission
        delta_before: Exposure the order was sized against
        limit_price: Limit price, None for a market order
        timestamp: Emission time
    """

    underlying: str
    side: Side
    quantity: float
    reason: HedgeReason
    urgency: Urgency
    urgency_score: float
    delta_before: float
    limit_price: float | None = None
    timestamp: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        if self.quantity <= 0:
            raise ValueError(f"Hedge quantity must be positive, got {self.quantity}")

    @property
    def signed_quantity(self) -> float:
        return self.quantity * self.side.sign

    @property
    def is_buy(self) -> bool:
        return self.side is Side.BUY

    def __repr__(self) -> str:
        price = f" @ {self.limit_price:.2f}" if self.limit_price is not None else " MKT"
        return (
            f"HedgeOrder({self.side.value} {self.quantity:g} {self.underlying}{price}, "
            f"reason={self.reason.value}, urgency={self.urgency.value})"
        )
