"""
Position State

Per-contract signed quantity, volume-weighted average entry price and
cumulative realized P&L. Mutated only by fill application.

Fill rules:
- Same direction (or flat): quantity grows, average price is re-weighted
- Opposite direction: the closed portion realizes
  (fill_price - average_price) × closed_quantity × sign(position) × multiplier
- Sign flip: closes the old position (realizing P&L) and opens the residual at
  the fill price

A flat position is kept (quantity 0, average price 0) so realized P&L stays
available for reporting.
"""

import math
from dataclasses import dataclass, field, replace
from datetime import datetime


@dataclass(slots=True, frozen=True)
class FillResult:
    """
    Outcome of applying one fill.

    Attributes:
        realized_pnl: P&L realized by this fill (0 for opening fills)
        closed_quantity: Quantity closed against the prior position (unsigned)
        opened_quantity: Quantity opened in the fill's direction (unsigned)
        quantity: Position quantity after the fill
        average_price: Average entry price after the fill
    """

    realized_pnl: float
    closed_quantity: float
    opened_quantity: float
    quantity: float
    average_price: float

    @property
    def flipped(self) -> bool:
        return self.closed_quantity > 0 and self.opened_quantity > 0


@dataclass(slots=True)
class Position:
    """
    Position in one contract.

    Attributes:
        quantity: Signed quantity (positive = long)
        average_price: Volume-weighted average entry price of the open quantity
        realized_pnl: Cumulative realized P&L
        fees: Cumulative fees paid
        fill_count: Number of fills applied
        last_update: Timestamp of the last fill
        multiplier: Contract multiplier applied to realized and unrealized P&L
    """

    quantity: float = 0.0
    average_price: float = 0.0
    realized_pnl: float = 0.0
    fees: float = 0.0
    fill_count: int = 0
    last_update: datetime = field(default_factory=datetime.now)
    multiplier: float = 1.0

    @property
    def is_flat(self) -> bool:
        return self.quantity == 0

    @property
    def is_long(self) -> bool:
        return self.quantity > 0

    @property
    def is_short(self) -> bool:
        return self.quantity < 0

    def apply_fill(
        self,
        signed_qty: float,
        price: float,
        fee: float = 0.0,
        timestamp: datetime | None = None,
    ) -> FillResult:
        """
        Apply a trade execution to this position.

        Args:
            signed_qty: Fill quantity (positive = bought, negative = sold)
            price: Fill price
            fee: Fee charged for the fill (non-negative)
            timestamp: Execution time (default: now)

        Returns:
            FillResult describing what the fill did

        Raises:
            ValueError: If quantity is zero, price is not positive, or fee is negative
        """
        if signed_qty == 0 or not math.isfinite(signed_qty):
            raise ValueError(f"Fill quantity must be non-zero and finite, got {signed_qty}")
        if price <= 0 or not math.isfinite(price):
            raise ValueError(f"Fill price must be positive and finite, got {price}")
        if fee < 0:
            raise ValueError(f"Fee must be non-negative, got {fee}")

        realized = 0.0
        closed = 0.0
        opened = 0.0

        if self.quantity == 0 or (self.quantity > 0) == (signed_qty > 0):
            new_quantity = self.quantity + signed_qty
            self.average_price = (
                self.average_price * abs(self.quantity) + price * abs(signed_qty)
            ) / abs(new_quantity)
            self.quantity = new_quantity
            opened = abs(signed_qty)
        else:
            sign = 1.0 if self.quantity > 0 else -1.0
            closed = min(abs(signed_qty), abs(self.quantity))
            realized = (price - self.average_price) * closed * sign * self.multiplier
            remaining = abs(signed_qty) - closed

            if remaining == 0:
                self.quantity += signed_qty
                if self.quantity == 0:
                    self.average_price = 0.0
            else:
                # Flip: residual opens at the fill price
                self.quantity = remaining * (1.0 if signed_qty > 0 else -1.0)
                self.average_price = price
                opened = remaining

        self.realized_pnl += realized
        self.fees += fee
        self.fill_count += 1
        self.last_update = timestamp or datetime.now()

        return FillResult(
            realized_pnl=realized,
            closed_quantity=closed,
            opened_quantity=opened,
            quantity=self.quantity,
            average_price=self.average_price,
        )

    def unrealized_pnl(self, mark_price: float) -> float:
        """Open quantity × (mark − average price) × multiplier; sign carried by quantity."""
        if self.quantity == 0:
            return 0.0
        return self.quantity * (mark_price - self.average_price) * self.multiplier

    def total_pnl(self, mark_price: float) -> float:
        return self.realized_pnl + self.unrealized_pnl(mark_price)

    def copy(self) -> "Position":
        return replace(self)
