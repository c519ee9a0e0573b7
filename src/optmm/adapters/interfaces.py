"""
Collaborator Interfaces

The engine depends only on these capability interfaces, never on a concrete
venue or matching engine:

- OrderBook: one per option contract; add/cancel resting limit orders and read
  the best quote. Matching semantics belong to the implementation.
- ExchangeAdapter: per-venue submit/cancel/status capability used for hedge
  orders in the underlying.

Implementations are duck-typed (typing.Protocol); nothing needs to inherit.
"""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from optmm.core.models import Side


@dataclass(slots=True, frozen=True)
class BestQuote:
    """
    Top of book for one contract.

    Attributes:
        bid: Best bid price (None if no bids)
        ask: Best ask price (None if no asks)
        bid_size: Size at best bid
        ask_size: Size at best ask
    """

    bid: float | None = None
    ask: float | None = None
    bid_size: float = 0.0
    ask_size: float = 0.0

    @property
    def two_sided(self) -> bool:
        return self.bid is not None and self.ask is not None

    @property
    def mid(self) -> float | None:
        if not self.two_sided:
            return None
        return (self.bid + self.ask) / 2.0


@runtime_checkable
class OrderBook(Protocol):
    """Order book collaborator for a single contract."""

    def add_limit_order(self, order_id: str, side: Side, price: float, size: float) -> bool:
        ...

    def cancel_order(self, order_id: str) -> bool:
        ...

    def best_quote(self) -> BestQuote:
        ...


@runtime_checkable
class ExchangeAdapter(Protocol):
    """Venue capability interface (submit / cancel / status)."""

    @property
    def name(self) -> str:
        ...

    def submit_order(
        self, symbol: str, side: Side, quantity: float, limit_price: float | None = None
    ) -> str:
        """Submit an order and return the venue order id."""
        ...

    def cancel_order(self, order_id: str) -> bool:
        ...

    def is_connected(self) -> bool:
        ...
