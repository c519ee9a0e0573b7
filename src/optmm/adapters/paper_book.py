"""
Paper Order Book

In-memory OrderBook used for dry runs and tests. Keeps resting limit orders
and reports the best bid/ask; it never matches orders (matching is the real
venue's job).
"""

from dataclasses import dataclass

from loguru import logger

from optmm.adapters.interfaces import BestQuote
from optmm.core.models import Side


@dataclass(slots=True)
class RestingOrder:
    order_id: str
    side: Side
    price: float
    size: float


class PaperOrderBook:
    """
    Resting-order book without matching.

    Attributes:
        symbol: Contract symbol this book belongs to
        orders: Resting orders by id
        reject_all: When True every add is refused (simulates venue rejects)
    """

    def __init__(self, symbol: str, reject_all: bool = False):
        self.symbol = symbol
        self.orders: dict[str, RestingOrder] = {}
        self.reject_all = reject_all
        self.logger = logger.bind(component="PaperOrderBook")

    def add_limit_order(self, order_id: str, side: Side, price: float, size: float) -> bool:
        if self.reject_all:
            self.logger.debug(f"[{self.symbol}] rejecting {order_id} (reject_all)")
            return False
        if order_id in self.orders or price < 0 or size <= 0:
            return False
        self.orders[order_id] = RestingOrder(order_id, side, price, size)
        return True

    def cancel_order(self, order_id: str) -> bool:
        return self.orders.pop(order_id, None) is not None

    def best_quote(self) -> BestQuote:
        bids = [o for o in self.orders.values() if o.side is Side.BUY]
        asks = [o for o in self.orders.values() if o.side is Side.SELL]

        best_bid = max(bids, key=lambda o: o.price) if bids else None
        best_ask = min(asks, key=lambda o: o.price) if asks else None

        return BestQuote(
            bid=best_bid.price if best_bid else None,
            ask=best_ask.price if best_ask else None,
            bid_size=sum(o.size for o in bids if o.price == best_bid.price) if best_bid else 0.0,
            ask_size=sum(o.size for o in asks if o.price == best_ask.price) if best_ask else 0.0,
        )

    def __len__(self) -> int:
        return len(self.orders)
