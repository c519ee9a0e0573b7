"""
Quote Generator

Turns a TheoreticalValue plus the Spread Calculator output into a sized,
tick-rounded GeneratedQuote and keeps it resting on the contract's order book.

Key features:
- Sizes: the side that would grow inventory shrinks linearly as |q| approaches
  the inventory limit; the reducing side keeps base size; a side at or past
  the limit gets size 0
- Tick rounding: bid rounded down, ask rounded up (never narrows the quote)
- Churn control: resubmits only when a price moved more than price_tolerance
  or a size changed more than size_tolerance
- Halt check before every submission: a halted engine cancels its resting
  quotes and submits nothing
- Order book failures raise OrderSubmissionFailed and are not retried

Usage:
    >>> generator = QuoteGenerator(SpreadCalculator(), QuotingConfig(), halt_state)
    >>> quote = generator.build_quote(theo, inventory=0, time_to_expiry=0.25, inventory_limit=500)
    >>> action = generator.submit(contract, book, quote)
"""

import itertools
import math
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from loguru import logger

from optmm.adapters.interfaces import OrderBook
from optmm.core.errors import OrderSubmissionFailed
from optmm.core.models import OptionContract, Side, TheoreticalValue
from optmm.quoting.params import QuoteParams
from optmm.quoting.quote import GeneratedQuote
from optmm.quoting.spread import SpreadCalculator
from optmm.risk.halt import TradingHaltState


class QuoteAction(str, Enum):
    """Outcome of a submission attempt."""

    SUBMITTED = "submitted"  # No previous quote, new orders resting
    REPLACED = "replaced"  # Previous orders cancelled, new ones resting
    UNCHANGED = "unchanged"  # Within tolerance, nothing sent
    CANCELLED = "cancelled"  # New quote had no valid side, previous orders pulled
    HALTED = "halted"  # Trading halted, resting orders pulled


@dataclass(slots=True)
class QuotingConfig:
    """
    Quote sizing and churn configuration.

    Attributes:
        base_size: Size per side with flat inventory (default: 10.0)
        lot_size: Sizes are rounded down to a multiple of this (default: 1.0)
        tick_size: Price increment, None disables rounding (default: 0.01)
        price_tolerance: Price move that triggers a resubmit (default: 0.01)
        size_tolerance: Size change that triggers a resubmit (default: 0.0)
    """

    base_size: float = 10.0
    lot_size: float = 1.0
    tick_size: float | None = 0.01
    price_tolerance: float = 0.01
    size_tolerance: float = 0.0

    def __post_init__(self):
        if self.base_size <= 0:
            raise ValueError(f"base_size must be positive, got {self.base_size}")
        if self.lot_size <= 0:
            raise ValueError(f"lot_size must be positive, got {self.lot_size}")
        if self.tick_size is not None and self.tick_size <= 0:
            raise ValueError(f"tick_size must be positive, got {self.tick_size}")
        if self.price_tolerance < 0 or self.size_tolerance < 0:
            raise ValueError("Tolerances must be non-negative")

    @classmethod
    def from_dict(cls, data: dict) -> "QuotingConfig":
        defaults = cls()
        return cls(
            base_size=data.get("base_size", defaults.base_size),
            lot_size=data.get("lot_size", defaults.lot_size),
            tick_size=data.get("tick_size", defaults.tick_size),
            price_tolerance=data.get("price_tolerance", defaults.price_tolerance),
            size_tolerance=data.get("size_tolerance", defaults.size_tolerance),
        )


@dataclass(slots=True)
class RestingQuote:
    """Quote currently on the book and the order ids carrying it."""

    quote: GeneratedQuote
    bid_order_id: str | None
    ask_order_id: str | None


class QuoteGenerator:
    """
    Builds quotes and keeps one resting quote per contract.

    Attributes:
        calculator: Spread Calculator
        config: Sizing and churn configuration
        halt_state: Shared halt flag checked before submission
    """

    def __init__(
        self,
        calculator: SpreadCalculator,
        config: QuotingConfig | None = None,
        halt_state: TradingHaltState | None = None,
    ):
        self.calculator = calculator
        self.config = config or QuotingConfig()
        self.halt_state = halt_state if halt_state is not None else TradingHaltState()
        self._resting: dict[OptionContract, RestingQuote] = {}
        self._order_seq = itertools.count(1)
        self._lock = threading.Lock()
        self.logger = logger.bind(component="QuoteGenerator")

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def quote_sizes(self, inventory: float, inventory_limit: float) -> tuple[float, float]:
        """
        Bid/ask sizes for the current inventory.

        Returns:
            (bid_size, ask_size)
        """
        base = self.config.base_size
        ratio = min(abs(inventory) / inventory_limit, 1.0)
        growing = self._round_lot(base * (1.0 - ratio))

        if inventory > 0:
            return growing, base
        if inventory < 0:
            return base, growing
        return base, base

    def _round_lot(self, size: float) -> float:
        lot = self.config.lot_size
        # Small epsilon keeps exact multiples from flooring one lot low
        return math.floor(size / lot + 1e-9) * lot

    def _round_prices(self, bid: float, ask: float) -> tuple[float, float]:
        tick = self.config.tick_size
        if tick is None:
            return bid, ask
        bid = round(math.floor(bid / tick + 1e-9) * tick, 10)
        ask = round(math.ceil(ask / tick - 1e-9) * tick, 10)
        return bid, ask

    def build_quote(
        self,
        theo: TheoreticalValue,
        inventory: float,
        time_to_expiry: float,
        inventory_limit: float,
        timestamp: datetime | None = None,
    ) -> GeneratedQuote:
        """
        Build a sized, tick-rounded quote.

        Args:
            theo: Theoretical value from the current pricing tick
            inventory: Signed position in the contract
            time_to_expiry: T in years
            inventory_limit: Per-option inventory limit

        Raises:
            InvalidQuoteParameters: On degenerate inputs
        """
        params = QuoteParams(
            mid=theo.mid,
            inventory=inventory,
            volatility=theo.volatility,
            time_to_expiry=time_to_expiry,
            inventory_limit=inventory_limit,
        )
        bid_size, ask_size = self.quote_sizes(inventory, inventory_limit)
        quote = self.calculator.generate_quote(params, bid_size, ask_size, timestamp)

        bid, ask = self._round_prices(quote.bid_price, quote.ask_price)
        return GeneratedQuote(
            bid_price=max(bid, 0.0),
            bid_size=quote.bid_size,
            ask_price=ask,
            ask_size=quote.ask_size,
            mid=quote.mid,
            reservation_price=quote.reservation_price,
            spread=quote.spread,
            skew=quote.skew,
            timestamp=quote.timestamp,
        )

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def needs_update(self, new: GeneratedQuote, previous: GeneratedQuote | None) -> bool:
        """True if any price or size moved past its tolerance."""
        if previous is None:
            return True
        price_moves = (
            abs(new.bid_price - previous.bid_price),
            abs(new.ask_price - previous.ask_price),
        )
        size_moves = (
            abs(new.bid_size - previous.bid_size),
            abs(new.ask_size - previous.ask_size),
        )
        return any(m > self.config.price_tolerance for m in price_moves) or any(
            m > self.config.size_tolerance for m in size_moves
        )

    def resting_quote(self, contract: OptionContract) -> GeneratedQuote | None:
        resting = self._resting.get(contract)
        return resting.quote if resting is not None else None

    def submit(self, contract: OptionContract, book: OrderBook, quote: GeneratedQuote) -> QuoteAction:
        """
        Keep ``quote`` resting on ``book``.

        Returns:
            What was done

        Raises:
            OrderSubmissionFailed: If the book refuses (or raises on) an add
        """
        with self._lock:
            if self.halt_state.is_halted:
                self._cancel_locked(contract, book)
                return QuoteAction.HALTED

            previous = self._resting.get(contract)

            if not quote.is_valid():
                self.logger.warning(f"No valid side for {contract.symbol}: {quote!r}")
                self._cancel_locked(contract, book)
                return QuoteAction.CANCELLED

            if previous is not None and not self.needs_update(quote, previous.quote):
                return QuoteAction.UNCHANGED

            self._cancel_locked(contract, book)

            bid_id = (
                self._place(contract, book, Side.BUY, quote.bid_price, quote.bid_size)
                if quote.has_bid
                else None
            )
            try:
                ask_id = (
                    self._place(contract, book, Side.SELL, quote.ask_price, quote.ask_size)
                    if quote.has_ask
                    else None
                )
            except OrderSubmissionFailed:
                if bid_id is not None:
                    book.cancel_order(bid_id)
                raise

            self._resting[contract] = RestingQuote(quote, bid_id, ask_id)

        action = QuoteAction.SUBMITTED if previous is None else QuoteAction.REPLACED
        self.logger.debug(f"{action.value} {contract.symbol}: {quote!r}")
        return action

    def _place(
        self, contract: OptionContract, book: OrderBook, side: Side, price: float, size: float
    ) -> str:
        order_id = f"{contract.symbol}-{side.value}-{next(self._order_seq)}"
        try:
            accepted = book.add_limit_order(order_id, side, price, size)
        except Exception as e:
            raise OrderSubmissionFailed(
                f"Order book raised on {order_id}: {e}",
                order_id=order_id,
                side=side.value,
                price=price,
                size=size,
            ) from e

        if not accepted:
            raise OrderSubmissionFailed(
                f"Order book rejected {order_id}",
                order_id=order_id,
                side=side.value,
                price=price,
                size=size,
            )
        return order_id

    def cancel(self, contract: OptionContract, book: OrderBook) -> bool:
        """Pull the resting quote for a contract; True if there was one."""
        with self._lock:
            return self._cancel_locked(contract, book)

    def _cancel_locked(self, contract: OptionContract, book: OrderBook) -> bool:
        resting = self._resting.pop(contract, None)
        if resting is None:
            return False
        for order_id in (resting.bid_order_id, resting.ask_order_id):
            if order_id is not None and not book.cancel_order(order_id):
                self.logger.warning(f"Cancel of {order_id} not acknowledged")
        return True

    def resting_count(self) -> int:
        return len(self._resting)
