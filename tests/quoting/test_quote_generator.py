"""
Unit tests for QuoteGenerator.

Tests inventory-aware sizing, tick rounding, resubmission tolerance, halt
handling and order book failures.
"""

from dataclasses import replace

import pytest

from optmm.adapters.paper_book import PaperOrderBook
from optmm.core.errors import InvalidQuoteParameters, OrderSubmissionFailed
from optmm.core.models import Side
from optmm.quoting.generator import QuoteAction, QuoteGenerator, QuotingConfig
from optmm.quoting.quote import GeneratedQuote
from optmm.quoting.spread import SpreadCalculator
from optmm.risk.halt import TradingHaltState
from tests.fixtures.market_fixtures import make_theo


class SellRejectingBook(PaperOrderBook):
    """Accepts bids, refuses asks."""

    def add_limit_order(self, order_id, side, price, size):
        if side is Side.SELL:
            return False
        return super().add_limit_order(order_id, side, price, size)


class RaisingBook(PaperOrderBook):
    """Raises on every add, like a dropped venue connection."""

    def add_limit_order(self, order_id, side, price, size):
        raise ConnectionError("venue unreachable")


@pytest.fixture
def halt_state():
    return TradingHaltState()


@pytest.fixture
def generator(halt_state):
    """Generator with base size 10, lot 1, tick 0.01."""
    return QuoteGenerator(SpreadCalculator(), QuotingConfig(), halt_state)


@pytest.fixture
def book(spy_call):
    return PaperOrderBook(spy_call.symbol)


def build(generator, mid=5.0, inventory=0.0, time_to_expiry=0.25, limit=100.0):
    return generator.build_quote(make_theo(mid=mid), inventory, time_to_expiry, limit)


class TestQuoteSizes:
    """Test inventory-aware sizing."""

    @pytest.mark.parametrize(
        "inventory,expected",
        [
            (0, (10, 10)),
            (50, (5, 10)),
            (-50, (10, 5)),
            (-33, (10, 6)),
            (100, (0, 10)),
            (150, (0, 10)),
            (-100, (10, 0)),
        ],
    )
    def test_sizes(self, generator, inventory, expected):
        """Test the growing side shrinks toward zero at the limit; the reducing side keeps base size."""
        assert generator.quote_sizes(inventory, 100.0) == expected

    def test_lot_rounding(self, halt_state):
        """Test sizes are floored to the lot size."""
        generator = QuoteGenerator(
            SpreadCalculator(), QuotingConfig(base_size=100, lot_size=25), halt_state
        )

        assert generator.quote_sizes(30, 100.0) == (50, 100)


class TestBuildQuote:
    """Test quote construction."""

    def test_tick_rounding(self, generator):
        """Test bid rounds down and ask rounds up to the tick."""
        quote = build(generator)

        # δ ≈ 1.29177 around mid 5.00 → 4.354 / 5.646
        assert quote.bid_price == pytest.approx(4.35)
        assert quote.ask_price == pytest.approx(5.65)
        assert quote.bid_size == 10
        assert quote.ask_size == 10

    def test_no_tick_rounding(self, halt_state):
        """Test tick_size=None keeps model prices."""
        generator = QuoteGenerator(SpreadCalculator(), QuotingConfig(tick_size=None), halt_state)

        quote = build(generator)

        assert quote.bid_price == pytest.approx(5.0 - quote.spread / 2)

    def test_at_limit_is_one_sided(self, generator):
        """Test a long book at its limit quotes only the ask."""
        quote = build(generator, inventory=100.0, limit=100.0)

        assert not quote.has_bid
        assert quote.has_ask
        assert quote.is_valid()

    def test_expired_contract(self, generator):
        """Test T <= 0 raises instead of producing a quote."""
        with pytest.raises(InvalidQuoteParameters):
            build(generator, time_to_expiry=0.0)


class TestSubmit:
    """Test keeping quotes resting on the book."""

    def test_first_submit(self, generator, book, spy_call):
        """Test a new quote places a bid and an ask."""
        quote = build(generator)

        action = generator.submit(spy_call, book, quote)

        assert action is QuoteAction.SUBMITTED
        assert len(book) == 2
        best = book.best_quote()
        assert best.bid == quote.bid_price
        assert best.ask == quote.ask_price
        assert generator.resting_quote(spy_call) == quote

    def test_within_tolerance_unchanged(self, generator, book, spy_call):
        """Test an identical quote is not resubmitted."""
        generator.submit(spy_call, book, build(generator))
        ids = set(book.orders)

        action = generator.submit(spy_call, book, build(generator))

        assert action is QuoteAction.UNCHANGED
        assert set(book.orders) == ids

    def test_moved_quote_replaced(self, generator, book, spy_call):
        """Test a price move past tolerance cancels and replaces the orders."""
        generator.submit(spy_call, book, build(generator))
        old_ids = set(book.orders)

        action = generator.submit(spy_call, book, build(generator, mid=5.50))

        assert action is QuoteAction.REPLACED
        assert len(book) == 2
        assert not old_ids & set(book.orders)
        assert book.best_quote().bid == pytest.approx(4.85)

    def test_size_change_replaced(self, generator, book, spy_call):
        """Test a size change is resubmitted even at the same prices."""
        quote = build(generator)
        generator.submit(spy_call, book, quote)

        action = generator.submit(spy_call, book, replace(quote, bid_size=5))

        assert action is QuoteAction.REPLACED

    def test_one_sided_quote(self, generator, book, spy_call):
        """Test a side with size 0 is not placed."""
        generator.submit(spy_call, book, build(generator, inventory=100.0, limit=100.0))

        assert len(book) == 1
        assert book.best_quote().bid is None

    def test_invalid_quote_cancels(self, generator, book, spy_call):
        """Test a quote with no valid side pulls the resting orders."""
        generator.submit(spy_call, book, build(generator))
        empty = GeneratedQuote(
            bid_price=1.0,
            bid_size=0,
            ask_price=2.0,
            ask_size=0,
            mid=1.5,
            reservation_price=1.5,
            spread=1.0,
            skew=0.0,
        )

        action = generator.submit(spy_call, book, empty)

        assert action is QuoteAction.CANCELLED
        assert len(book) == 0
        assert generator.resting_quote(spy_call) is None

    def test_cancel(self, generator, book, spy_call):
        """Test cancel pulls both sides."""
        generator.submit(spy_call, book, build(generator))

        assert generator.cancel(spy_call, book)
        assert not generator.cancel(spy_call, book)
        assert len(book) == 0
        assert generator.resting_count() == 0


class TestHalt:
    """Test halt handling."""

    def test_halted_submits_nothing(self, generator, halt_state, book, spy_call):
        """Test a halted generator pulls resting quotes and places nothing."""
        generator.submit(spy_call, book, build(generator))
        halt_state.halt("delta limit breached")

        action = generator.submit(spy_call, book, build(generator, mid=6.0))

        assert action is QuoteAction.HALTED
        assert len(book) == 0
        assert generator.resting_count() == 0

    def test_resumes_after_reset(self, generator, halt_state, book, spy_call):
        """Test quoting resumes once the halt is reset."""
        halt_state.halt("operator")
        generator.submit(spy_call, book, build(generator))
        halt_state.reset()

        action = generator.submit(spy_call, book, build(generator))

        assert action is QuoteAction.SUBMITTED
        assert len(book) == 2


class TestSubmissionFailures:
    """Test order book failures propagate."""

    def test_rejected(self, generator, spy_call):
        """Test a refused order raises OrderSubmissionFailed."""
        book = PaperOrderBook(spy_call.symbol, reject_all=True)

        with pytest.raises(OrderSubmissionFailed) as exc_info:
            generator.submit(spy_call, book, build(generator))

        assert exc_info.value.side == "BUY"
        assert exc_info.value.price == pytest.approx(4.35)
        assert generator.resting_count() == 0

    def test_ask_rejected_pulls_bid(self, generator, spy_call):
        """Test a refused ask cancels the bid placed for the same quote."""
        book = SellRejectingBook(spy_call.symbol)

        with pytest.raises(OrderSubmissionFailed) as exc_info:
            generator.submit(spy_call, book, build(generator))

        assert exc_info.value.side == "SELL"
        assert len(book) == 0
        assert generator.resting_quote(spy_call) is None

    def test_book_exception_wrapped(self, generator, spy_call):
        """Test an exception from the book is wrapped with the order context."""
        book = RaisingBook(spy_call.symbol)

        with pytest.raises(OrderSubmissionFailed) as exc_info:
            generator.submit(spy_call, book, build(generator))

        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert exc_info.value.size == 10
