"""
Market Maker Engine

Wires the decision components together and drives one tick at a time.

Per-tick flow:
    on_pricing_tick  → pricing collaborator values every contract, a new
                       immutable pricing snapshot is published, P&L is marked
    refresh_quotes   → Spread Calculator + Quote Generator refresh quotes
    on_fill          → Position Ledger and P&L Calculator updated
    run_risk_cycle   → one EvaluationSnapshot: per-underlying aggregates,
                       position-limit checks, Risk Controller evaluation,
                       Delta Hedger evaluation (orders sent via the exchange
                       adapter when one is configured)

The trading halt is a shared TradingHaltState checked before quote
submission and hedge emission. halt()/resume() are the operator entry points.

Usage:
    >>> engine = MarketMakerEngine.from_config("config/engine.yaml")
    >>> engine.add_contract(contract)
    >>> engine.on_pricing_tick(spots={"SPY": 455.0}, volatilities={"SPY": 0.20})
    >>> engine.refresh_quotes()
    >>> engine.on_fill(contract, -10, 5.30)
    >>> result = engine.run_risk_cycle()
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Mapping, Optional

from loguru import logger

from optmm.adapters.interfaces import ExchangeAdapter, OrderBook
from optmm.adapters.paper_book import PaperOrderBook
from optmm.chain.hierarchy import ChainHierarchy, ContractNode
from optmm.chain.keys import LevelKey
from optmm.config.engine_config import EngineConfig, load_engine_config
from optmm.config.loader import configure_logging
from optmm.core.errors import InvalidQuoteParameters
from optmm.core.models import OptionContract
from optmm.hedging.hedger import DeltaHedger, HedgeDecision
from optmm.inventory.aggregator import AggregatedSnapshot, InventoryRiskAggregator
from optmm.inventory.ledger import PositionLedger
from optmm.inventory.position import FillResult
from optmm.market_data.store import MarketDataStore, PricingSnapshot
from optmm.pnl.calculator import PnLBook
from optmm.pricing.black_scholes import BlackScholesPricer
from optmm.pricing.interfaces import PricingModel
from optmm.quoting.generator import QuoteAction, QuoteGenerator
from optmm.quoting.spread import SpreadCalculator
from optmm.risk.controller import RiskController
from optmm.risk.halt import TradingHaltState
from optmm.risk.limits import RiskBreach


@dataclass(slots=True)
class RiskCycleResult:
    """
    Output of one risk/hedge evaluation cycle.

    Attributes:
        pricing_tick: Pricing tick the whole cycle used
        aggregates: Aggregate per underlying
        breaches: Risk Controller breaches (Greeks, loss, drawdown)
        limit_breaches: Position-limit breaches from the aggregator
        hedge_decisions: Hedger decision per underlying with a spot price
        halted: Whether trading is halted after the cycle
    """

    pricing_tick: int
    aggregates: dict[str, AggregatedSnapshot] = field(default_factory=dict)
    breaches: list[RiskBreach] = field(default_factory=list)
    limit_breaches: list[RiskBreach] = field(default_factory=list)
    hedge_decisions: dict[str, HedgeDecision] = field(default_factory=dict)
    halted: bool = False

    @property
    def hedge_orders(self) -> list:
        return [d.order for d in self.hedge_decisions.values() if d.order is not None]


class MarketMakerEngine:
    """
    Options market-making decision engine.

    Attributes:
        config: Engine configuration
        halt_state: Shared trading halt flag
        chain: Chain hierarchy with one order book per contract
        ledger: Position Ledger
        market_data: Pricing snapshot store
        aggregator: Inventory/Risk Aggregator
        quote_generator: Quote Generator
        hedger: Delta Hedger
        risk_controller: Risk Controller
        pnl: P&L book
        pricer: Pricing collaborator
        exchange: Venue adapter for hedge orders (None = decisions only)
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        pricer: PricingModel | None = None,
        book_factory: Callable[[OptionContract], OrderBook] | None = None,
        exchange: ExchangeAdapter | None = None,
        halt_state: TradingHaltState | None = None,
    ):
        self.config = config or EngineConfig()
        self.halt_state = halt_state if halt_state is not None else TradingHaltState()
        self.pricer = pricer or BlackScholesPricer()
        self.exchange = exchange

        self.chain = ChainHierarchy(book_factory or (lambda c: PaperOrderBook(c.symbol)))
        self.ledger = PositionLedger()
        self.market_data = MarketDataStore()
        self.aggregator = InventoryRiskAggregator(
            self.chain, self.ledger, self.market_data, self.config.position_limits
        )
        self.quote_generator = QuoteGenerator(
            SpreadCalculator(self.config.spread), self.config.quoting, self.halt_state
        )
        self.hedger = DeltaHedger(self.config.hedging, self.config.risk_limits, self.halt_state)
        self.risk_controller = RiskController(
            self.config.risk_limits, self.halt_state, self.config.halt_policy
        )
        self.pnl = PnLBook()

        self._spots: dict[str, float] = {}
        self._volatilities: dict[str, float] = {}
        self.logger = logger.bind(component="MarketMakerEngine")

    @classmethod
    def from_config(cls, config_path: Optional[str] = None, **kwargs) -> "MarketMakerEngine":
        """Load config (YAML + env), configure logging, build the engine."""
        config = load_engine_config(config_path)
        configure_logging(config.logging)
        return cls(config, **kwargs)

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    def add_contract(self, contract: OptionContract) -> ContractNode:
        return self.chain.get_or_create_contract(contract)

    # ------------------------------------------------------------------
    # Market data
    # ------------------------------------------------------------------

    def on_pricing_tick(
        self,
        spots: Mapping[str, float],
        volatilities: Mapping[str, float],
        as_of: datetime | None = None,
    ) -> PricingSnapshot:
        """
        Reprice every contract and publish the tick.

        Args:
            spots: Underlying → spot (merged over previously seen spots)
            volatilities: Underlying or contract symbol → volatility (merged)
            as_of: Valuation time (default: now)

        Returns:
            The published pricing snapshot
        """
        as_of = as_of or datetime.now()
        self._spots.update(spots)
        self._volatilities.update(volatilities)

        snapshot = self.market_data.reprice(
            self.pricer,
            self.chain.contracts(),
            self._spots,
            self._volatilities,
            self.config.rate,
            as_of=as_of,
        )
        self.pnl.mark_to_market(snapshot)
        return snapshot

    def on_market_update(
        self,
        underlying: str,
        spot: float,
        volatility: float | None = None,
        sequence: int | None = None,
        as_of: datetime | None = None,
    ) -> PricingSnapshot | None:
        """
        Single-underlying feed update.

        Returns:
            The published snapshot, or None if the update was stale
        """
        if sequence is not None and not self.market_data.accept_sequence(underlying, sequence):
            return None
        volatilities = {underlying: volatility} if volatility is not None else {}
        return self.on_pricing_tick({underlying: spot}, volatilities, as_of=as_of)

    # ------------------------------------------------------------------
    # Quoting
    # ------------------------------------------------------------------

    def refresh_quotes(self, as_of: datetime | None = None) -> dict[OptionContract, QuoteAction]:
        """
        Rebuild and (re)submit quotes for every priced contract.

        Contracts with degenerate inputs (e.g. expired) have their quotes
        pulled and are left out of the result.

        Raises:
            OrderSubmissionFailed: Propagated from the order book, not retried
        """
        as_of = as_of or datetime.now()
        pricing = self.market_data.current()
        limit = self.config.position_limits.per_option
        actions: dict[OptionContract, QuoteAction] = {}

        for underlying in self.chain.underlyings():
            node = self.chain.get_node(LevelKey.for_underlying(underlying))
            for contract_node in node.contract_nodes():
                contract = contract_node.contract
                theo = pricing.value(contract)
                if theo is None:
                    continue
                try:
                    quote = self.quote_generator.build_quote(
                        theo,
                        inventory=self.ledger.quantity(contract),
                        time_to_expiry=contract.time_to_expiry(as_of),
                        inventory_limit=limit,
                        timestamp=as_of,
                    )
                except InvalidQuoteParameters as e:
                    self.logger.warning(f"Not quoting {contract.symbol}: {e}")
                    self.quote_generator.cancel(contract, contract_node.book)
                    continue
                actions[contract] = self.quote_generator.submit(contract, contract_node.book, quote)

        idle = (QuoteAction.UNCHANGED, QuoteAction.HALTED)
        changed = sum(1 for a in actions.values() if a not in idle)
        self.logger.debug(f"Quote refresh on tick {pricing.tick_id}: {changed}/{len(actions)} changed")
        return actions

    # ------------------------------------------------------------------
    # Fills
    # ------------------------------------------------------------------

    def on_fill(
        self,
        contract: OptionContract,
        signed_qty: float,
        price: float,
        fee: float = 0.0,
        timestamp: datetime | None = None,
    ) -> FillResult:
        """Apply an option fill to the ledger and the P&L book (never rejected)."""
        result = self.aggregator.apply_fill(contract, signed_qty, price, fee=fee, timestamp=timestamp)
        self.pnl.record_fill(contract, signed_qty, price, fee=fee, timestamp=timestamp)
        return result

    def on_hedge_fill(self, underlying: str, signed_qty: float) -> float:
        """Record an executed hedge; returns the new hedge position."""
        return self.hedger.record_hedge(underlying, signed_qty)

    # ------------------------------------------------------------------
    # Risk / hedging
    # ------------------------------------------------------------------

    def run_risk_cycle(self, now: datetime | None = None) -> RiskCycleResult:
        """
        One risk and hedge evaluation over a single coherent snapshot.

        Returns:
            RiskCycleResult for the cycle
        """
        now = now or datetime.now()
        snapshot = self.aggregator.snapshot()
        result = RiskCycleResult(pricing_tick=snapshot.tick_id)

        for underlying in self.chain.underlyings():
            key = LevelKey.for_underlying(underlying)
            result.aggregates[underlying] = self.aggregator.aggregate_greeks(key, snapshot)
            result.limit_breaches.extend(self.aggregator.check_limits(key, snapshot))

        # Loss and drawdown use the P&L of this cycle's aggregates
        result.breaches = self.risk_controller.evaluate_portfolio(list(result.aggregates.values()))

        for underlying, aggregate in result.aggregates.items():
            spot = snapshot.pricing.spot(underlying)
            if spot is None:
                continue
            decision = self.hedger.evaluate(
                underlying,
                aggregate.greeks.delta,
                spot,
                greeks=aggregate.greeks,
                now=now,
            )
            result.hedge_decisions[underlying] = decision
            if decision.order is not None and self.exchange is not None:
                order = decision.order
                order_id = self.exchange.submit_order(
                    order.underlying, order.side, order.quantity, order.limit_price
                )
                self.logger.info(f"Hedge sent to {self.exchange.name}: {order!r} id={order_id}")

        result.halted = self.halt_state.is_halted
        return result

    # ------------------------------------------------------------------
    # Halt / lifecycle
    # ------------------------------------------------------------------

    def halt(self, reason: str) -> bool:
        return self.halt_state.halt(reason)

    def resume(self) -> None:
        self.halt_state.reset()

    @property
    def is_halted(self) -> bool:
        return self.halt_state.is_halted

    def start_of_day(self, today: date | None = None) -> int:
        """
        Reset daily risk tracking and drop expired expirations.

        Quotes resting on expired contracts are cancelled before their nodes
        are removed.

        Returns:
            Number of expirations removed
        """
        today = today or date.today()
        self.risk_controller.reset_daily()

        expired = self.chain.expired_contract_nodes(today)
        for node in expired:
            self.quote_generator.cancel(node.contract, node.book)
        if expired:
            self.logger.info(f"Pulled quotes on {len(expired)} expired contracts")

        return self.chain.remove_expired(today)
