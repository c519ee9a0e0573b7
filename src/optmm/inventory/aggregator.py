"""
Inventory/Risk Aggregator

This module applies fills to the Position Ledger and aggregates positions
and Greeks at any node of the chain hierarchy.

Key features:
- apply_fill never rejects: the trade already happened; limit checks are
  advisory and run separately (check_limits)
- EvaluationSnapshot: one copy of the ledger plus one pricing snapshot,
  shared by every aggregate/check in an evaluation cycle
- Polars for aggregation and per-child breakdowns

Consistency model:
    Each Position is copied under its own lock, so a snapshot never sees a
    half-applied fill. Fills landing on sibling contracts while the ledger is
    being copied may or may not be included: a snapshot is eventually
    consistent across contracts within one aggregation window. Every figure
    derived from one EvaluationSnapshot (and its single pricing tick) is
    mutually consistent, so aggregate(L) == Σ aggregate(child of L) holds
    within a cycle.

Usage:
    >>> aggregator = InventoryRiskAggregator(chain, ledger, market_data, limits)
    >>> aggregator.apply_fill(contract, 10, 5.25)
    >>> snap = aggregator.snapshot()
    >>> agg = aggregator.aggregate_greeks(LevelKey.for_underlying("SPY"), snap)
    >>> breaches = aggregator.check_limits(LevelKey.for_underlying("SPY"), snap)
"""

from dataclasses import dataclass, field
from datetime import datetime

import polars as pl
from loguru import logger

from optmm.chain.hierarchy import ChainHierarchy
from optmm.chain.keys import Level, LevelKey
from optmm.core.models import Greeks, OptionContract
from optmm.inventory.ledger import PositionLedger
from optmm.inventory.limits import PositionLimits
from optmm.inventory.position import FillResult, Position
from optmm.market_data.store import MarketDataStore, PricingSnapshot
from optmm.risk.limits import BreachKind, RiskBreach

POSITION_SCHEMA = {
    "underlying": pl.Utf8,
    "expiry": pl.Date,
    "strike": pl.Float64,
    "style": pl.Utf8,
    "multiplier": pl.Float64,
    "quantity": pl.Float64,
    "average_price": pl.Float64,
    "realized_pnl": pl.Float64,
    "fees": pl.Float64,
    "mark": pl.Float64,
    "spot": pl.Float64,
    "delta": pl.Float64,
    "gamma": pl.Float64,
    "vega": pl.Float64,
    "theta": pl.Float64,
}

# Child grouping column for a breakdown at each level
_CHILD_COLUMN = {
    Level.UNDERLYING: "expiry",
    Level.EXPIRATION: "strike",
    Level.STRIKE: "style",
    Level.CONTRACT: "style",
}


@dataclass(slots=True, frozen=True)
class AggregatedSnapshot:
    """
    Aggregate of every position under one hierarchy node.

    Attributes:
        level_key: Node that was aggregated
        greeks: Σ per-unit Greeks × signed quantity
        net_quantity: Σ signed quantity
        gross_quantity: Σ |quantity|
        net_notional: Σ signed quantity × mark × multiplier
        dollar_delta: Σ signed quantity × delta × spot × multiplier
        position_count: Number of open (non-flat) positions
        realized_pnl: Σ realized P&L (flat positions included)
        unrealized_pnl: Σ quantity × (mark − average price) × multiplier
        fees: Σ fees
        pricing_tick: Pricing tick the Greeks came from
        calculated_at: When the aggregate was computed
    """

    level_key: LevelKey
    greeks: Greeks
    net_quantity: float
    gross_quantity: float
    net_notional: float
    dollar_delta: float
    position_count: int
    realized_pnl: float
    unrealized_pnl: float
    fees: float
    pricing_tick: int
    calculated_at: datetime = field(default_factory=datetime.now)

    @property
    def total_pnl(self) -> float:
        return self.realized_pnl + self.unrealized_pnl

    def __repr__(self) -> str:
        return (
            f"AggregatedSnapshot({self.level_key}, positions={self.position_count}, "
            f"delta={self.greeks.delta:.2f}, gamma={self.greeks.gamma:.4f}, "
            f"notional=${self.net_notional:,.0f}, tick={self.pricing_tick})"
        )


class EvaluationSnapshot:
    """
    Positions + pricing frozen for one evaluation cycle.

    Attributes:
        positions: Copied positions keyed by contract
        pricing: The pricing snapshot in effect when the copy was taken
        taken_at: When the snapshot was taken
        frame: Polars frame, one row per position, joined with its pricing
    """

    def __init__(self, positions: dict[OptionContract, Position], pricing: PricingSnapshot):
        self.positions = positions
        self.pricing = pricing
        self.taken_at = datetime.now()
        self.frame = self._build_frame()

    def _build_frame(self) -> pl.DataFrame:
        rows = []
        for contract, position in self.positions.items():
            greeks = self.pricing.greeks(contract)
            mark = self.pricing.mark(contract)
            spot = self.pricing.spot(contract.underlying)
            rows.append(
                (
                    contract.underlying,
                    contract.expiry,
                    float(contract.strike),
                    contract.style.value,
                    contract.multiplier,
                    float(position.quantity),
                    position.average_price,
                    position.realized_pnl,
                    position.fees,
                    # Unpriced contracts are marked at cost (zero unrealized)
                    mark if mark is not None else position.average_price,
                    spot if spot is not None else 0.0,
                    greeks.delta,
                    greeks.gamma,
                    greeks.vega,
                    greeks.theta,
                )
            )
        return pl.DataFrame(rows, schema=POSITION_SCHEMA, orient="row")

    def rows_under(self, key: LevelKey) -> pl.DataFrame:
        conditions = pl.col("underlying") == key.underlying
        if key.expiry is not None:
            conditions = conditions & (pl.col("expiry") == key.expiry)
        if key.strike is not None:
            conditions = conditions & (pl.col("strike") == key.strike)
        if key.style is not None:
            conditions = conditions & (pl.col("style") == key.style.value)
        return self.frame.filter(conditions)

    @property
    def tick_id(self) -> int:
        return self.pricing.tick_id


def _aggregate_exprs() -> list[pl.Expr]:
    qty = pl.col("quantity")
    return [
        (qty * pl.col("delta")).sum().alias("delta"),
        (qty * pl.col("gamma")).sum().alias("gamma"),
        (qty * pl.col("vega")).sum().alias("vega"),
        (qty * pl.col("theta")).sum().alias("theta"),
        qty.sum().alias("net_quantity"),
        qty.abs().sum().alias("gross_quantity"),
        (qty * pl.col("mark") * pl.col("multiplier")).sum().alias("net_notional"),
        (qty * pl.col("delta") * pl.col("spot") * pl.col("multiplier")).sum().alias("dollar_delta"),
        (qty != 0).sum().alias("position_count"),
        pl.col("realized_pnl").sum().alias("realized_pnl"),
        (qty * (pl.col("mark") - pl.col("average_price")) * pl.col("multiplier"))
        .sum()
        .alias("unrealized_pnl"),
        pl.col("fees").sum().alias("fees"),
    ]


class InventoryRiskAggregator:
    """
    Fill application, hierarchical aggregation and advisory limit checks.

    Attributes:
        chain: Chain hierarchy (contracts are registered on first fill)
        ledger: Position ledger (exclusive owner of positions)
        market_data: Source of pricing snapshots
        limits: Position limits applied by check_limits
    """

    def __init__(
        self,
        chain: ChainHierarchy,
        ledger: PositionLedger,
        market_data: MarketDataStore,
        limits: PositionLimits,
    ):
        self.chain = chain
        self.ledger = ledger
        self.market_data = market_data
        self.limits = limits
        self.logger = logger.bind(component="InventoryRiskAggregator")

    def apply_fill(
        self,
        contract: OptionContract,
        signed_qty: float,
        price: float,
        fee: float = 0.0,
        timestamp: datetime | None = None,
    ) -> FillResult:
        """
        Apply a trade execution.

        The fill is always applied. If the resulting per-option quantity is
        over its cap a warning is logged; full limit evaluation is left to
        check_limits.

        Args:
            contract: Contract that traded
            signed_qty: Positive = bought, negative = sold
            price: Execution price
            fee: Fee charged
            timestamp: Execution time

        Returns:
            FillResult from the ledger
        """
        self.chain.get_or_create_contract(contract)
        result = self.ledger.apply_fill(contract, signed_qty, price, fee=fee, timestamp=timestamp)

        if abs(result.quantity) > self.limits.per_option:
            self.logger.warning(
                f"Per-option cap exceeded after fill on {contract.symbol}: "
                f"|{result.quantity:g}| > {self.limits.per_option:g} (advisory)"
            )
        return result

    def snapshot(self) -> EvaluationSnapshot:
        """Take one coherent snapshot for an evaluation cycle."""
        pricing = self.market_data.current()
        return EvaluationSnapshot(self.ledger.snapshot(), pricing)

    def aggregate_greeks(
        self, level_key: LevelKey, snapshot: EvaluationSnapshot | None = None
    ) -> AggregatedSnapshot:
        """
        Aggregate every position under ``level_key``.

        Args:
            level_key: Node to aggregate (any level)
            snapshot: Cycle snapshot to read from (default: take a fresh one)

        Returns:
            AggregatedSnapshot for the node (zeros if nothing is held there)
        """
        snapshot = snapshot or self.snapshot()
        totals = snapshot.rows_under(level_key).select(_aggregate_exprs()).row(0, named=True)

        return AggregatedSnapshot(
            level_key=level_key,
            greeks=Greeks(
                delta=totals["delta"] or 0.0,
                gamma=totals["gamma"] or 0.0,
                vega=totals["vega"] or 0.0,
                theta=totals["theta"] or 0.0,
            ),
            net_quantity=totals["net_quantity"] or 0.0,
            gross_quantity=totals["gross_quantity"] or 0.0,
            net_notional=totals["net_notional"] or 0.0,
            dollar_delta=totals["dollar_delta"] or 0.0,
            position_count=int(totals["position_count"] or 0),
            realized_pnl=totals["realized_pnl"] or 0.0,
            unrealized_pnl=totals["unrealized_pnl"] or 0.0,
            fees=totals["fees"] or 0.0,
            pricing_tick=snapshot.tick_id,
        )

    def breakdown(
        self, level_key: LevelKey, snapshot: EvaluationSnapshot | None = None
    ) -> pl.DataFrame:
        """
        Per-child aggregates of a node as a Polars frame.

        Children are expirations under an underlying, strikes under an
        expiration, and call/put under a strike.
        """
        snapshot = snapshot or self.snapshot()
        child = _CHILD_COLUMN[level_key.level]
        return (
            snapshot.rows_under(level_key)
            .group_by(child)
            .agg(_aggregate_exprs())
            .sort(child)
        )

    def underlying_delta(
        self, underlying: str, snapshot: EvaluationSnapshot | None = None
    ) -> float:
        return self.aggregate_greeks(LevelKey.for_underlying(underlying), snapshot).greeks.delta

    def check_limits(
        self, level_key: LevelKey, snapshot: EvaluationSnapshot | None = None
    ) -> list[RiskBreach]:
        """
        Compare a node's aggregate against the position limits.

        Checks the quantity cap for the node's own level (|net| for a single
        contract, gross otherwise), each Greek cap, and max loss. Advisory
        only: nothing is blocked or rejected.

        Returns:
            List of breaches (empty if within limits)
        """
        agg = self.aggregate_greeks(level_key, snapshot)
        now = datetime.now()
        breaches: list[RiskBreach] = []

        quantity = (
            abs(agg.net_quantity) if level_key.level is Level.CONTRACT else agg.gross_quantity
        )
        cap = self.limits.quantity_cap(level_key.level)
        if quantity > cap:
            breaches.append(RiskBreach.create(BreachKind.QUANTITY, quantity, cap, level_key, now))

        greek_caps = (
            (BreachKind.DELTA, agg.greeks.delta, self.limits.max_delta),
            (BreachKind.GAMMA, agg.greeks.gamma, self.limits.max_gamma),
            (BreachKind.VEGA, agg.greeks.vega, self.limits.max_vega),
            (BreachKind.THETA, agg.greeks.theta, self.limits.max_theta),
        )
        for kind, value, limit in greek_caps:
            if abs(value) > limit:
                breaches.append(RiskBreach.create(kind, abs(value), limit, level_key, now))

        loss = -agg.total_pnl
        if loss > self.limits.max_loss:
            breaches.append(
                RiskBreach.create(BreachKind.LOSS, loss, self.limits.max_loss, level_key, now)
            )

        for breach in breaches:
            self.logger.warning(f"Limit check: {breach}")

        return breaches
