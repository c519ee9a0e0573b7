"""
Market Data Store

Holds the current pricing snapshot: TheoreticalValue per contract plus the
underlying spot prices that produced them.

Key patterns:
- Snapshots are immutable and replaced wholesale on every publish, so a
  reader that grabs ``current()`` once sees one pricing tick for its whole
  evaluation cycle (no mixing of two ticks inside one aggregate)
- Per-symbol sequence numbers drop stale or duplicated updates
- ``reprice`` drives the external pricing collaborator for a set of contracts;
  a contract that fails to price is logged and left out of the tick

Usage:
    >>> store = MarketDataStore()
    >>> store.publish({contract: theo}, spots={"SPY": 455.0})
    >>> snap = store.current()
    >>> snap.value(contract).mid
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Iterable, Mapping

from loguru import logger

from optmm.core.errors import PricingError
from optmm.core.models import Greeks, OptionContract, TheoreticalValue
from optmm.pricing.interfaces import PricingModel


@dataclass(frozen=True)
class PricingSnapshot:
    """
    One pricing tick.

    Attributes:
        tick_id: Monotonic tick counter (0 = empty initial snapshot)
        values: Read-only contract → TheoreticalValue mapping
        spots: Read-only underlying → spot price mapping
        published_at: When this snapshot was published
    """

    tick_id: int = 0
    values: Mapping[OptionContract, TheoreticalValue] = field(
        default_factory=lambda: MappingProxyType({})
    )
    spots: Mapping[str, float] = field(default_factory=lambda: MappingProxyType({}))
    published_at: datetime = field(default_factory=datetime.now)

    def value(self, contract: OptionContract) -> TheoreticalValue | None:
        return self.values.get(contract)

    def greeks(self, contract: OptionContract) -> Greeks:
        """Per-unit Greeks, zero when the contract is not priced in this tick."""
        value = self.values.get(contract)
        return value.greeks if value is not None else Greeks.zero()

    def mark(self, contract: OptionContract) -> float | None:
        value = self.values.get(contract)
        return value.mid if value is not None else None

    def spot(self, underlying: str) -> float | None:
        return self.spots.get(underlying)

    def __len__(self) -> int:
        return len(self.values)


class MarketDataStore:
    """
    Publisher of immutable pricing snapshots.

    ``publish`` merges new values over the previous snapshot (contracts not
    repriced this tick keep their last value) unless ``replace`` is set, and
    swaps the reference under a lock; ``current`` is a plain attribute read.
    ``reprice`` always replaces, so a contract that fails to price is unpriced
    for that tick rather than carried over from an earlier one.
    """

    def __init__(self):
        self._snapshot = PricingSnapshot()
        self._sequences: dict[str, int] = {}
        self._lock = threading.Lock()
        self.logger = logger.bind(component="MarketDataStore")

    def current(self) -> PricingSnapshot:
        return self._snapshot

    def accept_sequence(self, symbol: str, sequence: int) -> bool:
        """
        Record a feed sequence number.

        Returns:
            False if ``sequence`` is not newer than the last one seen for the
            symbol (the update is stale and must be ignored)
        """
        with self._lock:
            last = self._sequences.get(symbol, 0)
            if sequence <= last:
                self.logger.debug(f"Dropping stale update for {symbol}: seq {sequence} <= {last}")
                return False
            self._sequences[symbol] = sequence
            return True

    def publish(
        self,
        values: Mapping[OptionContract, TheoreticalValue],
        spots: Mapping[str, float] | None = None,
        replace: bool = False,
    ) -> PricingSnapshot:
        """
        Publish a new pricing tick.

        Args:
            values: Newly priced contracts
            spots: Underlying spot prices for this tick
            replace: Drop every value not present in ``values`` instead of merging

        Returns:
            The newly published snapshot
        """
        with self._lock:
            previous = self._snapshot
            merged_values = dict(values) if replace else {**previous.values, **values}
            merged_spots = {**previous.spots, **(spots or {})}
            snapshot = PricingSnapshot(
                tick_id=previous.tick_id + 1,
                values=MappingProxyType(merged_values),
                spots=MappingProxyType(merged_spots),
                published_at=datetime.now(),
            )
            self._snapshot = snapshot

        self.logger.debug(
            f"Published tick {snapshot.tick_id}: {len(values)} repriced, "
            f"{len(snapshot)} total, {len(merged_spots)} spots"
        )
        return snapshot

    def reprice(
        self,
        pricer: PricingModel,
        contracts: Iterable[OptionContract],
        spots: Mapping[str, float],
        volatilities: Mapping[str, float],
        rate: float,
        as_of: datetime | None = None,
    ) -> PricingSnapshot:
        """
        Price ``contracts`` with the pricing collaborator and publish the tick.

        Volatility is looked up by contract symbol first, then by underlying.
        Contracts whose underlying has no spot, or that the pricer rejects,
        are skipped with a warning.
        """
        as_of = as_of or datetime.now()
        values: dict[OptionContract, TheoreticalValue] = {}
        skipped = 0

        for contract in contracts:
            spot = spots.get(contract.underlying)
            vol = volatilities.get(contract.symbol, volatilities.get(contract.underlying))
            if spot is None or vol is None:
                skipped += 1
                continue
            try:
                values[contract] = pricer.theoretical_value(contract, spot, vol, rate, as_of=as_of)
            except PricingError as e:
                skipped += 1
                self.logger.warning(f"Pricing failed for {contract.symbol}: {e}")

        if skipped:
            self.logger.warning(f"Reprice skipped {skipped} contracts")

        return self.publish(values, spots=spots, replace=True)
