"""
Position Ledger

Exclusive owner of every Position. Fills for one contract are serialized by a
per-contract lock so the average price and realized P&L are computed in
arrival order; fills on different contracts proceed in parallel.

Reads return copies taken under each contract's lock. A ledger-wide snapshot
is therefore consistent per contract, but may be slightly stale relative to a
fill landing on a sibling contract while the snapshot is being copied.
"""

import threading
from datetime import datetime

from loguru import logger

from optmm.core.models import OptionContract
from optmm.inventory.position import FillResult, Position


class PositionLedger:
    """
    Thread-safe map of contract → Position.

    Example:
        >>> ledger = PositionLedger()
        >>> ledger.apply_fill(contract, 10, 100.0)
        >>> ledger.apply_fill(contract, -10, 110.0).realized_pnl
        100.0
    """

    def __init__(self):
        self._positions: dict[OptionContract, Position] = {}
        self._locks: dict[OptionContract, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self.logger = logger.bind(component="PositionLedger")

    def _entry(self, contract: OptionContract) -> tuple[Position, threading.Lock]:
        lock = self._locks.get(contract)
        if lock is not None:
            return self._positions[contract], lock
        with self._registry_lock:
            lock = self._locks.get(contract)
            if lock is None:
                # Position first, then the lock: readers key off the lock map
                self._positions[contract] = Position(multiplier=contract.multiplier)
                lock = threading.Lock()
                self._locks[contract] = lock
                self.logger.debug(f"Opened ledger entry for {contract.symbol}")
            return self._positions[contract], lock

    def apply_fill(
        self,
        contract: OptionContract,
        signed_qty: float,
        price: float,
        fee: float = 0.0,
        timestamp: datetime | None = None,
    ) -> FillResult:
        """
        Apply a fill; creates the Position on first fill.

        Raises:
            ValueError: If the fill itself is malformed (see Position.apply_fill)
        """
        position, lock = self._entry(contract)
        with lock:
            result = position.apply_fill(signed_qty, price, fee=fee, timestamp=timestamp)

        self.logger.debug(
            f"Fill {contract.symbol}: {signed_qty:+g} @ {price:.4f} → "
            f"qty={result.quantity:g}, avg={result.average_price:.4f}, "
            f"realized={result.realized_pnl:+.2f}"
        )
        return result

    def get(self, contract: OptionContract) -> Position | None:
        """Copy of the position for a contract (None if never filled)."""
        lock = self._locks.get(contract)
        if lock is None:
            return None
        with lock:
            return self._positions[contract].copy()

    def quantity(self, contract: OptionContract) -> float:
        position = self.get(contract)
        return position.quantity if position is not None else 0.0

    def snapshot(self) -> dict[OptionContract, Position]:
        """Per-contract-consistent copy of every position."""
        contracts = list(self._locks.keys())
        result = {}
        for contract in contracts:
            with self._locks[contract]:
                result[contract] = self._positions[contract].copy()
        return result

    def contracts(self) -> list[OptionContract]:
        return list(self._locks.keys())

    def open_contracts(self) -> list[OptionContract]:
        return [c for c, p in self.snapshot().items() if not p.is_flat]

    def total_realized_pnl(self) -> float:
        return sum(p.realized_pnl for p in self.snapshot().values())

    def __len__(self) -> int:
        return len(self._locks)

    def __contains__(self, contract: OptionContract) -> bool:
        return contract in self._locks
