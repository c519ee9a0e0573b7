"""
Option Chain Hierarchy

Tree of Underlying → Expiration → Strike → Contract nodes. Each contract node
wraps the order book for that contract (created by an injected factory).

Key features:
- Idempotent get_or_create at every level: the same key always yields the
  same node object, so mutations through one handle are visible via another
- Key-based parent lookup (LevelKey.parent()); nodes hold no parent references
- Structural inserts lock only the parent node, so writers at different
  levels/branches never contend and readers never lock
- Readers iterate over copied child views, never over a live dict

Usage:
    >>> chain = ChainHierarchy(book_factory=lambda c: PaperOrderBook(c.symbol))
    >>> node = chain.get_or_create_contract(contract)
    >>> node is chain.get_or_create_contract(contract)
    True
    >>> chain.stats("SPY")
    ChainStats(underlying='SPY', expirations=1, strikes=1, contracts=1, calls=1, puts=0)
"""

import threading
from dataclasses import dataclass
from datetime import date
from typing import Callable, Iterator

from loguru import logger

from optmm.adapters.interfaces import OrderBook
from optmm.chain.keys import Level, LevelKey
from optmm.core.errors import NodeNotFoundError
from optmm.core.models import OptionContract, OptionStyle

BookFactory = Callable[[OptionContract], OrderBook]


class _Node:
    """Shared child-map behaviour for interior nodes."""

    __slots__ = ("key", "_children", "_lock")

    def __init__(self, key: LevelKey):
        self.key = key
        self._children: dict = {}
        self._lock = threading.Lock()

    def _get_or_create_child(self, child_key, factory):
        # Fast path without the lock; dict reads are atomic.
        child = self._children.get(child_key)
        if child is not None:
            return child, False
        with self._lock:
            child = self._children.get(child_key)
            if child is None:
                child = factory()
                self._children[child_key] = child
                return child, True
            return child, False

    def children(self) -> list:
        """Copy of the child nodes (safe against concurrent inserts)."""
        return list(self._children.values())

    def child_keys(self) -> list:
        return sorted(self._children.keys())

    def get_child(self, child_key):
        return self._children.get(child_key)

    def _remove_child(self, child_key):
        with self._lock:
            return self._children.pop(child_key, None)

    def __len__(self) -> int:
        return len(self._children)

    def contract_nodes(self) -> Iterator["ContractNode"]:
        for child in self.children():
            yield from child.contract_nodes()

    def contracts(self) -> Iterator[OptionContract]:
        for node in self.contract_nodes():
            yield node.contract

    @property
    def contract_count(self) -> int:
        return sum(1 for _ in self.contract_nodes())


class ContractNode:
    """
    Leaf node: one option contract and its order book.

    Attributes:
        key: LevelKey at CONTRACT level
        contract: The option contract
        book: Order book collaborator for this contract
        metadata: Free-form annotations (e.g. venue symbol)
    """

    __slots__ = ("key", "contract", "book", "metadata")

    def __init__(self, contract: OptionContract, book: OrderBook):
        self.key = LevelKey.for_contract(contract)
        self.contract = contract
        self.book = book
        self.metadata: dict[str, str] = {}

    def contract_nodes(self) -> Iterator["ContractNode"]:
        yield self

    def contracts(self) -> Iterator[OptionContract]:
        yield self.contract

    @property
    def contract_count(self) -> int:
        return 1

    def __repr__(self) -> str:
        return f"ContractNode({self.contract.symbol})"


class StrikeNode(_Node):
    """Strike level: holds at most one call and one put."""

    __slots__ = ()

    @property
    def strike(self) -> float:
        return self.key.strike

    @property
    def call(self) -> ContractNode | None:
        return self.get_child(OptionStyle.CALL)

    @property
    def put(self) -> ContractNode | None:
        return self.get_child(OptionStyle.PUT)

    def has_both(self) -> bool:
        return self.call is not None and self.put is not None


class ExpirationNode(_Node):
    """Expiration level: strikes keyed by strike price."""

    __slots__ = ()

    @property
    def expiry(self) -> date:
        return self.key.expiry

    def strike_prices(self) -> list[float]:
        return self.child_keys()

    def atm_strike(self, spot: float) -> float | None:
        """Strike closest to spot (ties resolve to the lower strike)."""
        strikes = self.strike_prices()
        if not strikes:
            return None
        return min(strikes, key=lambda k: (abs(k - spot), k))


class UnderlyingNode(_Node):
    """Root of one option chain: expirations keyed by date."""

    __slots__ = ()

    @property
    def symbol(self) -> str:
        return self.key.underlying

    def expirations(self) -> list[date]:
        return self.child_keys()


@dataclass(slots=True, frozen=True)
class ChainStats:
    underlying: str
    expirations: int
    strikes: int
    contracts: int
    calls: int
    puts: int


class ChainHierarchy:
    """
    Registry of option chains keyed by underlying.

    Attributes:
        book_factory: Creates the order book for each new contract node
    """

    def __init__(self, book_factory: BookFactory):
        self.book_factory = book_factory
        self._underlyings: dict[str, UnderlyingNode] = {}
        self._lock = threading.Lock()
        self.logger = logger.bind(component="ChainHierarchy")

    # ------------------------------------------------------------------
    # get_or_create
    # ------------------------------------------------------------------

    def get_or_create_underlying(self, symbol: str) -> UnderlyingNode:
        node = self._underlyings.get(symbol)
        if node is not None:
            return node
        with self._lock:
            node = self._underlyings.get(symbol)
            if node is None:
                node = UnderlyingNode(LevelKey.for_underlying(symbol))
                self._underlyings[symbol] = node
                self.logger.info(f"Created underlying node {symbol}")
            return node

    def get_or_create_expiration(self, symbol: str, expiry: date) -> ExpirationNode:
        parent = self.get_or_create_underlying(symbol)
        node, _ = parent._get_or_create_child(
            expiry, lambda: ExpirationNode(LevelKey.for_expiration(symbol, expiry))
        )
        return node

    def get_or_create_strike(self, symbol: str, expiry: date, strike: float) -> StrikeNode:
        strike = float(strike)
        parent = self.get_or_create_expiration(symbol, expiry)
        node, _ = parent._get_or_create_child(
            strike, lambda: StrikeNode(LevelKey.for_strike(symbol, expiry, strike))
        )
        return node

    def get_or_create_contract(self, contract: OptionContract) -> ContractNode:
        parent = self.get_or_create_strike(contract.underlying, contract.expiry, contract.strike)
        node, created = parent._get_or_create_child(
            contract.style, lambda: ContractNode(contract, self.book_factory(contract))
        )
        if created:
            self.logger.debug(f"Created contract node {contract.symbol}")
        return node

    def get_or_create(self, key: LevelKey):
        """Level-dispatching get_or_create for a composite key."""
        level = key.level
        if level is Level.UNDERLYING:
            return self.get_or_create_underlying(key.underlying)
        if level is Level.EXPIRATION:
            return self.get_or_create_expiration(key.underlying, key.expiry)
        if level is Level.STRIKE:
            return self.get_or_create_strike(key.underlying, key.expiry, key.strike)
        return self.get_or_create_contract(
            OptionContract(key.underlying, key.strike, key.expiry, key.style)
        )

    # ------------------------------------------------------------------
    # lookups
    # ------------------------------------------------------------------

    def find_node(self, key: LevelKey):
        """Return the node for a key, or None if any part of the path is missing."""
        node = self._underlyings.get(key.underlying)
        path = (key.expiry, key.strike, key.style)[: key.level - 1]
        for part in path:
            if node is None:
                return None
            node = node.get_child(part)
        return node

    def get_node(self, key: LevelKey):
        node = self.find_node(key)
        if node is None:
            raise NodeNotFoundError(f"No hierarchy node for {key}", key=key)
        return node

    def contract_node(self, contract: OptionContract) -> ContractNode | None:
        return self.find_node(LevelKey.for_contract(contract))

    def underlyings(self) -> list[str]:
        return sorted(self._underlyings.keys())

    def contracts(self, key: LevelKey | None = None) -> list[OptionContract]:
        """All contracts, or those under ``key``."""
        if key is None:
            nodes = list(self._underlyings.values())
            return [c for node in nodes for c in node.contracts()]
        node = self.find_node(key)
        return list(node.contracts()) if node is not None else []

    def stats(self, symbol: str) -> ChainStats:
        node = self.get_node(LevelKey.for_underlying(symbol))
        expirations = node.children()
        strikes = [s for e in expirations for s in e.children()]
        contracts = [c for s in strikes for c in s.contracts()]
        calls = sum(1 for c in contracts if c.style.is_call)
        return ChainStats(
            underlying=symbol,
            expirations=len(expirations),
            strikes=len(strikes),
            contracts=len(contracts),
            calls=calls,
            puts=len(contracts) - calls,
        )

    def expired_contract_nodes(self, as_of: date) -> list[ContractNode]:
        """Contract nodes under expirations strictly before ``as_of``."""
        nodes = []
        for node in list(self._underlyings.values()):
            for expiry in node.expirations():
                expiration = node.get_child(expiry)
                if expiry < as_of and expiration is not None:
                    nodes.extend(expiration.contract_nodes())
        return nodes

    def remove_expired(self, as_of: date) -> int:
        """Drop expirations strictly before ``as_of``; returns how many were removed."""
        removed = 0
        for node in list(self._underlyings.values()):
            for expiry in node.expirations():
                if expiry < as_of:
                    node._remove_child(expiry)
                    removed += 1
        if removed:
            self.logger.info(f"Removed {removed} expired expirations (as of {as_of})")
        return removed
