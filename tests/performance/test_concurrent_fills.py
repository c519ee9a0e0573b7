"""
Performance tests: concurrent fills and structural inserts.

Tests that fills on one contract are serialized, fills on different contracts
do not interfere, and concurrent get_or_create calls converge on one node.

Usage:
    pytest tests/performance/test_concurrent_fills.py -v
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from optmm.adapters.paper_book import PaperOrderBook
from optmm.chain.hierarchy import ChainHierarchy
from optmm.chain.keys import LevelKey
from optmm.inventory.ledger import PositionLedger
from tests.fixtures.market_fixtures import make_theo

THREADS = 8
FILLS_PER_THREAD = 250


class TestConcurrentFills:
    """Test fill serialization under contention."""

    def test_same_contract(self, spy_call):
        """Test no fill is lost when many threads fill one contract."""
        ledger = PositionLedger()
        barrier = threading.Barrier(THREADS)

        def worker():
            barrier.wait()
            for _ in range(FILLS_PER_THREAD):
                ledger.apply_fill(spy_call, 1, 5.0)

        with ThreadPoolExecutor(max_workers=THREADS) as pool:
            for future in [pool.submit(worker) for _ in range(THREADS)]:
                future.result()

        position = ledger.get(spy_call)
        assert position.quantity == THREADS * FILLS_PER_THREAD
        assert position.fill_count == THREADS * FILLS_PER_THREAD
        assert position.average_price == pytest.approx(5.0)

    def test_round_trips_realize_exactly(self, spy_call):
        """Test interleaved buys and sells at fixed prices realize the same total."""
        ledger = PositionLedger()
        ledger.apply_fill(spy_call, 1000, 5.0)

        def seller():
            for _ in range(FILLS_PER_THREAD // 2):
                ledger.apply_fill(spy_call, -1, 5.5)

        with ThreadPoolExecutor(max_workers=THREADS) as pool:
            for future in [pool.submit(seller) for _ in range(THREADS)]:
                future.result()

        sold = THREADS * (FILLS_PER_THREAD // 2)
        assert ledger.quantity(spy_call) == 1000 - sold
        assert ledger.get(spy_call).realized_pnl == pytest.approx(0.5 * sold)

    def test_different_contracts(self, spy_chain_contracts):
        """Test fills on different contracts proceed independently."""
        ledger = PositionLedger()

        def worker(contract):
            for _ in range(FILLS_PER_THREAD):
                ledger.apply_fill(contract, -1, 2.0)

        with ThreadPoolExecutor(max_workers=THREADS) as pool:
            list(pool.map(worker, spy_chain_contracts))

        assert len(ledger) == len(spy_chain_contracts)
        assert all(p.quantity == -FILLS_PER_THREAD for p in ledger.snapshot().values())

    def test_aggregate_while_filling(self, aggregator, market_data, spy_chain_contracts):
        """Test aggregation during fills never fails and matches once fills stop."""
        market_data.publish(
            {c: make_theo(delta=0.5 if c.style.is_call else -0.5) for c in spy_chain_contracts},
            spots={"SPY": 455.0},
        )
        key = LevelKey.for_underlying("SPY")
        done = threading.Event()
        observed = []

        def reader():
            while not done.is_set():
                observed.append(aggregator.aggregate_greeks(key).gross_quantity)

        def writer(contract):
            for _ in range(50):
                aggregator.apply_fill(contract, 1, 5.0)

        reader_thread = threading.Thread(target=reader)
        reader_thread.start()
        with ThreadPoolExecutor(max_workers=THREADS) as pool:
            list(pool.map(writer, spy_chain_contracts))
        done.set()
        reader_thread.join()

        final = aggregator.aggregate_greeks(key)
        assert final.gross_quantity == 50 * len(spy_chain_contracts)
        assert final.greeks.delta == pytest.approx(0.0)
        assert all(q <= final.gross_quantity for q in observed)


class TestConcurrentInserts:
    """Test structural inserts under contention."""

    def test_get_or_create_converges(self, spy_call):
        """Test concurrent creators all receive the same contract node."""
        created = []

        def factory(contract):
            created.append(contract)
            return PaperOrderBook(contract.symbol)

        chain = ChainHierarchy(factory)
        barrier = threading.Barrier(THREADS)

        def worker():
            barrier.wait()
            return chain.get_or_create_contract(spy_call)

        with ThreadPoolExecutor(max_workers=THREADS) as pool:
            nodes = [f.result() for f in [pool.submit(worker) for _ in range(THREADS)]]

        assert all(node is nodes[0] for node in nodes)
        assert len(created) == 1

    def test_branches_built_concurrently(self, paper_chain, spy_chain_contracts):
        """Test inserts on different branches all land in the tree."""
        with ThreadPoolExecutor(max_workers=THREADS) as pool:
            list(pool.map(paper_chain.get_or_create_contract, spy_chain_contracts * 4))

        assert paper_chain.stats("SPY").contracts == len(spy_chain_contracts)
