"""Test fixtures for optmm engine tests.

This package provides reusable test fixtures for:
- Option contracts on a fixed valuation date
- Theoretical values with chosen Greeks
- Chain hierarchy, ledger, pricing store and aggregator wiring

Fixtures are auto-discovered by pytest through conftest.py.
"""

from tests.fixtures.market_fixtures import (
    AS_OF,
    MARCH,
    JUNE,
    aggregator,
    as_of,
    engine,
    ledger,
    make_theo,
    market_data,
    paper_chain,
    spy_call,
    spy_chain_contracts,
    spy_put,
    theo_factory,
)

__all__ = [
    "AS_OF",
    "MARCH",
    "JUNE",
    "aggregator",
    "as_of",
    "engine",
    "ledger",
    "make_theo",
    "market_data",
    "paper_chain",
    "spy_call",
    "spy_chain_contracts",
    "spy_put",
    "theo_factory",
]
