"""
Immutable pricing snapshots published per tick.
"""

from optmm.market_data.store import MarketDataStore, PricingSnapshot

__all__ = ["MarketDataStore", "PricingSnapshot"]
