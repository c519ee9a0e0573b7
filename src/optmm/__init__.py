"""
optmm - Options Market-Making Decision Engine

Given live theoretical prices and Greeks per contract, the engine produces
two-sided quotes, tracks inventory, hedges aggregate delta, enforces risk
limits and attributes P&L.

Packages:
- core: contracts, Greeks, theoretical values, errors
- chain: Underlying → Expiration → Strike → Contract hierarchy
- inventory: positions, ledger, limits, aggregation
- quoting: Avellaneda-Stoikov spread/skew and the Quote Generator
- hedging: hysteresis delta hedger
- risk: risk limits, Risk Controller, trading halt state
- pnl: realized/unrealized P&L and Greek attribution
- market_data / pricing / adapters: collaborator interfaces and reference implementations
- config: YAML configuration and logging setup
"""

__version__ = "0.1.0"

from optmm.engine import MarketMakerEngine, RiskCycleResult

__all__ = ["MarketMakerEngine", "RiskCycleResult", "__version__"]
