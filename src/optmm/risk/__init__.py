"""
Risk Management Package

Risk limits, breach records, the Risk Controller and the shared trading
halt state.
"""

from optmm.risk.limits import BreachKind, BreachSeverity, RiskBreach, RiskLimits, greek_breaches
from optmm.risk.halt import TradingHaltState
from optmm.risk.controller import RiskController

__all__ = [
    "BreachKind",
    "BreachSeverity",
    "RiskBreach",
    "RiskLimits",
    "greek_breaches",
    "TradingHaltState",
    "RiskController",
]
