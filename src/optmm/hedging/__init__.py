"""
Delta hedging: hysteresis state machine and hedge orders.
"""

from optmm.hedging.params import HedgeParams
from optmm.hedging.order import HedgeOrder, HedgeReason, Urgency
from optmm.hedging.hedger import DeltaHedger, HedgeDecision, HedgeState

__all__ = [
    "HedgeParams",
    "HedgeOrder",
    "HedgeReason",
    "Urgency",
    "DeltaHedger",
    "HedgeDecision",
    "HedgeState",
]
