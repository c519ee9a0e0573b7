"""
Inventory Package

Positions, the Position Ledger, position limits and the Inventory/Risk
Aggregator.
"""

from optmm.inventory.position import FillResult, Position
from optmm.inventory.limits import PositionLimits
from optmm.inventory.ledger import PositionLedger
from optmm.inventory.aggregator import (
    AggregatedSnapshot,
    EvaluationSnapshot,
    InventoryRiskAggregator,
)

__all__ = [
    "FillResult",
    "Position",
    "PositionLimits",
    "PositionLedger",
    "AggregatedSnapshot",
    "EvaluationSnapshot",
    "InventoryRiskAggregator",
]
