"""
Option chain hierarchy: Underlying → Expiration → Strike → Contract.
"""

from optmm.chain.hierarchy import (
    ChainHierarchy,
    ChainStats,
    ContractNode,
    ExpirationNode,
    StrikeNode,
    UnderlyingNode,
)
from optmm.chain.keys import Level, LevelKey

__all__ = [
    "ChainHierarchy",
    "ChainStats",
    "ContractNode",
    "ExpirationNode",
    "Level",
    "LevelKey",
    "StrikeNode",
    "UnderlyingNode",
]
