"""
P&L calculation and Greek attribution.
"""

from optmm.pnl.attribution import PnLAttribution
from optmm.pnl.calculator import PnLBook, PnLCalculator

__all__ = ["PnLAttribution", "PnLBook", "PnLCalculator"]
