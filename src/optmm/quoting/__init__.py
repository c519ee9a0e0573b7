"""
Quoting Package

Avellaneda-Stoikov spread/skew calculation and the Quote Generator that keeps
quotes resting on each contract's order book.
"""

from optmm.quoting.params import QuoteParams, SpreadConfig
from optmm.quoting.quote import GeneratedQuote
from optmm.quoting.spread import SpreadCalculator
from optmm.quoting.generator import QuoteAction, QuoteGenerator, QuotingConfig

__all__ = [
    "QuoteParams",
    "SpreadConfig",
    "GeneratedQuote",
    "SpreadCalculator",
    "QuoteAction",
    "QuoteGenerator",
    "QuotingConfig",
]
