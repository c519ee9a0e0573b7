"""
Core types and errors shared across the engine.
"""

from optmm.core.errors import (
    ConfigurationError,
    HedgeSkipped,
    InvalidQuoteParameters,
    LimitBreachError,
    MarketMakerError,
    NodeNotFoundError,
    OrderSubmissionFailed,
    PricingError,
)
from optmm.core.models import Greeks, OptionContract, OptionStyle, Side, TheoreticalValue

__all__ = [
    # Models
    "Greeks",
    "OptionContract",
    "OptionStyle",
    "Side",
    "TheoreticalValue",
    # Errors
    "ConfigurationError",
    "HedgeSkipped",
    "InvalidQuoteParameters",
    "LimitBreachError",
    "MarketMakerError",
    "NodeNotFoundError",
    "OrderSubmissionFailed",
    "PricingError",
]
