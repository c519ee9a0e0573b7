"""
Pricing collaborator interface.
"""

from datetime import datetime
from typing import Protocol, runtime_checkable

from optmm.core.models import OptionContract, TheoreticalValue


@runtime_checkable
class PricingModel(Protocol):
    """
    Maps option parameters to a theoretical value and Greeks.

    Implementations raise PricingError on inputs they cannot value (for
    example a non-positive time-to-expiry).
    """

    def theoretical_value(
        self,
        contract: OptionContract,
        underlying_price: float,
        volatility: float,
        rate: float,
        as_of: datetime | None = None,
    ) -> TheoreticalValue:
        ...
