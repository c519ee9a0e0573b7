"""
Market Maker Exceptions

Error taxonomy for the decision engine:
- InvalidQuoteParameters: malformed pricing/volatility/time inputs, no quote produced
- OrderSubmissionFailed: propagated from the order book collaborator, never retried here
- LimitBreachError: advisory breach raised on request (fills are never rejected)
- HedgeSkipped: a computed hedge would itself breach a limit, reported instead of sent
- PricingError: pricing collaborator refused the inputs
- NodeNotFoundError: hierarchy lookup for a key that does not exist
- ConfigurationError: invalid engine configuration

All exceptions carry a human-readable ``message`` plus keyword context so
callers can log or route them without parsing strings.
"""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from optmm.hedging.order import HedgeOrder
    from optmm.risk.limits import RiskBreach


class MarketMakerError(Exception):
    """Base class for all engine errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class InvalidQuoteParameters(MarketMakerError, ValueError):
    """
    Raised when quote inputs are degenerate.

    Examples: time-to-expiry <= 0, negative volatility, non-positive
    order-arrival intensity.

    Attributes:
        message: Human-readable error message
        parameter: Name of the offending parameter
        value: Offending value
    """

    def __init__(self, message: str, *, parameter: str, value: Any):
        self.parameter = parameter
        self.value = value
        super().__init__(message)

    def __repr__(self) -> str:
        return (
            f"InvalidQuoteParameters(parameter={self.parameter!r}, "
            f"value={self.value!r}, message='{self.message}')"
        )


class OrderSubmissionFailed(MarketMakerError):
    """
    Raised when the order book refuses an order.

    Attributes:
        message: Human-readable error message
        order_id: Client order id that failed
        side: Order side
        price: Limit price
        size: Order size
    """

    def __init__(
        self,
        message: str,
        *,
        order_id: str,
        side: str,
        price: float,
        size: float,
    ):
        self.order_id = order_id
        self.side = side
        self.price = price
        self.size = size
        super().__init__(message)

    def __repr__(self) -> str:
        return (
            f"OrderSubmissionFailed(order_id={self.order_id!r}, side={self.side}, "
            f"price={self.price}, size={self.size}, message='{self.message}')"
        )


class LimitBreachError(MarketMakerError):
    """
    Advisory limit breach as an exception.

    The engine never raises this on its own (breaches are returned as
    RiskBreach records); it exists for callers whose policy is to escalate.
    """

    def __init__(self, message: str, *, breaches: list["RiskBreach"]):
        self.breaches = breaches
        super().__init__(message)

    def __repr__(self) -> str:
        return f"LimitBreachError(breaches={len(self.breaches)}, message='{self.message}')"


class HedgeSkipped(MarketMakerError):
    """
    Raised when a computed hedge is suppressed.

    Attributes:
        message: Human-readable error message
        underlying: Underlying whose hedge was skipped
        reason: Short machine-readable reason ("risk_limit", "notional_limit", "halted")
        proposed: The hedge order that would have been sent
        breaches: Breaches the hedge would have caused (may be empty)
    """

    def __init__(
        self,
        message: str,
        *,
        underlying: str,
        reason: str,
        proposed: "HedgeOrder | None" = None,
        breaches: list["RiskBreach"] | None = None,
    ):
        self.underlying = underlying
        self.reason = reason
        self.proposed = proposed
        self.breaches = breaches or []
        super().__init__(message)

    def __repr__(self) -> str:
        return (
            f"HedgeSkipped(underlying={self.underlying!r}, reason={self.reason!r}, "
            f"message='{self.message}')"
        )


class PricingError(MarketMakerError, ValueError):
    """Raised by a pricing model for inputs it cannot value."""


class NodeNotFoundError(MarketMakerError, KeyError):
    """Raised when a hierarchy key does not exist."""

    def __init__(self, message: str, *, key: Any):
        self.key = key
        super().__init__(message)


class ConfigurationError(MarketMakerError, ValueError):
    """
    Raised when configuration fails validation.

    Attributes:
        errors: Every validation error found (not just the first)
    """

    def __init__(self, message: str, *, errors: list[str] | None = None):
        self.errors = errors or []
        super().__init__(message)
