"""
Quoting Parameters

SpreadConfig holds the calculator-level Avellaneda-Stoikov constants
(risk aversion γ, order-arrival intensity k, spread clamps, skew factor).
They are configuration: nothing in the engine hard-codes a calibration.

QuoteParams holds the per-quote market inputs and rejects degenerate values
with InvalidQuoteParameters before any arithmetic runs.
"""

import math
from dataclasses import dataclass

from optmm.core.errors import InvalidQuoteParameters


@dataclass(slots=True, frozen=True)
class SpreadConfig:
    """
    Avellaneda-Stoikov calculator configuration.

    Frozen, so γ and k stay validated for the calculator's lifetime.

    Attributes:
        risk_aversion: γ, risk-aversion parameter (default: 0.1)
        arrival_intensity: k, order-arrival intensity (default: 1.5)
        min_spread: Lower clamp on the full spread (default: 0.01)
        max_spread: Upper clamp on the full spread (default: 5.0)
        skew_factor: Skew as a fraction of the spread at full inventory (default: 0.5)
        volatility_factor: Multiplier on the raw model spread before clamping (default: 1.0)

    Raises:
        InvalidQuoteParameters: If γ or k is not positive
        ValueError: If the spread clamps or factors are inconsistent
    """

    risk_aversion: float = 0.1
    arrival_intensity: float = 1.5
    min_spread: float = 0.01
    max_spread: float = 5.0
    skew_factor: float = 0.5
    volatility_factor: float = 1.0

    def __post_init__(self):
        if not self.risk_aversion > 0:
            raise InvalidQuoteParameters(
                f"risk_aversion must be positive, got {self.risk_aversion}",
                parameter="risk_aversion",
                value=self.risk_aversion,
            )
        if not self.arrival_intensity > 0:
            raise InvalidQuoteParameters(
                f"arrival_intensity must be positive, got {self.arrival_intensity}",
                parameter="arrival_intensity",
                value=self.arrival_intensity,
            )
        if self.min_spread < 0:
            raise ValueError(f"min_spread must be non-negative, got {self.min_spread}")
        if self.max_spread <= 0 or self.max_spread < self.min_spread:
            raise ValueError(
                f"max_spread must be positive and >= min_spread "
                f"(min={self.min_spread}, max={self.max_spread})"
            )
        if self.skew_factor < 0:
            raise ValueError(f"skew_factor must be non-negative, got {self.skew_factor}")
        if self.volatility_factor <= 0:
            raise ValueError(f"volatility_factor must be positive, got {self.volatility_factor}")

    @classmethod
    def from_dict(cls, data: dict) -> "SpreadConfig":
        defaults = cls()
        return cls(
            risk_aversion=data.get("risk_aversion", defaults.risk_aversion),
            arrival_intensity=data.get("arrival_intensity", defaults.arrival_intensity),
            min_spread=data.get("min_spread", defaults.min_spread),
            max_spread=data.get("max_spread", defaults.max_spread),
            skew_factor=data.get("skew_factor", defaults.skew_factor),
            volatility_factor=data.get("volatility_factor", defaults.volatility_factor),
        )


@dataclass(slots=True, frozen=True)
class QuoteParams:
    """
    Market inputs for one quote.

    Attributes:
        mid: Theoretical mid price
        inventory: Signed inventory q in the contract
        volatility: σ
        time_to_expiry: T in years
        inventory_limit: Inventory at which the skew reaches skew_factor × spread
    """

    mid: float
    inventory: float
    volatility: float
    time_to_expiry: float
    inventory_limit: float = 100.0

    def validate(self) -> None:
        """
        Raises:
            InvalidQuoteParameters: For T <= 0, σ < 0, negative mid,
                non-positive inventory limit, or any non-finite input
        """
        for name in ("mid", "inventory", "volatility", "time_to_expiry", "inventory_limit"):
            value = getattr(self, name)
            if not math.isfinite(value):
                raise InvalidQuoteParameters(
                    f"{name} must be finite, got {value}", parameter=name, value=value
                )
        if self.time_to_expiry <= 0:
            raise InvalidQuoteParameters(
                f"time_to_expiry must be positive, got {self.time_to_expiry}",
                parameter="time_to_expiry",
                value=self.time_to_expiry,
            )
        if self.volatility < 0:
            raise InvalidQuoteParameters(
                f"volatility cannot be negative, got {self.volatility}",
                parameter="volatility",
                value=self.volatility,
            )
        if self.mid < 0:
            raise InvalidQuoteParameters(
                f"mid price cannot be negative, got {self.mid}", parameter="mid", value=self.mid
            )
        if self.inventory_limit <= 0:
            raise InvalidQuoteParameters(
                f"inventory_limit must be positive, got {self.inventory_limit}",
                parameter="inventory_limit",
                value=self.inventory_limit,
            )

    @property
    def inventory_ratio(self) -> float:
        """q / inventory_limit, unclamped."""
        return self.inventory / self.inventory_limit
