"""
Core Market Data Models

This module provides the identity and sensitivity types shared by every
component of the market-making engine.

Key patterns:
- dataclass(slots=True) for internal state (OptionContract, Greeks)
- Pydantic for data produced by the external pricing collaborator
  (TheoreticalValue), validated on entry
- Greeks are per-unit and immutable: every pricing tick replaces them wholesale

Decision tree:
    Does this data come from outside my process?
    ├─ Yes → Use Pydantic (validation critical)  ← TheoreticalValue
    └─ No → Use dataclass (performance matters)  ← OptionContract, Greeks
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class OptionStyle(str, Enum):
    """Option type enum."""

    CALL = "C"
    PUT = "P"

    @property
    def is_call(self) -> bool:
        return self is OptionStyle.CALL


class Side(str, Enum):
    """Order side."""

    BUY = "BUY"
    SELL = "SELL"

    @property
    def sign(self) -> int:
        return 1 if self is Side.BUY else -1

    @classmethod
    def from_quantity(cls, quantity: float) -> "Side":
        return cls.BUY if quantity > 0 else cls.SELL


@dataclass(slots=True, frozen=True)
class OptionContract:
    """
    Immutable option contract identity.

    Used as the key for positions, pricing values and hierarchy nodes.

    Attributes:
        underlying: Underlying symbol (e.g., "SPY")
        strike: Strike price
        expiry: Expiration date
        style: CALL or PUT
        multiplier: Contract multiplier for P&L, notional and dollar Greeks (default: 1.0)
    """

    underlying: str
    strike: float
    expiry: date
    style: OptionStyle
    multiplier: float = 1.0

    def __post_init__(self):
        """Validate contract identity."""
        if not self.underlying or not self.underlying.strip():
            raise ValueError("Underlying symbol cannot be empty")
        if self.strike <= 0:
            raise ValueError(f"Strike must be positive, got {self.strike}")
        if self.multiplier <= 0:
            raise ValueError(f"Multiplier must be positive, got {self.multiplier}")

    @property
    def symbol(self) -> str:
        """OCC-style symbol, e.g. ``SPY 2026-03-20 455C``."""
        return f"{self.underlying} {self.expiry.isoformat()} {self.strike:g}{self.style.value}"

    def time_to_expiry(self, as_of: datetime) -> float:
        """Year fraction between ``as_of`` and expiry (can be <= 0)."""
        return (self.expiry - as_of.date()).days / 365.0

    def __str__(self) -> str:
        return self.symbol


@dataclass(slots=True, frozen=True)
class Greeks:
    """
    Per-unit option sensitivities.

    Attributes:
        delta: Sensitivity to the underlying price
        gamma: Rate of change of delta
        vega: Sensitivity to a 1.00 absolute change in volatility
        theta: Value change per calendar day
        rho: Sensitivity to the interest rate (default: 0.0)

    Example:
        >>> g = Greeks(delta=0.5, gamma=0.02, vega=0.15, theta=-0.03)
        >>> (g.scale(10) + g).delta
        5.5
    """

    delta: float = 0.0
    gamma: float = 0.0
    vega: float = 0.0
    theta: float = 0.0
    rho: float = 0.0

    @classmethod
    def zero(cls) -> "Greeks":
        return cls()

    def scale(self, quantity: float) -> "Greeks":
        """Return Greeks multiplied by a (signed) quantity."""
        return Greeks(
            delta=self.delta * quantity,
            gamma=self.gamma * quantity,
            vega=self.vega * quantity,
            theta=self.theta * quantity,
            rho=self.rho * quantity,
        )

    def __add__(self, other: "Greeks") -> "Greeks":
        if not isinstance(other, Greeks):
            return NotImplemented
        return Greeks(
            delta=self.delta + other.delta,
            gamma=self.gamma + other.gamma,
            vega=self.vega + other.vega,
            theta=self.theta + other.theta,
            rho=self.rho + other.rho,
        )

    def __neg__(self) -> "Greeks":
        return self.scale(-1.0)

    def is_zero(self) -> bool:
        return not any((self.delta, self.gamma, self.vega, self.theta, self.rho))

    def dollar_delta(self, spot: float, multiplier: float = 1.0) -> float:
        return self.delta * spot * multiplier

    def dollar_gamma(self, spot: float, multiplier: float = 1.0) -> float:
        """Dollar gamma for a 1% move in the underlying."""
        one_percent = spot / 100.0
        return self.gamma * one_percent * one_percent * multiplier / 2.0

    def estimate_pnl(self, spot_change: float, vol_change: float, days_passed: float) -> float:
        """Second-order Taylor estimate of the value change."""
        return (
            self.delta * spot_change
            + 0.5 * self.gamma * spot_change * spot_change
            + self.vega * vol_change
            + self.theta * days_passed
        )

    def __repr__(self) -> str:
        return (
            f"Greeks(delta={self.delta:.4f}, gamma={self.gamma:.6f}, "
            f"vega={self.vega:.4f}, theta={self.theta:.4f})"
        )


class TheoreticalValue(BaseModel):
    """
    Theoretical price and Greeks for one contract at one instant.

    Produced by the pricing collaborator and consumed read-only. Validated on
    entry because a malformed value would flow straight into quotes.

    Attributes:
        mid: Theoretical mid price
        bid: Theoretical bid
        ask: Theoretical ask
        greeks: Per-unit Greeks
        underlying_price: Spot used for this valuation
        volatility: Volatility used for this valuation
        as_of: Valuation timestamp

    Raises:
        ValueError: If prices are negative or bid > mid > ask ordering is broken
    """

    model_config = ConfigDict(frozen=True)

    mid: float = Field(..., ge=0, description="Theoretical mid price")
    bid: float = Field(..., ge=0, description="Theoretical bid")
    ask: float = Field(..., ge=0, description="Theoretical ask")
    greeks: Greeks
    underlying_price: float = Field(..., gt=0, description="Spot used for valuation")
    volatility: float = Field(..., ge=0, description="Volatility used for valuation")
    as_of: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="after")
    def validate_ordering(self):
        """Ensure bid <= mid <= ask."""
        if not self.bid <= self.mid <= self.ask:
            raise ValueError(
                f"Theoretical prices out of order: bid={self.bid}, mid={self.mid}, ask={self.ask}"
            )
        return self
