"""
Hierarchy Keys

A LevelKey names any node of the chain hierarchy by its composite identity:

    ("SPY",)                              → underlying
    ("SPY", 2026-03-20)                   → expiration
    ("SPY", 2026-03-20, 455.0)            → strike
    ("SPY", 2026-03-20, 455.0, CALL)      → contract

Parent lookup is key truncation, so nodes never hold references to parents.
"""

from dataclasses import dataclass
from datetime import date
from enum import IntEnum

from optmm.core.models import OptionContract, OptionStyle


class Level(IntEnum):
    """Hierarchy depth, root-most first."""

    UNDERLYING = 1
    EXPIRATION = 2
    STRIKE = 3
    CONTRACT = 4


@dataclass(slots=True, frozen=True)
class LevelKey:
    """
    Composite key for a hierarchy node.

    Attributes:
        underlying: Underlying symbol (always set)
        expiry: Expiration date (set from EXPIRATION down)
        strike: Strike price (set from STRIKE down)
        style: CALL/PUT (set only at CONTRACT)
    """

    underlying: str
    expiry: date | None = None
    strike: float | None = None
    style: OptionStyle | None = None

    def __post_init__(self):
        """Reject keys with gaps (e.g. strike without expiry)."""
        if self.strike is not None and self.expiry is None:
            raise ValueError("strike key requires an expiry")
        if self.style is not None and self.strike is None:
            raise ValueError("contract key requires a strike")

    @classmethod
    def for_underlying(cls, underlying: str) -> "LevelKey":
        return cls(underlying)

    @classmethod
    def for_expiration(cls, underlying: str, expiry: date) -> "LevelKey":
        return cls(underlying, expiry)

    @classmethod
    def for_strike(cls, underlying: str, expiry: date, strike: float) -> "LevelKey":
        return cls(underlying, expiry, float(strike))

    @classmethod
    def for_contract(cls, contract: OptionContract) -> "LevelKey":
        return cls(contract.underlying, contract.expiry, float(contract.strike), contract.style)

    @property
    def level(self) -> Level:
        if self.style is not None:
            return Level.CONTRACT
        if self.strike is not None:
            return Level.STRIKE
        if self.expiry is not None:
            return Level.EXPIRATION
        return Level.UNDERLYING

    def parent(self) -> "LevelKey | None":
        """Key of the enclosing node (None at the underlying)."""
        level = self.level
        if level is Level.CONTRACT:
            return LevelKey(self.underlying, self.expiry, self.strike)
        if level is Level.STRIKE:
            return LevelKey(self.underlying, self.expiry)
        if level is Level.EXPIRATION:
            return LevelKey(self.underlying)
        return None

    def contains(self, contract: OptionContract) -> bool:
        """True if the contract lives under this node."""
        if contract.underlying != self.underlying:
            return False
        if self.expiry is not None and contract.expiry != self.expiry:
            return False
        if self.strike is not None and float(contract.strike) != self.strike:
            return False
        if self.style is not None and contract.style is not self.style:
            return False
        return True

    def __str__(self) -> str:
        parts = [self.underlying]
        if self.expiry is not None:
            parts.append(self.expiry.isoformat())
        if self.strike is not None:
            parts.append(f"{self.strike:g}")
        if self.style is not None:
            parts.append(self.style.value)
        return "/".join(parts)
