"""
Risk Limits and Breach Records

This module provides the pure-configuration RiskLimits and the ephemeral
RiskBreach record produced by every limit check in the engine.

Key patterns:
- dataclass(slots=True) for performance (internal data, validated on entry)
- __post_init__ validation for data integrity
- Breaches are advisory values returned to the caller, never raised by default

Decision tree:
    Is this data internal to my process?
    ├─ Yes → Use dataclass (performance matters) ← WE ARE HERE
    └─ No → Use Pydantic (validation critical)
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from optmm.chain.keys import LevelKey


class BreachKind(str, Enum):
    """What was breached."""

    DELTA = "delta"
    GAMMA = "gamma"
    VEGA = "vega"
    THETA = "theta"
    LOSS = "loss"
    DRAWDOWN = "drawdown"
    QUANTITY = "quantity"
    NOTIONAL = "notional"


class BreachSeverity(IntEnum):
    """
    Breach severity, ordered so policies can compare with >=.

    WARNING: at or just past the limit
    SEVERE: more than 25% past the limit
    CRITICAL: more than double the limit
    """

    WARNING = 1
    SEVERE = 2
    CRITICAL = 3

    @classmethod
    def for_ratio(cls, ratio: float) -> "BreachSeverity":
        """Severity from |current| / threshold."""
        if ratio > 2.0:
            return cls.CRITICAL
        if ratio > 1.25:
            return cls.SEVERE
        return cls.WARNING


@dataclass(slots=True, frozen=True)
class RiskBreach:
    """
    One exceeded limit.

    Attributes:
        kind: Which limit was exceeded
        current: Observed value (absolute value for Greeks and quantities)
        threshold: Configured limit
        timestamp: When the check ran
        level_key: Hierarchy node the check ran against (None for portfolio checks)
        severity: Derived from current / threshold

    Example:
        >>> breach = RiskBreach.create(BreachKind.DELTA, current=150.0, threshold=100.0)
        >>> breach.severity
        <BreachSeverity.SEVERE: 2>
    """

    kind: BreachKind
    current: float
    threshold: float
    timestamp: datetime = field(default_factory=datetime.now)
    level_key: "LevelKey | None" = None
    severity: BreachSeverity = BreachSeverity.WARNING

    @classmethod
    def create(
        cls,
        kind: BreachKind,
        current: float,
        threshold: float,
        level_key: "LevelKey | None" = None,
        timestamp: datetime | None = None,
    ) -> "RiskBreach":
        ratio = current / threshold if threshold > 0 else float("inf")
        return cls(
            kind=kind,
            current=current,
            threshold=threshold,
            timestamp=timestamp or datetime.now(),
            level_key=level_key,
            severity=BreachSeverity.for_ratio(ratio),
        )

    def __str__(self) -> str:
        where = f" at {self.level_key}" if self.level_key is not None else ""
        return (
            f"{self.kind.value} limit breached{where}: "
            f"{self.current:,.2f} > {self.threshold:,.2f} ({self.severity.name})"
        )


@dataclass(slots=True)
class RiskLimits:
    """
    Portfolio risk limits evaluated by the RiskController and DeltaHedger.

    Attributes:
        max_delta: Maximum |net delta| (default: 100000.0)
        max_gamma: Maximum |net gamma| (default: 10000.0)
        max_vega: Maximum |net vega| (default: 50000.0)
        max_theta: Maximum |net theta| (default: 25000.0)
        max_loss: Maximum cumulative loss, positive number (default: 10000.0)
        max_drawdown: Maximum drop from the P&L peak (default: 50000.0)
        max_hedge_notional: Maximum |hedge position| × spot (default: 1000000.0)
        max_position_value: Maximum |net option notional| across the portfolio
            (default: 1000000.0)

    Example:
        >>> limits = RiskLimits(max_delta=100.0, max_loss=5000.0)
    """

    max_delta: float = 100000.0
    max_gamma: float = 10000.0
    max_vega: float = 50000.0
    max_theta: float = 25000.0
    max_loss: float = 10000.0
    max_drawdown: float = 50000.0
    max_hedge_notional: float = 1000000.0
    max_position_value: float = 1000000.0

    def __post_init__(self):
        """Validate that every limit is positive."""
        for name in (
            "max_delta",
            "max_gamma",
            "max_vega",
            "max_theta",
            "max_loss",
            "max_drawdown",
            "max_hedge_notional",
            "max_position_value",
        ):
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")

    @classmethod
    def from_dict(cls, data: dict) -> "RiskLimits":
        defaults = cls()
        return cls(
            max_delta=data.get("max_delta", defaults.max_delta),
            max_gamma=data.get("max_gamma", defaults.max_gamma),
            max_vega=data.get("max_vega", defaults.max_vega),
            max_theta=data.get("max_theta", defaults.max_theta),
            max_loss=data.get("max_loss", defaults.max_loss),
            max_drawdown=data.get("max_drawdown", defaults.max_drawdown),
            max_hedge_notional=data.get("max_hedge_notional", defaults.max_hedge_notional),
            max_position_value=data.get("max_position_value", defaults.max_position_value),
        )


def greek_breaches(
    greeks,
    limits: RiskLimits,
    level_key: "LevelKey | None" = None,
    timestamp: datetime | None = None,
) -> list[RiskBreach]:
    """
    One breach per Greek whose |value| exceeds its limit.

    Shared by the Risk Controller (current Greeks) and the Delta Hedger
    (projected Greeks after a hedge).
    """
    timestamp = timestamp or datetime.now()
    checks = (
        (BreachKind.DELTA, greeks.delta, limits.max_delta),
        (BreachKind.GAMMA, greeks.gamma, limits.max_gamma),
        (BreachKind.VEGA, greeks.vega, limits.max_vega),
        (BreachKind.THETA, greeks.theta, limits.max_theta),
    )
    return [
        RiskBreach.create(kind, abs(value), limit, level_key, timestamp)
        for kind, value, limit in checks
        if abs(value) > limit
    ]
