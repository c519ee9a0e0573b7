"""
Position Limits

Per-level quantity caps plus per-Greek and max-loss caps applied by the
Inventory/Risk Aggregator at any hierarchy node. Pure configuration.

Presets (small/medium/large) match typical desk sizing; ``scale`` lets a
caller derive tighter or looser variants.
"""

from dataclasses import dataclass

from optmm.chain.keys import Level


@dataclass(slots=True)
class PositionLimits:
    """
    Hierarchical position limits.

    Attributes:
        per_option: Max |quantity| in a single contract
        per_strike: Max gross quantity across call+put of one strike
        per_expiration: Max gross quantity across one expiration
        per_underlying: Max gross quantity across one underlying
        max_delta: Max |net delta| at any checked level
        max_gamma: Max |net gamma| at any checked level
        max_vega: Max |net vega| at any checked level
        max_theta: Max |net theta| at any checked level
        max_loss: Max loss (realized + unrealized) at any checked level, positive

    Example:
        >>> limits = PositionLimits.small()
        >>> limits.quantity_cap(Level.STRIKE)
        200.0
    """

    per_option: float = 500.0
    per_strike: float = 1000.0
    per_expiration: float = 2500.0
    per_underlying: float = 5000.0
    max_delta: float = 250000.0
    max_gamma: float = 25000.0
    max_vega: float = 50000.0
    max_theta: float = 25000.0
    max_loss: float = 50000.0

    def __post_init__(self):
        """Validate limits are positive and widen monotonically up the tree."""
        for name in (
            "per_option",
            "per_strike",
            "per_expiration",
            "per_underlying",
            "max_delta",
            "max_gamma",
            "max_vega",
            "max_theta",
            "max_loss",
        ):
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")

        if not (self.per_option <= self.per_strike <= self.per_expiration <= self.per_underlying):
            raise ValueError(
                "Quantity caps must widen up the hierarchy: "
                f"per_option={self.per_option}, per_strike={self.per_strike}, "
                f"per_expiration={self.per_expiration}, per_underlying={self.per_underlying}"
            )

    @classmethod
    def small(cls) -> "PositionLimits":
        return cls(
            per_option=100.0,
            per_strike=200.0,
            per_expiration=500.0,
            per_underlying=1000.0,
            max_delta=50000.0,
            max_gamma=5000.0,
            max_vega=10000.0,
            max_theta=5000.0,
            max_loss=10000.0,
        )

    @classmethod
    def medium(cls) -> "PositionLimits":
        return cls()

    @classmethod
    def large(cls) -> "PositionLimits":
        return cls(
            per_option=1000.0,
            per_strike=2000.0,
            per_expiration=5000.0,
            per_underlying=10000.0,
            max_delta=500000.0,
            max_gamma=50000.0,
            max_vega=100000.0,
            max_theta=50000.0,
            max_loss=100000.0,
        )

    @classmethod
    def from_dict(cls, data: dict) -> "PositionLimits":
        preset = data.get("preset")
        base = getattr(cls, preset)() if preset in ("small", "medium", "large") else cls()
        return cls(
            per_option=data.get("per_option", base.per_option),
            per_strike=data.get("per_strike", base.per_strike),
            per_expiration=data.get("per_expiration", base.per_expiration),
            per_underlying=data.get("per_underlying", base.per_underlying),
            max_delta=data.get("max_delta", base.max_delta),
            max_gamma=data.get("max_gamma", base.max_gamma),
            max_vega=data.get("max_vega", base.max_vega),
            max_theta=data.get("max_theta", base.max_theta),
            max_loss=data.get("max_loss", base.max_loss),
        )

    def quantity_cap(self, level: Level) -> float:
        """Quantity cap that applies to a node at ``level``."""
        return {
            Level.CONTRACT: self.per_option,
            Level.STRIKE: self.per_strike,
            Level.EXPIRATION: self.per_expiration,
            Level.UNDERLYING: self.per_underlying,
        }[level]

    def option_utilization(self, quantity: float) -> float:
        return abs(quantity) / self.per_option

    def scale(self, factor: float) -> "PositionLimits":
        """Every limit multiplied by ``factor``."""
        if factor <= 0:
            raise ValueError(f"factor must be positive, got {factor}")
        return PositionLimits(
            per_option=self.per_option * factor,
            per_strike=self.per_strike * factor,
            per_expiration=self.per_expiration * factor,
            per_underlying=self.per_underlying * factor,
            max_delta=self.max_delta * factor,
            max_gamma=self.max_gamma * factor,
            max_vega=self.max_vega * factor,
            max_theta=self.max_theta * factor,
            max_loss=self.max_loss * factor,
        )
