"""
Delta Hedger parameters.
"""

from dataclasses import dataclass


@dataclass(slots=True)
class HedgeParams:
    """
    Hysteresis band and hedge sizing.

    Attributes:
        enter_threshold: |delta| at which hedging starts (default: 100.0)
        exit_threshold: |delta| at or below which hedging stops, < enter (default: 80.0)
        target_delta: Exposure a hedge aims for (default: 0.0)
        min_hedge_size: Orders smaller than this are not sent (default: 1.0)
        max_hedge_size: Orders are clamped to this size (default: 1000.0)
        lot_size: Hedge quantities are rounded to a multiple of this (default: 1.0)
        min_reemit_interval_secs: While breached, re-hedge after this long (default: 30.0)
        reemit_delta_move: While breached, re-hedge when delta moved this much
            since the last order (default: 50.0)
        use_limit_orders: Attach a limit price offset from spot (default: False)
        limit_offset_bps: Limit offset in basis points of spot (default: 5.0)

    Example:
        >>> params = HedgeParams(enter_threshold=100.0, exit_threshold=80.0)
    """

    enter_threshold: float = 100.0
    exit_threshold: float = 80.0
    target_delta: float = 0.0
    min_hedge_size: float = 1.0
    max_hedge_size: float = 1000.0
    lot_size: float = 1.0
    min_reemit_interval_secs: float = 30.0
    reemit_delta_move: float = 50.0
    use_limit_orders: bool = False
    limit_offset_bps: float = 5.0

    def __post_init__(self):
        """Validate the band and sizing."""
        if self.enter_threshold <= 0:
            raise ValueError(f"enter_threshold must be positive, got {self.enter_threshold}")
        if not 0 <= self.exit_threshold < self.enter_threshold:
            raise ValueError(
                f"exit_threshold must be in [0, enter_threshold): "
                f"exit={self.exit_threshold}, enter={self.enter_threshold}"
            )
        if abs(self.target_delta) > self.exit_threshold:
            raise ValueError(
                f"|target_delta| must not exceed exit_threshold, got {self.target_delta}"
            )
        if self.min_hedge_size <= 0 or self.max_hedge_size < self.min_hedge_size:
            raise ValueError(
                f"Require 0 < min_hedge_size <= max_hedge_size "
                f"(min={self.min_hedge_size}, max={self.max_hedge_size})"
            )
        if self.lot_size <= 0:
            raise ValueError(f"lot_size must be positive, got {self.lot_size}")
        if self.min_reemit_interval_secs < 0 or self.reemit_delta_move <= 0:
            raise ValueError("Re-emit interval must be >= 0 and re-emit delta move > 0")
        if self.limit_offset_bps < 0:
            raise ValueError(f"limit_offset_bps must be non-negative, got {self.limit_offset_bps}")

    @classmethod
    def from_dict(cls, data: dict) -> "HedgeParams":
        defaults = cls()
        return cls(
            enter_threshold=data.get("enter_threshold", defaults.enter_threshold),
            exit_threshold=data.get("exit_threshold", defaults.exit_threshold),
            target_delta=data.get("target_delta", defaults.target_delta),
            min_hedge_size=data.get("min_hedge_size", defaults.min_hedge_size),
            max_hedge_size=data.get("max_hedge_size", defaults.max_hedge_size),
            lot_size=data.get("lot_size", defaults.lot_size),
            min_reemit_interval_secs=data.get(
                "min_reemit_interval_secs", defaults.min_reemit_interval_secs
            ),
            reemit_delta_move=data.get("reemit_delta_move", defaults.reemit_delta_move),
            use_limit_orders=data.get("use_limit_orders", defaults.use_limit_orders),
            limit_offset_bps=data.get("limit_offset_bps", defaults.limit_offset_bps),
        )
