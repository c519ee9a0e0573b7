"""
P&L Attribution

Decomposition of P&L into realized, unrealized and per-Greek slices.

The Greek slices explain mark-to-market moves with a second-order expansion

    delta·ΔS + ½·gamma·ΔS² + vega·Δσ + theta·Δt(days)

using the position Greeks from the previous mark. Whatever the expansion does
not explain goes to ``other``, so explained + other equals the mark-to-market
change exactly.
"""

from dataclasses import dataclass, fields

from optmm.core.models import Greeks


@dataclass(slots=True, frozen=True)
class PnLAttribution:
    """
    P&L breakdown.

    Attributes:
        realized: Realized P&L from closed quantity
        unrealized: Unrealized P&L of the open quantity at the last mark
        delta: Slice explained by the underlying move
        gamma: Slice explained by curvature
        vega: Slice explained by the volatility move
        theta: Slice explained by time decay
        other: Residual of mark-to-market moves not explained by the Greeks
        fees: Fees paid

    Example:
        >>> attr = PnLAttribution.from_move(
        ...     Greeks(delta=0.5, gamma=0.02, vega=0.15, theta=-0.05),
        ...     spot_change=10.0, vol_change=0.01, days_passed=1.0, actual_change=6.0,
        ... )
        >>> attr.delta, attr.gamma
        (5.0, 1.0)
    """

    realized: float = 0.0
    unrealized: float = 0.0
    delta: float = 0.0
    gamma: float = 0.0
    vega: float = 0.0
    theta: float = 0.0
    other: float = 0.0
    fees: float = 0.0

    @classmethod
    def from_move(
        cls,
        greeks: Greeks,
        spot_change: float,
        vol_change: float,
        days_passed: float,
        actual_change: float,
    ) -> "PnLAttribution":
        """
        Attribute one mark-to-market change.

        Args:
            greeks: Position Greeks (per-unit × quantity) at the previous mark
            spot_change: ΔS of the underlying
            vol_change: Δσ (absolute, 0.01 = one vol point)
            days_passed: Δt in calendar days
            actual_change: Observed mark-to-market change

        Returns:
            Attribution with ``unrealized`` = actual_change and the residual in ``other``
        """
        delta = greeks.delta * spot_change
        gamma = 0.5 * greeks.gamma * spot_change * spot_change
        vega = greeks.vega * vol_change
        theta = greeks.theta * days_passed
        return cls(
            unrealized=actual_change,
            delta=delta,
            gamma=gamma,
            vega=vega,
            theta=theta,
            other=actual_change - (delta + gamma + vega + theta),
        )

    @property
    def explained(self) -> float:
        return self.delta + self.gamma + self.vega + self.theta

    @property
    def total(self) -> float:
        """Realized + unrealized, before fees."""
        return self.realized + self.unrealized

    @property
    def net(self) -> float:
        """Total after fees."""
        return self.total - self.fees

    def __add__(self, other: "PnLAttribution") -> "PnLAttribution":
        if not isinstance(other, PnLAttribution):
            return NotImplemented
        return PnLAttribution(
            **{f.name: getattr(self, f.name) + getattr(other, f.name) for f in fields(self)}
        )

    def to_dict(self) -> dict:
        return {
            **{f.name: getattr(self, f.name) for f in fields(self)},
            "explained": self.explained,
            "total": self.total,
            "net": self.net,
        }
