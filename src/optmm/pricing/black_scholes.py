"""
Black-Scholes Reference Pricer

European Black-Scholes valuation implementing the PricingModel interface.
Used for dry runs and tests; production deployments plug in their own
pricing library behind the same interface.

Conventions:
- Time to expiry is the calendar year fraction to the expiry date
- Theta is per calendar day
- Vega is per 1.00 absolute change in volatility
- The theoretical bid/ask straddle the mid by ``half_width`` (default 0)
"""

import math
from datetime import datetime

from scipy.stats import norm

from optmm.core.errors import PricingError
from optmm.core.models import Greeks, OptionContract, TheoreticalValue


class BlackScholesPricer:
    """
    Black-Scholes pricer.

    Attributes:
        half_width: Distance of theoretical bid/ask from mid (default: 0.0)
        dividend_yield: Continuous dividend yield (default: 0.0)

    Example:
        >>> pricer = BlackScholesPricer()
        >>> theo = pricer.theoretical_value(contract, 455.0, 0.20, 0.05)
        >>> 0 < theo.greeks.delta < 1
        True
    """

    def __init__(self, half_width: float = 0.0, dividend_yield: float = 0.0):
        if half_width < 0:
            raise ValueError(f"half_width must be non-negative, got {half_width}")
        self.half_width = half_width
        self.dividend_yield = dividend_yield

    def theoretical_value(
        self,
        contract: OptionContract,
        underlying_price: float,
        volatility: float,
        rate: float,
        as_of: datetime | None = None,
    ) -> TheoreticalValue:
        """
        Value one contract.

        Raises:
            PricingError: If time to expiry, volatility or spot is not positive
        """
        as_of = as_of or datetime.now()
        T = contract.time_to_expiry(as_of)

        if T <= 0:
            raise PricingError(f"Non-positive time to expiry for {contract.symbol}: {T:.6f}")
        if volatility <= 0:
            raise PricingError(f"Volatility must be positive, got {volatility}")
        if underlying_price <= 0:
            raise PricingError(f"Underlying price must be positive, got {underlying_price}")

        S = underlying_price
        K = contract.strike
        q = self.dividend_yield
        sqrt_t = math.sqrt(T)

        d1 = (math.log(S / K) + (rate - q + 0.5 * volatility**2) * T) / (volatility * sqrt_t)
        d2 = d1 - volatility * sqrt_t

        disc_r = math.exp(-rate * T)
        disc_q = math.exp(-q * T)
        pdf_d1 = norm.pdf(d1)

        if contract.style.is_call:
            price = S * disc_q * norm.cdf(d1) - K * disc_r * norm.cdf(d2)
            delta = disc_q * norm.cdf(d1)
            theta_year = (
                -S * disc_q * pdf_d1 * volatility / (2 * sqrt_t)
                - rate * K * disc_r * norm.cdf(d2)
                + q * S * disc_q * norm.cdf(d1)
            )
            rho = K * T * disc_r * norm.cdf(d2)
        else:
            price = K * disc_r * norm.cdf(-d2) - S * disc_q * norm.cdf(-d1)
            delta = -disc_q * norm.cdf(-d1)
            theta_year = (
                -S * disc_q * pdf_d1 * volatility / (2 * sqrt_t)
                + rate * K * disc_r * norm.cdf(-d2)
                - q * S * disc_q * norm.cdf(-d1)
            )
            rho = -K * T * disc_r * norm.cdf(-d2)

        gamma = disc_q * pdf_d1 / (S * volatility * sqrt_t)
        vega = S * disc_q * pdf_d1 * sqrt_t

        price = max(price, 0.0)
        return TheoreticalValue(
            mid=price,
            bid=max(price - self.half_width, 0.0),
            ask=price + self.half_width,
            greeks=Greeks(
                delta=float(delta),
                gamma=float(gamma),
                vega=float(vega),
                theta=float(theta_year) / 365.0,
                rho=float(rho),
            ),
            underlying_price=S,
            volatility=volatility,
            as_of=as_of,
        )
