"""
Unit tests for the Black-Scholes reference pricer.
"""

import math

import pytest
from datetime import date, datetime

from optmm.core.errors import PricingError
from optmm.core.models import OptionContract, OptionStyle
from optmm.pricing.black_scholes import BlackScholesPricer
from optmm.pricing.interfaces import PricingModel

# 2026-01-01 → 2027-01-01 is exactly 365 days, T = 1.0
VALUATION = datetime(2026, 1, 1)
ONE_YEAR = date(2027, 1, 1)


@pytest.fixture
def call():
    return OptionContract("XYZ", 100.0, ONE_YEAR, OptionStyle.CALL)


@pytest.fixture
def put():
    return OptionContract("XYZ", 100.0, ONE_YEAR, OptionStyle.PUT)


def value(contract, spot=100.0, vol=0.20, rate=0.05, pricer=None):
    pricer = pricer or BlackScholesPricer()
    return pricer.theoretical_value(contract, spot, vol, rate, as_of=VALUATION)


class TestBlackScholesPricer:
    """Test valuation and Greeks."""

    def test_implements_pricing_model(self):
        """Test the pricer satisfies the PricingModel interface."""
        assert isinstance(BlackScholesPricer(), PricingModel)

    def test_reference_values(self, call, put):
        """Test textbook values for S=K=100, T=1, r=5%, σ=20%."""
        c = value(call)
        p = value(put)

        assert c.mid == pytest.approx(10.4506, abs=1e-4)
        assert p.mid == pytest.approx(5.5735, abs=1e-4)
        assert c.greeks.delta == pytest.approx(0.6368, abs=1e-4)
        assert p.greeks.delta == pytest.approx(-0.3632, abs=1e-4)
        assert c.greeks.gamma == pytest.approx(0.018762, abs=1e-5)
        assert c.greeks.vega == pytest.approx(37.524, abs=1e-2)

    def test_put_call_parity(self, call, put):
        """Test C − P = S − K·e^(−rT)."""
        c = value(call, spot=103.0)
        p = value(put, spot=103.0)

        assert c.mid - p.mid == pytest.approx(103.0 - 100.0 * math.exp(-0.05))

    def test_theta_per_day(self, call):
        """Test theta is negative and expressed per calendar day."""
        theta = value(call).greeks.theta

        assert theta < 0
        assert theta == pytest.approx(-6.414 / 365.0, abs=1e-4)

    def test_half_width(self, call):
        """Test theoretical bid/ask straddle the mid."""
        theo = value(call, pricer=BlackScholesPricer(half_width=0.05))

        assert theo.bid == pytest.approx(theo.mid - 0.05)
        assert theo.ask == pytest.approx(theo.mid + 0.05)

    def test_deep_otm_bid_floored(self):
        """Test the bid never goes negative."""
        contract = OptionContract("XYZ", 300.0, ONE_YEAR, OptionStyle.CALL)

        theo = value(contract, pricer=BlackScholesPricer(half_width=1.0))

        assert theo.bid == 0.0

    @pytest.mark.parametrize(
        "expiry,vol,spot",
        [(date(2026, 1, 1), 0.2, 100.0), (ONE_YEAR, 0.0, 100.0), (ONE_YEAR, 0.2, 0.0)],
    )
    def test_rejected_inputs(self, expiry, vol, spot):
        """Test expired contracts, zero volatility and zero spot are rejected."""
        contract = OptionContract("XYZ", 100.0, expiry, OptionStyle.CALL)

        with pytest.raises(PricingError):
            value(contract, spot=spot, vol=vol)

    def test_negative_half_width(self):
        """Test a negative half width is rejected."""
        with pytest.raises(ValueError):
            BlackScholesPricer(half_width=-0.01)
