"""
Pricing collaborator interface and the Black-Scholes reference pricer.
"""

from optmm.pricing.black_scholes import BlackScholesPricer
from optmm.pricing.interfaces import PricingModel

__all__ = ["BlackScholesPricer", "PricingModel"]
