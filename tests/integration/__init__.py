"""Integration tests for the market-making engine.

End-to-end tests that drive MarketMakerEngine through pricing ticks, quote
refreshes, fills and risk cycles with an in-memory exchange adapter.
"""
