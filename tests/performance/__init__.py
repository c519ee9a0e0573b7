"""Concurrency and stress tests.

Fills and risk evaluations running on several threads against one ledger.
"""
