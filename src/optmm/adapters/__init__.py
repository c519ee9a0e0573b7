"""
Collaborator interfaces and the in-memory paper order book.
"""

from optmm.adapters.interfaces import BestQuote, ExchangeAdapter, OrderBook
from optmm.adapters.paper_book import PaperOrderBook

__all__ = ["BestQuote", "ExchangeAdapter", "OrderBook", "PaperOrderBook"]
