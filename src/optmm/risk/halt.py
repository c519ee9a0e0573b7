"""
Trading Halt State

Explicit, process-scoped halt flag shared by reference between the Risk
Controller, Quote Generator, Delta Hedger and Engine.

States:
    NOT HALTED (initial): quotes and hedges may be submitted
    HALTED: quote submission and hedge emission are refused

Transitions:
    NOT HALTED → HALTED: halt(reason), by policy or by an operator
    HALTED → NOT HALTED: reset() only; nothing clears the flag implicitly

The halt is cooperative: it is checked before quote submission and hedge
emission and never interrupts work already in flight.

Usage:
    >>> halt_state = TradingHaltState()
    >>> halt_state.is_halted
    False
    >>> halt_state.halt("delta limit breached")
    >>> halt_state.reset()
"""

import threading
from datetime import datetime

from loguru import logger


class TradingHaltState:
    """
    Cooperative trading halt flag.

    Attributes:
        is_halted: Whether trading is currently halted
        reason: Why trading was halted (None when not halted)
        halted_at: When the current halt began (None when not halted)
        halt_count: Number of halts since creation
    """

    def __init__(self):
        self._halted = False
        self._reason: str | None = None
        self._halted_at: datetime | None = None
        self.halt_count = 0
        self._lock = threading.Lock()
        self.logger = logger.bind(component="TradingHaltState")

    @property
    def is_halted(self) -> bool:
        return self._halted

    @property
    def reason(self) -> str | None:
        return self._reason

    @property
    def halted_at(self) -> datetime | None:
        return self._halted_at

    def halt(self, reason: str) -> bool:
        """
        Halt trading.

        Args:
            reason: Why trading is being halted

        Returns:
            True if this call halted trading, False if it was already halted
            (the original reason is kept)
        """
        with self._lock:
            if self._halted:
                return False
            self._halted = True
            self._reason = reason
            self._halted_at = datetime.now()
            self.halt_count += 1

        self.logger.warning(f"Trading HALTED: {reason}")
        return True

    def reset(self) -> None:
        """Clear the halt. The only way back to trading."""
        with self._lock:
            was_halted = self._halted
            reason = self._reason
            self._halted = False
            self._reason = None
            self._halted_at = None

        if was_halted:
            self.logger.info(f"Trading halt reset (was: {reason})")

    def __repr__(self) -> str:
        if self._halted:
            return f"TradingHaltState(halted, reason={self._reason!r})"
        return "TradingHaltState(not halted)"
