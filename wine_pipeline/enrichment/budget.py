"""
Daily Budget
============

Counts external research calls against a per-day ceiling. The counter resets
the first time it is consulted on a new calendar day, as reported by the
injected clock. One instance is meant to be shared by every batch running in
the process.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date

from wine_pipeline.core.config import BudgetConfig, get_default_config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BudgetSnapshot:
    """Point-in-time view of the budget."""

    day: date
    calls: int
    ceiling: int

    @property
    def remaining(self) -> int:
        return max(0, self.ceiling - self.calls)

    @property
    def exhausted(self) -> bool:
        return self.calls >= self.ceiling

    def to_dict(self) -> dict:
        return {
            "day": self.day.isoformat(),
            "calls": self.calls,
            "ceiling": self.ceiling,
            "remaining": self.remaining,
            "exhausted": self.exhausted,
        }


class DailyBudget:
    """
    Thread-safe daily call counter.

    Exhaustion is a normal state, not an error: callers take a slot with
    try_acquire() before every external call and stop when it returns False.
    """

    def __init__(self, ceiling: int, clock: Callable[[], date] = date.today):
        if ceiling < 0:
            raise ValueError("ceiling must be >= 0")
        self.ceiling = ceiling
        self._clock = clock
        self._lock = threading.Lock()
        self._calls = 0
        self._as_of = clock()

    @classmethod
    def from_config(
        cls, config: BudgetConfig, clock: Callable[[], date] = date.today
    ) -> DailyBudget:
        return cls(ceiling=config.daily_limit, clock=clock)

    def _roll_over(self) -> None:
        # Caller holds the lock
        today = self._clock()
        if today != self._as_of:
            if self._calls:
                logger.info(
                    f"New day {today.isoformat()}: resetting budget "
                    f"({self._calls}/{self.ceiling} used on {self._as_of.isoformat()})"
                )
            self._as_of = today
            self._calls = 0

    def can_proceed(self) -> bool:
        """Whether another external call may be made today."""
        with self._lock:
            self._roll_over()
            return self._calls < self.ceiling

    def try_acquire(self) -> bool:
        """Claim one external call from today's budget, or return False if none are left."""
        with self._lock:
            self._roll_over()
            if self._calls >= self.ceiling:
                return False
            self._calls += 1
            if self._calls == self.ceiling:
                logger.warning(
                    f"Daily budget of {self.ceiling} calls reached for {self._as_of.isoformat()}"
                )
            return True

    @property
    def remaining(self) -> int:
        with self._lock:
            self._roll_over()
            return max(0, self.ceiling - self._calls)

    def snapshot(self) -> BudgetSnapshot:
        with self._lock:
            self._roll_over()
            return BudgetSnapshot(day=self._as_of, calls=self._calls, ceiling=self.ceiling)

    def reset(self) -> None:
        """Zero today's counter."""
        with self._lock:
            self._as_of = self._clock()
            self._calls = 0


# Process-wide budget shared by the API, CLI and background jobs
_default_budget: DailyBudget | None = None


def get_default_budget() -> DailyBudget:
    """Get the shared budget, creating it from configuration on first use."""
    global _default_budget

    if _default_budget is None:
        _default_budget = DailyBudget.from_config(get_default_config().budget)

    return _default_budget


def reset_default_budget() -> None:
    """Drop the shared budget (useful for testing)."""
    global _default_budget
    _default_budget = None
