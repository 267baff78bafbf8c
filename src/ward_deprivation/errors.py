from __future__ import annotations

from typing import Iterable


class WardDeprivationError(Exception):
    """Base class for fatal pipeline errors."""


class ReferentialMismatchError(WardDeprivationError, ValueError):
    """A join key on one side has no (or an inconsistent) partner on the other."""

    def __init__(self, message: str, unmatched: Iterable = ()):
        self.unmatched = list(unmatched)
        if self.unmatched:
            message = f"{message} ({len(self.unmatched)} keys, e.g. {self.unmatched[:5]})"
        super().__init__(message)


class ZeroPopulationError(WardDeprivationError, ZeroDivisionError):
    """One or more wards aggregated to zero population."""

    def __init__(self, wards: Iterable[str]):
        self.wards = sorted(wards)
        super().__init__(
            f"Cannot compute weighted rank for wards with zero population: {self.wards}"
        )
