"""Percentage helpers shared by ledger and day aggregates."""

from __future__ import annotations


def percent(part: int, whole: int) -> int:
    """Integer percentage rounded half-up; 0 for an empty denominator."""
    if whole <= 0:
        return 0
    return (200 * part + whole) // (2 * whole)
