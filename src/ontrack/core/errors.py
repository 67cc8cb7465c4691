# src/ontrack/core/errors.py

"""
Error types shared by the plan store, the move protocol and the board service.

- InvalidPlanItemError: rejected input at a mutation boundary (never clamped).
- PlanItemNotFoundError: a mutation referenced an id the store does not know.
- PlanStoreError: the backing SQLite store failed; the transaction was rolled back.
"""

from __future__ import annotations


class InvalidPlanItemError(ValueError):
    """Out-of-range day index, non-positive hours, non-Monday week start, ..."""


class PlanItemNotFoundError(LookupError):
    def __init__(self, item_id: int) -> None:
        super().__init__(f"plan item {item_id} not found")
        self.item_id = item_id


class PlanStoreError(RuntimeError):
    """Persistence failure surfaced to the caller as a failed operation."""
