"""Completion and point-adjustment ledgers."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Tuple
from uuid import uuid4

from .config import ADJUSTMENT_LOG_LIMIT, MAX_ADJUSTMENTS
from .dates import as_date, now
from .models import (
    AdjustmentType,
    AppState,
    CompletionKey,
    CompletionRecord,
    PointAdjustment,
)


# ----------------------------------------------------------------------
# Completions
# ----------------------------------------------------------------------
def completion_key(child_id: str, task_id: str, day: date | datetime) -> CompletionKey:
    return CompletionKey(child_id, task_id, as_date(day))


def is_completed(state: AppState, child_id: str, task_id: str, day: date | datetime) -> bool:
    return completion_key(child_id, task_id, day) in state.completions


def toggle_completion(
    state: AppState,
    child_id: str,
    task_id: str,
    day: date | datetime,
    *,
    at: Optional[datetime] = None,
) -> bool:
    """Flip the completion fact and return the new completed state.

    This is the raw ledger operation; badge re-evaluation is layered on top
    by the coordinator.
    """

    key = completion_key(child_id, task_id, day)
    if key in state.completions:
        del state.completions[key]
        return False
    state.completions[key] = CompletionRecord(key=key, timestamp=at or now())
    return True


def completions_for(state: AppState, child_id: str) -> Tuple[CompletionRecord, ...]:
    return tuple(record for key, record in state.completions.items() if key.child_id == child_id)


# ----------------------------------------------------------------------
# Adjustments
# ----------------------------------------------------------------------
def add_adjustment(
    state: AppState,
    child_id: str,
    amount: int,
    reason: str,
    type: AdjustmentType | str,
    *,
    at: Optional[datetime] = None,
) -> PointAdjustment:
    """Record a bonus or penalty, newest first, keeping only the latest entries."""

    adjustment = PointAdjustment(
        id=f"adj_{uuid4().hex}",
        child_id=child_id,
        amount=int(amount),
        reason=reason.strip(),
        type=AdjustmentType(type),
        created_at=at or now(),
    )
    state.adjustments.insert(0, adjustment)
    del state.adjustments[MAX_ADJUSTMENTS:]
    return adjustment


def delete_adjustment(state: AppState, adjustment_id: str) -> bool:
    for index, adjustment in enumerate(state.adjustments):
        if adjustment.id == adjustment_id:
            del state.adjustments[index]
            return True
    return False


def list_adjustments(
    state: AppState,
    child_id: Optional[str] = None,
    *,
    limit: int = ADJUSTMENT_LOG_LIMIT,
) -> Tuple[PointAdjustment, ...]:
    entries = state.adjustments
    if child_id is not None:
        entries = [entry for entry in entries if entry.child_id == child_id]
    return tuple(entries[:limit])


def adjustments_for(state: AppState, child_id: str, *, since: Optional[datetime] = None) -> Tuple[PointAdjustment, ...]:
    return tuple(
        entry
        for entry in state.adjustments
        if entry.child_id == child_id and (since is None or entry.created_at >= since)
    )


__all__ = [
    "add_adjustment",
    "adjustments_for",
    "completion_key",
    "completions_for",
    "delete_adjustment",
    "is_completed",
    "list_adjustments",
    "toggle_completion",
]
