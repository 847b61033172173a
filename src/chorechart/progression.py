"""Perfect days, streaks and badge awards."""

from __future__ import annotations

from collections import Counter
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Tuple

from .config import BADGE_STREAK_LOOKBACK_DAYS, POINT_COLLECTOR_THRESHOLD, STREAK_LOOKBACK_DAYS
from .dates import as_date, now
from .ledger import is_completed
from .models import AppState, BadgeKey, BadgeRecord, BadgeSummary, BadgeType
from .scoring import lifetime_points
from .tasks import active_tasks


def is_perfect_day(state: AppState, child_id: str, day: date | datetime) -> bool:
    """All active tasks done, and at least one task was active that day."""

    current = as_date(day)
    tasks = active_tasks(state.child(child_id), current)
    if not tasks:
        return False
    return all(is_completed(state, child_id, task.id, current) for task in tasks)


def current_streak(state: AppState, child_id: str, *, today: Optional[date] = None) -> int:
    """Count consecutive perfect days ending today or yesterday.

    An unfinished today is skipped rather than breaking the streak.
    """

    start = today or date.today()
    streak = 0
    for offset in range(STREAK_LOOKBACK_DAYS):
        day = start - timedelta(days=offset)
        if is_perfect_day(state, child_id, day):
            streak += 1
        elif offset > 0:
            break
    return streak


def trailing_perfect_streak(
    state: AppState,
    child_id: str,
    day: date | datetime,
    *,
    lookback: int = BADGE_STREAK_LOOKBACK_DAYS,
) -> int:
    """Count perfect days ending at ``day``, stopping at the first imperfect one."""

    end = as_date(day)
    streak = 0
    for offset in range(lookback):
        if not is_perfect_day(state, child_id, end - timedelta(days=offset)):
            break
        streak += 1
    return streak


def evaluate_badges(
    state: AppState,
    child_id: str,
    day: date | datetime,
    *,
    at: Optional[datetime] = None,
) -> Tuple[BadgeType, ...]:
    """Bring badge records for ``child_id`` on ``day`` in line with the ledger.

    Perfect Day mirrors the current ledger and can be revoked. Point Collector
    and the streak badges are only ever added. Returns the badge types written
    by this call.
    """

    current = as_date(day)
    perfect_key = BadgeKey(child_id, BadgeType.PERFECT_DAY, current)
    if not state.child(child_id).tasks:
        state.badges.pop(perfect_key, None)
        return ()
    moment = at or now()
    awarded: List[BadgeType] = []

    if is_perfect_day(state, child_id, current):
        state.badges[perfect_key] = BadgeRecord(key=perfect_key, awarded_at=moment)
        awarded.append(BadgeType.PERFECT_DAY)
    else:
        state.badges.pop(perfect_key, None)

    collector_key = BadgeKey(child_id, BadgeType.POINT_COLLECTOR)
    if collector_key not in state.badges and lifetime_points(state, child_id) >= POINT_COLLECTOR_THRESHOLD:
        state.badges[collector_key] = BadgeRecord(key=collector_key, awarded_at=moment)
        awarded.append(BadgeType.POINT_COLLECTOR)

    streak = trailing_perfect_streak(state, child_id, current)
    for badge_type, needed in ((BadgeType.STREAK_3, 3), (BadgeType.STREAK_7, 7)):
        if streak >= needed:
            key = BadgeKey(child_id, badge_type, current)
            state.badges[key] = BadgeRecord(key=key, awarded_at=moment, streak=streak)
            awarded.append(badge_type)
    return tuple(awarded)


def kid_badges(state: AppState, child_id: str) -> Tuple[BadgeSummary, ...]:
    """Badge counts by type, in badge display order, omitting zero counts."""

    counts: Dict[BadgeType, int] = Counter(key.badge_type for key in state.badges if key.child_id == child_id)
    return tuple(BadgeSummary(badge_type, counts[badge_type]) for badge_type in BadgeType if counts.get(badge_type))


__all__ = [
    "current_streak",
    "evaluate_badges",
    "is_perfect_day",
    "kid_badges",
    "trailing_perfect_streak",
]
