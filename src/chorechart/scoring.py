"""Scoring engine: points, prorated allowance, levels and the leaderboard.

Every function here is a pure read of an :class:`~chorechart.models.AppState`
plus a query date. Nothing derived is cached or persisted.
"""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Tuple

from .dates import week_dates
from .ledger import adjustments_for, completions_for, is_completed
from .models import AppState, LeaderboardEntry, LevelThreshold, Points
from .money import prorate
from .tasks import is_active_on

LEVEL_THRESHOLDS: Tuple[LevelThreshold, ...] = (
    LevelThreshold(1, 0, "Rookie"),
    LevelThreshold(2, 20, "Starter"),
    LevelThreshold(3, 50, "Helper"),
    LevelThreshold(4, 90, "Go-Getter"),
    LevelThreshold(5, 140, "Rising Star"),
    LevelThreshold(6, 200, "Task Tackler"),
    LevelThreshold(7, 280, "Champion"),
    LevelThreshold(8, 370, "Super Star"),
    LevelThreshold(9, 480, "Achiever"),
    LevelThreshold(10, 600, "Hero"),
    LevelThreshold(11, 740, "Warrior"),
    LevelThreshold(12, 900, "Legend"),
    LevelThreshold(13, 1080, "Superstar"),
    LevelThreshold(14, 1280, "Master"),
    LevelThreshold(15, 1500, "Grand Master"),
    LevelThreshold(16, 1700, "Elite"),
    LevelThreshold(17, 1850, "Champion Elite"),
    LevelThreshold(18, 2000, "Task Titan"),
    LevelThreshold(19, 2100, "Mega Star"),
    LevelThreshold(20, 2200, "Ultra Champion"),
    LevelThreshold(21, 2280, "Task Wizard"),
    LevelThreshold(22, 2340, "Supreme Master"),
    LevelThreshold(23, 2380, "Task Legend"),
    LevelThreshold(24, 2410, "Ultimate Hero"),
    LevelThreshold(25, 2440, "Task God"),
)


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# ----------------------------------------------------------------------
# Points
# ----------------------------------------------------------------------
def day_points(state: AppState, child_id: str, day: date) -> Points:
    """Return earned/possible points for the tasks active on ``day``."""

    earned = possible = 0
    for task in state.child(child_id).tasks:
        if not is_active_on(task, day):
            continue
        possible += task.points
        if is_completed(state, child_id, task.id, day):
            earned += task.points
    return Points(earned, possible)


def week_points(
    state: AppState,
    child_id: str,
    start: Optional[date] = None,
    *,
    today: Optional[date] = None,
) -> Points:
    """Sum a week of :func:`day_points`.

    ``possible`` always covers all seven days; ``earned`` stops at today so
    the denominator stays put while the numerator grows.
    """

    first = start or state.settings.week_start
    current = today or date.today()
    earned = possible = 0
    for day in week_dates(first):
        points = day_points(state, child_id, day)
        possible += points.possible
        if day <= current:
            earned += points.earned
    return Points(earned, possible)


def lifetime_points(state: AppState, child_id: str) -> int:
    """Points from every recorded completion plus net adjustments, floored at 0."""

    child = state.child(child_id)
    values = {task.id: task.points for task in child.tasks}
    total = sum(values.get(record.key.task_id, 0) for record in completions_for(state, child_id))
    total += sum(entry.signed_amount for entry in adjustments_for(state, child_id))
    return max(0, total)


def weekly_bonus(state: AppState, child_id: str) -> int:
    """Net adjustments recorded on or after the current week start."""

    since = datetime.combine(state.settings.week_start, time())
    return sum(entry.signed_amount for entry in adjustments_for(state, child_id, since=since))


def weekly_totals(state: AppState, child_id: str, *, today: Optional[date] = None) -> Points:
    """Week points with the weekly bonus added to both sides of the ratio."""

    points = week_points(state, child_id, today=today)
    bonus = weekly_bonus(state, child_id)
    return Points(points.earned + bonus, points.possible + bonus)


def weekly_percentage(state: AppState, child_id: str, *, today: Optional[date] = None) -> int:
    totals = weekly_totals(state, child_id, today=today)
    if totals.possible <= 0:
        return 100
    return _round_half_up(Decimal(totals.earned) * 100 / Decimal(totals.possible))


def weekly_money(state: AppState, child_id: str, *, today: Optional[date] = None) -> Decimal:
    """Prorated allowance for the current week, rounded to cents."""

    totals = weekly_totals(state, child_id, today=today)
    return prorate(state.settings.allowance(child_id), totals.earned, totals.possible)


# Allowance is only ever earned week by week; the query keeps its public name.
lifetime_money = weekly_money


# ----------------------------------------------------------------------
# Levels
# ----------------------------------------------------------------------
def level(points: int) -> LevelThreshold:
    """Return the highest level whose requirement ``points`` meets."""

    for threshold in reversed(LEVEL_THRESHOLDS):
        if points >= threshold.points:
            return threshold
    return LEVEL_THRESHOLDS[0]


def level_progress(points: int) -> int:
    """Percentage of the way to the next level, 100 at the top level."""

    current = level(points)
    index = current.level  # levels are 1-based, so this is the next entry
    if index >= len(LEVEL_THRESHOLDS):
        return 100
    upcoming = LEVEL_THRESHOLDS[index]
    span = Decimal(upcoming.points - current.points)
    progress = _round_half_up(Decimal(points - current.points) * 100 / span)
    return min(100, max(0, progress))


# ----------------------------------------------------------------------
# Leaderboard
# ----------------------------------------------------------------------
def leaderboard(state: AppState, *, today: Optional[date] = None) -> Tuple[LeaderboardEntry, ...]:
    """One row per child, best weekly percentage first (stable on ties)."""

    from .progression import current_streak, kid_badges

    rows: List[LeaderboardEntry] = []
    for child in state.children.values():
        totals = weekly_totals(state, child.id, today=today)
        lifetime = lifetime_points(state, child.id)
        rows.append(
            LeaderboardEntry(
                child_id=child.id,
                name=child.name,
                avatar=child.avatar,
                money=weekly_money(state, child.id, today=today),
                max_money=state.settings.allowance(child.id),
                earned_points=totals.earned,
                possible_points=totals.possible,
                bonus_points=weekly_bonus(state, child.id),
                percentage=weekly_percentage(state, child.id, today=today),
                streak=current_streak(state, child.id, today=today),
                badges=kid_badges(state, child.id),
                lifetime_points=lifetime,
                level=level(lifetime),
                level_progress=level_progress(lifetime),
            )
        )
    rows.sort(key=lambda row: row.percentage, reverse=True)
    return tuple(rows)


__all__ = [
    "LEVEL_THRESHOLDS",
    "day_points",
    "leaderboard",
    "level",
    "level_progress",
    "lifetime_money",
    "lifetime_points",
    "week_points",
    "weekly_bonus",
    "weekly_money",
    "weekly_percentage",
    "weekly_totals",
]
