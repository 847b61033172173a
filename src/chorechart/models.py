"""Domain models used by the chorechart package."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, NamedTuple, Optional, Tuple

from .config import DEFAULT_TASK_COLOR, DEFAULT_TASK_ICON, DEFAULT_TASK_POINTS
from .dates import ALL_DAYS
from .money import to_decimal


@dataclass(slots=True)
class Task:
    """A recurring chore owned by exactly one child."""

    id: str
    name: str
    points: int = DEFAULT_TASK_POINTS
    icon: str = DEFAULT_TASK_ICON
    color: str = DEFAULT_TASK_COLOR
    active_days: frozenset[int] = ALL_DAYS
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        self.points = int(self.points)
        self.active_days = frozenset(int(day) for day in self.active_days)


@dataclass(slots=True)
class Child:
    """A household member with an ordered list of tasks."""

    id: str
    name: str
    avatar: str = ""
    tasks: List[Task] = field(default_factory=list)

    def task(self, task_id: str) -> Optional[Task]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None


@dataclass(slots=True)
class Settings:
    """Per-household settings: allowance ceilings and the current week start."""

    week_start: date
    allowances: Dict[str, Decimal] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.allowances = {child_id: to_decimal(value) for child_id, value in self.allowances.items()}

    def allowance(self, child_id: str) -> Decimal:
        return self.allowances.get(child_id, Decimal("0.00"))


class CompletionKey(NamedTuple):
    child_id: str
    task_id: str
    day: date


@dataclass(slots=True)
class CompletionRecord:
    """Presence of a record means the task was done on that day."""

    key: CompletionKey
    timestamp: datetime = field(default_factory=datetime.now)


class AdjustmentType(str, Enum):
    BONUS = "bonus"
    PENALTY = "penalty"


@dataclass(slots=True)
class PointAdjustment:
    """Manual bonus or penalty that is independent of tasks."""

    id: str
    child_id: str
    amount: int
    reason: str
    type: AdjustmentType
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        self.amount = int(self.amount)
        self.type = AdjustmentType(self.type)

    @property
    def signed_amount(self) -> int:
        return self.amount if self.type is AdjustmentType.BONUS else -self.amount


@dataclass(frozen=True, slots=True)
class BadgeDefinition:
    name: str
    icon: str
    description: str


class BadgeType(str, Enum):
    """Badge kinds in display order."""

    PERFECT_DAY = "perfect_day"
    STREAK_3 = "streak_3"
    STREAK_7 = "streak_7"
    POINT_COLLECTOR = "point_collector"

    @property
    def definition(self) -> BadgeDefinition:
        return BADGE_DEFINITIONS[self]

    @property
    def day_scoped(self) -> bool:
        return self is not BadgeType.POINT_COLLECTOR


BADGE_DEFINITIONS: Dict[BadgeType, BadgeDefinition] = {
    BadgeType.PERFECT_DAY: BadgeDefinition("Perfect Day", "⭐", "Completed all tasks in a day"),
    BadgeType.STREAK_3: BadgeDefinition("3-Day Streak", "\U0001F525", "3 perfect days in a row"),
    BadgeType.STREAK_7: BadgeDefinition("Week Warrior", "\U0001F3C6", "7 perfect days in a row"),
    BadgeType.POINT_COLLECTOR: BadgeDefinition("Point Collector", "\U0001F48E", "Earned 100 lifetime points"),
}


class BadgeKey(NamedTuple):
    child_id: str
    badge_type: BadgeType
    day: Optional[date] = None


@dataclass(slots=True)
class BadgeRecord:
    key: BadgeKey
    awarded_at: datetime = field(default_factory=datetime.now)
    streak: Optional[int] = None


@dataclass(slots=True)
class AppState:
    """Aggregate root owned by the coordinator for the lifetime of a client."""

    settings: Settings
    children: Dict[str, Child] = field(default_factory=dict)
    completions: Dict[CompletionKey, CompletionRecord] = field(default_factory=dict)
    badges: Dict[BadgeKey, BadgeRecord] = field(default_factory=dict)
    adjustments: List[PointAdjustment] = field(default_factory=list)

    def child(self, child_id: str) -> Child:
        try:
            return self.children[child_id]
        except KeyError as exc:
            raise KeyError(f"Unknown child '{child_id}'.") from exc

    def child_ids(self) -> Tuple[str, ...]:
        return tuple(self.children)


class Points(NamedTuple):
    earned: int = 0
    possible: int = 0


@dataclass(frozen=True, slots=True)
class LevelThreshold:
    level: int
    points: int
    title: str


@dataclass(frozen=True, slots=True)
class BadgeSummary:
    type: BadgeType
    count: int

    @property
    def name(self) -> str:
        return self.type.definition.name

    @property
    def icon(self) -> str:
        return self.type.definition.icon


@dataclass(frozen=True, slots=True)
class LeaderboardEntry:
    """One summary row per child for the leaderboard view."""

    child_id: str
    name: str
    avatar: str
    money: Decimal
    max_money: Decimal
    earned_points: int
    possible_points: int
    bonus_points: int
    percentage: int
    streak: int
    badges: Tuple[BadgeSummary, ...]
    lifetime_points: int
    level: LevelThreshold
    level_progress: int

    @property
    def badge_count(self) -> int:
        return sum(badge.count for badge in self.badges)


__all__ = [
    "AdjustmentType",
    "AppState",
    "BADGE_DEFINITIONS",
    "BadgeDefinition",
    "BadgeKey",
    "BadgeRecord",
    "BadgeSummary",
    "BadgeType",
    "Child",
    "CompletionKey",
    "CompletionRecord",
    "LeaderboardEntry",
    "LevelThreshold",
    "PointAdjustment",
    "Points",
    "Settings",
    "Task",
]
