"""chorechart package: chore points, prorated allowance, streaks and badges."""

from .api import ChangeDispatcher, ChangeEvent, SnapshotExporter
from .dates import Weekday, format_date, last_n_days, week_dates, week_number, week_start
from .exceptions import (
    ChoreChartError,
    PersistenceError,
    SyncError,
    ValidationError,
)
from .models import (
    AdjustmentType,
    AppState,
    BadgeKey,
    BadgeRecord,
    BadgeSummary,
    BadgeType,
    Child,
    CompletionKey,
    CompletionRecord,
    LeaderboardEntry,
    LevelThreshold,
    PointAdjustment,
    Points,
    Settings,
    Task,
)
from .ops import StructuredLogger
from .persistence import StateStore
from .scoring import LEVEL_THRESHOLDS
from .service import ChoreChart
from .sync import RemoteStore, SyncCoordinator, last_write_wins

__all__ = [
    "AdjustmentType",
    "AppState",
    "BadgeKey",
    "BadgeRecord",
    "BadgeSummary",
    "BadgeType",
    "ChangeDispatcher",
    "ChangeEvent",
    "Child",
    "ChoreChart",
    "ChoreChartError",
    "CompletionKey",
    "CompletionRecord",
    "LEVEL_THRESHOLDS",
    "LeaderboardEntry",
    "LevelThreshold",
    "PersistenceError",
    "PointAdjustment",
    "Points",
    "RemoteStore",
    "Settings",
    "SnapshotExporter",
    "StateStore",
    "StructuredLogger",
    "SyncCoordinator",
    "SyncError",
    "Task",
    "ValidationError",
    "Weekday",
    "format_date",
    "last_n_days",
    "last_write_wins",
    "week_dates",
    "week_number",
    "week_start",
]
