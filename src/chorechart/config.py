"""Configuration constants for chorechart."""
from __future__ import annotations

import os
from decimal import Decimal
from typing import Dict, Tuple

from dotenv import load_dotenv

load_dotenv()

SQLITE_FILE_NAME = os.environ.get("CHORECHART_SQLITE", "chorechart.db")
STORAGE_KEY = os.environ.get("CHORECHART_STORAGE_KEY", "kidsTasksData")
REMOTE_URL = os.environ.get("CHORECHART_REMOTE_URL", "")
REMOTE_PATH = os.environ.get("CHORECHART_REMOTE_PATH", "kidsTasks")
REMOTE_AUTH = os.environ.get("CHORECHART_REMOTE_AUTH") or None
REMOTE_TIMEOUT_SECONDS = float(os.environ.get("CHORECHART_REMOTE_TIMEOUT", "10"))
LOG_PATH = os.environ.get("CHORECHART_LOG_PATH") or None

# (child id, display name, avatar) in display order.
DEFAULT_CHILDREN: Tuple[Tuple[str, str, str], ...] = (
    ("olive", "Oliver", "assets/olive.png"),
    ("miles", "Miles", "assets/miles.png"),
    ("zander", "Zander", "assets/zander.png"),
)
DEFAULT_ALLOWANCES: Dict[str, Decimal] = {
    "olive": Decimal("50.00"),
    "miles": Decimal("30.00"),
    "zander": Decimal("20.00"),
}

DEFAULT_TASK_POINTS = 10
DEFAULT_TASK_ICON = "\U0001F4DD"
DEFAULT_TASK_COLOR = "#4ade80"

MAX_ADJUSTMENTS = 50
ADJUSTMENT_LOG_LIMIT = 20
POINT_COLLECTOR_THRESHOLD = 100
STREAK_LOOKBACK_DAYS = 365
BADGE_STREAK_LOOKBACK_DAYS = 30

__all__ = [
    "SQLITE_FILE_NAME",
    "STORAGE_KEY",
    "REMOTE_URL",
    "REMOTE_PATH",
    "REMOTE_AUTH",
    "REMOTE_TIMEOUT_SECONDS",
    "LOG_PATH",
    "DEFAULT_CHILDREN",
    "DEFAULT_ALLOWANCES",
    "DEFAULT_TASK_POINTS",
    "DEFAULT_TASK_ICON",
    "DEFAULT_TASK_COLOR",
    "MAX_ADJUSTMENTS",
    "ADJUSTMENT_LOG_LIMIT",
    "POINT_COLLECTOR_THRESHOLD",
    "STREAK_LOOKBACK_DAYS",
    "BADGE_STREAK_LOOKBACK_DAYS",
]
