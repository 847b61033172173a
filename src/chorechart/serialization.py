"""Convert application state to and from its JSON document form.

The same document shape is written to the local store and to the remote
store. Older documents (string-keyed completion maps, datetime week starts,
tasks without ``activeDays``) are upgraded on the way in.
"""

from __future__ import annotations

import copy
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, MutableMapping, Optional, Tuple

from .config import DEFAULT_ALLOWANCES, DEFAULT_CHILDREN, DEFAULT_TASK_COLOR, DEFAULT_TASK_ICON
from .dates import ALL_DAYS, SCHOOL_DAYS, format_date, now, parse_date, parse_datetime, week_start
from .models import (
    AppState,
    BadgeKey,
    BadgeRecord,
    BadgeType,
    Child,
    CompletionKey,
    CompletionRecord,
    PointAdjustment,
    Settings,
    Task,
)
from .money import to_decimal

Document = Dict[str, Any]

_DATE_KEY_LENGTH = len("YYYY-MM-DD")


def default_document(*, today: Optional[date] = None) -> Document:
    """Return the canonical empty household document."""

    return {
        "settings": {
            "allowances": {child_id: float(amount) for child_id, amount in DEFAULT_ALLOWANCES.items()},
            "weekStart": format_date(week_start(today or date.today())),
        },
        "kids": {
            child_id: {"name": name, "avatar": avatar, "tasks": []}
            for child_id, name, avatar in DEFAULT_CHILDREN
        },
        "completions": [],
        "badges": [],
        "pointAdjustments": [],
    }


def default_state(*, today: Optional[date] = None) -> AppState:
    return from_document(default_document(today=today))


def merge_defaults(defaults: Mapping[str, Any], stored: Mapping[str, Any]) -> Document:
    """Deep merge ``stored`` over ``defaults``.

    Nested mappings are merged key by key so missing keys inherit defaults;
    every other value present in ``stored`` (lists included) wins outright.
    """

    merged: MutableMapping[str, Any] = copy.deepcopy(dict(defaults))
    for key, value in stored.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = merge_defaults(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return dict(merged)


# ----------------------------------------------------------------------
# State -> document
# ----------------------------------------------------------------------
def to_document(state: AppState) -> Document:
    return {
        "settings": {
            "allowances": {child_id: float(amount) for child_id, amount in state.settings.allowances.items()},
            "weekStart": format_date(state.settings.week_start),
        },
        "kids": {
            child.id: {
                "name": child.name,
                "avatar": child.avatar,
                "tasks": [_serialise_task(task) for task in child.tasks],
            }
            for child in state.children.values()
        },
        "completions": [
            {
                "kidId": record.key.child_id,
                "taskId": record.key.task_id,
                "date": format_date(record.key.day),
                "timestamp": record.timestamp.isoformat(),
            }
            for record in state.completions.values()
        ],
        "badges": [_serialise_badge(record) for record in state.badges.values()],
        "pointAdjustments": [
            {
                "id": entry.id,
                "kidId": entry.child_id,
                "amount": entry.amount,
                "reason": entry.reason,
                "type": entry.type.value,
                "date": entry.created_at.isoformat(),
            }
            for entry in state.adjustments
        ],
    }


def _serialise_task(task: Task) -> Document:
    return {
        "id": task.id,
        "name": task.name,
        "points": task.points,
        "icon": task.icon,
        "color": task.color,
        "activeDays": sorted(task.active_days),
        "createdAt": task.created_at.isoformat(),
    }


def _serialise_badge(record: BadgeRecord) -> Document:
    payload: Document = {
        "kidId": record.key.child_id,
        "type": record.key.badge_type.value,
        "date": format_date(record.key.day) if record.key.day else None,
        "awarded": record.awarded_at.isoformat(),
    }
    if record.streak is not None:
        payload["streak"] = record.streak
    return payload


# ----------------------------------------------------------------------
# Document -> state
# ----------------------------------------------------------------------
def from_document(document: Mapping[str, Any]) -> AppState:
    """Build an :class:`AppState`; raises ``ValueError``/``KeyError``/``TypeError`` on bad input."""

    settings_doc = document.get("settings") or {}
    raw_week = settings_doc.get("weekStart")
    settings = Settings(
        week_start=parse_date(raw_week) if raw_week else week_start(date.today()),
        allowances={child_id: to_decimal(value or 0) for child_id, value in (settings_doc.get("allowances") or {}).items()},
    )

    children: Dict[str, Child] = {}
    for child_id, kid in (document.get("kids") or {}).items():
        children[child_id] = Child(
            id=child_id,
            name=kid.get("name", child_id),
            avatar=kid.get("avatar", ""),
            tasks=[_task_from(entry) for entry in kid.get("tasks") or []],
        )

    state = AppState(settings=settings, children=children)
    known = tuple(children)
    for record in _completions_from(document.get("completions"), known):
        state.completions[record.key] = record
    for badge in _badges_from(document.get("badges"), known):
        state.badges[badge.key] = badge
    state.adjustments = [_adjustment_from(entry) for entry in document.get("pointAdjustments") or []]
    return state


def _task_from(entry: Mapping[str, Any]) -> Task:
    if entry.get("activeDays") is not None:
        days: Iterable[int] = entry["activeDays"]
    elif entry.get("weekdaysOnly"):
        days = SCHOOL_DAYS
    else:
        days = ALL_DAYS
    created = entry.get("createdAt")
    return Task(
        id=str(entry["id"]),
        name=entry.get("name", ""),
        points=int(entry.get("points") or 0),
        icon=entry.get("icon") or DEFAULT_TASK_ICON,
        color=entry.get("color") or DEFAULT_TASK_COLOR,
        active_days=frozenset(int(day) for day in days),
        created_at=parse_datetime(created) if created else now(),
    )


def _split_legacy_key(raw_key: str, known_children: Tuple[str, ...]) -> Tuple[str, str]:
    for child_id in known_children:
        prefix = f"{child_id}_"
        if raw_key.startswith(prefix):
            return child_id, raw_key[len(prefix):]
    raise ValueError(f"Key '{raw_key}' does not belong to a known child.")


def _completions_from(raw: Any, known_children: Tuple[str, ...]) -> List[CompletionRecord]:
    records: List[CompletionRecord] = []
    if not raw:
        return records
    if isinstance(raw, Mapping):
        # Legacy form: {"<kid>_<task>_<YYYY-MM-DD>": {"timestamp": ...}}
        for raw_key, value in raw.items():
            if not value:
                continue
            child_id, rest = _split_legacy_key(raw_key, known_children)
            task_id, day = rest[: -_DATE_KEY_LENGTH - 1], rest[-_DATE_KEY_LENGTH:]
            stamp = value.get("timestamp") if isinstance(value, Mapping) else None
            key = CompletionKey(child_id, task_id, parse_date(day))
            records.append(CompletionRecord(key=key, timestamp=parse_datetime(stamp) if stamp else now()))
        return records
    for entry in raw:
        key = CompletionKey(str(entry["kidId"]), str(entry["taskId"]), parse_date(entry["date"]))
        stamp = entry.get("timestamp")
        records.append(CompletionRecord(key=key, timestamp=parse_datetime(stamp) if stamp else now()))
    return records


def _badges_from(raw: Any, known_children: Tuple[str, ...]) -> List[BadgeRecord]:
    records: List[BadgeRecord] = []
    if not raw:
        return records
    if isinstance(raw, Mapping):
        # Legacy form: {"<kid>_<badge>[_<YYYY-MM-DD>]": {"type": {"id": ...}, "awarded": ...}}
        for raw_key, value in raw.items():
            child_id, rest = _split_legacy_key(raw_key, known_children)
            badge_value = value.get("type") if isinstance(value, Mapping) else None
            type_id = badge_value.get("id") if isinstance(badge_value, Mapping) else badge_value
            badge_type = BadgeType(type_id) if type_id else _badge_type_prefix(rest)
            day = parse_date(rest[-_DATE_KEY_LENGTH:]) if badge_type.day_scoped else None
            records.append(_badge_record(child_id, badge_type, day, value))
        return records
    for entry in raw:
        day = entry.get("date")
        records.append(
            _badge_record(str(entry["kidId"]), BadgeType(entry["type"]), parse_date(day) if day else None, entry)
        )
    return records


def _badge_type_prefix(rest: str) -> BadgeType:
    for badge_type in BadgeType:
        if rest == badge_type.value or rest.startswith(f"{badge_type.value}_"):
            return badge_type
    raise ValueError(f"Unknown badge key '{rest}'.")


def _badge_record(child_id: str, badge_type: BadgeType, day: Optional[date], payload: Any) -> BadgeRecord:
    awarded = payload.get("awarded") if isinstance(payload, Mapping) else None
    streak = payload.get("streak") if isinstance(payload, Mapping) else None
    return BadgeRecord(
        key=BadgeKey(child_id, badge_type, day),
        awarded_at=parse_datetime(awarded) if awarded else now(),
        streak=int(streak) if streak is not None else None,
    )


def _adjustment_from(entry: Mapping[str, Any]) -> PointAdjustment:
    created = entry.get("date")
    return PointAdjustment(
        id=str(entry["id"]),
        child_id=str(entry["kidId"]),
        amount=int(entry["amount"]),
        reason=entry.get("reason", ""),
        type=entry["type"],
        created_at=parse_datetime(created) if created else now(),
    )


def load_document(stored: Mapping[str, Any], *, today: Optional[date] = None) -> AppState:
    """Upgrade a stored document against the defaults and build the state."""

    return from_document(merge_defaults(default_document(today=today), stored))


__all__ = [
    "Document",
    "default_document",
    "default_state",
    "from_document",
    "load_document",
    "merge_defaults",
    "to_document",
]
