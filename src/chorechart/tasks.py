"""Task registry: per-child chore definitions and their weekly schedule."""

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Optional, Sequence, Tuple
from uuid import uuid4

from .config import DEFAULT_TASK_COLOR, DEFAULT_TASK_ICON, DEFAULT_TASK_POINTS
from .dates import ALL_DAYS, Weekday, now
from .exceptions import ValidationError
from .models import AppState, Child, Task

_PATCHABLE_FIELDS = frozenset({"name", "points", "icon", "color", "active_days"})


def is_active_on(task: Task, day: date) -> bool:
    """Return ``True`` when ``task`` counts towards ``day``'s weekday."""

    return int(Weekday.of(day)) in task.active_days


def active_tasks(child: Child, day: date) -> Tuple[Task, ...]:
    return tuple(task for task in child.tasks if is_active_on(task, day))


def validate_task_fields(
    *,
    name: Optional[str] = None,
    points: Optional[int] = None,
    active_days: Optional[Iterable[int]] = None,
    require_name: bool = True,
) -> None:
    """Raise :class:`ValidationError` for input a parent has to correct."""

    if require_name and not (name or "").strip():
        raise ValidationError("Task name is required.")
    if points is not None and int(points) <= 0:
        raise ValidationError("Task points must be a positive whole number.")
    if active_days is not None:
        days = frozenset(int(day) for day in active_days)
        if not days:
            raise ValidationError("Please select at least one day.")
        if not days <= ALL_DAYS:
            raise ValidationError(f"Unknown weekday numbers: {sorted(days - ALL_DAYS)}.")


def list_tasks(state: AppState, child_id: str) -> Tuple[Task, ...]:
    return tuple(state.child(child_id).tasks)


def find_task(state: AppState, child_id: str, task_id: str) -> Optional[Task]:
    return state.child(child_id).task(task_id)


def tasks_named(state: AppState, name: str) -> Tuple[Tuple[str, Task], ...]:
    """Return ``(child_id, task)`` for the first task called ``name`` in each child."""

    matches = []
    for child in state.children.values():
        for task in child.tasks:
            if task.name == name:
                matches.append((child.id, task))
                break
    return tuple(matches)


def add_task(
    state: AppState,
    child_id: str,
    *,
    name: str,
    points: Optional[int] = None,
    icon: Optional[str] = None,
    color: Optional[str] = None,
    active_days: Optional[Iterable[int]] = None,
    at: Optional[datetime] = None,
) -> Task:
    """Append a new task to the child's list and return it.

    Missing values fall back to the documented defaults; an omitted
    ``active_days`` means every day.
    """

    task = Task(
        id=f"task_{uuid4().hex}",
        name=name.strip(),
        points=int(points) if points else DEFAULT_TASK_POINTS,
        icon=icon or DEFAULT_TASK_ICON,
        color=color or DEFAULT_TASK_COLOR,
        active_days=frozenset(active_days) if active_days is not None else ALL_DAYS,
        created_at=at or now(),
    )
    state.child(child_id).tasks.append(task)
    return task


def update_task(state: AppState, child_id: str, task_id: str, **patch: object) -> Optional[Task]:
    """Merge ``patch`` into the task; unknown ids are ignored."""

    unknown = set(patch) - _PATCHABLE_FIELDS
    if unknown:
        raise TypeError(f"Cannot update task fields: {sorted(unknown)}")
    task = find_task(state, child_id, task_id)
    if task is None:
        return None
    for key, value in patch.items():
        if value is None:
            continue
        if key == "active_days":
            value = frozenset(int(day) for day in value)  # type: ignore[union-attr]
        elif key == "points":
            value = int(value)  # type: ignore[arg-type]
        elif key == "name":
            value = str(value).strip()
        setattr(task, key, value)
    return task


def delete_task(state: AppState, child_id: str, task_id: str) -> bool:
    """Remove the task and every completion that references its id."""

    child = state.child(child_id)
    remaining = [task for task in child.tasks if task.id != task_id]
    removed = len(remaining) != len(child.tasks)
    child.tasks[:] = remaining
    stale = [key for key in state.completions if key.task_id == task_id]
    for key in stale:
        del state.completions[key]
    return removed


def copy_to_children(
    state: AppState,
    child_ids: Sequence[str],
    **fields: object,
) -> Tuple[Task, ...]:
    """Add the same task to several children; each copy gets its own id."""

    return tuple(add_task(state, child_id, **fields) for child_id in child_ids)  # type: ignore[arg-type]


__all__ = [
    "active_tasks",
    "add_task",
    "copy_to_children",
    "delete_task",
    "find_task",
    "is_active_on",
    "list_tasks",
    "tasks_named",
    "update_task",
    "validate_task_fields",
]
