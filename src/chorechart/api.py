"""JSON-friendly snapshots and change listeners for UI collaborators."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Optional, Sequence

from .models import LeaderboardEntry


class SnapshotExporter:
    """Convert chorechart value objects to JSON friendly dictionaries."""

    def leaderboard(self, entries: Sequence[LeaderboardEntry]) -> list[Dict[str, object]]:
        return [self._serialise_entry(entry) for entry in entries]

    def _serialise_entry(self, entry: LeaderboardEntry) -> Dict[str, object]:
        return {
            "id": entry.child_id,
            "name": entry.name,
            "avatar": entry.avatar,
            "money": float(entry.money),
            "maxMoney": float(entry.max_money),
            "earnedPoints": entry.earned_points,
            "possiblePoints": entry.possible_points,
            "bonusPoints": entry.bonus_points,
            "percentage": entry.percentage,
            "streak": entry.streak,
            "badges": [
                {"id": badge.type.value, "name": badge.name, "icon": badge.icon, "count": badge.count}
                for badge in entry.badges
            ],
            "badgeCount": entry.badge_count,
            "lifetimePoints": entry.lifetime_points,
            "level": {"level": entry.level.level, "points": entry.level.points, "title": entry.level.title},
            "levelProgress": entry.level_progress,
        }


@dataclass(frozen=True)
class ChangeEvent:
    """A committed change to the household state."""

    name: str
    fields: Dict[str, object] = field(default_factory=dict)
    replaced: bool = False

    def as_dict(self) -> Dict[str, object]:
        return {"event": self.name, **self.fields}


Listener = Callable[[ChangeEvent], None]


class ChangeDispatcher:
    """Deliver :class:`ChangeEvent` objects to UI listeners, in registration order.

    A listener registered with ``events`` only hears those event names. Whole
    state replacements are delivered to every listener.
    """

    def __init__(self) -> None:
        self._listeners: list[tuple[Listener, Optional[frozenset[str]]]] = []

    def register(self, listener: Listener, *, events: Optional[Iterable[str]] = None) -> None:
        self._listeners.append((listener, frozenset(events) if events is not None else None))

    def unregister(self, listener: Listener) -> None:
        self._listeners = [entry for entry in self._listeners if entry[0] != listener]

    def dispatch(self, event: ChangeEvent) -> int:
        delivered = 0
        for listener, names in list(self._listeners):
            if names is None or event.replaced or event.name in names:
                listener(event)
                delivered += 1
        return delivered


__all__ = ["ChangeDispatcher", "ChangeEvent", "Listener", "SnapshotExporter"]
