"""High level service that owns the household state and its persistence."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Iterable, Optional, Sequence, Tuple

from . import ledger, progression, scoring, tasks
from .api import ChangeDispatcher, ChangeEvent, Listener, SnapshotExporter
from .config import LOG_PATH, REMOTE_URL
from .dates import week_start
from .exceptions import ValidationError
from .models import (
    AdjustmentType,
    AppState,
    BadgeSummary,
    LeaderboardEntry,
    LevelThreshold,
    PointAdjustment,
    Points,
    Task,
)
from .money import AmountLike, to_decimal
from .ops import StructuredLogger
from .persistence import StateStore
from .serialization import Document
from .sync import RemoteStore, SyncCoordinator


class ChoreChart:
    """Sole owner of the :class:`AppState`.

    UI collaborators call the mutation methods below; each one saves locally,
    pushes to the remote store when connected and notifies listeners before
    returning. Query methods are pure reads recomputed on every call.
    """

    __slots__ = (
        "_state",
        "_store",
        "_sync",
        "_logger",
        "_listeners",
        "_exporter",
    )

    def __init__(
        self,
        *,
        store: Optional[StateStore] = None,
        sync: Optional[SyncCoordinator] = None,
        logger: Optional[StructuredLogger] = None,
        state: Optional[AppState] = None,
    ) -> None:
        self._logger = logger or StructuredLogger(path=LOG_PATH)
        self._store = store or StateStore(logger=self._logger)
        if sync is None:
            remote = RemoteStore() if REMOTE_URL else None
            sync = SyncCoordinator(remote, logger=self._logger)
        self._sync = sync
        self._state = state
        self._listeners = ChangeDispatcher()
        self._exporter = SnapshotExporter()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    @property
    def state(self) -> AppState:
        if self._state is None:
            return self.load()
        return self._state

    @property
    def sync(self) -> SyncCoordinator:
        return self._sync

    @property
    def logger(self) -> StructuredLogger:
        return self._logger

    def load(self, *, today: Optional[date] = None) -> AppState:
        self._state = self._store.load(today=today)
        self._logger.log("state_loaded", children=list(self._state.children))
        return self._state

    def save(self) -> bool:
        return self._store.save(self.state)

    def connect(self) -> str:
        """Open the remote channel; remote state may replace local state."""

        current = self.state
        adopted = self._sync.connect(current)
        if adopted is not current:
            self._replace(adopted, source="connect")
        return self._sync.status

    def poll(self) -> bool:
        adopted = self._sync.poll(self.state)
        if adopted is None:
            return False
        self._replace(adopted, source="poll")
        return True

    def apply_remote(self, document: Document) -> bool:
        """Feed a remote change notification; returns ``True`` when it was applied."""

        adopted = self._sync.receive(self.state, document)
        if adopted is None:
            return False
        self._replace(adopted, source="notification")
        return True

    def register_listener(self, listener: Listener, *, events: Optional[Iterable[str]] = None) -> None:
        self._listeners.register(listener, events=events)

    def unregister_listener(self, listener: Listener) -> None:
        self._listeners.unregister(listener)

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------
    def add_task(
        self,
        child_id: str,
        *,
        name: str,
        points: Optional[int] = None,
        icon: Optional[str] = None,
        color: Optional[str] = None,
        active_days: Optional[Iterable[int]] = None,
        at: Optional[datetime] = None,
    ) -> Task:
        return self.add_task_for(
            (child_id,), name=name, points=points, icon=icon, color=color, active_days=active_days, at=at
        )[0]

    def add_task_for(
        self,
        child_ids: Sequence[str],
        *,
        name: str,
        points: Optional[int] = None,
        icon: Optional[str] = None,
        color: Optional[str] = None,
        active_days: Optional[Iterable[int]] = None,
        at: Optional[datetime] = None,
    ) -> Tuple[Task, ...]:
        """Add the same task to several children, each copy with its own id."""

        if not child_ids:
            raise ValidationError("Please select at least one child.")
        days = tuple(active_days) if active_days is not None else None
        tasks.validate_task_fields(name=name, points=points, active_days=days)
        for child_id in child_ids:
            self._require_child(child_id)
        created = tasks.copy_to_children(
            self.state, child_ids, name=name, points=points, icon=icon, color=color, active_days=days, at=at
        )
        self._commit("task_added", children=list(child_ids), task=name, ids=[task.id for task in created])
        return created

    def update_task(self, child_id: str, task_id: str, **patch: object) -> None:
        self._require_child(child_id)
        if "name" in patch and patch["name"] is not None and not str(patch["name"]).strip():
            raise ValidationError("Task name is required.")
        days = patch.get("active_days")
        tasks.validate_task_fields(
            points=patch.get("points"),  # type: ignore[arg-type]
            active_days=tuple(days) if days is not None else None,  # type: ignore[arg-type]
            require_name=False,
        )
        updated = tasks.update_task(self.state, child_id, task_id, **patch)
        if updated is None:
            self._logger.log("task_update_skipped", child=child_id, task=task_id)
            return
        self._commit("task_updated", child=child_id, task=task_id, fields=sorted(patch))

    def delete_task(self, child_id: str, task_id: str) -> None:
        self._require_child(child_id)
        if not tasks.delete_task(self.state, child_id, task_id):
            self._logger.log("task_delete_skipped", child=child_id, task=task_id)
            return
        self._commit("task_deleted", child=child_id, task=task_id)

    def delete_task_everywhere(self, name: str) -> int:
        """Delete the first task called ``name`` from every child that has one."""

        matches = tasks.tasks_named(self.state, name)
        if not matches:
            self._logger.log("task_delete_skipped", task=name)
            return 0
        for child_id, task in matches:
            tasks.delete_task(self.state, child_id, task.id)
        self._commit("task_deleted_everywhere", task=name, count=len(matches))
        return len(matches)

    # ------------------------------------------------------------------
    # Completions
    # ------------------------------------------------------------------
    def toggle_completion(
        self,
        child_id: str,
        task_id: str,
        day: Optional[date] = None,
        *,
        at: Optional[datetime] = None,
    ) -> bool:
        """Flip a completion and bring that day's badges up to date."""

        self._require_child(child_id)
        target = day or date.today()
        completed = ledger.toggle_completion(self.state, child_id, task_id, target, at=at)
        awarded = progression.evaluate_badges(self.state, child_id, target, at=at)
        self._commit(
            "completion_toggled",
            child=child_id,
            task=task_id,
            date=target.isoformat(),
            completed=completed,
            badges=[badge.value for badge in awarded],
        )
        return completed

    def is_completed(self, child_id: str, task_id: str, day: date) -> bool:
        return ledger.is_completed(self.state, child_id, task_id, day)

    # ------------------------------------------------------------------
    # Adjustments
    # ------------------------------------------------------------------
    def add_adjustment(
        self,
        child_id: str,
        amount: int,
        reason: str,
        type: AdjustmentType | str = AdjustmentType.BONUS,
        *,
        at: Optional[datetime] = None,
    ) -> PointAdjustment:
        if not child_id or child_id not in self.state.children:
            raise ValidationError("Please select a child.")
        if not (reason or "").strip():
            raise ValidationError("Please enter a reason.")
        if int(amount) <= 0:
            raise ValidationError("Adjustment amount must be a positive whole number.")
        try:
            kind = AdjustmentType(type)
        except ValueError as exc:
            raise ValidationError(f"Unknown adjustment type '{type}'.") from exc
        adjustment = ledger.add_adjustment(self.state, child_id, amount, reason, kind, at=at)
        self._commit("adjustment_added", child=child_id, type=kind.value, amount=adjustment.amount)
        return adjustment

    def delete_adjustment(self, adjustment_id: str) -> None:
        if not ledger.delete_adjustment(self.state, adjustment_id):
            self._logger.log("adjustment_delete_skipped", adjustment=adjustment_id)
            return
        self._commit("adjustment_deleted", adjustment=adjustment_id)

    def adjustments(self, child_id: Optional[str] = None, *, limit: int = 20) -> Tuple[PointAdjustment, ...]:
        return ledger.list_adjustments(self.state, child_id, limit=limit)

    # ------------------------------------------------------------------
    # Settings & week management
    # ------------------------------------------------------------------
    def set_allowance(self, child_id: str, amount: AmountLike) -> Decimal:
        self._require_child(child_id)
        try:
            value = to_decimal(amount)
        except (TypeError, ValueError) as exc:
            raise ValidationError(str(exc)) from exc
        if value < Decimal("0"):
            raise ValidationError("Allowance cannot be negative.")
        self.state.settings.allowances[child_id] = value
        self._commit("allowance_set", child=child_id, amount=float(value))
        return value

    def start_new_week(self, *, today: Optional[date] = None) -> date:
        """Move the week start to this week's Monday; history is kept."""

        start = week_start(today or date.today())
        self.state.settings.week_start = start
        self._commit("week_started", week_start=start.isoformat())
        return start

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def day_points(self, child_id: str, day: date) -> Points:
        return scoring.day_points(self.state, child_id, day)

    def week_points(self, child_id: str, start: Optional[date] = None, *, today: Optional[date] = None) -> Points:
        return scoring.week_points(self.state, child_id, start, today=today)

    def weekly_money(self, child_id: str, *, today: Optional[date] = None) -> Decimal:
        return scoring.weekly_money(self.state, child_id, today=today)

    def lifetime_money(self, child_id: str, *, today: Optional[date] = None) -> Decimal:
        return scoring.lifetime_money(self.state, child_id, today=today)

    def lifetime_points(self, child_id: str) -> int:
        return scoring.lifetime_points(self.state, child_id)

    def level(self, child_id: str) -> LevelThreshold:
        return scoring.level(self.lifetime_points(child_id))

    def level_progress(self, child_id: str) -> int:
        return scoring.level_progress(self.lifetime_points(child_id))

    def leaderboard(self, *, today: Optional[date] = None) -> Tuple[LeaderboardEntry, ...]:
        return scoring.leaderboard(self.state, today=today)

    def leaderboard_snapshot(self, *, today: Optional[date] = None) -> list[Dict[str, object]]:
        return self._exporter.leaderboard(self.leaderboard(today=today))

    def current_streak(self, child_id: str, *, today: Optional[date] = None) -> int:
        return progression.current_streak(self.state, child_id, today=today)

    def kid_badges(self, child_id: str) -> Tuple[BadgeSummary, ...]:
        return progression.kid_badges(self.state, child_id)

    def is_perfect_day(self, child_id: str, day: date) -> bool:
        return progression.is_perfect_day(self.state, child_id, day)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _require_child(self, child_id: str) -> None:
        if child_id not in self.state.children:
            raise ValidationError(f"Unknown child '{child_id}'.")

    def _commit(self, event: str, **fields: object) -> None:
        self._store.save(self.state)
        self._sync.push(self.state)
        self._logger.log(event, **fields)
        self._listeners.dispatch(ChangeEvent(event, dict(fields)))

    def _replace(self, state: AppState, *, source: str) -> None:
        self._state = state
        self._store.save(state)
        self._logger.log("state_replaced", source=source, last_updated=self._sync.last_seen)
        self._listeners.dispatch(ChangeEvent("state_replaced", {"source": source}, replaced=True))


__all__ = ["ChoreChart"]
