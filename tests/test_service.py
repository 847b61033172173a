from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from chorechart.dates import SCHOOL_DAYS
from chorechart.exceptions import ValidationError
from chorechart.models import AdjustmentType, BadgeKey, BadgeType
from chorechart.service import ChoreChart
from chorechart.sync import SyncCoordinator

from conftest import FRIDAY, MONDAY, SUNDAY, TUESDAY, WEDNESDAY


def _reopen(store, logger) -> ChoreChart:
    chart = ChoreChart(store=store, sync=SyncCoordinator(None, logger=logger), logger=logger)
    chart.load()
    return chart


def test_mutations_survive_a_reload(chart, store, logger) -> None:
    task = chart.add_task("olive", name="Homework", points=15, active_days=SCHOOL_DAYS)
    chart.toggle_completion("olive", task.id, TUESDAY)
    chart.add_adjustment("olive", 5, "Helped with dinner", at=datetime(2026, 10, 20, 18, 0))
    chart.set_allowance("olive", "60")

    reopened = _reopen(store, logger)

    assert reopened.is_completed("olive", task.id, TUESDAY)
    assert reopened.state.children["olive"].tasks[0].points == 15
    assert reopened.adjustments("olive")[0].reason == "Helped with dinner"
    assert reopened.state.settings.allowance("olive") == Decimal("60.00")
    assert reopened.lifetime_points("olive") == 20


def test_add_task_validation(chart) -> None:
    with pytest.raises(ValidationError):
        chart.add_task("olive", name="  ")
    with pytest.raises(ValidationError):
        chart.add_task("olive", name="Dishes", points=-1)
    with pytest.raises(ValidationError):
        chart.add_task("olive", name="Dishes", active_days=[])
    with pytest.raises(ValidationError):
        chart.add_task("nobody", name="Dishes")
    with pytest.raises(ValidationError):
        chart.add_task_for((), name="Dishes")

    assert all(not child.tasks for child in chart.state.children.values())


def test_add_task_for_gives_every_child_a_distinct_copy(chart) -> None:
    created = chart.add_task_for(("olive", "miles"), name="Tidy room", points=20)

    assert [task.name for task in created] == ["Tidy room", "Tidy room"]
    assert created[0].id != created[1].id
    assert chart.state.children["zander"].tasks == []


def test_update_task(chart, logger) -> None:
    task = chart.add_task("miles", name="Dishes", points=5)

    chart.update_task("miles", task.id, name="Wash dishes", points=8)
    assert task.name == "Wash dishes" and task.points == 8

    chart.update_task("miles", "task_missing", points=99)
    assert logger.events("task_update_skipped")

    with pytest.raises(ValidationError):
        chart.update_task("miles", task.id, points=0)
    with pytest.raises(ValidationError):
        chart.update_task("miles", task.id, active_days=[])
    assert task.points == 8


def test_delete_task_everywhere_removes_each_childs_copy(chart) -> None:
    copies = chart.add_task_for(("olive", "miles", "zander"), name="Feed cat")
    chart.add_task("olive", name="Read")
    chart.toggle_completion("miles", copies[1].id, MONDAY)

    assert chart.delete_task_everywhere("Feed cat") == 3

    assert [task.name for task in chart.state.children["olive"].tasks] == ["Read"]
    assert chart.state.children["miles"].tasks == []
    assert all(key.task_id != copies[1].id for key in chart.state.completions)
    assert chart.delete_task_everywhere("Feed cat") == 0


def test_toggle_keeps_perfect_day_badge_in_step_with_the_ledger(chart) -> None:
    first = chart.add_task("zander", name="Brush teeth")
    second = chart.add_task("zander", name="Make bed")
    key = BadgeKey("zander", BadgeType.PERFECT_DAY, WEDNESDAY)

    for task in (first, second, first, first, second, second):
        chart.toggle_completion("zander", task.id, WEDNESDAY)
        assert (key in chart.state.badges) == chart.is_perfect_day("zander", WEDNESDAY)


def test_adjustment_validation(chart) -> None:
    with pytest.raises(ValidationError):
        chart.add_adjustment("", 5, "No child")
    with pytest.raises(ValidationError):
        chart.add_adjustment("olive", 5, "   ")
    with pytest.raises(ValidationError):
        chart.add_adjustment("olive", 0, "Nothing")
    with pytest.raises(ValidationError):
        chart.add_adjustment("olive", 5, "Odd", type="gift")

    penalty = chart.add_adjustment("olive", 3, "Rude", type="penalty")
    assert penalty.type is AdjustmentType.PENALTY
    chart.delete_adjustment(penalty.id)
    assert chart.adjustments() == ()


def test_start_new_week_keeps_history(chart) -> None:
    task = chart.add_task("olive", name="Homework", active_days=SCHOOL_DAYS)
    chart.toggle_completion("olive", task.id, FRIDAY)
    next_wednesday = WEDNESDAY + timedelta(weeks=1)

    assert chart.start_new_week(today=next_wednesday) == MONDAY + timedelta(weeks=1)

    assert chart.is_completed("olive", task.id, FRIDAY)
    assert chart.week_points("olive", today=next_wednesday).earned == 0
    assert chart.week_points("olive", MONDAY, today=SUNDAY).earned == 10
    assert chart.lifetime_points("olive") == 10


def test_allowance_cannot_be_negative(chart) -> None:
    with pytest.raises(ValidationError):
        chart.set_allowance("miles", -1)
    assert chart.set_allowance("miles", 12.5) == Decimal("12.50")


def test_listeners_hear_every_committed_change(chart) -> None:
    events = []
    chart.register_listener(events.append)

    task = chart.add_task("olive", name="Read")
    chart.toggle_completion("olive", task.id, MONDAY)
    chart.unregister_listener(events.append)
    chart.delete_task("olive", task.id)

    assert [event.name for event in events] == ["task_added", "completion_toggled"]
    assert events[1].fields["completed"] is True
    assert events[1].as_dict()["badges"] == ["perfect_day"]


def test_queries_and_snapshot(chart) -> None:
    task = chart.add_task("miles", name="Walk dog", points=10)
    for offset in range(3):
        chart.toggle_completion("miles", task.id, MONDAY + timedelta(days=offset))

    assert chart.current_streak("miles", today=WEDNESDAY) == 3
    assert chart.level("miles").level == 2
    assert chart.level_progress("miles") == 33
    assert chart.lifetime_money("miles", today=WEDNESDAY) == chart.weekly_money("miles", today=WEDNESDAY)

    snapshot = chart.leaderboard_snapshot(today=WEDNESDAY)
    assert [row["id"] for row in snapshot] == ["olive", "zander", "miles"]
    miles = next(row for row in snapshot if row["id"] == "miles")
    assert miles["percentage"] == 43
    assert miles["earnedPoints"] == 30
    assert miles["possiblePoints"] == 70
    assert miles["streak"] == 3
    assert {badge["id"]: badge["count"] for badge in miles["badges"]} == {"perfect_day": 3, "streak_3": 1}
    assert miles["badgeCount"] == 4


def test_unknown_ids_change_nothing(chart, store, logger) -> None:
    task = chart.add_task("olive", name="Read")
    events = []
    chart.register_listener(events.append)
    saved = store.read()

    chart.delete_task("olive", "task_missing")
    chart.delete_adjustment("adj_missing")
    assert chart.delete_task_everywhere("Juggle") == 0

    assert events == []
    assert store.read() == saved
    assert chart.state.children["olive"].tasks == [task]
    assert len(logger.events("task_delete_skipped")) == 2
    assert logger.events("adjustment_delete_skipped")


def test_listeners_can_subscribe_to_selected_events(chart) -> None:
    adjustments, everything = [], []
    chart.register_listener(adjustments.append, events={"adjustment_added"})
    chart.register_listener(everything.append)

    chart.add_task("miles", name="Walk dog")
    chart.add_adjustment("miles", 2, "Shared snacks")

    assert [event.name for event in adjustments] == ["adjustment_added"]
    assert [event.name for event in everything] == ["task_added", "adjustment_added"]


def test_state_is_loaded_on_first_use(store, logger) -> None:
    chart = ChoreChart(store=store, sync=SyncCoordinator(None, logger=logger), logger=logger)

    assert list(chart.state.children) == ["olive", "miles", "zander"]
    assert chart.state is chart.state
    assert logger.events("state_loaded")


def test_allowance_must_be_a_number(chart) -> None:
    with pytest.raises(ValidationError):
        chart.set_allowance("miles", "lots")
    with pytest.raises(ValidationError):
        chart.set_allowance("miles", True)
    assert chart.state.settings.allowance("miles") == Decimal("30.00")
