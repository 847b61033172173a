from datetime import date

import pytest

from chorechart.ops import StructuredLogger
from chorechart.persistence import StateStore, sqlite_engine
from chorechart.serialization import default_state
from chorechart.service import ChoreChart
from chorechart.sync import SyncCoordinator

MONDAY = date(2026, 10, 19)
TUESDAY = date(2026, 10, 20)
WEDNESDAY = date(2026, 10, 21)
THURSDAY = date(2026, 10, 22)
FRIDAY = date(2026, 10, 23)
SATURDAY = date(2026, 10, 24)
SUNDAY = date(2026, 10, 25)


@pytest.fixture()
def state():
    return default_state(today=MONDAY)


@pytest.fixture()
def logger() -> StructuredLogger:
    return StructuredLogger()


@pytest.fixture()
def store(tmp_path, logger) -> StateStore:
    return StateStore(sqlite_engine(str(tmp_path / "chart.db")), logger=logger)


@pytest.fixture()
def chart(store, logger) -> ChoreChart:
    chart = ChoreChart(store=store, sync=SyncCoordinator(None, logger=logger), logger=logger)
    chart.load(today=MONDAY)
    return chart
