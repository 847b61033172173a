import itertools
import json

import httpx
import pytest

from chorechart import tasks
from chorechart.api import ChangeEvent
from chorechart.exceptions import SyncError
from chorechart.models import CompletionKey
from chorechart.serialization import default_state, to_document
from chorechart.service import ChoreChart
from chorechart.sync import RemoteStore, SyncCoordinator, document_timestamp, last_write_wins

from conftest import MONDAY, TUESDAY

BASE_URL = "https://chart.example.test"


class FakeRemote:
    """Dict-backed stand-in for the remote JSON store."""

    def __init__(self, document=None) -> None:
        self.document = document
        self.requests: list[httpx.Request] = []
        self.status = 200
        self.offline = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.offline:
            raise httpx.ConnectError("connection refused", request=request)
        if self.status != 200:
            return httpx.Response(self.status)
        if request.method == "PUT":
            self.document = json.loads(request.read())
        return httpx.Response(200, content=json.dumps(self.document).encode("utf-8"))

    @property
    def puts(self) -> list[httpx.Request]:
        return [request for request in self.requests if request.method == "PUT"]


@pytest.fixture()
def fake() -> FakeRemote:
    return FakeRemote()


@pytest.fixture()
def remote(fake) -> RemoteStore:
    client = httpx.Client(transport=httpx.MockTransport(fake))
    return RemoteStore(BASE_URL, path="kidsTasks", auth="secret", client=client)


def _ticks(start: int = 10_000):
    counter = itertools.count(start, 1_000)
    return lambda: next(counter)


def _remote_document(stamp, **task_fields):
    state = default_state(today=MONDAY)
    tasks.add_task(state, "olive", name=task_fields.get("name", "Homework"))
    document = to_document(state)
    if stamp is not None:
        document["lastUpdated"] = stamp
    return document


def test_remote_store_reads_and_writes_the_document(fake, remote) -> None:
    assert remote.fetch() is None

    remote.push({"settings": {}, "lastUpdated": 5})

    assert fake.document == {"settings": {}, "lastUpdated": 5}
    assert remote.fetch() == {"settings": {}, "lastUpdated": 5}
    request = fake.requests[0]
    assert str(request.url).startswith(f"{BASE_URL}/kidsTasks.json")
    assert request.url.params["auth"] == "secret"


def test_remote_store_failures_raise_sync_error(fake, remote) -> None:
    fake.status = 500
    with pytest.raises(SyncError):
        remote.fetch()
    with pytest.raises(SyncError):
        remote.push({})

    fake.status = 200
    fake.offline = True
    with pytest.raises(SyncError):
        remote.fetch()


def test_last_write_wins_compares_timestamps(state) -> None:
    document = _remote_document(2_000)

    assert last_write_wins(state, _remote_document(None), None) is None
    assert last_write_wins(state, document, 2_000) is None
    assert last_write_wins(state, document, 2_500) is None

    adopted = last_write_wins(state, document, 1_999)
    assert [task.name for task in adopted.children["olive"].tasks] == ["Homework"]
    assert document_timestamp({"_lastUpdated": "42"}) == 42


def test_connect_adopts_a_timestamped_remote(fake, remote, state, logger) -> None:
    fake.document = _remote_document(2_000)
    coordinator = SyncCoordinator(remote, logger=logger)

    adopted = coordinator.connect(state)

    assert adopted is not state
    assert coordinator.status == "connected"
    assert coordinator.last_seen == 2_000
    assert adopted.children["olive"].tasks[0].name == "Homework"
    assert fake.puts == []


def test_connect_pushes_local_when_remote_is_empty(fake, remote, state, logger) -> None:
    tasks.add_task(state, "miles", name="Walk dog")
    coordinator = SyncCoordinator(remote, logger=logger, clock=lambda: 5_000)

    assert coordinator.connect(state) is state

    assert len(fake.puts) == 1
    assert fake.document["lastUpdated"] == 5_000
    assert fake.document["kids"]["miles"]["tasks"][0]["name"] == "Walk dog"
    assert coordinator.last_seen == 5_000
    assert not coordinator.syncing


def test_connect_pushes_local_over_an_untimestamped_remote(fake, remote, state, logger) -> None:
    fake.document = _remote_document(None, name="Old task")
    coordinator = SyncCoordinator(remote, logger=logger, clock=lambda: 7_000)

    assert coordinator.connect(state) is state
    assert fake.document["lastUpdated"] == 7_000
    assert fake.document["kids"]["olive"]["tasks"] == []


def test_unreachable_remote_leaves_the_client_offline(fake, remote, state, logger) -> None:
    fake.offline = True
    coordinator = SyncCoordinator(remote, logger=logger)

    assert coordinator.connect(state) is state
    assert coordinator.status == "offline"
    assert logger.events("sync_connect_failed")

    requests_before = len(fake.requests)
    assert coordinator.push(state) is False
    assert len(fake.requests) == requests_before


def test_without_a_remote_everything_stays_local(state) -> None:
    coordinator = SyncCoordinator(None)

    assert coordinator.connect(state) is state
    assert coordinator.status == "offline"
    assert coordinator.push(state) is False
    assert coordinator.poll(state) is None


def test_receive_only_applies_strictly_newer_documents(fake, remote, state, logger) -> None:
    fake.document = _remote_document(2_000)
    coordinator = SyncCoordinator(remote, logger=logger)
    local = coordinator.connect(state)

    assert coordinator.receive(local, _remote_document(2_000)) is None
    assert coordinator.receive(local, _remote_document(1_500)) is None
    assert coordinator.receive(local, None) is None
    assert coordinator.receive(local, {}) is None

    newer = coordinator.receive(local, _remote_document(2_500, name="Piano"))
    assert newer.children["olive"].tasks[0].name == "Piano"
    assert coordinator.last_seen == 2_500


def test_receive_is_ignored_while_a_push_is_in_flight(fake, remote, state, logger) -> None:
    coordinator = SyncCoordinator(remote, logger=logger)
    coordinator.connect(state)
    coordinator.syncing = True

    assert coordinator.receive(state, _remote_document(10**15)) is None


def test_own_push_echo_is_suppressed(fake, remote, state, logger) -> None:
    coordinator = SyncCoordinator(remote, logger=logger, clock=_ticks())
    coordinator.connect(state)
    tasks.add_task(state, "zander", name="Feed cat")

    assert coordinator.push(state)
    echoed = dict(fake.document)

    assert coordinator.receive(state, echoed) is None
    assert coordinator.poll(state) is None


def test_malformed_remote_document_is_ignored(fake, remote, state, logger) -> None:
    fake.document = {"completions": [{"kidId": "olive"}], "lastUpdated": 3_000}
    coordinator = SyncCoordinator(remote, logger=logger)

    assert coordinator.connect(state) is state
    assert coordinator.status == "connected"
    assert coordinator.receive(state, {"completions": [{"kidId": "olive"}], "lastUpdated": 4_000}) is None
    assert logger.events("sync_receive_failed")


def test_chart_mutations_are_pushed_and_remote_changes_pulled(fake, remote, store, logger) -> None:
    coordinator = SyncCoordinator(remote, logger=logger, clock=_ticks())
    chart = ChoreChart(store=store, sync=coordinator, logger=logger)
    chart.load(today=MONDAY)
    events = []
    chart.register_listener(events.append)

    assert chart.connect() == "connected"
    task = chart.add_task("olive", name="Homework")
    chart.toggle_completion("olive", task.id, TUESDAY)

    assert len(fake.puts) == 3
    pushed = fake.document["completions"]
    assert [(entry["kidId"], entry["taskId"], entry["date"]) for entry in pushed] == [
        ("olive", task.id, "2026-10-20")
    ]
    assert chart.poll() is False

    other_device = dict(fake.document)
    other_device["completions"] = []
    other_device["lastUpdated"] = coordinator.last_seen + 1
    fake.document = other_device

    assert chart.poll() is True
    assert CompletionKey("olive", task.id, TUESDAY) not in chart.state.completions
    assert events[-1] == ChangeEvent("state_replaced", {"source": "poll"}, replaced=True)
    assert store.load().completions == {}


def test_apply_remote_notification(fake, remote, store, logger) -> None:
    fake.document = _remote_document(2_000)
    chart = ChoreChart(store=store, sync=SyncCoordinator(remote, logger=logger), logger=logger)
    chart.load(today=MONDAY)
    chart.connect()

    assert chart.state.children["olive"].tasks[0].name == "Homework"
    assert chart.apply_remote(_remote_document(1_000, name="Stale")) is False
    assert chart.apply_remote(_remote_document(3_000, name="Fresh")) is True
    assert chart.state.children["olive"].tasks[0].name == "Fresh"


def test_no_op_deletes_are_not_pushed(fake, remote, store, logger) -> None:
    chart = ChoreChart(store=store, sync=SyncCoordinator(remote, logger=logger, clock=_ticks()), logger=logger)
    chart.load(today=MONDAY)
    chart.connect()
    pushed = fake.document

    chart.delete_task("olive", "task_does_not_exist")
    chart.delete_adjustment("adj_does_not_exist")
    chart.delete_task_everywhere("Nothing by this name")

    assert len(fake.puts) == 1
    assert fake.document == pushed
