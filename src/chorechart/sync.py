"""Remote store access and whole-document reconciliation."""
from __future__ import annotations

import time
from typing import Any, Callable, Mapping, Optional

import httpx

from .config import REMOTE_AUTH, REMOTE_PATH, REMOTE_TIMEOUT_SECONDS, REMOTE_URL
from .exceptions import SyncError
from .models import AppState
from .ops import StructuredLogger
from .serialization import Document, load_document, to_document

TIMESTAMP_FIELD = "lastUpdated"
_LEGACY_TIMESTAMP_FIELD = "_lastUpdated"

ReconcileStrategy = Callable[[AppState, Mapping[str, Any], Optional[int]], Optional[AppState]]


def now_ms() -> int:
    return int(time.time() * 1000)


def document_timestamp(document: Mapping[str, Any]) -> Optional[int]:
    value = document.get(TIMESTAMP_FIELD, document.get(_LEGACY_TIMESTAMP_FIELD))
    if value is None:
        return None
    return int(value)


def last_write_wins(local: AppState, remote: Mapping[str, Any], last_seen: Optional[int]) -> Optional[AppState]:
    """Return the state to adopt from ``remote``, or ``None`` to keep ``local``.

    The whole remote document replaces local state when it carries a timestamp
    and, once a timestamp has been seen, only when it is strictly newer. No
    field-level merge happens; concurrent offline edits on another device lose.
    """

    stamp = document_timestamp(remote)
    if stamp is None:
        return None
    if last_seen is not None and stamp <= last_seen:
        return None
    return load_document({key: value for key, value in remote.items() if key not in (TIMESTAMP_FIELD, _LEGACY_TIMESTAMP_FIELD)})


class RemoteStore:
    """JSON-over-HTTP document store (``GET``/``PUT`` of ``<base>/<path>.json``)."""

    def __init__(
        self,
        base_url: str = REMOTE_URL,
        *,
        path: str = REMOTE_PATH,
        auth: Optional[str] = REMOTE_AUTH,
        timeout: float = REMOTE_TIMEOUT_SECONDS,
        client: Optional[httpx.Client] = None,
    ) -> None:
        if not base_url:
            raise ValueError("A remote base URL is required.")
        self.url = f"{base_url.rstrip('/')}/{path.strip('/')}.json"
        self._params = {"auth": auth} if auth else {}
        self._client = client or httpx.Client(timeout=timeout)

    def fetch(self) -> Optional[Document]:
        try:
            response = self._client.get(self.url, params=self._params)
            response.raise_for_status()
            document = response.json()
        except httpx.HTTPStatusError as exc:
            raise SyncError(f"Remote read failed with status {exc.response.status_code}.") from exc
        except httpx.RequestError as exc:
            raise SyncError(f"Remote read failed: {exc}") from exc
        except ValueError as exc:
            raise SyncError("Remote store returned invalid JSON.") from exc
        if document is None:
            return None
        if not isinstance(document, dict):
            raise SyncError("Remote store returned something other than a document.")
        return document

    def push(self, document: Mapping[str, Any]) -> None:
        try:
            response = self._client.put(self.url, params=self._params, json=dict(document))
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise SyncError(f"Remote write failed with status {exc.response.status_code}.") from exc
        except httpx.RequestError as exc:
            raise SyncError(f"Remote write failed: {exc}") from exc

    def close(self) -> None:
        self._client.close()


class SyncCoordinator:
    """Track the remote channel and decide when remote state replaces local state.

    ``initialized`` is set once the channel has been established; ``syncing``
    is held while a local write is in flight so its own echo is ignored.
    """

    def __init__(
        self,
        remote: Optional[RemoteStore],
        *,
        logger: Optional[StructuredLogger] = None,
        strategy: ReconcileStrategy = last_write_wins,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.remote = remote
        self.initialized = False
        self.syncing = False
        self.last_seen: Optional[int] = None
        self._strategy = strategy
        self._clock = clock
        self._logger = logger or StructuredLogger()

    @property
    def status(self) -> str:
        return "connected" if self.initialized else "offline"

    def connect(self, local: AppState) -> AppState:
        """Establish the channel and return the state this client should use."""

        if self.remote is None:
            return local
        try:
            document = self.remote.fetch()
        except SyncError as exc:
            self.initialized = False
            self._logger.log("sync_connect_failed", error=str(exc))
            return local
        self.initialized = True
        if document is not None:
            try:
                adopted = self._strategy(local, document, None)
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                self._logger.log("sync_connect_failed", error=f"malformed remote document: {exc}")
                return local
            if adopted is not None:
                self.last_seen = document_timestamp(document)
                self._logger.log("sync_remote_adopted", last_updated=self.last_seen)
                return adopted
        self.push(local)
        return local

    def push(self, state: AppState) -> bool:
        if not self.initialized or self.remote is None:
            return False
        stamp = self._clock()
        self.syncing = True
        self.last_seen = stamp
        try:
            self.remote.push({**to_document(state), TIMESTAMP_FIELD: stamp})
        except SyncError as exc:
            self._logger.log("sync_push_failed", error=str(exc))
            return False
        finally:
            self.syncing = False
        self._logger.log("sync_pushed", last_updated=stamp)
        return True

    def receive(self, local: AppState, document: Optional[Mapping[str, Any]]) -> Optional[AppState]:
        """Handle a change notification; returns the replacement state, if any."""

        if self.syncing or not document:
            return None
        try:
            adopted = self._strategy(local, document, self.last_seen)
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            self._logger.log("sync_receive_failed", error=f"malformed remote document: {exc}")
            return None
        if adopted is not None:
            self.last_seen = document_timestamp(document)
            self._logger.log("sync_remote_adopted", last_updated=self.last_seen)
        return adopted

    def poll(self, local: AppState) -> Optional[AppState]:
        if not self.initialized or self.remote is None:
            return None
        try:
            document = self.remote.fetch()
        except SyncError as exc:
            self._logger.log("sync_poll_failed", error=str(exc))
            return None
        return self.receive(local, document)


__all__ = [
    "RemoteStore",
    "ReconcileStrategy",
    "SyncCoordinator",
    "TIMESTAMP_FIELD",
    "document_timestamp",
    "last_write_wins",
    "now_ms",
]
