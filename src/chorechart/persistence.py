"""Local durable storage for the household document."""
from __future__ import annotations

import json
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Field, Session, SQLModel, create_engine

from .config import SQLITE_FILE_NAME, STORAGE_KEY
from .exceptions import PersistenceError
from .models import AppState
from .ops import StructuredLogger
from .serialization import default_state, load_document, to_document


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StoredDocument(SQLModel, table=True):
    key: str = Field(primary_key=True)
    payload: str
    updated_at: datetime = Field(default_factory=_utcnow)


def _decode(payload: str) -> dict:
    document = json.loads(payload)
    if not isinstance(document, dict):
        raise ValueError("stored payload is not a JSON object")
    return document


def sqlite_engine(file_name: str = SQLITE_FILE_NAME) -> Engine:
    return create_engine(
        f"sqlite:///{file_name}",
        echo=False,
        connect_args={"check_same_thread": False},
    )


class StateStore:
    """Keep the serialized :class:`AppState` as a single record under one key.

    Reads and writes never raise. A missing or malformed record is replaced
    by the default household; an unreadable store yields the default household
    in memory only. A failed write leaves the in-memory state as the source of
    truth.
    """

    def __init__(
        self,
        engine: Optional[Engine] = None,
        *,
        key: str = STORAGE_KEY,
        logger: Optional[StructuredLogger] = None,
    ) -> None:
        self.engine = engine or sqlite_engine()
        self.key = key
        self._logger = logger or StructuredLogger()
        self._tables_ready = False

    def load(self, *, today: Optional[date] = None) -> AppState:
        try:
            payload = self._read_payload()
        except PersistenceError as exc:
            self._logger.log("load_failed", key=self.key, error=str(exc))
            return default_state(today=today)
        if payload is not None:
            try:
                return load_document(_decode(payload), today=today)
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                self._logger.log("load_failed", key=self.key, error=f"malformed document: {exc}")
        state = default_state(today=today)
        self.save(state)
        self._logger.log("default_state_created", key=self.key)
        return state

    def save(self, state: AppState) -> bool:
        try:
            self.write(json.dumps(to_document(state)))
        except PersistenceError as exc:
            self._logger.log("save_failed", key=self.key, error=str(exc))
            return False
        return True

    def read(self) -> Optional[dict]:
        """Return the stored document, ``None`` when nothing has been saved yet."""

        payload = self._read_payload()
        if payload is None:
            return None
        try:
            return _decode(payload)
        except ValueError as exc:
            raise PersistenceError(f"Stored '{self.key}' is not a JSON document.") from exc

    def _read_payload(self) -> Optional[str]:
        try:
            self._ensure_tables()
            with Session(self.engine) as session:
                row = session.get(StoredDocument, self.key)
                return row.payload if row else None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not read '{self.key}': {exc}") from exc

    def write(self, payload: str) -> None:
        try:
            self._ensure_tables()
            with Session(self.engine) as session:
                row = session.get(StoredDocument, self.key)
                if row is None:
                    row = StoredDocument(key=self.key, payload=payload)
                else:
                    row.payload = payload
                    row.updated_at = _utcnow()
                session.add(row)
                session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not write '{self.key}': {exc}") from exc

    def _ensure_tables(self) -> None:
        if not self._tables_ready:
            SQLModel.metadata.create_all(self.engine)
            self._tables_ready = True


__all__ = ["StateStore", "StoredDocument", "sqlite_engine"]
