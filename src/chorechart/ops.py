"""Operational utilities for chorechart."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path

_stdlib_logger = logging.getLogger("chorechart")


class StructuredLogger:
    """Write JSON lines log entries and mirror them to the ``chorechart`` logger."""

    def __init__(self, *, path: Path | str | None = None, limit: int = 500) -> None:
        self.path = Path(path) if path else None
        self._limit = limit
        self._entries: list[dict] = []

    def log(self, event_type: str, **fields: object) -> dict:
        entry = {"timestamp": datetime.now().isoformat(), "event": event_type, **fields}
        self._entries.append(entry)
        if len(self._entries) > self._limit:
            del self._entries[: len(self._entries) - self._limit]
        level = logging.WARNING if event_type.endswith("_failed") else logging.INFO
        _stdlib_logger.log(level, "%s %s", event_type, json.dumps(fields, default=str, sort_keys=True))
        if self.path:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with self.path.open("a", encoding="utf-8") as handle:
                    handle.write(json.dumps(entry, default=str) + "\n")
            except OSError:
                _stdlib_logger.exception("could not append to %s", self.path)
        return entry

    def events(self, event_type: str) -> tuple[dict, ...]:
        return tuple(entry for entry in self._entries if entry["event"] == event_type)

    def tail(self, limit: int = 50) -> tuple[dict, ...]:
        return tuple(self._entries[-limit:])


__all__ = ["StructuredLogger"]
