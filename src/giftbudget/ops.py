"""Operational logging for GiftBudget."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Optional


class StructuredLogger:
    """Record JSON-lines events for the admin panel and an optional log file."""

    def __init__(self, *, path: Path | None = None, limit: int = 500) -> None:
        self.path = path
        self._limit = limit
        self._entries: list[dict] = []

    def log(self, event_type: str, *, level: str = "info", **fields: object) -> dict:
        entry = {
            "timestamp": datetime.utcnow().isoformat(),
            "level": level,
            "event": event_type,
            **fields,
        }
        self._entries.append(entry)
        if len(self._entries) > self._limit:
            del self._entries[: len(self._entries) - self._limit]
        if self.path:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(entry, default=str) + "\n")
        return entry

    def warning(self, event_type: str, **fields: object) -> dict:
        return self.log(event_type, level="warning", **fields)

    def tail(self, limit: int = 50, *, event: Optional[str] = None) -> tuple[dict, ...]:
        entries = self._entries
        if event is not None:
            entries = [entry for entry in entries if entry["event"] == event]
        return tuple(entries[-limit:])


__all__ = ["StructuredLogger"]
