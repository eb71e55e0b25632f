"""Key-value storage capability used by the registry and the budget book.

Backends only move opaque strings around. :class:`Storage` layers JSON on top
and turns every backend failure into "no data", so callers see ``None``
instead of an exception.
"""

from __future__ import annotations

import json
import threading
from enum import Enum
from typing import Any, Dict, Optional, Protocol, Tuple

from .exceptions import StorageUnavailableError
from .ops import StructuredLogger


class StorageScope(str, Enum):
    SHARED = "shared"
    PRIVATE = "private"


class WriteResult(str, Enum):
    OK = "ok"
    CONFLICT = "conflict"
    UNAVAILABLE = "unavailable"


class KeyValueBackend(Protocol):
    """Raw key-value capability; implementations raise :class:`StorageUnavailableError`."""

    def get_versioned(self, key: str, scope: StorageScope) -> Tuple[Optional[str], int]:
        ...

    def set(self, key: str, value: str, scope: StorageScope) -> None:
        ...

    def compare_and_set(self, key: str, value: str, expected_version: int, scope: StorageScope) -> bool:
        ...


class MemoryStore:
    """In-process backend for tests and single-process use."""

    def __init__(self) -> None:
        self._data: Dict[Tuple[str, str], Tuple[str, int]] = {}
        self._lock = threading.Lock()

    def get_versioned(self, key: str, scope: StorageScope) -> Tuple[Optional[str], int]:
        with self._lock:
            value, version = self._data.get((scope.value, key), (None, 0))
        return value, version

    def set(self, key: str, value: str, scope: StorageScope) -> None:
        with self._lock:
            _, version = self._data.get((scope.value, key), (None, 0))
            self._data[(scope.value, key)] = (value, version + 1)

    def compare_and_set(self, key: str, value: str, expected_version: int, scope: StorageScope) -> bool:
        with self._lock:
            _, version = self._data.get((scope.value, key), (None, 0))
            if version != expected_version:
                return False
            self._data[(scope.value, key)] = (value, version + 1)
            return True

    def keys(self, scope: StorageScope) -> tuple[str, ...]:
        with self._lock:
            return tuple(sorted(key for stored_scope, key in self._data if stored_scope == scope.value))


class Storage:
    """JSON facade over a :class:`KeyValueBackend` that absorbs failures."""

    def __init__(self, backend: KeyValueBackend, *, logger: StructuredLogger | None = None) -> None:
        self.backend = backend
        self.logger = logger or StructuredLogger()

    def get(self, key: str, scope: StorageScope = StorageScope.PRIVATE) -> Any:
        value, _ = self.get_versioned(key, scope)
        return value

    def get_versioned(self, key: str, scope: StorageScope = StorageScope.PRIVATE) -> Tuple[Any, int]:
        """Return ``(decoded value or None, version)``; version is ``-1`` when the read failed."""

        try:
            raw, version = self.backend.get_versioned(key, scope)
        except StorageUnavailableError as exc:
            self._unavailable("get", key, scope, exc)
            return None, -1
        if raw is None:
            return None, version
        try:
            return json.loads(raw), version
        except ValueError:
            self.logger.warning("storage_decode_failed", key=key, scope=scope.value)
            return None, version

    def set(self, key: str, value: Any, scope: StorageScope = StorageScope.PRIVATE) -> bool:
        try:
            self.backend.set(key, json.dumps(value), scope)
        except StorageUnavailableError as exc:
            self._unavailable("set", key, scope, exc)
            return False
        return True

    def compare_and_set(
        self,
        key: str,
        value: Any,
        expected_version: int,
        scope: StorageScope = StorageScope.PRIVATE,
    ) -> WriteResult:
        if expected_version < 0:
            return WriteResult.UNAVAILABLE
        try:
            written = self.backend.compare_and_set(key, json.dumps(value), expected_version, scope)
        except StorageUnavailableError as exc:
            self._unavailable("compare_and_set", key, scope, exc)
            return WriteResult.UNAVAILABLE
        return WriteResult.OK if written else WriteResult.CONFLICT

    def _unavailable(self, operation: str, key: str, scope: StorageScope, exc: Exception) -> None:
        self.logger.warning(
            "storage_unavailable",
            operation=operation,
            key=key,
            scope=scope.value,
            error=str(exc),
        )


__all__ = [
    "KeyValueBackend",
    "MemoryStore",
    "Storage",
    "StorageScope",
    "WriteResult",
]
