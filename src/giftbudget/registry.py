"""Shared registry of class passcodes and student admissions."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Callable, List, Optional, Tuple

from .config import PASSCODES_KEY
from .exceptions import (
    AdmissionError,
    DuplicateCodeError,
    InvalidCodeError,
    InvalidFieldError,
    MissingFieldError,
    OutOfWindowError,
    RegistryBusyError,
    RegistryEmptyError,
    SessionFullError,
)
from .models import AdmittedSession, PasscodeEntry, normalize_code, normalize_name
from .money import parse_int
from .ops import StructuredLogger
from .storage import Storage, StorageScope, WriteResult

DateLike = date | str


def iso_date(value: DateLike | None) -> str:
    """Return ``value`` as a ``YYYY-MM-DD`` string, raising ``ValueError`` if it is not one."""

    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return value.isoformat()
    raw = (value or "").strip()
    return date.fromisoformat(raw).isoformat()


class PasscodeRegistry:
    """Create, delete and admit against the passcodes stored under one shared key.

    Every write is a versioned compare-and-set of the whole list. When another
    writer got there first the change is recomputed against the fresh list, so
    two admissions racing for the last seat cannot both succeed.
    """

    def __init__(
        self,
        storage: Storage,
        *,
        clock: Callable[[], date] = date.today,
        retries: int = 5,
        logger: StructuredLogger | None = None,
    ) -> None:
        self._storage = storage
        self._clock = clock
        self._retries = max(1, retries)
        self._logger = logger or storage.logger

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def list_codes(self) -> Tuple[PasscodeEntry, ...]:
        entries, _ = self._load()
        return tuple(entries or ())

    def get(self, code: str) -> Optional[PasscodeEntry]:
        normalized = normalize_code(code)
        for entry in self.list_codes():
            if entry.code == normalized:
                return entry
        return None

    def today(self) -> str:
        return iso_date(self._clock())

    def is_active(self, entry: PasscodeEntry, today: DateLike | None = None) -> bool:
        return entry.covers(self._resolve_today(today))

    @staticmethod
    def seats_remaining(entry: PasscodeEntry) -> int:
        return max(entry.max_users - entry.used_count, 0)

    # ------------------------------------------------------------------
    # Administrator actions
    # ------------------------------------------------------------------
    def create_code(
        self,
        code: str,
        max_users: Any,
        start_date: DateLike | None,
        end_date: DateLike | None,
    ) -> PasscodeEntry:
        normalized = normalize_code(code)
        if not normalized or not start_date or not end_date or max_users is None or str(max_users).strip() == "":
            raise MissingFieldError()
        seats = parse_int(max_users)
        if seats is None or seats < 0:
            raise InvalidFieldError("Max users must be a whole number of zero or more.")
        try:
            start = iso_date(start_date)
            end = iso_date(end_date)
        except ValueError as exc:
            raise InvalidFieldError("Dates must use the YYYY-MM-DD format.") from exc

        entry = PasscodeEntry(code=normalized, max_users=seats, start_date=start, end_date=end)

        def add(entries: List[PasscodeEntry]) -> List[PasscodeEntry]:
            if any(existing.code == normalized for existing in entries):
                raise DuplicateCodeError()
            return [*entries, entry]

        stored = self._mutate(add)
        self._logger.log(
            "code_created",
            code=normalized,
            max_users=seats,
            start_date=start,
            end_date=end,
            stored=stored,
        )
        return entry

    def delete_code(self, code: str) -> bool:
        """Remove ``code``; returns ``False`` when it did not exist."""

        normalized = normalize_code(code)
        removed = False

        def drop(entries: List[PasscodeEntry]) -> Optional[List[PasscodeEntry]]:
            nonlocal removed
            remaining = [entry for entry in entries if entry.code != normalized]
            removed = len(remaining) != len(entries)
            return remaining if removed else None

        stored = self._mutate(drop)
        if removed:
            self._logger.log("code_deleted", code=normalized, stored=stored)
        return removed

    # ------------------------------------------------------------------
    # Student admission
    # ------------------------------------------------------------------
    def admit(self, name: str, code: str, today: DateLike | None = None) -> AdmittedSession:
        """Admit ``name`` to the class session guarded by ``code``.

        A name already recorded against the code is always let back in, even
        when the session has since filled up.
        """

        display_name = (name or "").strip()
        normalized_name = normalize_name(name)
        normalized_code = normalize_code(code)
        if not normalized_name:
            raise MissingFieldError("Please enter your name.")
        if not normalized_code:
            raise MissingFieldError("Please enter a passcode.")
        moment = self._resolve_today(today)

        def record(entries: Optional[List[PasscodeEntry]]) -> Optional[List[PasscodeEntry]]:
            if not entries:
                raise RegistryEmptyError()
            entry = next((item for item in entries if item.code == normalized_code), None)
            if entry is None:
                raise InvalidCodeError()
            if not entry.covers(moment):
                raise OutOfWindowError(entry.start_date, entry.end_date)
            if entry.has_member(normalized_name):
                return None
            if entry.is_full():
                raise SessionFullError()
            return [
                PasscodeEntry(
                    code=item.code,
                    max_users=item.max_users,
                    start_date=item.start_date,
                    end_date=item.end_date,
                    used_by=[*item.used_by, normalized_name] if item is entry else list(item.used_by),
                )
                for item in entries
            ]

        try:
            stored = self._mutate(record, allow_missing=True)
        except AdmissionError as exc:
            self._logger.log(
                "admission_rejected",
                code=normalized_code,
                name=normalized_name,
                reason=type(exc).__name__,
            )
            raise
        self._logger.log("student_admitted", code=normalized_code, name=normalized_name, stored=stored)
        return AdmittedSession(name=display_name, code=normalized_code)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _resolve_today(self, today: DateLike | None) -> str:
        if today is None:
            return self.today()
        if isinstance(today, date):
            return iso_date(today)
        return today.strip()

    def _load(self) -> Tuple[Optional[List[PasscodeEntry]], int]:
        data, version = self._storage.get_versioned(PASSCODES_KEY, StorageScope.SHARED)
        if not isinstance(data, list):
            return None, version
        entries = [PasscodeEntry.from_dict(item) for item in data if isinstance(item, dict)]
        return entries, version

    def _mutate(self, change: Callable[..., Optional[List[PasscodeEntry]]], *, allow_missing: bool = False) -> bool:
        """Apply ``change`` until it lands; returns ``False`` when the store was unavailable."""

        for attempt in range(self._retries):
            entries, version = self._load()
            if entries is None and not allow_missing:
                entries = []
            updated = change(entries)
            if updated is None:
                return True
            payload = [entry.to_dict() for entry in updated]
            outcome = self._storage.compare_and_set(PASSCODES_KEY, payload, version, StorageScope.SHARED)
            if outcome is WriteResult.CONFLICT:
                self._logger.warning("registry_conflict", attempt=attempt + 1)
                continue
            # An unavailable store is absorbed like any other storage failure.
            return outcome is WriteResult.OK
        raise RegistryBusyError()


__all__ = ["PasscodeRegistry", "iso_date"]
