"""Per-student budget records: storage keys, load/save and form binding."""

from __future__ import annotations

import re
from typing import Any, Mapping

from .config import BUDGET_KEY_PREFIX, AppConfig
from .models import AdmittedSession, GiftEntry, StudentBudgetRecord, normalize_code, normalize_name
from .money import ZERO, parse_amount, parse_int
from .ops import StructuredLogger
from .storage import Storage, StorageScope

_WHITESPACE = re.compile(r"\s+")


def record_key(code: str, name: str) -> str:
    """Private storage key for the student ``name`` in the session ``code``."""

    slug = _WHITESPACE.sub("_", normalize_name(name))
    return f"{BUDGET_KEY_PREFIX}:{normalize_code(code)}:{slug}"


def gift_field(category_index: int, occasion_index: int, part: str) -> str:
    return f"gift-{category_index}-{occasion_index}-{part}"


def week_field(week: int) -> str:
    return f"week-{week}"


class BudgetBook:
    """Load and save :class:`StudentBudgetRecord` objects for admitted students."""

    def __init__(self, storage: Storage, config: AppConfig, *, logger: StructuredLogger | None = None) -> None:
        self._storage = storage
        self._config = config
        self._logger = logger or storage.logger

    def new_record(self) -> StudentBudgetRecord:
        record = StudentBudgetRecord(
            weekly_actual=[ZERO] * (self._config.weeks_per_term + 1),
            weeks_in_term=self._config.weeks_per_term,
        )
        self._apply_fixed_frequencies(record)
        return record

    def load(self, session: AdmittedSession) -> StudentBudgetRecord:
        """Return the stored record, or a blank one when nothing (readable) is stored."""

        data = self._storage.get(record_key(session.code, session.name), StorageScope.PRIVATE)
        if not isinstance(data, Mapping):
            return self.new_record()
        return StudentBudgetRecord.from_dict(data, default_weeks=self._config.weeks_per_term)

    def save(self, session: AdmittedSession, record: StudentBudgetRecord) -> bool:
        key = record_key(session.code, session.name)
        saved = self._storage.set(key, record.to_dict(), StorageScope.PRIVATE)
        self._logger.log("budget_saved", key=key, stored=saved)
        return saved

    def apply_form(self, record: StudentBudgetRecord, form: Mapping[str, Any]) -> StudentBudgetRecord:
        """Copy submitted form values onto ``record``; fields absent from ``form`` are left alone."""

        if "budget" in form:
            record.budget = parse_amount(form.get("budget"))
        if "weeks_in_term" in form:
            weeks = parse_int(form.get("weeks_in_term"), self._config.weeks_per_term)
            if weeks is None or weeks < 1:
                weeks = self._config.weeks_per_term
            record.weeks_in_term = min(weeks, self._config.max_weeks_per_term)
        for category_index, category in enumerate(self._config.catalog.categories):
            for occasion_index, occasion in enumerate(category.occasions):
                names = {part: gift_field(category_index, occasion_index, part) for part in ("amount", "recipients", "times")}
                if not any(name in form for name in names.values()):
                    continue
                current = record.gift(category.id, occasion)
                record.gifts[(category.id, occasion)] = GiftEntry(
                    amount=form.get(names["amount"], current.amount),
                    recipients=form.get(names["recipients"], current.recipients),
                    times_per_year=form.get(names["times"], current.times_per_year),
                )
        for week in range(1, self._config.max_weeks_per_term + 1):
            name = week_field(week)
            if name in form:
                record.set_actual(week, form.get(name))
        self._apply_fixed_frequencies(record)
        return record

    def _apply_fixed_frequencies(self, record: StudentBudgetRecord) -> None:
        for category in self._config.catalog.categories:
            for occasion, times in category.fixed_frequency.items():
                current = record.gift(category.id, occasion)
                record.gifts[(category.id, occasion)] = GiftEntry(
                    amount=current.amount,
                    recipients=current.recipients,
                    times_per_year=times,
                )


__all__ = ["BudgetBook", "gift_field", "record_key", "week_field"]
