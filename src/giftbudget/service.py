"""High level service wiring the registry, budget book and calculator together."""

from __future__ import annotations

from datetime import date
from typing import Any, Callable, Mapping, Optional, Tuple

from .budgets import BudgetBook
from .calculator import BudgetCalculator
from .config import AppConfig
from .models import AdmittedSession, BudgetSummary, PasscodeEntry, StudentBudgetRecord, WeekRow
from .ops import StructuredLogger
from .registry import DateLike, PasscodeRegistry
from .security import AdminGate
from .storage import KeyValueBackend, MemoryStore, Storage


class GiftBudget:
    """Entry point used by the web app and by tests."""

    __slots__ = (
        "config",
        "logger",
        "storage",
        "registry",
        "book",
        "calculator",
        "gate",
    )

    def __init__(
        self,
        *,
        config: Optional[AppConfig] = None,
        backend: Optional[KeyValueBackend] = None,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self.config = config or AppConfig()
        self.logger = StructuredLogger(path=self.config.log_path)
        self.storage = Storage(backend if backend is not None else MemoryStore(), logger=self.logger)
        self.registry = PasscodeRegistry(
            self.storage,
            clock=clock,
            retries=self.config.registry_write_retries,
            logger=self.logger,
        )
        self.book = BudgetBook(self.storage, self.config, logger=self.logger)
        self.calculator = BudgetCalculator.from_config(self.config)
        self.gate = AdminGate(
            self.config.admin_password,
            max_attempts=self.config.admin_max_attempts,
            lockout_minutes=self.config.admin_lockout_minutes,
            logger=self.logger,
        )

    # ------------------------------------------------------------------
    # Administrator workflows
    # ------------------------------------------------------------------
    def verify_admin(self, password: str) -> None:
        self.gate.verify(password)

    def create_code(self, code: str, max_users: Any, start_date: DateLike | None, end_date: DateLike | None) -> PasscodeEntry:
        return self.registry.create_code(code, max_users, start_date, end_date)

    def delete_code(self, code: str) -> bool:
        return self.registry.delete_code(code)

    def list_codes(self) -> Tuple[PasscodeEntry, ...]:
        return self.registry.list_codes()

    # ------------------------------------------------------------------
    # Student workflows
    # ------------------------------------------------------------------
    def admit(self, name: str, code: str, today: DateLike | None = None) -> AdmittedSession:
        return self.registry.admit(name, code, today)

    def load_budget(self, session: AdmittedSession) -> StudentBudgetRecord:
        return self.book.load(session)

    def save_budget(self, session: AdmittedSession, record: StudentBudgetRecord) -> bool:
        return self.book.save(session, record)

    def submit_budget(self, session: AdmittedSession, form: Mapping[str, Any]) -> Tuple[StudentBudgetRecord, bool]:
        """Merge ``form`` into the stored record and save it."""

        record = self.book.apply_form(self.book.load(session), form)
        return record, self.book.save(session, record)

    def summary(self, record: StudentBudgetRecord) -> BudgetSummary:
        return self.calculator.summarize(record)

    def weekly(self, record: StudentBudgetRecord) -> Tuple[WeekRow, ...]:
        return self.calculator.weekly_projection(record)

    def status(self) -> dict:
        return {
            "passcodes": len(self.registry.list_codes()),
            "storage_failures": len(self.logger.tail(1000, event="storage_unavailable")),
            "admin_locked": self.gate.is_locked(),
        }


__all__ = ["GiftBudget"]
