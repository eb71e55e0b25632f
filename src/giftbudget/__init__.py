"""GiftBudget: classroom gift budgeting with passcode-gated student sessions."""

from .budgets import BudgetBook, record_key
from .calculator import BudgetCalculator, occasion_annual_total
from .config import DEFAULT_CATALOG, AppConfig, GiftCatalog, GiftCategory, load_config
from .exceptions import (
    AdminAuthError,
    AdminLockedError,
    AdmissionError,
    DuplicateCodeError,
    GiftBudgetError,
    InvalidCodeError,
    InvalidFieldError,
    MissingFieldError,
    OutOfWindowError,
    RegistryBusyError,
    RegistryEmptyError,
    SessionFullError,
    StorageUnavailableError,
    ValidationError,
)
from .models import (
    AdmittedSession,
    BreakdownLine,
    BudgetSummary,
    GiftEntry,
    PasscodeEntry,
    StudentBudgetRecord,
    WeekRow,
    WeekStatus,
)
from .ops import StructuredLogger
from .registry import PasscodeRegistry
from .security import AdminGate
from .service import GiftBudget
from .storage import MemoryStore, Storage, StorageScope, WriteResult

__all__ = [
    "AdminAuthError",
    "AdminGate",
    "AdminLockedError",
    "AdmissionError",
    "AdmittedSession",
    "AppConfig",
    "BreakdownLine",
    "BudgetBook",
    "BudgetCalculator",
    "BudgetSummary",
    "DEFAULT_CATALOG",
    "DuplicateCodeError",
    "GiftBudget",
    "GiftBudgetError",
    "GiftCatalog",
    "GiftCategory",
    "GiftEntry",
    "InvalidCodeError",
    "InvalidFieldError",
    "MemoryStore",
    "MissingFieldError",
    "OutOfWindowError",
    "PasscodeEntry",
    "PasscodeRegistry",
    "RegistryBusyError",
    "RegistryEmptyError",
    "SessionFullError",
    "Storage",
    "StorageScope",
    "StorageUnavailableError",
    "StructuredLogger",
    "StudentBudgetRecord",
    "ValidationError",
    "WeekRow",
    "WeekStatus",
    "WriteResult",
    "load_config",
    "occasion_annual_total",
    "record_key",
]
