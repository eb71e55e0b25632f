"""Configuration for GiftBudget: the gift catalog and runtime settings."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Iterator, Mapping, Optional, Tuple

from dotenv import load_dotenv


@dataclass(frozen=True, slots=True)
class GiftCategory:
    """A group of gift-giving occasions such as "Immediate Family"."""

    id: str
    label: str
    occasions: Tuple[str, ...]
    group: str
    hint: str = ""
    fixed_frequency: Mapping[str, int] = field(default_factory=dict)

    def fixed_frequency_for(self, occasion: str) -> Optional[int]:
        return self.fixed_frequency.get(occasion)


@dataclass(frozen=True, slots=True)
class GiftCatalog:
    """Ordered, immutable set of :class:`GiftCategory` definitions."""

    categories: Tuple[GiftCategory, ...]
    groups: Tuple[str, ...] = ("Family", "Friends", "Others")

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for category in self.categories:
            if category.id in seen:
                raise ValueError(f"Duplicate gift category id '{category.id}'.")
            seen.add(category.id)
            if category.group not in self.groups:
                raise ValueError(f"Category '{category.id}' uses unknown group '{category.group}'.")
            for occasion in category.fixed_frequency:
                if occasion not in category.occasions:
                    raise ValueError(f"Fixed frequency set for unknown occasion '{occasion}'.")

    def occasions(self) -> Iterator[Tuple[GiftCategory, str]]:
        """Yield every ``(category, occasion)`` pair in display order."""

        for category in self.categories:
            for occasion in category.occasions:
                yield category, occasion


DEFAULT_CATALOG = GiftCatalog(
    categories=(
        GiftCategory(
            id="immFamily",
            label="Immediate Family",
            hint="Parents and siblings",
            occasions=("Birthdays", "Religious holiday(s)", "Mother's Day", "Father's Day"),
            group="Family",
            fixed_frequency={"Mother's Day": 1, "Father's Day": 1},
        ),
        GiftCategory(
            id="extFamily",
            label="Extended Family",
            hint="Cousins, aunts, uncles, grandparents",
            occasions=("Birthdays", "Religious holiday(s)"),
            group="Family",
        ),
        GiftCategory(
            id="friends",
            label="Friends",
            occasions=("Birthdays", "Religious holiday(s)", "Other"),
            group="Friends",
        ),
        GiftCategory(
            id="others",
            label="Others",
            occasions=("Teachers (end of term/year)", "Other occasions"),
            group="Others",
        ),
    )
)

PASSCODES_KEY = "budget:passcodes"
BUDGET_KEY_PREFIX = "budget:data"


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Runtime settings injected into the service and the web app."""

    admin_password: str = "admin2024"
    session_secret: str = "change-this-session-secret"
    sqlite_file: str = "giftbudget.db"
    log_path: Optional[Path] = None
    weeks_per_term: int = 9
    max_weeks_per_term: int = 20
    terms_per_year: int = 3
    default_max_users: int = 30
    notice_seconds: int = 3
    currency_symbol: str = "£"
    admin_max_attempts: int = 5
    admin_lockout_minutes: int = 15
    registry_write_retries: int = 5
    catalog: GiftCatalog = DEFAULT_CATALOG

    def __post_init__(self) -> None:
        if self.weeks_per_term < 1:
            raise ValueError("weeks_per_term must be at least 1.")
        if self.max_weeks_per_term < self.weeks_per_term:
            raise ValueError("max_weeks_per_term cannot be below weeks_per_term.")
        if self.terms_per_year < 1:
            raise ValueError("terms_per_year must be at least 1.")

    def with_overrides(self, **changes: object) -> "AppConfig":
        return replace(self, **changes)


def load_config(**overrides: object) -> AppConfig:
    """Build an :class:`AppConfig` from the environment (and a ``.env`` file)."""

    load_dotenv()
    log_path = os.environ.get("GIFTBUDGET_LOG_PATH")
    config = AppConfig(
        admin_password=os.environ.get("GIFTBUDGET_ADMIN_PASSWORD", "admin2024"),
        session_secret=os.environ.get("GIFTBUDGET_SESSION_SECRET", "change-this-session-secret"),
        sqlite_file=os.environ.get("GIFTBUDGET_SQLITE", "giftbudget.db"),
        log_path=Path(log_path) if log_path else None,
    )
    if overrides:
        config = config.with_overrides(**overrides)
    return config


__all__ = [
    "AppConfig",
    "BUDGET_KEY_PREFIX",
    "DEFAULT_CATALOG",
    "GiftCatalog",
    "GiftCategory",
    "PASSCODES_KEY",
    "load_config",
]
