"""Domain models used by the GiftBudget package."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .money import ZERO, parse_amount, parse_int


def normalize_code(code: str | None) -> str:
    return (code or "").strip().upper()


def normalize_name(name: str | None) -> str:
    return (name or "").strip().lower()


@dataclass(slots=True)
class PasscodeEntry:
    """A class passcode with a seat quota and a validity window."""

    code: str
    max_users: int
    start_date: str
    end_date: str
    used_by: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.code = normalize_code(self.code)

    @property
    def used_count(self) -> int:
        return len(self.used_by)

    def has_member(self, normalized_name: str) -> bool:
        return normalized_name in self.used_by

    def is_full(self) -> bool:
        return len(self.used_by) >= self.max_users

    def covers(self, today: str) -> bool:
        """True when ``today`` (ISO date) lies inside the inclusive window."""

        return self.start_date <= today <= self.end_date

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "maxUsers": self.max_users,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "usedBy": list(self.used_by),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PasscodeEntry":
        used_by: List[str] = []
        for name in data.get("usedBy") or []:
            if isinstance(name, str) and name not in used_by:
                used_by.append(name)
        return cls(
            code=str(data.get("code") or ""),
            max_users=parse_int(data.get("maxUsers"), 0) or 0,
            start_date=str(data.get("startDate") or ""),
            end_date=str(data.get("endDate") or ""),
            used_by=used_by,
        )


@dataclass(frozen=True, slots=True)
class AdmittedSession:
    """The student session handed back by a successful admission."""

    name: str
    code: str

    @property
    def normalized_name(self) -> str:
        return normalize_name(self.name)


@dataclass(slots=True)
class GiftEntry:
    """Inputs for one gift-giving occasion."""

    amount: Decimal = ZERO
    recipients: Decimal = ZERO
    times_per_year: Decimal = ZERO

    def __post_init__(self) -> None:
        self.amount = parse_amount(self.amount)
        self.recipients = parse_amount(self.recipients)
        self.times_per_year = parse_amount(self.times_per_year)


GiftKey = Tuple[str, str]


@dataclass(slots=True)
class StudentBudgetRecord:
    """Everything a student enters: annual budget, gifts and weekly spending."""

    budget: Decimal = ZERO
    gifts: Dict[GiftKey, GiftEntry] = field(default_factory=dict)
    weekly_actual: List[Decimal] = field(default_factory=list)
    weeks_in_term: int = 9

    def __post_init__(self) -> None:
        self.budget = parse_amount(self.budget)
        self.weekly_actual = [parse_amount(value) for value in self.weekly_actual]

    def gift(self, category_id: str, occasion: str) -> GiftEntry:
        return self.gifts.get((category_id, occasion)) or GiftEntry()

    def actual_for(self, week: int) -> Decimal:
        if week <= 0 or week >= len(self.weekly_actual):
            return ZERO
        return self.weekly_actual[week]

    def set_actual(self, week: int, amount: object) -> None:
        if week <= 0:
            return
        while len(self.weekly_actual) <= week:
            self.weekly_actual.append(ZERO)
        self.weekly_actual[week] = parse_amount(amount)  # type: ignore[arg-type]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "budget": str(self.budget),
            "gifts": [
                {
                    "category": category_id,
                    "occasion": occasion,
                    "amount": str(entry.amount),
                    "recipients": str(entry.recipients),
                    "times": str(entry.times_per_year),
                }
                for (category_id, occasion), entry in self.gifts.items()
            ],
            "weeklyActual": [str(value) for value in self.weekly_actual],
            "weeksInTerm": self.weeks_in_term,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, default_weeks: int = 9) -> "StudentBudgetRecord":
        gifts: Dict[GiftKey, GiftEntry] = {}
        for item in data.get("gifts") or []:
            if not isinstance(item, Mapping):
                continue
            key = (str(item.get("category") or ""), str(item.get("occasion") or ""))
            gifts[key] = GiftEntry(
                amount=item.get("amount"),
                recipients=item.get("recipients"),
                times_per_year=item.get("times"),
            )
        weekly = data.get("weeklyActual") or []
        return cls(
            budget=data.get("budget"),
            gifts=gifts,
            weekly_actual=list(weekly) if isinstance(weekly, list) else [],
            weeks_in_term=parse_int(data.get("weeksInTerm"), default_weeks) or default_weeks,
        )


class WeekStatus(str, Enum):
    ON_TRACK = "on track"
    OVERSPENT = "overspent"


@dataclass(frozen=True, slots=True)
class WeekRow:
    """One row of the weekly term projection."""

    week: int
    actual: Decimal
    running_remaining: Decimal
    expected_remaining: Decimal
    status: Optional[WeekStatus]


@dataclass(frozen=True, slots=True)
class BreakdownLine:
    category_id: str
    category_label: str
    occasion: str
    annual_total: Decimal


@dataclass(frozen=True, slots=True)
class BudgetSummary:
    """Snapshot backing the summary page."""

    budget: Decimal
    group_totals: Mapping[str, Decimal]
    total_expenses: Decimal
    surplus: Decimal
    group_shares: Mapping[str, Decimal]
    surplus_percent: Optional[Decimal]
    breakdown: Tuple[BreakdownLine, ...]

    @property
    def is_over_budget(self) -> bool:
        return self.surplus < ZERO


__all__ = [
    "AdmittedSession",
    "BreakdownLine",
    "BudgetSummary",
    "GiftEntry",
    "GiftKey",
    "PasscodeEntry",
    "StudentBudgetRecord",
    "WeekRow",
    "WeekStatus",
    "normalize_code",
    "normalize_name",
]
