"""Derived totals and weekly projections for a student's gift budget."""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, List, Tuple

from .config import AppConfig, GiftCatalog, GiftCategory
from .models import BreakdownLine, BudgetSummary, StudentBudgetRecord, WeekRow, WeekStatus
from .money import ZERO, AmountLike, parse_amount, parse_int

HUNDRED = Decimal("100")
# Far below any amount a student can type; absorbs the last digit of Decimal division.
PACE_TOLERANCE = Decimal("1e-20")


def occasion_annual_total(amount: AmountLike, recipients: AmountLike, times_per_year: AmountLike) -> Decimal:
    """Yearly cost of one occasion; unparsable inputs count as zero."""

    return parse_amount(amount) * parse_amount(recipients) * parse_amount(times_per_year)


class BudgetCalculator:
    """Pure calculations over a :class:`StudentBudgetRecord`.

    Nothing here mutates the record or touches storage; every figure is
    recomputed from the inputs on each call.
    """

    def __init__(
        self,
        catalog: GiftCatalog,
        *,
        terms_per_year: int = 3,
        default_weeks: int = 9,
        max_weeks: int = 20,
    ) -> None:
        self.catalog = catalog
        self.terms_per_year = terms_per_year
        self.default_weeks = default_weeks
        self.max_weeks = max_weeks

    @classmethod
    def from_config(cls, config: AppConfig) -> "BudgetCalculator":
        return cls(
            config.catalog,
            terms_per_year=config.terms_per_year,
            default_weeks=config.weeks_per_term,
            max_weeks=config.max_weeks_per_term,
        )

    # ------------------------------------------------------------------
    # Annual gift totals
    # ------------------------------------------------------------------
    def times_per_year(self, record: StudentBudgetRecord, category: GiftCategory, occasion: str) -> Decimal:
        fixed = category.fixed_frequency_for(occasion)
        if fixed is not None:
            return Decimal(fixed)
        return record.gift(category.id, occasion).times_per_year

    def annual_total(self, record: StudentBudgetRecord, category: GiftCategory, occasion: str) -> Decimal:
        entry = record.gift(category.id, occasion)
        return occasion_annual_total(
            entry.amount,
            entry.recipients,
            self.times_per_year(record, category, occasion),
        )

    def group_totals(self, record: StudentBudgetRecord) -> Dict[str, Decimal]:
        totals: Dict[str, Decimal] = {group: ZERO for group in self.catalog.groups}
        for category, occasion in self.catalog.occasions():
            totals[category.group] += self.annual_total(record, category, occasion)
        return totals

    def group_total(self, record: StudentBudgetRecord, group: str) -> Decimal:
        if group not in self.catalog.groups:
            raise KeyError(f"Unknown group '{group}'.")
        return self.group_totals(record)[group]

    def total_expenses(self, record: StudentBudgetRecord) -> Decimal:
        return sum(self.group_totals(record).values(), ZERO)

    def surplus(self, record: StudentBudgetRecord) -> Decimal:
        return record.budget - self.total_expenses(record)

    # ------------------------------------------------------------------
    # Term decomposition
    # ------------------------------------------------------------------
    def weeks_in_term(self, record: StudentBudgetRecord) -> int:
        weeks = parse_int(record.weeks_in_term, self.default_weeks) or self.default_weeks
        if weeks < 1:
            return self.default_weeks
        return min(weeks, self.max_weeks)

    def term_budget(self, record: StudentBudgetRecord) -> Decimal:
        return record.budget / self.terms_per_year

    def weekly_target(self, record: StudentBudgetRecord) -> Decimal:
        return self.term_budget(record) / self.weeks_in_term(record)

    def weekly_projection(self, record: StudentBudgetRecord) -> Tuple[WeekRow, ...]:
        """Rows for weeks ``0..weeks_in_term``; week 0 is the starting checkpoint."""

        term_budget = self.term_budget(record)
        weeks = self.weeks_in_term(record)
        spent = ZERO
        rows: List[WeekRow] = []
        for week in range(weeks + 1):
            actual = record.actual_for(week) if week else ZERO
            spent += actual
            running = term_budget - spent
            expected = term_budget * (weeks - week) / weeks
            status = None
            if week:
                status = WeekStatus.ON_TRACK if running - expected >= -PACE_TOLERANCE else WeekStatus.OVERSPENT
            rows.append(
                WeekRow(
                    week=week,
                    actual=actual,
                    running_remaining=running,
                    expected_remaining=expected,
                    status=status,
                )
            )
        return tuple(rows)

    # ------------------------------------------------------------------
    # Summary page
    # ------------------------------------------------------------------
    def summarize(self, record: StudentBudgetRecord) -> BudgetSummary:
        totals = self.group_totals(record)
        total = sum(totals.values(), ZERO)
        budget = record.budget
        surplus = budget - total
        if budget > ZERO:
            shares = {group: value / budget * HUNDRED for group, value in totals.items()}
            surplus_percent = abs(surplus) / budget * HUNDRED
        else:
            shares = {group: ZERO for group in totals}
            surplus_percent = None
        breakdown = tuple(
            BreakdownLine(
                category_id=category.id,
                category_label=category.label,
                occasion=occasion,
                annual_total=annual,
            )
            for category, occasion in self.catalog.occasions()
            if (annual := self.annual_total(record, category, occasion)) != ZERO
        )
        return BudgetSummary(
            budget=budget,
            group_totals=totals,
            total_expenses=total,
            surplus=surplus,
            group_shares=shares,
            surplus_percent=surplus_percent,
            breakdown=breakdown,
        )


__all__ = ["BudgetCalculator", "occasion_annual_total"]
