"""
Period Reports

Summaries behind the reports, dashboard and calendar pages, plus the
exportable period report. All functions are pure and take the reference
date explicitly so that tests can pin "today".
"""

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from financeapp.models.finance import Category, Transaction, TransactionType
from financeapp.queries.aggregates import (
    ZERO,
    category_color,
    category_name,
    in_range,
    month_bounds,
    sum_amounts,
    year_bounds,
)


class ReportPeriod(str, Enum):
    CURRENT = "current"
    PREVIOUS = "previous"
    YEAR = "year"


@dataclass
class PeriodSummary:
    period: ReportPeriod
    start: date
    end: date
    income: Decimal
    expenses: Decimal
    transactions: list[Transaction] = field(default_factory=list)

    @property
    def net(self) -> Decimal:
        return self.income - self.expenses

    @property
    def expense_count(self) -> int:
        return sum(1 for t in self.transactions if t.is_expense)

    @property
    def average_expense(self) -> Decimal:
        """Mean expense amount in the period; 0 when there are none."""
        if not self.expense_count:
            return ZERO
        return self.expenses / self.expense_count


@dataclass
class CategoryTotal:
    category_id: str
    name: str
    color: str
    amount: Decimal


@dataclass
class MonthTotals:
    year: int
    month: int
    income: Decimal
    expenses: Decimal

    @property
    def net(self) -> Decimal:
        return self.income - self.expenses

    @property
    def label(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


@dataclass
class CalendarDay:
    day: date
    income: Decimal = ZERO
    expenses: Decimal = ZERO
    transactions: list[Transaction] = field(default_factory=list)

    @property
    def has_activity(self) -> bool:
        return bool(self.transactions)


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def period_range(
    period: ReportPeriod,
    ref: Optional[date] = None,
) -> tuple[date, date]:
    """
    Inclusive date range of a report period.

    current  -> the reference month
    previous -> the month before the reference month
    year     -> the reference calendar year
    """
    ref = ref or date.today()
    period = ReportPeriod(period)

    if period == ReportPeriod.YEAR:
        return year_bounds(ref)
    if period == ReportPeriod.PREVIOUS:
        year, month = _shift_month(ref.year, ref.month, -1)
        return month_bounds(date(year, month, 1))
    return month_bounds(ref)


def period_transactions(
    transactions: list[Transaction],
    period: ReportPeriod,
    ref: Optional[date] = None,
) -> list[Transaction]:
    start, end = period_range(period, ref)
    return [t for t in transactions if in_range(t, start, end)]


def period_summary(
    transactions: list[Transaction],
    period: ReportPeriod,
    ref: Optional[date] = None,
) -> PeriodSummary:
    start, end = period_range(period, ref)
    matching = [t for t in transactions if in_range(t, start, end)]
    return PeriodSummary(
        period=ReportPeriod(period),
        start=start,
        end=end,
        income=sum_amounts(matching, TransactionType.INCOME),
        expenses=sum_amounts(matching, TransactionType.EXPENSE),
        transactions=matching,
    )


def top_categories(
    transactions: list[Transaction],
    categories: list[Category],
    period: ReportPeriod = ReportPeriod.CURRENT,
    ref: Optional[date] = None,
    limit: int = 5,
) -> list[CategoryTotal]:
    """
    Expense totals grouped by category, largest first.

    Orphaned category ids are grouped under their id and rendered with the
    fallback name and colour.
    """
    totals: dict[str, Decimal] = {}
    for transaction in period_transactions(transactions, period, ref):
        if not transaction.is_expense:
            continue
        totals[transaction.category_id] = (
            totals.get(transaction.category_id, ZERO) + transaction.amount
        )

    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [
        CategoryTotal(
            category_id=category_id,
            name=category_name(categories, category_id),
            color=category_color(categories, category_id),
            amount=amount,
        )
        for category_id, amount in ranked[:limit]
    ]


def expenses_by_category(
    transactions: list[Transaction],
    categories: list[Category],
    ref: Optional[date] = None,
) -> list[CategoryTotal]:
    """Month expense per expense category, omitting empty categories."""
    start, end = month_bounds(ref)
    result = []
    for category in categories:
        if category.type != TransactionType.EXPENSE:
            continue
        amount = sum_amounts(
            transactions,
            TransactionType.EXPENSE,
            start,
            end,
            category_id=category.id,
        )
        if amount > 0:
            result.append(
                CategoryTotal(
                    category_id=category.id,
                    name=category.name,
                    color=category.color,
                    amount=amount,
                )
            )
    return result


def monthly_trend(
    transactions: list[Transaction],
    months: int = 6,
    ref: Optional[date] = None,
) -> list[MonthTotals]:
    """Income/expense totals for the last `months` months, oldest first."""
    ref = ref or date.today()
    trend = []
    for offset in range(months - 1, -1, -1):
        year, month = _shift_month(ref.year, ref.month, -offset)
        start, end = month_bounds(date(year, month, 1))
        trend.append(
            MonthTotals(
                year=year,
                month=month,
                income=sum_amounts(transactions, TransactionType.INCOME, start, end),
                expenses=sum_amounts(transactions, TransactionType.EXPENSE, start, end),
            )
        )
    return trend


def calendar_month(
    transactions: list[Transaction],
    ref: Optional[date] = None,
) -> list[CalendarDay]:
    """One entry per day of the reference month, with that day's totals."""
    ref = ref or date.today()
    days_in_month = calendar.monthrange(ref.year, ref.month)[1]
    days = {
        d: CalendarDay(day=date(ref.year, ref.month, d))
        for d in range(1, days_in_month + 1)
    }

    for transaction in transactions:
        if transaction.date.year != ref.year or transaction.date.month != ref.month:
            continue
        entry = days[transaction.date.day]
        entry.transactions.append(transaction)
        if transaction.is_income:
            entry.income += transaction.amount
        else:
            entry.expenses += transaction.amount

    return list(days.values())


def build_period_report(
    transactions: list[Transaction],
    categories: list[Category],
    period: ReportPeriod = ReportPeriod.CURRENT,
    ref: Optional[date] = None,
    generated_at: Optional[datetime] = None,
) -> dict:
    """
    Exportable report for one period.

    Shape: {period, summary: {income, expenses, net}, transactions,
    topCategories, generatedAt}. Amounts are serialized as numbers.
    """
    summary = period_summary(transactions, period, ref)
    generated_at = generated_at or datetime.now(timezone.utc)

    return {
        "period": summary.period.value,
        "summary": {
            "income": float(summary.income),
            "expenses": float(summary.expenses),
            "net": float(summary.net),
        },
        "transactions": [
            {**t.to_storage_dict(), "amount": float(t.amount)}
            for t in summary.transactions
        ],
        "topCategories": [
            {
                "categoryId": total.category_id,
                "name": total.name,
                "color": total.color,
                "amount": float(total.amount),
            }
            for total in top_categories(transactions, categories, period, ref)
        ],
        "generatedAt": generated_at.isoformat(),
    }
