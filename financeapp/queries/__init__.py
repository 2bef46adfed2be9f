"""Derived aggregates and period reports."""

from financeapp.queries.aggregates import (
    budget_spent,
    category_color,
    category_expenses,
    category_name,
    current_balance,
    month_bounds,
    monthly_expenses,
    monthly_income,
    search_transactions,
    year_bounds,
)
from financeapp.queries.reports import (
    CalendarDay,
    CategoryTotal,
    MonthTotals,
    PeriodSummary,
    ReportPeriod,
    build_period_report,
    calendar_month,
    expenses_by_category,
    monthly_trend,
    period_range,
    period_summary,
    top_categories,
)

__all__ = [
    # Aggregates
    "budget_spent",
    "category_color",
    "category_expenses",
    "category_name",
    "current_balance",
    "month_bounds",
    "monthly_expenses",
    "monthly_income",
    "search_transactions",
    "year_bounds",
    # Reports
    "CalendarDay",
    "CategoryTotal",
    "MonthTotals",
    "PeriodSummary",
    "ReportPeriod",
    "build_period_report",
    "calendar_month",
    "expenses_by_category",
    "monthly_trend",
    "period_range",
    "period_summary",
    "top_categories",
]
