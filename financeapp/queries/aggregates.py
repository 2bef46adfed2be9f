"""
Derived Aggregates

Pure functions over a snapshot of the finance collections. Nothing here
caches: every call recomputes from the lists it is given.

Date filtering uses calendar-month boundaries (first to last day, both
inclusive) of a reference date that defaults to today.

NOTE: current_balance() sums account balances. It is deliberately not
derived from transactions - account balances are maintained by hand and
never reconciled with the ledger.
"""

import calendar
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from financeapp.models.finance import (
    FALLBACK_COLOR,
    UNCATEGORIZED_LABEL,
    Account,
    Budget,
    Category,
    Transaction,
    TransactionType,
)


ZERO = Decimal("0")


def month_bounds(ref: Optional[date] = None) -> tuple[date, date]:
    """First and last day of the reference date's month."""
    ref = ref or date.today()
    last_day = calendar.monthrange(ref.year, ref.month)[1]
    return ref.replace(day=1), ref.replace(day=last_day)


def year_bounds(ref: Optional[date] = None) -> tuple[date, date]:
    """First and last day of the reference date's year."""
    ref = ref or date.today()
    return date(ref.year, 1, 1), date(ref.year, 12, 31)


def in_range(transaction: Transaction, start: date, end: date) -> bool:
    return start <= transaction.date <= end


def sum_amounts(
    transactions: Iterable[Transaction],
    type_: Optional[TransactionType] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    category_id: Optional[str] = None,
) -> Decimal:
    """Sum amounts, optionally filtered by type, date range and category."""
    total = ZERO
    for transaction in transactions:
        if type_ is not None and transaction.type != type_:
            continue
        if start is not None and transaction.date < start:
            continue
        if end is not None and transaction.date > end:
            continue
        if category_id is not None and transaction.category_id != category_id:
            continue
        total += transaction.amount
    return total


def monthly_income(
    transactions: Iterable[Transaction],
    ref: Optional[date] = None,
) -> Decimal:
    """Total income within the reference month."""
    start, end = month_bounds(ref)
    return sum_amounts(transactions, TransactionType.INCOME, start, end)


def monthly_expenses(
    transactions: Iterable[Transaction],
    ref: Optional[date] = None,
) -> Decimal:
    """Total expenses within the reference month."""
    start, end = month_bounds(ref)
    return sum_amounts(transactions, TransactionType.EXPENSE, start, end)


def category_expenses(
    transactions: Iterable[Transaction],
    category_id: str,
    ref: Optional[date] = None,
) -> Decimal:
    """Expenses of one category within the reference month."""
    start, end = month_bounds(ref)
    return sum_amounts(
        transactions,
        TransactionType.EXPENSE,
        start,
        end,
        category_id=category_id,
    )


def budget_spent(
    budget: Budget,
    transactions: Iterable[Transaction],
    ref: Optional[date] = None,
) -> Decimal:
    """
    Amount spent against a budget, recomputed from transactions.

    Always the category's expenses in the reference month, whatever the
    budget period. The period is a label on the cap only.
    """
    start, end = month_bounds(ref)
    return sum_amounts(
        transactions,
        TransactionType.EXPENSE,
        start,
        end,
        category_id=budget.category_id,
    )


def current_balance(accounts: Iterable[Account]) -> Decimal:
    """Sum of all account balances (independent of the ledger)."""
    return sum((account.balance for account in accounts), ZERO)


def find_category(
    categories: Iterable[Category],
    category_id: Optional[str],
) -> Optional[Category]:
    for category in categories:
        if category.id == category_id:
            return category
    return None


def category_name(
    categories: Iterable[Category],
    category_id: Optional[str],
) -> str:
    """Resolve a category name; dangling references get a fallback label."""
    category = find_category(categories, category_id)
    return category.name if category else UNCATEGORIZED_LABEL


def category_color(
    categories: Iterable[Category],
    category_id: Optional[str],
) -> str:
    category = find_category(categories, category_id)
    return category.color if category else FALLBACK_COLOR


def search_transactions(
    transactions: list[Transaction],
    categories: list[Category],
    query: str,
) -> list[Transaction]:
    """
    Free-text search.

    A blank query returns the full, unfiltered list. Otherwise a transaction
    matches when the query is a case-insensitive substring of its
    description or of its resolved category name. Orphaned category ids
    never match on name.
    """
    if not query.strip():
        return list(transactions)

    needle = query.lower()
    names = {category.id: category.name.lower() for category in categories}

    return [
        transaction
        for transaction in transactions
        if needle in transaction.description.lower()
        or needle in names.get(transaction.category_id, "")
    ]
