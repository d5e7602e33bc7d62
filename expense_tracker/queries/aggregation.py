"""
Aggregation Helpers

DESIGN DECISION: Aggregation is DETERMINISTIC and exact.
Every fold runs over integer paise and converts back to Decimal only at the
end, so the same log always produces the same totals regardless of order.

These helpers are shared by every ledger: friend balances, group totals,
budget spend, income/expense totals and per-category breakdowns
and the month-by-month income/expense trend.
"""

from datetime import date
from decimal import Decimal
from typing import Callable, Iterable, Optional, TypeVar

from expense_tracker.models.expense import CategoryTotal, MonthlyTotal, TransactionType
from expense_tracker.money import from_minor_units, to_minor_units

T = TypeVar("T")


def sum_amounts(
    records: Iterable[T],
    amount_of: Callable[[T], Decimal] = lambda record: record.amount,
) -> Decimal:
    """Exact total of the records' amounts."""
    return from_minor_units(sum(to_minor_units(amount_of(record)) for record in records))


def signed_total(
    records: Iterable[T],
    sign_of: Callable[[T], int],
    amount_of: Callable[[T], Decimal] = lambda record: record.amount,
) -> Decimal:
    """
    Fold records into a signed total.

    ``sign_of`` returns +1, -1 or 0 for each record.
    """
    minor = 0
    for record in records:
        minor += sign_of(record) * to_minor_units(amount_of(record))
    return from_minor_units(minor)


def group_totals(
    records: Iterable[T],
    key: Callable[[T], str],
    amount_of: Callable[[T], Decimal] = lambda record: record.amount,
) -> dict[str, CategoryTotal]:
    """
    Total and count per key, in first-seen key order.
    """
    minor: dict[str, int] = {}
    counts: dict[str, int] = {}

    for record in records:
        group = key(record)
        if group not in minor:
            minor[group] = 0
            counts[group] = 0
        minor[group] += to_minor_units(amount_of(record))
        counts[group] += 1

    return {
        group: CategoryTotal(total=from_minor_units(minor[group]), count=counts[group])
        for group in minor
    }


def filter_by_date(
    records: Iterable[T],
    start: Optional[date] = None,
    end: Optional[date] = None,
    date_of: Callable[[T], date] = lambda record: record.date,
) -> list[T]:
    """Records whose date falls in the inclusive [start, end] window."""
    result = []
    for record in records:
        when = date_of(record)
        if start and when < start:
            continue
        if end and when > end:
            continue
        result.append(record)
    return result


def monthly_totals(
    records: Iterable[T],
    is_income: Callable[[T], bool] = lambda record: record.type is TransactionType.INCOME,
    date_of: Callable[[T], date] = lambda record: record.date,
    amount_of: Callable[[T], Decimal] = lambda record: record.amount,
) -> list[MonthlyTotal]:
    """
    Income and expense per calendar month, oldest month first.

    Months without any record are omitted.
    """
    income: dict[str, int] = {}
    expense: dict[str, int] = {}

    for record in records:
        month = date_of(record).strftime("%Y-%m")
        income.setdefault(month, 0)
        expense.setdefault(month, 0)
        if is_income(record):
            income[month] += to_minor_units(amount_of(record))
        else:
            expense[month] += to_minor_units(amount_of(record))

    return [
        MonthlyTotal(
            month=month,
            income=from_minor_units(income[month]),
            expense=from_minor_units(expense[month]),
        )
        for month in sorted(income)
    ]
