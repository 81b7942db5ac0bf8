"""
Aggregation of transaction records into chart-ready report buckets.

Every function here is pure: it reads the supplied collection, builds fresh
output objects and never touches a store. Inputs are buffered in full because
category percentages need the per-type grand total before they can be set.

Record-level problems never abort a report:
  - missing or malformed amounts count as 0
  - records with an unparseable date are skipped
  - records whose type is neither income nor expense are skipped
Invalid report periods raise ValidationError.
"""
from __future__ import annotations

import logging
from calendar import month_abbr, monthrange
from collections import defaultdict
from datetime import MAXYEAR, MINYEAR, date, datetime
from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from typing import Any, Iterable

from domain.errors import ValidationError
from domain.models import (
    CategoryBucket,
    DashboardSummary,
    DayBucket,
    MonthBucket,
    MonthlyReport,
    Transaction,
    TransactionType,
)

logger = logging.getLogger(__name__)

OTHER_CATEGORY = "Other"
ZERO = Decimal("0")


def _validate_year(year: Any) -> int:
    if isinstance(year, bool) or not isinstance(year, int):
        raise ValidationError(f"year must be an integer, got {year!r}")
    if year < MINYEAR or year > MAXYEAR:
        raise ValidationError(f"year must be between {MINYEAR} and {MAXYEAR}, got {year}")
    return year


def _validate_month(month: Any) -> int:
    if isinstance(month, bool) or not isinstance(month, int):
        raise ValidationError(f"month must be an integer from 1 to 12, got {month!r}")
    if month < 1 or month > 12:
        raise ValidationError(f"month must be an integer from 1 to 12, got {month}")
    return month


def _validate_txn_type(txn_type: Any) -> TransactionType:
    try:
        return TransactionType(txn_type)
    except ValueError:
        raise ValidationError(f"type must be 'income' or 'expense', got {txn_type!r}") from None


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last calendar day of the month, both inclusive."""
    _validate_year(year)
    _validate_month(month)
    return date(year, month, 1), date(year, month, monthrange(year, month)[1])


def _coerce_amount(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, bool) or value is None:
        return ZERO
    elif isinstance(value, (int, str)):
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            return ZERO
    elif isinstance(value, float):
        amount = Decimal(repr(value))
    else:
        return ZERO
    if not amount.is_finite():
        return ZERO
    return amount


def _coerce_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def _coerce_type(value: Any) -> TransactionType | None:
    if isinstance(value, TransactionType):
        return value
    try:
        return TransactionType(str(value).strip().lower())
    except ValueError:
        return None


def _category_label(txn: Transaction) -> str:
    category = getattr(txn, "category", None)
    name = getattr(category, "name", None) if category is not None else None
    if isinstance(name, str) and name.strip():
        return name
    return OTHER_CATEGORY


def _normalized(transactions: Iterable[Transaction]):
    """Yield (txn, posted_on, txn_type, amount) for records usable in a report."""
    for txn in transactions:
        posted_on = _coerce_date(getattr(txn, "posted_on", None))
        if posted_on is None:
            logger.warning("Skipping transaction with unparseable date id=%s", getattr(txn, "id", None))
            continue
        txn_type = _coerce_type(getattr(txn, "txn_type", None))
        if txn_type is None:
            logger.warning(
                "Skipping transaction with unknown type id=%s type=%r",
                getattr(txn, "id", None),
                getattr(txn, "txn_type", None),
            )
            continue
        yield txn, posted_on, txn_type, _coerce_amount(getattr(txn, "amount", None))


def _to_category_buckets(totals: dict[str, Decimal]) -> list[CategoryBucket]:
    grand_total = sum(totals.values(), ZERO)
    buckets = [
        CategoryBucket(
            category=label,
            amount=amount,
            percent=float(amount / grand_total) if grand_total else 0.0,
        )
        for label, amount in totals.items()
    ]
    buckets.sort(key=lambda b: (-b.amount, b.category))
    return buckets


def monthly_report(transactions: Iterable[Transaction], year: int, month: int) -> MonthlyReport:
    start, end = month_bounds(year, month)

    by_category: dict[TransactionType, dict[str, Decimal]] = {
        TransactionType.INCOME: defaultdict(lambda: ZERO),
        TransactionType.EXPENSE: defaultdict(lambda: ZERO),
    }
    by_day: dict[int, DayBucket] = {}

    for txn, posted_on, txn_type, amount in _normalized(transactions):
        if posted_on < start or posted_on > end:
            continue

        by_category[txn_type][_category_label(txn)] += amount

        bucket = by_day.get(posted_on.day)
        if bucket is None:
            bucket = by_day[posted_on.day] = DayBucket(day=str(posted_on.day))
        if txn_type is TransactionType.INCOME:
            bucket.income += amount
        else:
            bucket.expenses += amount

    return MonthlyReport(
        income=_to_category_buckets(by_category[TransactionType.INCOME]),
        expenses=_to_category_buckets(by_category[TransactionType.EXPENSE]),
        daily_transactions=[by_day[day] for day in sorted(by_day)],
    )


def category_breakdown(
    transactions: Iterable[Transaction],
    year: int,
    month: int,
    txn_type: TransactionType | str,
) -> list[CategoryBucket]:
    wanted = _validate_txn_type(txn_type)
    start, end = month_bounds(year, month)

    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for txn, posted_on, kind, amount in _normalized(transactions):
        if kind is not wanted or posted_on < start or posted_on > end:
            continue
        totals[_category_label(txn)] += amount
    return _to_category_buckets(totals)


def annual_overview(transactions: Iterable[Transaction], year: int) -> list[MonthBucket]:
    _validate_year(year)
    months = [MonthBucket(name=month_abbr[m]) for m in range(1, 13)]

    for _txn, posted_on, txn_type, amount in _normalized(transactions):
        if posted_on.year != year:
            continue
        entry = months[posted_on.month - 1]
        if txn_type is TransactionType.INCOME:
            entry.income += amount
        else:
            entry.expenses += amount
    return months


def summarize_month(transactions: Iterable[Transaction], year: int, month: int) -> DashboardSummary:
    start, end = month_bounds(year, month)
    income = ZERO
    expenses = ZERO
    for _txn, posted_on, txn_type, amount in _normalized(transactions):
        if posted_on < start or posted_on > end:
            continue
        if txn_type is TransactionType.INCOME:
            income += amount
        else:
            expenses += amount

    balance = income - expenses
    savings_rate = 0
    if income > 0:
        ratio = balance / income * 100
        # ties go toward +infinity, so -5.5 becomes -5
        savings_rate = int((ratio + Decimal("0.5")).to_integral_value(rounding=ROUND_FLOOR))
    return DashboardSummary(income=income, expenses=expenses, balance=balance, savings_rate=savings_rate)
