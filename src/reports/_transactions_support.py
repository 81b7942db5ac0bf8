from __future__ import annotations

from dataclasses import asdict, is_dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from application.aggregation import month_bounds
from domain.models import Transaction
from domain.schemas import DateRange, TransactionQuery
from infrastructure.record_store.provider import RecordStore

PERIOD_SCHEMA: dict[str, Any] = {
    "year": {
        "type": "integer",
        "description": "Four-digit year. Defaults to the current year.",
    },
    "month": {
        "type": "integer",
        "minimum": 1,
        "maximum": 12,
        "description": "Calendar month number (1=Jan ... 12=Dec). Defaults to the current month.",
    },
}


def _as_int(value: Any) -> Any:
    """Best-effort int conversion for query-string args; unconvertible values pass through for validation."""
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return value
    return value


def period_args(args: dict[str, Any], *, with_month: bool = True) -> tuple[Any, Any]:
    today = date.today()
    year = _as_int(args.get("year")) if args.get("year") is not None else today.year
    if not with_month:
        return year, None
    raw_month = args.get("month", args.get("month_number"))
    month = _as_int(raw_month) if raw_month is not None else today.month
    return year, month


def fetch_month_rows(store: RecordStore, year: int, month: int, txn_type: str | None = None) -> tuple[list[Transaction], dict[str, Any]]:
    start, end = month_bounds(year, month)
    query = TransactionQuery(date_range=DateRange(start=start, end=end), txn_type=txn_type)
    return store.list_transactions(query), query.model_dump(mode="json", exclude_none=True)


def fetch_year_rows(store: RecordStore, year: int) -> tuple[list[Transaction], dict[str, Any]]:
    start, _ = month_bounds(year, 1)
    _, end = month_bounds(year, 12)
    query = TransactionQuery(date_range=DateRange(start=start, end=end))
    return store.list_transactions(query), query.model_dump(mode="json", exclude_none=True)


def to_jsonable(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return to_jsonable(asdict(value))
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, Decimal):
        return round(float(value), 2)
    if isinstance(value, date):
        return value.isoformat()
    return value
