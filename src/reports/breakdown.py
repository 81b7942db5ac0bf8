from __future__ import annotations

from decimal import Decimal
from typing import Any

from application.aggregation import category_breakdown
from domain.errors import ValidationError
from domain.models import TransactionType
from infrastructure.record_store.provider import RecordStore
from reports._transactions_support import PERIOD_SCHEMA, fetch_month_rows, period_args, to_jsonable
from reports.base import Report
from reports.registry import register_report


@register_report
class CategoryBreakdownRun(Report):
    name = "reports.category_breakdown"
    description = "Category totals and percentages for a single transaction type in one month."
    args_schema = {
        "type": "object",
        "properties": {
            **PERIOD_SCHEMA,
            "type": {"type": "string", "enum": ["income", "expense"], "default": "expense"},
        },
    }

    def build(self, args: dict[str, Any], store: RecordStore) -> dict[str, Any]:
        year, month = period_args(args)
        raw_type = args.get("type") or TransactionType.EXPENSE.value
        try:
            txn_type = TransactionType(raw_type)
        except ValueError:
            raise ValidationError(f"type must be 'income' or 'expense', got {raw_type!r}") from None

        rows, filters = fetch_month_rows(store, year, month, txn_type=txn_type.value)
        buckets = category_breakdown(rows, year, month, txn_type)
        return {
            "year": year,
            "month": month,
            "type": txn_type.value,
            "categories": to_jsonable(buckets),
            "total": to_jsonable(sum((b.amount for b in buckets), Decimal("0"))),
            "filters_used": filters,
        }
