from __future__ import annotations

from calendar import month_name
from typing import Any

from application.aggregation import monthly_report
from infrastructure.record_store.provider import RecordStore
from reports._transactions_support import PERIOD_SCHEMA, fetch_month_rows, period_args, to_jsonable
from reports.base import Report
from reports.registry import register_report


@register_report
class MonthlyReportRun(Report):
    name = "reports.monthly"
    description = (
        "Income and expense totals by category, with percentages, plus daily income/expense "
        "sums for one calendar month."
    )
    args_schema = {"type": "object", "properties": PERIOD_SCHEMA}

    def build(self, args: dict[str, Any], store: RecordStore) -> dict[str, Any]:
        year, month = period_args(args)
        rows, filters = fetch_month_rows(store, year, month)
        report = monthly_report(rows, year, month)
        return {
            "year": year,
            "month": month,
            "month_name": month_name[month],
            "income": to_jsonable(report.income),
            "expenses": to_jsonable(report.expenses),
            "dailyTransactions": to_jsonable(report.daily_transactions),
            "is_empty": report.is_empty,
            "transaction_count": len(rows),
            "filters_used": filters,
        }
