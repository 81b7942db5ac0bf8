from __future__ import annotations

from typing import Any

from application.aggregation import summarize_month
from infrastructure.record_store.provider import RecordStore
from reports._transactions_support import PERIOD_SCHEMA, fetch_month_rows, period_args, to_jsonable
from reports.base import Report
from reports.registry import register_report


@register_report
class DashboardRun(Report):
    name = "reports.dashboard"
    description = "Month income, expenses, balance and savings rate for the dashboard cards."
    args_schema = {"type": "object", "properties": PERIOD_SCHEMA}

    def build(self, args: dict[str, Any], store: RecordStore) -> dict[str, Any]:
        year, month = period_args(args)
        rows, _ = fetch_month_rows(store, year, month)
        summary = summarize_month(rows, year, month)
        return {
            "year": year,
            "month": month,
            "income": to_jsonable(summary.income),
            "expenses": to_jsonable(summary.expenses),
            "balance": to_jsonable(summary.balance),
            "savingsRate": summary.savings_rate,
        }
