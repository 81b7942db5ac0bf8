from __future__ import annotations

from typing import Any

from application.aggregation import annual_overview
from infrastructure.record_store.provider import RecordStore
from reports._transactions_support import PERIOD_SCHEMA, fetch_year_rows, period_args, to_jsonable
from reports.base import Report
from reports.registry import register_report


@register_report
class AnnualOverviewRun(Report):
    name = "reports.annual_overview"
    description = "Income vs. expense totals for each of the twelve months of a year."
    args_schema = {"type": "object", "properties": {"year": PERIOD_SCHEMA["year"]}}

    def build(self, args: dict[str, Any], store: RecordStore) -> dict[str, Any]:
        year, _ = period_args(args, with_month=False)
        rows, filters = fetch_year_rows(store, year)
        months = annual_overview(rows, year)
        return {
            "year": year,
            "months": to_jsonable(months),
            "transaction_count": len(rows),
            "filters_used": filters,
        }
