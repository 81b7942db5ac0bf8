from __future__ import annotations

import unittest
from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import reports  # noqa: F401
from application.report_runner import ReportRunner
from domain.models import Category, Transaction, TransactionType
from domain.schemas import ReportRequest, ReportResponse
from infrastructure.record_store.memory_store import InMemoryRecordStore
from reports.registry import ReportRegistry, registry

SALARY = Category(id="c_salary", name="Salary", txn_type=TransactionType.INCOME)
FOOD = Category(id="c_food", name="Food", txn_type=TransactionType.EXPENSE)


def _seeded_store() -> InMemoryRecordStore:
    rows = [
        Transaction(id="t1", posted_on=date(2024, 3, 1), description="Payroll", amount=Decimal("1000"),
                    txn_type=TransactionType.INCOME, category_id=SALARY.id),
        Transaction(id="t2", posted_on=date(2024, 3, 5), description="Market", amount=Decimal("200"),
                    txn_type=TransactionType.EXPENSE, category_id=FOOD.id),
        Transaction(id="t3", posted_on=date(2024, 3, 5), description="Bakery", amount=Decimal("50"),
                    txn_type=TransactionType.EXPENSE, category_id=FOOD.id),
        Transaction(id="t4", posted_on=date(2024, 3, 31), description="Taxi", amount=Decimal("12.35"),
                    txn_type=TransactionType.EXPENSE),
        Transaction(id="t5", posted_on=date(2024, 4, 1), description="Cinema", amount=Decimal("30"),
                    txn_type=TransactionType.EXPENSE),
        Transaction(id="t6", posted_on=date(2023, 12, 24), description="Gift", amount=Decimal("80"),
                    txn_type=TransactionType.EXPENSE),
    ]
    return InMemoryRecordStore(categories=[SALARY, FOOD], transactions=rows)


class _FakeReport:
    name = "fake.report"

    def run(self, request: ReportRequest, store) -> ReportResponse:
        return ReportResponse(request_id=request.request_id, report=self.name, result={"echo": request.args})


class ReportRegistryTests(unittest.TestCase):
    def test_builtin_reports_self_register_on_import(self) -> None:
        names = {spec.name for spec in registry.list_specs()}

        self.assertIn("reports.monthly", names)
        self.assertIn("reports.annual_overview", names)
        self.assertIn("reports.category_breakdown", names)
        self.assertIn("reports.dashboard", names)

    def test_register_and_get_report(self) -> None:
        local = ReportRegistry()
        report = _FakeReport()
        local.register(report)

        self.assertIs(local.get_report("fake.report"), report)

    def test_get_missing_report_raises_key_error(self) -> None:
        with self.assertRaises(KeyError):
            ReportRegistry().get_report("missing")

    def test_specs_carry_args_schema(self) -> None:
        spec = registry.get_report("reports.category_breakdown").spec()
        self.assertIn("type", spec.args_schema["properties"])
        self.assertIn("month", spec.args_schema["properties"])


class ReportRunnerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.runner = ReportRunner(registry, _seeded_store())

    def test_monthly_report(self) -> None:
        res = self.runner.run("reports.monthly", {"year": 2024, "month": 3})

        self.assertTrue(res.ok)
        self.assertEqual(res.report, "reports.monthly")
        self.assertEqual(res.result["month_name"], "March")
        self.assertEqual(res.result["income"], [{"category": "Salary", "amount": 1000.0, "percent": 1.0}])
        self.assertEqual([b["category"] for b in res.result["expenses"]], ["Food", "Other"])
        self.assertEqual(res.result["expenses"][1]["amount"], 12.35)
        self.assertEqual(
            res.result["dailyTransactions"],
            [
                {"day": "1", "income": 1000.0, "expenses": 0.0},
                {"day": "5", "income": 0.0, "expenses": 250.0},
                {"day": "31", "income": 0.0, "expenses": 12.35},
            ],
        )
        self.assertEqual(res.result["transaction_count"], 4)
        self.assertEqual(res.result["filters_used"]["date_range"], {"start": "2024-03-01", "end": "2024-03-31"})
        self.assertFalse(res.result["is_empty"])

    def test_monthly_report_accepts_string_args(self) -> None:
        res = self.runner.run("reports.monthly", {"year": "2024", "month": "3"})
        self.assertTrue(res.ok)
        self.assertEqual(res.result["month"], 3)

    def test_empty_month_is_ok_not_error(self) -> None:
        res = self.runner.run("reports.monthly", {"year": 2024, "month": 7})

        self.assertTrue(res.ok)
        self.assertTrue(res.result["is_empty"])
        self.assertEqual(res.result["income"], [])
        self.assertEqual(res.result["expenses"], [])
        self.assertEqual(res.result["dailyTransactions"], [])

    def test_invalid_month_returns_errors(self) -> None:
        for month in (13, 0, "march"):
            with self.subTest(month=month):
                res = self.runner.run("reports.monthly", {"year": 2024, "month": month})
                self.assertFalse(res.ok)
                self.assertTrue(res.errors)
                self.assertEqual(res.result, {})

    def test_annual_overview(self) -> None:
        res = self.runner.run("reports.annual_overview", {"year": 2024})

        self.assertTrue(res.ok)
        months = res.result["months"]
        self.assertEqual(len(months), 12)
        self.assertEqual(months[2], {"name": "Mar", "income": 1000.0, "expenses": 262.35})
        self.assertEqual(months[3], {"name": "Apr", "income": 0.0, "expenses": 30.0})
        self.assertEqual(months[11], {"name": "Dec", "income": 0.0, "expenses": 0.0})
        self.assertEqual(res.result["transaction_count"], 5)

    def test_category_breakdown_defaults_to_expense(self) -> None:
        res = self.runner.run("reports.category_breakdown", {"year": 2024, "month": 3})

        self.assertTrue(res.ok)
        self.assertEqual(res.result["type"], "expense")
        self.assertEqual([c["category"] for c in res.result["categories"]], ["Food", "Other"])
        self.assertEqual(res.result["total"], 262.35)
        self.assertEqual(res.result["filters_used"]["txn_type"], "expense")

    def test_category_breakdown_rejects_unknown_type(self) -> None:
        res = self.runner.run("reports.category_breakdown", {"year": 2024, "month": 3, "type": "transfer"})

        self.assertFalse(res.ok)
        self.assertIn("type", res.errors[0])

    def test_dashboard(self) -> None:
        res = self.runner.run("reports.dashboard", {"year": 2024, "month": 3})

        self.assertTrue(res.ok)
        self.assertEqual(res.result["income"], 1000.0)
        self.assertEqual(res.result["expenses"], 262.35)
        self.assertEqual(res.result["balance"], 737.65)
        self.assertEqual(res.result["savingsRate"], 74)

    def test_defaults_to_current_period(self) -> None:
        store = MagicMock()
        store.list_transactions.return_value = []
        runner = ReportRunner(registry, store)

        res = runner.run("reports.dashboard")

        today = date.today()
        self.assertTrue(res.ok)
        self.assertEqual((res.result["year"], res.result["month"]), (today.year, today.month))
        query = store.list_transactions.call_args.args[0]
        self.assertEqual(query.date_range.start, date(today.year, today.month, 1))

    def test_unregistered_report_raises_key_error(self) -> None:
        with self.assertRaises(KeyError):
            self.runner.run("reports.unknown")

    def test_run_request_preserves_request_id(self) -> None:
        res = self.runner.run_request(ReportRequest(request_id="req_1", report="reports.monthly", args={"year": 2024, "month": 3}))
        self.assertEqual(res.request_id, "req_1")


if __name__ == "__main__":
    unittest.main()
