from __future__ import annotations

import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from fastapi.testclient import TestClient

from domain.errors import BlobStoreError
from infrastructure.blob_store.local_store import LocalBlobStore
from infrastructure.config import Settings
from infrastructure.record_store.memory_store import InMemoryRecordStore
from interface.api import create_app


class ApiTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.root = Path(tempfile.mkdtemp(prefix="finance-api-"))
        self.addCleanup(shutil.rmtree, self.root, True)
        self.settings = Settings(storage_root=self.root, storage_public_base_url="/storage", receipt_max_bytes=64)
        self.store = InMemoryRecordStore()
        self.app = create_app(
            self.settings,
            record_store=self.store,
            blob_store=LocalBlobStore(self.root, public_base_url="/storage"),
        )
        self.client = TestClient(self.app)

    def _category(self, name: str, txn_type: str) -> dict:
        res = self.client.post("/api/categories", json={"name": name, "type": txn_type})
        self.assertEqual(res.status_code, 201)
        return res.json()

    def _transaction(self, **overrides) -> dict:
        payload = {"type": "expense", "amount": 10, "date": "2024-03-05", "description": "Lunch"}
        payload.update(overrides)
        res = self.client.post("/api/transactions", json=payload)
        self.assertEqual(res.status_code, 201, res.text)
        return res.json()["data"]


class HealthAndCategoryTests(ApiTestCase):
    def test_health(self) -> None:
        res = self.client.get("/health")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["status"], "ok")
        self.assertEqual(res.json()["record_store"], "memory")

    def test_categories_filtered_by_type(self) -> None:
        self._category("Salary", "income")
        self._category("Rent", "expense")
        self._category("Food", "expense")

        res = self.client.get("/api/categories", params={"type": "expense"})

        self.assertEqual(res.status_code, 200)
        self.assertEqual([c["name"] for c in res.json()], ["Food", "Rent"])
        self.assertTrue(all(c["type"] == "expense" for c in res.json()))

    def test_bad_category_type_is_422(self) -> None:
        res = self.client.get("/api/categories", params={"type": "transfer"})
        self.assertEqual(res.status_code, 422)

    def test_blank_category_name_rejected(self) -> None:
        res = self.client.post("/api/categories", json={"name": "   ", "type": "expense"})
        self.assertEqual(res.status_code, 422)
        self.assertEqual(self.client.get("/api/categories").json(), [])

    def test_category_name_is_stripped(self) -> None:
        self.assertEqual(self._category("  Travel ", "expense")["name"], "Travel")


class TransactionRouteTests(ApiTestCase):
    def test_create_and_fetch(self) -> None:
        food = self._category("Food", "expense")
        created = self._transaction(category_id=food["id"], amount="12.50", receipt_image="/storage/x.png")

        self.assertEqual(created["type"], "expense")
        self.assertEqual(created["amount"], 12.5)
        self.assertEqual(created["date"], "2024-03-05")
        self.assertEqual(created["category"]["name"], "Food")
        self.assertEqual(created["receipt_image"], "/storage/x.png")

        res = self.client.get(f"/api/transactions/{created['id']}")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["description"], "Lunch")

    def test_missing_fields_rejected(self) -> None:
        res = self.client.post("/api/transactions", json={"type": "expense", "date": "2024-03-05"})
        self.assertEqual(res.status_code, 422)

        res = self.client.post(
            "/api/transactions",
            json={"type": "expense", "amount": 0, "date": "2024-03-05", "description": "Zero"},
        )
        self.assertEqual(res.status_code, 422)

    def test_invalid_category_is_400(self) -> None:
        res = self.client.post(
            "/api/transactions",
            json={"type": "expense", "amount": 5, "date": "2024-03-05", "description": "x", "category_id": "nope"},
        )
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json(), {"error": "Invalid category_id provided."})

    def test_list_with_filters(self) -> None:
        self._transaction(description="Coffee", date="2024-03-01")
        self._transaction(description="Paycheck", type="income", amount=900, date="2024-03-15")
        self._transaction(description="Coffee beans", date="2024-04-02")

        all_rows = self.client.get("/api/transactions").json()
        self.assertEqual([t["description"] for t in all_rows], ["Coffee beans", "Paycheck", "Coffee"])

        march = self.client.get("/api/transactions", params={"start": "2024-03-01", "end": "2024-03-31"}).json()
        self.assertEqual({t["description"] for t in march}, {"Coffee", "Paycheck"})

        income = self.client.get("/api/transactions", params={"type": "income"}).json()
        self.assertEqual([t["description"] for t in income], ["Paycheck"])

        search = self.client.get("/api/transactions", params={"q": "coffee", "start": "2024-04-01"}).json()
        self.assertEqual([t["description"] for t in search], ["Coffee beans"])

    def test_inverted_range_is_400(self) -> None:
        res = self.client.get("/api/transactions", params={"start": "2024-04-01", "end": "2024-03-01"})
        self.assertEqual(res.status_code, 400)

    def test_update_and_delete(self) -> None:
        created = self._transaction()

        res = self.client.put(f"/api/transactions/{created['id']}", json={"amount": 20, "description": "Dinner"})
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["data"]["amount"], 20.0)
        self.assertEqual(res.json()["data"]["description"], "Dinner")

        res = self.client.delete(f"/api/transactions/{created['id']}")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json(), {"success": True})

        res = self.client.get(f"/api/transactions/{created['id']}")
        self.assertEqual(res.status_code, 404)
        self.assertIn("error", res.json())

    def test_update_rejects_blank_description(self) -> None:
        created = self._transaction()

        res = self.client.put(f"/api/transactions/{created['id']}", json={"description": "   "})
        self.assertEqual(res.status_code, 422)

        res = self.client.put(f"/api/transactions/{created['id']}", json={"description": "  Brunch "})
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["data"]["description"], "Brunch")

    def test_missing_transaction_is_404(self) -> None:
        self.assertEqual(self.client.delete("/api/transactions/missing").status_code, 404)
        self.assertEqual(self.client.put("/api/transactions/missing", json={}).status_code, 404)


class ReportRouteTests(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        salary = self._category("Salary", "income")
        food = self._category("Food", "expense")
        self._transaction(type="income", amount=1000, date="2024-03-01", description="Payroll", category_id=salary["id"])
        self._transaction(amount=200, date="2024-03-05", description="Market", category_id=food["id"])
        self._transaction(amount=50, date="2024-03-05", description="Bakery", category_id=food["id"])

    def test_monthly_report(self) -> None:
        res = self.client.get("/api/reports/monthly", params={"year": 2024, "month": 3})

        self.assertEqual(res.status_code, 200)
        body = res.json()
        self.assertEqual(body["income"], [{"category": "Salary", "amount": 1000.0, "percent": 1.0}])
        self.assertEqual(body["expenses"], [{"category": "Food", "amount": 250.0, "percent": 1.0}])
        self.assertEqual(
            body["dailyTransactions"],
            [{"day": "1", "income": 1000.0, "expenses": 0.0}, {"day": "5", "income": 0.0, "expenses": 250.0}],
        )

    def test_monthly_report_invalid_month_is_400(self) -> None:
        res = self.client.get("/api/reports/monthly", params={"year": 2024, "month": 13})
        self.assertEqual(res.status_code, 400)
        self.assertIn("month", res.json()["error"])

    def test_overview_has_twelve_months(self) -> None:
        res = self.client.get("/api/reports/overview", params={"year": 2024})

        self.assertEqual(res.status_code, 200)
        months = res.json()["months"]
        self.assertEqual(len(months), 12)
        self.assertEqual(months[2]["income"], 1000.0)
        self.assertEqual(months[0], {"name": "Jan", "income": 0.0, "expenses": 0.0})

    def test_category_breakdown(self) -> None:
        res = self.client.get("/api/reports/category-breakdown", params={"year": 2024, "month": 3, "type": "income"})

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["categories"], [{"category": "Salary", "amount": 1000.0, "percent": 1.0}])

    def test_dashboard(self) -> None:
        res = self.client.get("/api/dashboard", params={"year": 2024, "month": 3})

        self.assertEqual(res.status_code, 200)
        body = res.json()
        self.assertEqual((body["income"], body["expenses"], body["balance"]), (1000.0, 250.0, 750.0))
        self.assertEqual(body["savingsRate"], 75)


class StorageRouteTests(ApiTestCase):
    def test_ensure_bucket_is_idempotent(self) -> None:
        first = self.client.post("/api/storage/bucket", json={"bucketName": "transaction-receipts"})
        second = self.client.post("/api/storage/bucket", json={"bucket_name": "transaction-receipts"})

        self.assertEqual(first.status_code, 200)
        self.assertTrue(first.json()["success"])
        self.assertEqual(second.status_code, 200)
        self.assertIn("already exists", second.json()["message"])
        self.assertEqual(second.json()["bucket"]["size_limit"], 64)

    def test_ensure_bucket_without_body_uses_receipts_bucket(self) -> None:
        res = self.client.post("/api/storage/bucket")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["bucket"]["name"], "transaction-receipts")

    def test_ensure_bucket_invalid_name_is_400(self) -> None:
        res = self.client.post("/api/storage/bucket", json={"bucketName": "Bad Name"})
        self.assertEqual(res.status_code, 400)
        self.assertIn("Invalid bucket name", res.json()["error"])

    def test_ensure_bucket_store_failure_is_500(self) -> None:
        with patch.object(LocalBlobStore, "create_bucket", side_effect=BlobStoreError("disk full")):
            res = self.client.post("/api/storage/bucket")
        self.assertEqual(res.status_code, 500)
        self.assertIn("disk full", res.json()["error"])

    def test_upload_receipt_and_attach(self) -> None:
        res = self.client.post(
            "/api/receipts",
            params={"filename": "receipt.png"},
            content=b"\x89PNG-data",
            headers={"Content-Type": "image/png"},
        )
        self.assertEqual(res.status_code, 201, res.text)
        url = res.json()["url"]
        self.assertTrue(url.startswith("/storage/transaction-receipts/receipts/"))
        self.assertTrue(url.endswith(".png"))

        created = self._transaction(receipt_image=url)
        self.assertEqual(created["receipt_image"], url)

    def test_rejected_uploads_are_400(self) -> None:
        cases = {
            "wrong type": (b"%PDF", "application/pdf", "not allowed"),
            "empty": (b"", "image/png", "empty"),
            "oversized": (b"x" * 65, "image/png", "size limit"),
        }
        for label, (body, content_type, message) in cases.items():
            with self.subTest(label):
                res = self.client.post("/api/receipts", content=body, headers={"Content-Type": content_type})
                self.assertEqual(res.status_code, 400)
                self.assertIn(message, res.json()["error"])


if __name__ == "__main__":
    unittest.main()
