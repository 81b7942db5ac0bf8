from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import date
from typing import Any, Literal, Optional

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse

from application.report_runner import ReportRunner
from application.storage import ensure_bucket_exists, receipt_bucket_options, upload_receipt
from domain.errors import (
    BlobStoreError,
    ConfigurationError,
    ObjectRejectedError,
    RecordNotFoundError,
    RecordStoreError,
    ValidationError,
)
from domain.models import BucketOptions
from domain.schemas import (
    CategoryCreate,
    CategoryOut,
    DateRange,
    EnsureBucketRequest,
    TransactionCreate,
    TransactionOut,
    TransactionQuery,
    TransactionUpdate,
)
from infrastructure.blob_store.provider import BlobStore
from infrastructure.config import Settings, load_settings
from infrastructure.record_store.provider import RecordStore
from interface.cli import build_blob_store, build_record_store, build_runner

logger = logging.getLogger(__name__)

TxnTypeParam = Optional[Literal["income", "expense"]]


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def _validation(_: Request, exc: ValidationError) -> JSONResponse:
        return _error(400, str(exc))

    @app.exception_handler(RecordNotFoundError)
    async def _not_found(_: Request, exc: RecordNotFoundError) -> JSONResponse:
        return _error(404, str(exc))

    @app.exception_handler(RecordStoreError)
    async def _record_store(_: Request, exc: RecordStoreError) -> JSONResponse:
        logger.error("Record store error: %s", exc)
        return _error(500, str(exc))

    @app.exception_handler(ObjectRejectedError)
    async def _object_rejected(_: Request, exc: ObjectRejectedError) -> JSONResponse:
        logger.warning("Upload rejected: %s", exc)
        return _error(400, str(exc))

    @app.exception_handler(BlobStoreError)
    async def _blob_store(_: Request, exc: BlobStoreError) -> JSONResponse:
        logger.error("Blob store error: %s", exc)
        return _error(500, str(exc))

    @app.exception_handler(ConfigurationError)
    async def _configuration(_: Request, exc: ConfigurationError) -> JSONResponse:
        logger.error("Configuration error: %s", exc)
        return _error(503, str(exc))


def _transaction_query(
    txn_type: Optional[str],
    start: Optional[date],
    end: Optional[date],
    q: Optional[str],
) -> TransactionQuery:
    date_range = None
    if start is not None or end is not None:
        start = start or date.min
        end = end or date.max
        if start > end:
            raise ValidationError("start must be on or before end")
        date_range = DateRange(start=start, end=end)
    return TransactionQuery(date_range=date_range, txn_type=txn_type, query=q or None)


def _report_result(runner: ReportRunner, report: str, args: dict[str, Any]) -> dict[str, Any]:
    response = runner.run(report, {k: v for k, v in args.items() if v is not None})
    if not response.ok:
        raise ValidationError("; ".join(response.errors))
    return response.result


def create_app(
    settings: Settings | None = None,
    record_store: RecordStore | None = None,
    blob_store: BlobStore | None = None,
) -> FastAPI:
    settings = settings or load_settings()
    record_store = record_store or build_record_store(settings)
    blob_store = blob_store or build_blob_store(settings)
    runner = build_runner(record_store)

    app = FastAPI(title="Finance Tracker API")
    app.state.settings = settings
    app.state.record_store = record_store
    app.state.blob_store = blob_store
    app.state.runner = runner
    _register_error_handlers(app)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "record_store": record_store.name, "blob_store": blob_store.name}

    # ---- categories ----
    @app.get("/api/categories")
    def list_categories(txn_type: TxnTypeParam = Query(default=None, alias="type")) -> list[dict[str, Any]]:
        return [CategoryOut.from_domain(c).model_dump(by_alias=True) for c in record_store.list_categories(txn_type)]

    @app.post("/api/categories", status_code=201)
    def create_category(payload: CategoryCreate) -> dict[str, Any]:
        category = record_store.add_category(payload.name, payload.txn_type)
        return CategoryOut.from_domain(category).model_dump(by_alias=True)

    # ---- transactions ----
    @app.get("/api/transactions")
    def list_transactions(
        txn_type: TxnTypeParam = Query(default=None, alias="type"),
        start: Optional[date] = None,
        end: Optional[date] = None,
        q: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        query = _transaction_query(txn_type, start, end, q)
        rows = record_store.list_transactions(query)
        logger.info("Listed transactions count=%d", len(rows))
        return [TransactionOut.from_domain(t).model_dump(mode="json", by_alias=True) for t in rows]

    @app.post("/api/transactions", status_code=201)
    def create_transaction(payload: TransactionCreate) -> dict[str, Any]:
        txn = record_store.add_transaction(payload)
        return {"success": True, "data": TransactionOut.from_domain(txn).model_dump(mode="json", by_alias=True)}

    @app.get("/api/transactions/{transaction_id}")
    def get_transaction(transaction_id: str) -> dict[str, Any]:
        txn = record_store.get_transaction(transaction_id)
        return TransactionOut.from_domain(txn).model_dump(mode="json", by_alias=True)

    @app.put("/api/transactions/{transaction_id}")
    def update_transaction(transaction_id: str, payload: TransactionUpdate) -> dict[str, Any]:
        txn = record_store.update_transaction(transaction_id, payload)
        return {"success": True, "data": TransactionOut.from_domain(txn).model_dump(mode="json", by_alias=True)}

    @app.delete("/api/transactions/{transaction_id}")
    def delete_transaction(transaction_id: str) -> dict[str, bool]:
        record_store.delete_transaction(transaction_id)
        return {"success": True}

    # ---- reports ----
    @app.get("/api/dashboard")
    def dashboard(year: Optional[int] = None, month: Optional[int] = None) -> dict[str, Any]:
        return _report_result(runner, "reports.dashboard", {"year": year, "month": month})

    @app.get("/api/reports/monthly")
    def monthly(year: Optional[int] = None, month: Optional[int] = None) -> dict[str, Any]:
        return _report_result(runner, "reports.monthly", {"year": year, "month": month})

    @app.get("/api/reports/overview")
    def overview(year: Optional[int] = None) -> dict[str, Any]:
        return _report_result(runner, "reports.annual_overview", {"year": year})

    @app.get("/api/reports/category-breakdown")
    def breakdown(
        year: Optional[int] = None,
        month: Optional[int] = None,
        txn_type: Literal["income", "expense"] = Query(default="expense", alias="type"),
    ) -> dict[str, Any]:
        return _report_result(runner, "reports.category_breakdown", {"year": year, "month": month, "type": txn_type})

    # ---- storage ----
    @app.post("/api/storage/bucket")
    def ensure_bucket(payload: Optional[EnsureBucketRequest] = None) -> Any:
        payload = payload or EnsureBucketRequest()
        name = payload.bucket_name or settings.receipts_bucket
        defaults = receipt_bucket_options(settings)
        options = BucketOptions(
            public=payload.public,
            size_limit=payload.size_limit or defaults.size_limit,
            allowed_types=tuple(payload.allowed_types) or defaults.allowed_types,
        )
        result = ensure_bucket_exists(blob_store, name, options)
        if not result.success:
            return _error(500, result.message)
        return asdict(result)

    @app.post("/api/receipts", status_code=201)
    async def receipts(request: Request, filename: Optional[str] = None) -> dict[str, Any]:
        data = await request.body()
        content_type = (request.headers.get("content-type") or "").split(";")[0].strip() or None
        stored = upload_receipt(blob_store, settings, data, filename=filename, content_type=content_type)
        return {"url": stored.url, "path": stored.path, "bucket": stored.bucket, "size": stored.size}

    return app
