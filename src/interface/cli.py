from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict

from application.report_runner import ReportRunner
from application.storage import ensure_bucket_exists, receipt_bucket_options
from domain.errors import ObjectRejectedError
from infrastructure.blob_store.local_store import LocalBlobStore
from infrastructure.blob_store.provider import BlobStore
from infrastructure.config import Settings, load_settings
from infrastructure.record_store.memory_store import InMemoryRecordStore
from infrastructure.record_store.provider import RecordStore
from infrastructure.record_store.sql_store import SqlRecordStore
from reports.registry import registry

logger = logging.getLogger(__name__)


def build_record_store(settings: Settings) -> RecordStore:
    if settings.database_url:
        return SqlRecordStore(settings.database_url, create_schema=True)
    return InMemoryRecordStore()


def build_blob_store(settings: Settings) -> BlobStore:
    return LocalBlobStore(settings.storage_root, public_base_url=settings.storage_public_base_url)


def build_runner(record_store: RecordStore) -> ReportRunner:
    import reports  # noqa: F401

    return ReportRunner(registry, record_store)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="finance-tracker", description="Finance tracker reports and storage tools.")
    sub = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (("monthly", "Monthly category and daily report"), ("dashboard", "Month totals and savings rate")):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--year", type=int)
        p.add_argument("--month", type=int)

    p = sub.add_parser("breakdown", help="Category breakdown for one transaction type")
    p.add_argument("--year", type=int)
    p.add_argument("--month", type=int)
    p.add_argument("--type", choices=["income", "expense"], default="expense")

    p = sub.add_parser("overview", help="Twelve-month income vs. expenses")
    p.add_argument("--year", type=int)

    p = sub.add_parser("ensure-bucket", help="Create the receipts bucket if it does not exist")
    p.add_argument("--bucket")

    p = sub.add_parser("serve", help="Run the HTTP API")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=8000)
    return parser


_REPORTS = {
    "monthly": "reports.monthly",
    "dashboard": "reports.dashboard",
    "breakdown": "reports.category_breakdown",
    "overview": "reports.annual_overview",
}


def main(argv: list[str] | None = None) -> int:
    args = _parser().parse_args(argv)
    settings = load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("CLI command=%s", args.command)

    if args.command == "serve":
        import uvicorn

        from interface.api import create_app

        uvicorn.run(create_app(settings), host=args.host, port=args.port, log_level=settings.log_level.lower())
        return 0

    if args.command == "ensure-bucket":
        bucket = args.bucket or settings.receipts_bucket
        try:
            result = ensure_bucket_exists(build_blob_store(settings), bucket, receipt_bucket_options(settings))
        except ObjectRejectedError as exc:
            print(json.dumps({"success": False, "message": str(exc)}, indent=2))
            return 1
        print(json.dumps(asdict(result), indent=2))
        return 0 if result.success else 1

    report_args = {k: v for k, v in vars(args).items() if k in ("year", "month", "type") and v is not None}
    runner = build_runner(build_record_store(settings))
    response = runner.run(_REPORTS[args.command], report_args, request_id=f"req_cli_{args.command}")
    print(response.model_dump_json(indent=2))
    if not response.ok:
        print({"errors": response.errors}, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
