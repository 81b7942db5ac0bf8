from __future__ import annotations

import logging
import time
import uuid
from typing import Any

from domain.schemas import ReportRequest, ReportResponse
from infrastructure.record_store.provider import RecordStore
from reports.registry import ReportRegistry

logger = logging.getLogger(__name__)


class ReportRunner:
    def __init__(self, registry: ReportRegistry, record_store: RecordStore):
        self._registry = registry
        self._record_store = record_store

    def run(self, report: str, args: dict[str, Any] | None = None, request_id: str | None = None) -> ReportResponse:
        request = ReportRequest(
            request_id=request_id or f"req_{uuid.uuid4().hex[:12]}",
            report=report,
            args=args or {},
        )
        return self.run_request(request)

    def run_request(self, request: ReportRequest) -> ReportResponse:
        report = self._registry.get_report(request.report)
        logger.info("ReportRunner running request_id=%s report=%s args=%s", request.request_id, request.report, request.args)
        t = time.perf_counter()
        response = report.run(request, self._record_store)
        logger.info(
            "ReportRunner finished request_id=%s report=%s in %.3fs ok=%s",
            request.request_id,
            request.report,
            time.perf_counter() - t,
            response.ok,
        )
        if not response.ok:
            logger.warning("ReportRunner rejected request_id=%s errors=%s", request.request_id, response.errors)
        return response
