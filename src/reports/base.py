from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from domain.errors import ValidationError
from domain.schemas import ReportRequest, ReportResponse
from infrastructure.record_store.provider import RecordStore


@dataclass(frozen=True)
class ReportSpec:
    name: str
    description: str
    args_schema: dict[str, Any]


class Report(ABC):
    name: str
    description: str = ""
    args_schema: dict[str, Any] = {}

    def run(self, request: ReportRequest, store: RecordStore) -> ReportResponse:
        args = request.args if isinstance(request.args, dict) else {}
        try:
            result = self.build(args, store)
        except ValidationError as exc:
            return ReportResponse(request_id=request.request_id, report=self.name, ok=False, errors=[str(exc)])
        return ReportResponse(request_id=request.request_id, report=self.name, result=result)

    @abstractmethod
    def build(self, args: dict[str, Any], store: RecordStore) -> dict[str, Any]:
        raise NotImplementedError

    def spec(self) -> ReportSpec:
        return ReportSpec(name=self.name, description=self.description, args_schema=dict(self.args_schema))
