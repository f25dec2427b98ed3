"""Wire model for the work item published to the request topic."""

import json
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from reportflow.models.enums import ReportType


class WorkItem(BaseModel):
    """Snapshot of a report request at submission time.

    ``parameters`` travels as a JSON string so consumers can hand the
    document to a strategy without re-shaping it. The persisted request,
    not this snapshot, is authoritative for status and parameters.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    request_id: str
    report_type: ReportType
    requested_by: str
    parameters: str = "{}"
    requested_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def for_request(
        cls,
        request_id: str,
        report_type: ReportType,
        requested_by: str,
        parameters: dict[str, Any],
        requested_at: datetime | None = None,
    ) -> "WorkItem":
        return cls(
            request_id=request_id,
            report_type=report_type,
            requested_by=requested_by,
            parameters=json.dumps(parameters, sort_keys=True),
            requested_at=requested_at or datetime.now(timezone.utc),
        )

    def parameters_document(self) -> dict[str, Any]:
        return json.loads(self.parameters) if self.parameters else {}

    def to_bytes(self) -> bytes:
        return self.model_dump_json(by_alias=True).encode("utf-8")

    @classmethod
    def from_bytes(cls, raw: bytes | str) -> "WorkItem":
        return cls.model_validate_json(raw)
