"""Pydantic models for the report request API."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from reportflow.models.enums import ReportStatus, ReportType


class _CamelModel(BaseModel):
    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)


class ReportSubmission(_CamelModel):
    report_type: ReportType
    requested_by: str = Field(..., max_length=128)
    parameters: dict[str, Any]

    @field_validator("requested_by")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class ReportSubmissionResponse(_CamelModel):
    request_id: str


class ReportStatusResponse(_CamelModel):
    request_id: str
    status: ReportStatus
    error_message: str | None = None


class ReportDetailsResponse(_CamelModel):
    request_id: str
    report_type: ReportType
    status: ReportStatus
    requested_by: str
    parameters: dict[str, Any]
    archive_ref: str | None = None
    error_message: str | None = None
    created_at: datetime
    updated_at: datetime
