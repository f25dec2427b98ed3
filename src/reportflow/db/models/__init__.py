"""SQLAlchemy ORM models - import all to register with Base.metadata."""

from reportflow.db.models.report_request import ReportRequestRow

__all__ = ["ReportRequestRow"]
