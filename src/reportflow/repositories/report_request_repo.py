"""Report request repository."""

from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from reportflow.db.base import utcnow
from reportflow.db.models.report_request import ReportRequestRow
from reportflow.errors.exceptions import AlreadyExistsError
from reportflow.models.enums import ReportStatus, ReportType


class ReportRequestRepository:
    """Keyed store for report requests.

    Writes are flushed, not committed; the caller owns the transaction
    boundary so a state change becomes visible to other processes only
    once it commits.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, request_id: str) -> ReportRequestRow | None:
        stmt = select(ReportRequestRow).where(ReportRequestRow.request_id == request_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(
        self,
        request_id: str,
        report_type: ReportType,
        requested_by: str,
        parameters: dict[str, Any],
        status: ReportStatus = ReportStatus.SUBMITTED,
    ) -> ReportRequestRow:
        """Insert a new request; raises AlreadyExistsError if the id is taken."""
        if await self.get(request_id) is not None:
            raise AlreadyExistsError("ReportRequest", request_id)
        row = ReportRequestRow(
            request_id=request_id,
            report_type=str(report_type),
            requested_by=requested_by,
            parameters=parameters,
            status=str(status),
        )
        self.session.add(row)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            await self.session.rollback()
            raise AlreadyExistsError("ReportRequest", request_id) from exc
        return row

    async def update(self, row: ReportRequestRow, **fields: Any) -> ReportRequestRow:
        """Overwrite the given fields on a loaded request; ``updated_at`` refreshes on flush."""
        for key, value in fields.items():
            setattr(row, key, value)
        await self.session.flush()
        return row

    async def transition(
        self,
        request_id: str,
        expected: ReportStatus,
        new: ReportStatus,
        **fields: Any,
    ) -> bool:
        """Move a request from ``expected`` to ``new`` status in one conditional UPDATE.

        Returns False when the stored status was not ``expected`` (or the
        request does not exist), leaving the row untouched.
        """
        stmt = (
            update(ReportRequestRow)
            .where(
                ReportRequestRow.request_id == request_id,
                ReportRequestRow.status == str(expected),
            )
            .values(status=str(new), updated_at=utcnow(), **fields)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def list_by_status(self, status: ReportStatus) -> list[ReportRequestRow]:
        """Requests currently in ``status``, e.g. SUBMITTED records stranded by a failed publish."""
        stmt = (
            select(ReportRequestRow)
            .where(ReportRequestRow.status == str(status))
            .order_by(ReportRequestRow.created_at)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
