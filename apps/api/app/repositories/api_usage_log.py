"""Repository for the append-only API usage log."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import ColumnElement, Row, case, func, select
from sqlalchemy.orm import Session

from app.models.api_key import ApiKey
from app.models.api_usage_log import ApiUsageLog
from app.repositories.base import BaseRepository


class ApiUsageLogRepository(BaseRepository[ApiUsageLog]):
    """Writes usage log entries and runs the aggregate queries over them."""

    def __init__(self) -> None:
        super().__init__(ApiUsageLog)

    def create(self, session: Session, data: dict[str, Any]) -> ApiUsageLog:
        """Append a usage log entry."""
        entry = ApiUsageLog(**data)
        return self.add(session, entry)

    @staticmethod
    def _conditions(
        api_key_id: int | None,
        start_date: datetime | None,
        end_date: datetime | None,
    ) -> list[ColumnElement[bool]]:
        conditions: list[ColumnElement[bool]] = []
        if api_key_id is not None:
            conditions.append(ApiUsageLog.api_key_id == api_key_id)
        if start_date is not None:
            conditions.append(ApiUsageLog.created_at >= start_date)
        if end_date is not None:
            conditions.append(ApiUsageLog.created_at <= end_date)
        return conditions

    def list_with_keys(
        self,
        session: Session,
        *,
        api_key_id: int | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Row]:
        """Return log rows joined with the key name and prefix, newest first."""
        stmt = (
            select(ApiUsageLog, ApiKey.name, ApiKey.prefix)
            .outerjoin(ApiKey, ApiUsageLog.api_key_id == ApiKey.id)
            .where(*self._conditions(api_key_id, start_date, end_date))
            .order_by(ApiUsageLog.created_at.desc(), ApiUsageLog.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(session.execute(stmt).all())

    def summarize(
        self,
        session: Session,
        *,
        api_key_id: int | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> tuple[int, int, float]:
        """Return (total, successful, average response time) for matching entries."""
        conditions = self._conditions(api_key_id, start_date, end_date)
        stmt = select(
            func.count(ApiUsageLog.id),
            func.coalesce(func.sum(case((ApiUsageLog.status_code < 400, 1), else_=0)), 0),
            func.avg(ApiUsageLog.response_time_ms),
        ).where(*conditions)
        total, successful, average = session.execute(stmt).one()
        return int(total or 0), int(successful or 0), float(average or 0)

    def count_by_endpoint(
        self,
        session: Session,
        *,
        api_key_id: int | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> dict[str, int]:
        """Group matching entries by their literal endpoint string."""
        conditions = self._conditions(api_key_id, start_date, end_date)
        stmt = (
            select(ApiUsageLog.endpoint, func.count(ApiUsageLog.id))
            .where(*conditions)
            .group_by(ApiUsageLog.endpoint)
        )
        return {endpoint: int(count) for endpoint, count in session.execute(stmt).all()}
