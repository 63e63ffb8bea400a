"""Administrative endpoints for keys carrying the admin flag."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, HTTPException, Query, status

from app.dependencies import ApiKeyDep, ApiKeyServiceDep
from app.schemas.api_key import UsageFilter, UsageStats
from app.services.api_keys.base import as_utc

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/usage", response_model=UsageStats)
def read_usage(
    service: ApiKeyServiceDep,
    api_key: ApiKeyDep,
    start_date: datetime | None = Query(None),
    end_date: datetime | None = Query(None),
) -> UsageStats:
    """Return usage statistics across every API key."""

    if start_date is not None and end_date is not None and as_utc(start_date) > as_utc(end_date):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start_date must not be after end_date",
        )
    return service.get_stats(UsageFilter(start_date=start_date, end_date=end_date))
