"""Shared dependencies: repository injection and common query parsing."""
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request

from classbook.services.aggregator import normalize_month
from classbook.services.repository import StudentRepository
from classbook.services.store import SyncResult


def get_repository(request: Request) -> StudentRepository:
    return request.app.state.repository


def parse_month(value: Optional[str], required: bool = False) -> Optional[int]:
    """Month query parameter: 1-12, or empty/"all" for no filter unless required."""
    month = normalize_month(value)
    if month is None:
        if value not in (None, "", "all"):
            raise HTTPException(status_code=400, detail="month must be 1-12 or 'all'")
        if required:
            raise HTTPException(status_code=400, detail="month is required")
        return None
    if not 1 <= month <= 12:
        raise HTTPException(status_code=400, detail="month must be 1-12 or 'all'")
    return month


def sync_fields(result: SyncResult) -> dict:
    out = {"synced": result.ok}
    if not result.ok:
        out["sync_error"] = result.error
    return out


# Type aliases for route injection
Repository = Annotated[StudentRepository, Depends(get_repository)]
