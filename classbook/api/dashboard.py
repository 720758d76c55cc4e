from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter, Query

from classbook.api.deps import Repository, parse_month
from classbook.config import settings
from classbook.services.aggregator import dashboard_stats

router = APIRouter()


@router.get("/stats")
async def get_stats(
    repo: Repository,
    month: str | None = Query(None, description="1-12; defaults to the current month"),
    stage: str = "",
) -> Dict[str, Any]:
    """Overview statistics for the dashboard, for one month and optionally one stage."""
    m = parse_month(month) or datetime.now(settings.tz).month
    stats = dashboard_stats(repo.students, m, stage or None)
    return {
        **stats.model_dump(),
        "currency": settings.currency,
    }
