from datetime import date, datetime
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from typing import Dict, List, Optional

from verao_fitness.core.auth import get_current_user
from verao_fitness.core.context import AppContext, get_context
from verao_fitness.core.errors import AppError, http_exception
from verao_fitness.services.ranking_service import RankingService

router = APIRouter(
    redirect_slashes=False
)  # Disable redirects to preserve Authorization header


class PerfectDaysResponse(BaseModel):
    month: str
    days: Dict[str, List[str]]


def _parse_month(value: Optional[str]) -> Optional[date]:
    if value is None:
        return None
    try:
        return datetime.strptime(value, "%Y-%m").date()
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="month must use the YYYY-MM format",
        )


@router.get("/perfect-days", response_model=PerfectDaysResponse)
async def get_perfect_days(
    month: Optional[str] = Query(None, description="Month as YYYY-MM"),
    current_user: dict = Depends(get_current_user),
    context: AppContext = Depends(get_context),
):
    """Initials of the competitors with a perfect day, per day of the month."""
    target = _parse_month(month)
    try:
        return RankingService(context).perfect_days(target)
    except AppError as exc:
        raise http_exception(exc)
