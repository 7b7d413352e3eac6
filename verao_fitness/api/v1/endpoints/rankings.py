from datetime import date
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from typing import List, Optional

from verao_fitness.core.auth import get_current_user
from verao_fitness.core.context import AppContext, get_context
from verao_fitness.core.errors import AppError, http_exception
from verao_fitness.models.definitions import HallOfFameEntry, RankedCompetitor
from verao_fitness.services.ranking_service import RankingService

router = APIRouter(
    redirect_slashes=False
)  # Disable redirects to preserve Authorization header


class WeeklyLeaderboardResponse(BaseModel):
    week_start: date
    week_end: date
    label: str
    is_current_week: bool
    competitors: List[RankedCompetitor]


@router.get("/weekly", response_model=WeeklyLeaderboardResponse)
async def get_weekly_leaderboard(
    week: Optional[date] = Query(
        None, description="Any day of the week to show (defaults to today)"
    ),
    current_user: dict = Depends(get_current_user),
    context: AppContext = Depends(get_context),
):
    """Points earned per competitor in a Monday-to-Sunday week."""
    try:
        return RankingService(context).weekly_leaderboard(week)
    except AppError as exc:
        raise http_exception(exc)


@router.get("/hall-of-fame", response_model=List[HallOfFameEntry])
async def get_hall_of_fame(
    current_user: dict = Depends(get_current_user),
    context: AppContext = Depends(get_context),
):
    """Weekly challenge wins per competitor."""
    try:
        return RankingService(context).hall_of_fame()
    except AppError as exc:
        raise http_exception(exc)
