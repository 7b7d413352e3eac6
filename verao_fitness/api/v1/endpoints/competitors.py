from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field, field_validator
from typing import List

from verao_fitness.core.auth import get_current_user, require_admin
from verao_fitness.core.context import AppContext, get_context
from verao_fitness.core.errors import AppError, http_exception
from verao_fitness.models.definitions import Competitor, RankedCompetitor
from verao_fitness.services.competitor_service import CompetitorService
from verao_fitness.services.ranking_service import RankingService

router = APIRouter(
    redirect_slashes=False
)  # Disable redirects to preserve Authorization header


class CompetitorPayload(BaseModel):
    name: str = Field(min_length=2)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("Name must be at least 2 characters.")
        return value


@router.get("/leaderboard", response_model=List[RankedCompetitor])
async def get_leaderboard(
    current_user: dict = Depends(get_current_user),
    context: AppContext = Depends(get_context),
):
    """Overall ranking by score, highest first."""
    try:
        return RankingService(context).leaderboard()
    except AppError as exc:
        raise http_exception(exc)


@router.get("", response_model=List[Competitor])
async def list_competitors(
    current_user: dict = Depends(get_current_user),
    context: AppContext = Depends(get_context),
):
    try:
        return RankingService(context).competitors_list()
    except AppError as exc:
        raise http_exception(exc)


@router.post("", response_model=Competitor, status_code=status.HTTP_201_CREATED)
async def create_competitor(
    payload: CompetitorPayload,
    current_user: dict = Depends(require_admin),
    context: AppContext = Depends(get_context),
):
    try:
        return await CompetitorService(context).create_competitor(
            context.notifier_for(current_user), payload.name
        )
    except AppError as exc:
        raise http_exception(exc)


@router.put("/{competitor_id}", response_model=Competitor)
async def update_competitor(
    competitor_id: str,
    payload: CompetitorPayload,
    current_user: dict = Depends(require_admin),
    context: AppContext = Depends(get_context),
):
    try:
        return await CompetitorService(context).update_competitor(
            context.notifier_for(current_user), competitor_id, payload.name
        )
    except AppError as exc:
        raise http_exception(exc)


@router.delete("/{competitor_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_competitor(
    competitor_id: str,
    current_user: dict = Depends(require_admin),
    context: AppContext = Depends(get_context),
):
    """Remove a competitor and, through the backend cascade, all their proofs."""
    try:
        await CompetitorService(context).delete_competitor(
            context.notifier_for(current_user), competitor_id
        )
    except AppError as exc:
        raise http_exception(exc)
