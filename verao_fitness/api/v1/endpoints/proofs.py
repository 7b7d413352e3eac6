from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from typing import Dict, List, Optional

from verao_fitness.core.auth import get_current_user
from verao_fitness.core.context import AppContext, get_context
from verao_fitness.core.errors import AppError, http_exception
from verao_fitness.models.definitions import (
    POINT_EVENTS,
    EventCategory,
    PointEvent,
    Proof,
)
from verao_fitness.services.media import PhotoUpload
from verao_fitness.services.proof_service import ProofService
from verao_fitness.services.ranking_service import RankingService

router = APIRouter(
    redirect_slashes=False
)  # Disable redirects to preserve Authorization header


async def _read_photo(photo: Optional[UploadFile]) -> Optional[PhotoUpload]:
    # Browsers send an empty file part when no photo was picked
    if photo is None or not photo.filename:
        return None
    return PhotoUpload(
        filename=photo.filename,
        content_type=photo.content_type or "application/octet-stream",
        data=await photo.read(),
    )


@router.get("/events", response_model=Dict[EventCategory, List[PointEvent]])
async def get_point_events():
    """Events a proof can be registered for, grouped by category."""
    return POINT_EVENTS


@router.get("/recent", response_model=List[Proof])
async def get_recent_proofs(
    limit: Optional[int] = Query(None, ge=1, le=50),
    current_user: dict = Depends(get_current_user),
    context: AppContext = Depends(get_context),
):
    try:
        return RankingService(context).recent_proofs(limit)
    except AppError as exc:
        raise http_exception(exc)


@router.post("", response_model=Proof, status_code=status.HTTP_201_CREATED)
async def create_proof(
    category: EventCategory = Form(...),
    event: str = Form(...),
    photo: Optional[UploadFile] = File(None),
    current_user: dict = Depends(get_current_user),
    context: AppContext = Depends(get_context),
):
    """Register a proof for the signed-in competitor, with an optional photo."""
    try:
        return await ProofService(context).create_proof(
            current_user,
            context.notifier_for(current_user),
            category,
            event,
            await _read_photo(photo),
        )
    except AppError as exc:
        raise http_exception(exc)


@router.put("/{proof_id}", response_model=Proof)
async def update_proof(
    proof_id: str,
    category: EventCategory = Form(...),
    event: str = Form(...),
    photo: Optional[UploadFile] = File(None),
    current_user: dict = Depends(get_current_user),
    context: AppContext = Depends(get_context),
):
    """Edit a proof; the current photo is kept unless a new one is sent."""
    try:
        return await ProofService(context).update_proof(
            current_user,
            context.notifier_for(current_user),
            proof_id,
            category,
            event,
            await _read_photo(photo),
        )
    except AppError as exc:
        raise http_exception(exc)


@router.delete("/{proof_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_proof(
    proof_id: str,
    current_user: dict = Depends(get_current_user),
    context: AppContext = Depends(get_context),
):
    try:
        await ProofService(context).delete_proof(
            current_user, context.notifier_for(current_user), proof_id
        )
    except AppError as exc:
        raise http_exception(exc)
