from fastapi import APIRouter, Depends
from pydantic import BaseModel
from typing import List

from verao_fitness.core.auth import get_current_user
from verao_fitness.core.context import AppContext, get_context

router = APIRouter(
    redirect_slashes=False
)  # Disable redirects to preserve Authorization header


class Toast(BaseModel):
    id: str
    type: str
    message: str
    created_at: str = ""


class NotificationsResponse(BaseModel):
    in_flight: List[Toast]
    recent: List[Toast]


@router.get("", response_model=NotificationsResponse)
async def get_notifications(
    current_user: dict = Depends(get_current_user),
    context: AppContext = Depends(get_context),
):
    """Pending operations and the latest success/error toasts of the session."""
    notifier = context.notifier_for(current_user)
    return {"in_flight": notifier.in_flight(), "recent": notifier.recent()}
