from fastapi import APIRouter
from verao_fitness.api.v1.endpoints import (
    auth,
    calendar,
    competitors,
    live,
    notifications,
    proofs,
    rankings,
)

# Create main API router
api_router = APIRouter(
    redirect_slashes=False
)  # Disable redirects to preserve Authorization header

# Include all endpoint routers
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(
    competitors.router, prefix="/competitors", tags=["Competitors"]
)
api_router.include_router(proofs.router, prefix="/proofs", tags=["Proofs"])
api_router.include_router(rankings.router, prefix="/rankings", tags=["Rankings"])
api_router.include_router(calendar.router, prefix="/calendar", tags=["Calendar"])
api_router.include_router(
    notifications.router, prefix="/notifications", tags=["Notifications"]
)
api_router.include_router(live.router, tags=["Live Updates"])
