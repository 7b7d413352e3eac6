from contextlib import asynccontextmanager

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from verao_fitness.api.v1.router import api_router
from verao_fitness.core.cache import get_redis_client
from verao_fitness.core.config import settings
from verao_fitness.core.context import AppContext
from verao_fitness.core.database import get_gateway
from verao_fitness.core.health import HealthStatus, build_health_report
from verao_fitness.core.middleware import SecurityHeadersMiddleware
from verao_fitness.services.live_views import mount_views, unmount_views
from verao_fitness.services.logger import logger


async def _start_live_views(context: AppContext) -> None:
    if not settings.SUPABASE_REALTIME_ENABLED:
        logger.info("Realtime disabled; cached views expire by TTL only")
        return

    try:
        await context.gateway.connect_realtime()
        context.realtime.available = True
        await mount_views(context)
    except Exception as exc:
        context.realtime.available = False
        logger.warning(f"Realtime unavailable, live views not mounted: {exc}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # A context may already be installed (tests inject one)
    context = getattr(app.state, "context", None)
    if context is None:
        context = AppContext.build(get_gateway(), get_redis_client())
        app.state.context = context

    await _start_live_views(context)
    logger.info(f"Verão Fitness API started ({settings.ENVIRONMENT})")

    yield

    await unmount_views(context)
    await context.realtime.close()
    await context.gateway.disconnect_realtime()
    logger.info("Verão Fitness API shutting down")


# Create FastAPI app
app = FastAPI(
    title="Verão Fitness API",
    description="Fitness challenge tracking: proofs, rankings and perfect days",
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.ENVIRONMENT == "development" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT == "development" else None,
    redirect_slashes=False,  # Disable automatic redirects to preserve Authorization header
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add trusted host middleware (skip in development or if wildcard is set)
if settings.ENVIRONMENT == "production" and "*" not in settings.allowed_hosts_list:
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.allowed_hosts_list)

app.add_middleware(SecurityHeadersMiddleware)

# Include API router
app.include_router(api_router, prefix="/api/v1")


# Health check endpoint
@app.get("/health")
async def health_check():
    report = await build_health_report(app.state.context, api_version=app.version)
    status_code = (
        status.HTTP_200_OK
        if report.status != HealthStatus.CRITICAL
        else status.HTTP_503_SERVICE_UNAVAILABLE
    )
    return JSONResponse(content=report.model_dump(mode="json"), status_code=status_code)


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
    )
