"""LeaveDesk — FastAPI Application Factory."""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from leavedesk.auth.router import router as auth_router
from leavedesk.common.exceptions import register_exception_handlers
from leavedesk.common.rate_limit import limiter
from leavedesk.config import settings
from leavedesk.holidays.router import router as holidays_router
from leavedesk.leave.router import router as leave_router
from leavedesk.users.router import router as users_router
from leavedesk.users.scheduler import monthly_accrual_scheduler

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    accrual_task = None
    if settings.ACCRUAL_SCHEDULER_ENABLED:
        accrual_task = asyncio.create_task(monthly_accrual_scheduler())

    yield

    if accrual_task is not None and not accrual_task.done():
        accrual_task.cancel()
        try:
            await accrual_task
        except asyncio.CancelledError:
            logger.info("Monthly accrual scheduler stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging()

    app = FastAPI(
        title="LeaveDesk",
        description="Leave requests, three-tier approvals and public holidays",
        version="1.0.0",
        docs_url="/api/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/api/redoc" if settings.ENVIRONMENT != "production" else None,
        lifespan=lifespan,
    )

    # Exception handlers (RFC 7807)
    register_exception_handlers(app)

    # Rate limiting (slowapi)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check (no auth)
    @app.get("/api/v1/health", tags=["system"])
    async def health_check():
        return {
            "status": "healthy",
            "version": "1.0.0",
            "environment": settings.ENVIRONMENT,
        }

    # Register routers
    app.include_router(auth_router, prefix="/api/v1/auth", tags=["auth"])
    app.include_router(users_router, prefix="/api/v1/users", tags=["users"])
    app.include_router(leave_router, prefix="/api/v1/leaves", tags=["leave"])
    app.include_router(holidays_router, prefix="/api/v1/holidays", tags=["holidays"])

    return app


app = create_app()
