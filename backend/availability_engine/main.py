# backend/availability_engine/main.py
"""
FastAPI application for the availability engine.

Mounts the v1 routers under /api/v1 and maps domain exceptions raised
outside route bodies (e.g. in dependencies) to their HTTP responses.
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI, Request, Response
from fastapi.responses import JSONResponse

from . import __version__
from .core.config import settings
from .core.constants import API_DESCRIPTION, API_TITLE, BRAND_NAME
from .core.exceptions import DomainException
from .database import init_db
from .monitoring.prometheus_metrics import prometheus_metrics
from .routes.v1 import availability as availability_v1, lessons as lessons_v1

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown."""
    logger.info(f"{BRAND_NAME} availability API starting up...")
    logger.info(f"Environment: {settings.environment}, default timezone: {settings.default_timezone}")
    if not settings.is_production and not settings.is_testing:
        # Production schemas are managed by migrations
        init_db()
    yield
    logger.info(f"{BRAND_NAME} availability API shutting down...")


app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
)


@app.exception_handler(DomainException)
async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    http_exc = exc.to_http_exception()
    if http_exc.status_code >= 500:
        logger.warning(
            "domain_exception",
            extra={"path": request.url.path, "code": exc.code, "status_code": http_exc.status_code},
        )
    return JSONResponse(
        status_code=http_exc.status_code,
        content={"detail": http_exc.detail},
        headers=http_exc.headers,
    )


# Create API v1 router
api_v1 = APIRouter(prefix="/api/v1")
api_v1.include_router(availability_v1.router, prefix="/tutors")
api_v1.include_router(lessons_v1.router, prefix="/lessons")
app.include_router(api_v1)


@app.get("/health", include_in_schema=False)
def health_check() -> dict:
    return {"status": "healthy", "service": API_TITLE, "version": __version__}


@app.get("/internal/metrics", include_in_schema=False)
def metrics() -> Response:
    return Response(content=prometheus_metrics.get_metrics(), media_type=prometheus_metrics.get_content_type())
