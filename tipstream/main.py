"""
TIPSTREAM - Main FastAPI Application

Serves the pipeline's read surface and runs its background jobs:
- Match cache and pooled prediction endpoints
- Source URL administration
- Scheduler lifecycle (match refresh, pool regeneration)
- Uniform JSON error bodies
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tipstream.api.routes import api_router, health_router
from tipstream.core.config import get_settings
from tipstream.core.exceptions import TipstreamError
from tipstream.services.container import get_services

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

settings = get_settings()
logging.getLogger().setLevel(settings.LOG_LEVEL.upper())


# ============================================================================
# Lifespan Management
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start storage and scheduler on startup, stop them on shutdown."""
    logger.info("=" * 60)
    logger.info(f"{settings.app_name} v{settings.app_version}")
    logger.info("=" * 60)
    logger.info(f"Environment: {settings.environment}")

    services = get_services()
    try:
        await services.db.create_all()
        logger.info("✓ Storage ready")

        seeded = await services.registry.seed_defaults()
        if seeded:
            logger.info(f"✓ Seeded {seeded} source URLs")

        await services.scheduler.initialize()
        await services.scheduler.start()
        logger.info("✓ Scheduler running")

        logger.info(f"API available at: http://{settings.HOST}:{settings.PORT}")
    except Exception as e:
        logger.error(f"Startup failed: {e}")
        raise

    yield

    logger.info("Stopping services...")
    try:
        await services.close()
        await services.db.close()
        logger.info("✓ Services stopped")
    except Exception as e:
        logger.error(f"Shutdown error: {e}")
    logger.info("Stopped")


# ============================================================================
# Exception Handlers
# ============================================================================

async def tipstream_error_handler(request: Request, exc: TipstreamError) -> JSONResponse:
    logger.warning(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": ".".join(str(loc) for loc in error["loc"]), "message": error["msg"]}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "INVALID_INPUT", "message": "Request validation failed", "details": {"errors": errors}},
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "INTERNAL_ERROR",
            "message": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


# ============================================================================
# Application Factory
# ============================================================================

def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        description="Odds acquisition and prediction generation pipeline",
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(TipstreamError, tipstream_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(health_router)
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()


def run() -> None:
    uvicorn.run(
        "tipstream.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
