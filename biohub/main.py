"""
BioHub submission pipeline FastAPI application entry point.

Pipeline: intake -> validate -> secure -> ingest occurrences -> publish
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from biohub import __version__
from biohub.config import get_settings
from biohub.db.session import check_db_connection, engine
from biohub.errors import ApiError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    logger.info("BioHub starting")
    try:
        try:
            check_db_connection()
            logger.info("Database connection verified")
        except Exception as e:
            logger.critical("Database unreachable: %s", e)
            raise

        # A broken shipped style schema or stylesheet should stop the deploy,
        # not the first submission.
        try:
            from biohub.services.eml.transform import load_default_stylesheet
            from biohub.services.validation.loader import load_default_style_schema

            load_default_style_schema()
            load_default_stylesheet()
            logger.info("Default style schema and EML stylesheet validated")
        except Exception as e:
            logger.critical("Shipped reference data failed validation at startup: %s", e)
            raise

        yield
    finally:
        logger.info("BioHub shutting down")
        engine.dispose()
        logger.info("Database connection pool closed")


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Render pipeline errors as ``{name, message, errors}`` with the error's status."""
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed: %s %s", request.method, request.url.path, exc.message, exc.errors,
            exc_info=exc,
        )
    else:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    app.add_exception_handler(ApiError, api_error_handler)

    # Service routes (token-authenticated)
    from biohub.api.artifact import router as artifact_router
    from biohub.api.submission import router as submission_router

    app.include_router(submission_router, prefix="/api/dwc", tags=["submission"])
    app.include_router(artifact_router, prefix="/api/dwc", tags=["artifact"])

    @app.get("/health")
    def health() -> dict:
        """Health check endpoint. Confirms DB connectivity."""
        from sqlalchemy import text

        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return {
                "status": "ok",
                "version": __version__,
                "database": "connected",
            }
        except Exception:
            return JSONResponse(
                status_code=503,
                content={
                    "status": "unhealthy",
                    "version": __version__,
                    "database": "disconnected",
                },
            )

    return app


app = create_app()
