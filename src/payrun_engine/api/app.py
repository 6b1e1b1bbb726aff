"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from payrun_engine import __version__
from payrun_engine.api.routes import health_router, pay_periods_router, pay_runs_router
from payrun_engine.config import get_settings
from payrun_engine.database import dispose_db, init_db
from payrun_engine.errors import PayRunError

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES: dict[str, int] = {
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "INVALID_TRANSITION": status.HTTP_409_CONFLICT,
    "VALIDATION_FAILED": 422,
    "NOT_EDITABLE": status.HTTP_409_CONFLICT,
    "PERSISTENCE_FAILURE": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def configure_logging(level: str) -> None:
    """Configure root logging once per process."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    configure_logging(get_settings().log_level)
    init_db()
    logger.info("Pay run engine started")
    yield
    # Shutdown
    await dispose_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Pay Run Engine API",
        description="Pay run lifecycle, line calculation and exports",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(PayRunError)
    async def pay_run_error_handler(request: Request, exc: PayRunError) -> JSONResponse:
        """Translate business errors into structured responses."""
        status_code = ERROR_STATUS_CODES.get(exc.code, status.HTTP_400_BAD_REQUEST)
        return JSONResponse(
            status_code=status_code,
            content={"detail": exc.message, "code": exc.code, "context": exc.context},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(pay_periods_router, prefix="/api/v1")
    app.include_router(pay_runs_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
