"""FastAPI application setup"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from src.api.models import ErrorResponse
from src.api.routes import router
from src.api.metrics_routes import router as metrics_router
from src.api.middleware import setup_cors, setup_rate_limiting, setup_metrics
from src.config import LOG_LEVEL, validate_config
from src.exceptions import MindsetError
from src.observability.metrics import init_metrics
from src.services.container import build_infrastructure, shutdown_infrastructure

# Configure logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, LOG_LEVEL)
)

logger = logging.getLogger(__name__)


def status_for_error(exc: MindsetError) -> int:
    """HTTP status code for one of our exceptions (422, 401, 503 or 500)"""
    return getattr(exc, "status_code", status.HTTP_500_INTERNAL_SERVER_ERROR)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for FastAPI application"""
    # Startup
    logger.info("Starting API server...")
    validate_config()
    container = await build_infrastructure()
    logger.info(f"Storage ready: {type(container.backend).__name__}")
    init_metrics()

    yield

    # Shutdown
    logger.info("Shutting down API server...")
    await shutdown_infrastructure()
    logger.info("Storage connections closed")


def create_api_application(use_lifespan: bool = True) -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Athlete Mindset API",
        description="Check-ins, wellbeing scores, XP, streaks, achievements and exercise recommendations",
        version="1.0.0",
        lifespan=lifespan if use_lifespan else None
    )

    # Setup middleware
    setup_cors(app)
    setup_rate_limiting(app)
    setup_metrics(app)

    # Include routes
    app.include_router(router)
    app.include_router(metrics_router)

    @app.exception_handler(MindsetError)
    async def mindset_exception_handler(request: Request, exc: MindsetError):
        error = ErrorResponse(
            error=exc.__class__.__name__,
            detail=exc.user_message,
            request_id=exc.request_id,
        )
        return JSONResponse(status_code=status_for_error(exc), content=error.model_dump())

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "detail": str(exc)}
        )

    logger.info("FastAPI application created")

    return app
