"""
FastAPI application main file.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from faultline.config import Settings, settings as default_settings
from faultline.database import build_engine, build_session_factory, init_db
from faultline.exceptions import EventValidationError, NotFoundError, StorageError
from faultline.kinds import ERRORS, LOGS
from faultline.routers import ingest
from faultline.routers.events import build_events_router
from faultline.routers.groups import build_groups_router
from faultline.schemas import ErrorUpdate, LogUpdate
from faultline.services import GroupService, IngestionService

# Configure logging
logging.basicConfig(
    level=default_settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info("Starting Faultline...")
    logger.info("=" * 60)
    try:
        await init_db(app.state.engine)
        logger.info("✅ Database initialized successfully")
    except Exception as e:
        logger.error(f"❌ Failed to initialize database: {str(e)}", exc_info=True)
        raise

    logger.info("📡 Available endpoints:")
    logger.info("   POST /ingest/{project_id}:{key}/errors - Ingest an error")
    logger.info("   POST /ingest/{project_id}:{key}/logs - Ingest a log")
    logger.info("   GET  /v1/errors, /v1/logs - Events")
    logger.info("   GET  /v1/error-groups, /v1/log-groups - Groups")
    logger.info("   GET  /health - Health check")
    logger.info("=" * 60)

    yield

    # Shutdown
    logger.info("Shutting down application...")
    await app.state.engine.dispose()


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log every request except health checks."""

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if path == "/health":
            return await call_next(request)

        client_host = request.client.host if request.client else 'unknown'
        logger.info(f"🔔 INCOMING REQUEST: {request.method} {path} from {client_host}")
        response = await call_next(request)
        logger.info(f"✅ RESPONSE: {response.status_code} for {request.method} {path}")
        return response


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})

    @app.exception_handler(EventValidationError)
    async def validation_handler(request: Request, exc: EventValidationError):
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})

    @app.exception_handler(StorageError)
    async def storage_handler(request: Request, exc: StorageError):
        logger.error(f"Storage error on {request.method} {request.url.path}: {str(exc)}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application with its engine, services and routers.
    """
    settings = settings or default_settings

    app = FastAPI(
        title="Faultline",
        description="Error and log ingestion with fingerprint-based grouping",
        version="1.0.0",
        lifespan=lifespan
    )

    engine = build_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
    session_factory = build_session_factory(engine)
    app.state.settings = settings
    app.state.engine = engine
    app.state.ingestion = {
        kind.name: IngestionService(kind, session_factory) for kind in (ERRORS, LOGS)
    }
    app.state.groups = {
        kind.name: GroupService(kind, session_factory) for kind in (ERRORS, LOGS)
    }

    app.add_middleware(LoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_exception_handlers(app)

    # Include routers
    app.include_router(ingest.router)
    app.include_router(build_events_router(ERRORS, "/v1/errors", ErrorUpdate))
    app.include_router(build_events_router(LOGS, "/v1/logs", LogUpdate))
    app.include_router(build_groups_router(ERRORS, "/v1/error-groups"))
    app.include_router(build_groups_router(LOGS, "/v1/log-groups"))

    @app.get("/")
    async def root():
        """
        Root endpoint.
        """
        return {
            "message": "Faultline API",
            "version": "1.0.0",
            "endpoints": {
                "ingest_errors": "/ingest/{project_id}:{key}/errors",
                "ingest_logs": "/ingest/{project_id}:{key}/logs",
                "errors": "/v1/errors",
                "logs": "/v1/logs",
                "error_groups": "/v1/error-groups",
                "log_groups": "/v1/log-groups",
            },
        }

    @app.get("/config")
    async def get_config():
        """
        Get configuration (without sensitive data).
        """
        return {
            "database": {
                "url": settings.DATABASE_URL.split("://")[0] + "://***"  # Hide actual path
            },
            "pagination": {
                "default_limit": settings.DEFAULT_PAGE_LIMIT,
                "max_limit": settings.MAX_PAGE_LIMIT,
            },
        }

    @app.get("/health")
    async def health():
        """
        Health check endpoint.
        """
        return {"status": "healthy"}

    return app


app = create_app()


def run() -> None:
    """Console entry point."""
    import uvicorn

    uvicorn.run(app, host=default_settings.API_HOST, port=default_settings.API_PORT)
