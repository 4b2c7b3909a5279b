"""
main.py - Main FastAPI Application

This file is the entry point for the backend server.
It creates the FastAPI application, wires the storage engine and the
remote scorer onto app.state and includes all API routes.
"""
import logging
import time
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from .agents.chat_agent import ChatAgent
from .agents.content_analyzer import ContentAnalyzer
from .agents.groq_client import GroqClient
from .api.deps import identity_from_request
from .api.v1 import admin, auth, health, news, stream
from .config import Settings, get_settings
from .db.engine import build_engine, init_db
from .db.repositories.api_logs import log_api_request
from .services.broadcaster import StatsBroadcaster

# Explicitly load .env file to ensure os.getenv works everywhere
load_dotenv()

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _write_api_log(app: FastAPI, **fields) -> None:
    with Session(app.state.engine) as session:
        log_api_request(session, **fields)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build an application instance.

    Args:
        settings: Settings to use (defaults to the cached environment settings)

    Returns:
        FastAPI app with its own engine, remote client and stats broadcaster
    """
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(
        title=settings.APP_NAME,
        description="News credibility analysis with accounts, history and live statistics",
        version=settings.VERSION,
    )

    engine = build_engine(settings.DATABASE_URL)
    client = GroqClient(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.analyzer = ContentAnalyzer(client)
    app.state.chat_agent = ChatAgent(client)
    app.state.broadcaster = StatsBroadcaster(engine, interval=settings.STATS_INTERVAL_SECONDS)

    # Add CORS middleware to allow frontend to call the API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms}ms)")

        identity = identity_from_request(request)
        try:
            await run_in_threadpool(
                _write_api_log,
                app,
                endpoint=request.url.path,
                method=request.method,
                user_id=identity.user_id if identity else None,
                status_code=response.status_code,
                response_time_ms=elapsed_ms,
                user_agent=request.headers.get("user-agent"),
                ip_address=request.client.host if request.client else None,
            )
        except SQLAlchemyError as e:
            logger.error(f"API log write failed: {e}")
        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(_request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(_request: Request, exc: RequestValidationError):
        logger.warning(f"Rejected request body: {exc.errors()}")
        return _error(400, "Invalid request")

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"DB error on {request.method} {request.url.path}: {exc}")
        return _error(500, "DB Error")

    @app.exception_handler(Exception)
    async def server_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
        return _error(500, "Server error")

    # Include API routers
    app.include_router(health.router, tags=["Health"])
    app.include_router(auth.router, prefix=settings.API_PREFIX, tags=["Auth"])
    app.include_router(news.router, prefix=settings.API_PREFIX, tags=["News"])
    app.include_router(admin.router, prefix=settings.API_PREFIX, tags=["Admin"])
    app.include_router(stream.router, prefix=settings.API_PREFIX, tags=["Stream"])

    @app.get("/")
    def root():
        """Root endpoint - returns service banner."""
        return {
            "success": True,
            "message": settings.APP_NAME,
            "version": settings.VERSION,
            "docs": "/docs",
        }

    @app.on_event("startup")
    async def startup_event():
        """Create tables and seed defaults."""
        init_db(engine, settings)
        logger.info(f"{settings.APP_NAME} {settings.VERSION} started")
        logger.info(f"API available under {settings.API_PREFIX}, docs at /docs")

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info(f"Shutting down {settings.APP_NAME}...")
        engine.dispose()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("coredex.main:app", host="0.0.0.0", port=get_settings().PORT, reload=True)
