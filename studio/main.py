"""
Writing Studio API Service

A tabbed writing studio for authors: books, chapters, characters, glossary
terms and timelines, with file import and export.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from studio.api.v1.router import api_router
from studio.core.config import settings
from studio.core.errors import (
    AuthError,
    NotAuthenticatedError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from studio.db.base import engine, init_db
from studio.session import SessionRegistry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown."""
    logger.info("Starting up %s...", settings.PROJECT_NAME)
    init_db()
    if getattr(app.state, "sessions", None) is None:
        app.state.sessions = SessionRegistry()
    yield
    logger.info("Shutting down %s...", settings.PROJECT_NAME)
    await app.state.sessions.close_all()
    engine.dispose()


# Create FastAPI instance
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

# Set up CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(status_code: int, exc: Exception, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "type": type(exc).__name__, **extra},
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return _error(404, exc)


@app.exception_handler(ValidationError)
async def validation_handler(request: Request, exc: ValidationError):
    return _error(400, exc)


@app.exception_handler(AuthError)
async def auth_handler(request: Request, exc: AuthError):
    code = 401 if isinstance(exc, NotAuthenticatedError) else 400
    return _error(code, exc, code=exc.code)


@app.exception_handler(StorageError)
async def storage_handler(request: Request, exc: StorageError):
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return _error(503, exc)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions and ensure CORS headers are present."""
    logger.exception("Unhandled exception: %s: %s", type(exc).__name__, exc)

    response = JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error": str(exc),
            "type": type(exc).__name__,
        },
    )

    # Error responses bypass the CORS middleware
    response.headers["Access-Control-Allow-Origin"] = "*"
    response.headers["Access-Control-Allow-Credentials"] = "true"
    response.headers["Access-Control-Allow-Methods"] = "*"
    response.headers["Access-Control-Allow-Headers"] = "*"

    return response


# Include API router
app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": f"Welcome to {settings.PROJECT_NAME}",
        "version": settings.VERSION,
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        database = "connected"
    except SQLAlchemyError as e:
        logger.error("Database health check failed: %s", e)
        database = "unavailable"

    return {
        "status": "healthy" if database == "connected" else "degraded",
        "service": "writing-studio-api",
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT,
        "database": database,
    }


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(
        "studio.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
