"""
Main FastAPI application entry point.
"""
import logging
import os
import uuid
from contextlib import asynccontextmanager
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import text

from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.database import engine, Base, SessionLocal
from app.core.logging_config import setup_logging
from app.core.permission_store import PermissionStore
from app.api.v1.router import api_router
from app.middleware.request_logging import RequestLoggingMiddleware
from app.services.permission_service import UserPermissionSync, hydrate_permission_store

# Import all models to ensure they register with Base.metadata
from app.models import User, ActivityLog  # noqa: F401

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    logger.info("Starting up MDA Training Authorization API...")

    # Run Alembic migrations when a managed database is configured
    if os.getenv("DATABASE_URL"):
        try:
            from alembic.config import Config
            from alembic import command

            logger.info("[MIGRATION] DATABASE_URL detected, running Alembic migrations...")
            command.upgrade(Config("alembic.ini"), "head")
            logger.info("[MIGRATION] Alembic migrations completed (or already up-to-date)")
        except Exception as e:
            trace_id = str(uuid.uuid4())
            logger.warning(f"[MIGRATION] [{trace_id}] Alembic migration failed: {e}")
            logger.debug(f"[MIGRATION] [{trace_id}] Migration error details:", exc_info=True)
    else:
        logger.info("[MIGRATION] DATABASE_URL not set, skipping migrations (local dev mode)")

    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created/verified successfully")
    except SQLAlchemyError as e:
        logger.error(f"Failed to create database tables: {e}", exc_info=True)

    # User records hold the durable copy of custom permissions
    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
            hydrate_permission_store(db, app.state.permission_store)
        finally:
            db.close()
    except SQLAlchemyError as e:
        trace_id = str(uuid.uuid4())
        logger.error(
            f"[{trace_id}] Could not load custom permissions from the database: {e}",
            exc_info=True
        )

    yield
    logger.info("Shutting down MDA Training Authorization API...")


app = FastAPI(
    title="MDA Training Authorization API",
    description="Role and permission authorization for the MDA training platform",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    redirect_slashes=False,
)

# One store per process; writes are mirrored to the user records
app.state.permission_store = PermissionStore(on_change=UserPermissionSync(SessionLocal))

app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors with trace_id."""
    trace_id = getattr(request.state, "trace_id", str(uuid.uuid4()))

    logger.error(
        f"[{trace_id}] Unhandled exception: {type(exc).__name__}: {exc}",
        exc_info=True
    )

    if isinstance(exc, SQLAlchemyError):
        error_detail = "Database error: check DATABASE_URL / migrations"
        error_type = "DatabaseError"
    elif isinstance(exc, HTTPException):
        raise exc
    else:
        error_detail = str(exc) if settings.DEBUG else "Internal Server Error"
        error_type = type(exc).__name__

    return JSONResponse(
        status_code=500,
        content={
            "detail": error_detail,
            "trace_id": trace_id,
            "error": error_type,
        },
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "MDA Training Authorization API",
        "version": "1.0.0",
        "docs": "/docs",
    }
