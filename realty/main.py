from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Annotated
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError, OperationalError
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException
from realty.database import Base, SessionLocal, engine
from realty.config import settings
from realty import models  # noqa: F401  registers tables on Base.metadata
from realty.limits import limiter, RateLimitExceeded, SlowAPIMiddleware
from realty.services.auth_service import ensure_admin
import logging

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


from realty.routers import (
    auth,
    properties,
    images,
    documents,
    pages,
    sections,
    services,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.ADMIN_EMAIL and settings.ADMIN_PASSWORD:
        db = SessionLocal()
        try:
            ensure_admin(db, settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD, settings.ADMIN_NAME)
        except SQLAlchemyError:
            db.rollback()
            logger.error("Could not create the admin account", exc_info=True)
        finally:
            db.close()
    yield


app = FastAPI(title="Realty API", lifespan=lifespan)

# CORS (permissive for development; tighten in production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Rate limiting middleware and handler
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)


def error_response(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
        headers=headers,
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return error_response(
        status.HTTP_429_TOO_MANY_REQUESTS, f"Rate limit exceeded: {exc.detail}"
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(
        exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None)
    )


def _validation_message(error: dict) -> str:
    field = error.get("loc", ["body"])[-1]
    if error.get("type") == "missing":
        return f"Field '{field}' is required"
    message = error.get("msg", "Invalid value")
    if message.startswith("Value error, "):
        return message[len("Value error, "):]
    return f"Invalid value for '{field}': {message}"


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = _validation_message(errors[0]) if errors else "Invalid request"
    return error_response(status.HTTP_400_BAD_REQUEST, message)


# Database error handler
@app.exception_handler(OperationalError)
async def database_operational_error_handler(request: Request, exc: OperationalError):
    """Handle database connection/operation errors"""
    logger.error("Database operational error on %s", request.url.path, exc_info=exc)
    error_msg = str(exc).lower()

    if "could not connect" in error_msg or "connection" in error_msg:
        return error_response(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "Database connection error. Please try again.",
        )
    if "timeout" in error_msg:
        return error_response(
            status.HTTP_504_GATEWAY_TIMEOUT,
            "Database query timeout. Please try again.",
        )
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Database error occurred")


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    """Handle general SQLAlchemy errors"""
    logger.error("Database error on %s", request.url.path, exc_info=exc)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Database error occurred")


# Note: In production, disable this and use Alembic migrations instead
# Only create tables if using SQLite (for local dev), not for PostgreSQL
if settings.DATABASE_URL.startswith("sqlite"):
    Base.metadata.create_all(bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


db_dependency = Annotated[Session, Depends(get_db)]


@app.get("/health", status_code=status.HTTP_200_OK)
def health_check(db: db_dependency):
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.error("Health check could not reach the database", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "status": "error",
                "database": "disconnected",
                "timestamp": timestamp,
            },
        )
    return {
        "success": True,
        "status": "ok",
        "database": "connected",
        "timestamp": timestamp,
    }


@app.get("/", status_code=status.HTTP_200_OK)
def root():
    return {
        "success": True,
        "message": "Realty API",
        "endpoints": {
            "auth": "/auth",
            "properties": "/properties",
            "images": "/images",
            "documents": "/documents",
            "pages": "/pages",
            "sections": "/sections",
            "services": "/services",
            "health": "/health",
        },
    }


app.include_router(auth.router)
app.include_router(properties.router)
app.include_router(images.router)
app.include_router(documents.router)
app.include_router(pages.router)
app.include_router(sections.router)
app.include_router(services.router)

app.mount(
    settings.UPLOADS_PUBLIC_BASE,
    StaticFiles(directory=settings.UPLOADS_DIR, check_dir=False),
    name="uploads",
)
