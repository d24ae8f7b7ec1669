"""
Bookshare Backend - FastAPI Application

A book-sharing backend: users own books and form forums whose members'
collections are pooled and curated by forum admins.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from bookshare.config import get_settings
from bookshare.core.errors import InternalError, ServiceError
from bookshare.database.connections import close_connections, get_database
from bookshare.database.databases.bookshare_db import create_indexes
from bookshare.routers import auth, books, forums, health, users

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("bookshare")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
    - Initialize database connection
    - Create indexes

    Shutdown:
    - Close the database connection
    """
    logger.info("Starting up Bookshare Backend...")

    try:
        db = await get_database()
        await create_indexes(db)
        logger.info("Database indexes created")
    except Exception:
        logger.exception("Database initialization failed")

    yield

    logger.info("Shutting down Bookshare Backend...")
    await close_connections()


def error_body(message: str) -> dict:
    return {"success": False, "message": message}


# Create FastAPI application
app = FastAPI(
    title="Bookshare API",
    description="""
## Book-sharing forums

### Features
- **Books**: Personal collections backed by a shared, de-duplicated catalog
- **Forums**: Local groups pooling their members' books; admins curate
- **Accounts**: Deleting an account hands admin rights on and cleans up books

### Authentication
Send the token from `POST /api/auth/login` as `Authorization: Bearer <token>`,
or rely on the http-only session cookie set by the same call.

Every response uses the envelope `{"success": bool, "message": str, "data": ...}`.
    """,
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if isinstance(exc, InternalError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ())[1:])
    message = f"{field}: {first.get('msg')}" if field else str(first.get("msg", "Invalid request"))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(message),
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Internal Server Error"),
    )


# Include routers
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(books.router)
app.include_router(forums.router)


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Bookshare API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }
