"""
Main FastAPI application.

Entry point for the Mnemo API with initialization, middleware, error
handling, and logging configuration.
"""

import logging
import sys
import time
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from mnemo.api.dependencies import get_embedding_service, get_llm_service
from mnemo.api.endpoints import auth, chat, memory, user
from mnemo.core.config import resolve_auth_secret, settings
from mnemo.core.database import close_all_connections, get_db, init_database
from mnemo.core.exceptions import LLMError
from mnemo.core.security import clear_session_cookie
from mnemo.models.schemas import HealthResponse
from mnemo.utils.dates import utcnow

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Resolves the session signing secret (failing fast in production when it
    is missing) and prepares the database.

    Args:
        app: FastAPI application instance
    """
    logger.info("Starting Mnemo API")

    resolve_auth_secret()

    if init_database():
        logger.info("Database ready")
    else:
        logger.error("Database initialization failed; requests needing storage will error")

    logger.info(f"Mnemo API {settings.api_version} started ({settings.environment})")

    yield

    logger.info("Shutting down Mnemo API")
    close_all_connections()


# Create FastAPI application
app = FastAPI(
    title=settings.api_title,
    description=settings.api_description,
    version=settings.api_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)


@app.middleware("http")
async def clear_invalid_session_middleware(request: Request, call_next):
    """Drop a session cookie that failed verification."""
    response = await call_next(request)
    if getattr(request.state, "clear_session", False):
        clear_session_cookie(response)
    return response


@app.middleware("http")
async def security_headers_middleware(request: Request, call_next):
    """Add security headers to all responses."""
    response = await call_next(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-XSS-Protection"] = "1; mode=block"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

    return response


@app.middleware("http")
async def request_size_limit_middleware(request: Request, call_next):
    """Reject request bodies larger than the configured limit."""
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit():
        if int(content_length) > settings.max_request_size_bytes:
            return JSONResponse(status_code=413, content={"error": "Request too large"})

    return await call_next(request)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Request logging middleware.

    Logs all incoming requests with timing information.
    """
    start_time = time.time()

    response = await call_next(request)

    process_time = time.time() - start_time
    logger.info(
        f"{request.method} {request.url.path} - "
        f"Status: {response.status_code} - "
        f"Time: {process_time:.3f}s"
    )
    response.headers["X-Process-Time"] = str(process_time)

    return response


# Added last so it wraps every other middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
)


def validation_message(exc: RequestValidationError) -> str:
    """
    First validation error as a client-facing sentence.

    Custom validator messages are passed through unchanged; missing fields
    read "<Field> is required".
    """
    errors = exc.errors()
    if not errors:
        return "Invalid request"

    error = errors[0]
    location = [part for part in error.get("loc", ()) if part != "body"]
    field = str(location[-1]) if location else "Request body"

    if error.get("type") == "missing":
        label = field.replace("_", " ")
        return f"{label[:1].upper()}{label[1:]} is required"

    ctx_error = (error.get("ctx") or {}).get("error")
    if ctx_error is not None:
        return str(ctx_error)

    return str(error.get("msg", "Invalid request"))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Schema violations are client errors: 400 with the first message."""
    message = validation_message(exc)
    logger.info(f"Validation failed for {request.method} {request.url.path}: {message}")
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    HTTP exception handler.

    Provides consistent error response format.
    """
    logger.warning(f"HTTP {exc.status_code}: {exc.detail} - {request.url.path}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(LLMError)
async def llm_exception_handler(request: Request, exc: LLMError):
    """The model call is the one fatal step of a chat turn."""
    logger.error(f"LLM failure: {exc}")
    return JSONResponse(status_code=500, content={"error": str(exc)})


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """
    General exception handler.

    Handles unexpected errors with proper logging.
    """
    logger.error(f"Unhandled exception: {exc} - {request.url.path}", exc_info=True)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# Include routers
app.include_router(chat.router)
app.include_router(memory.router)
app.include_router(auth.router)
app.include_router(user.router)


@app.get("/health", response_model=HealthResponse)
async def health(db: Session = Depends(get_db)):
    """
    Health check.

    The database is required; embedding and LLM providers are reported as
    configured or not.
    """
    components: Dict[str, Any] = {}

    try:
        db.execute(text("SELECT 1"))
        components["database"] = "healthy"
    except SQLAlchemyError as e:
        logger.error(f"Health check database failure: {e}")
        components["database"] = "unhealthy"

    components["embeddings"] = "configured" if get_embedding_service().is_configured else "not_configured"
    components["llm"] = "configured" if get_llm_service().config.llm_api_url else "not_configured"

    return HealthResponse(
        status="healthy" if components["database"] == "healthy" else "degraded",
        components=components,
        version=settings.api_version,
        timestamp=utcnow()
    )


if __name__ == "__main__":
    import uvicorn

    logger.info("Starting Mnemo API server")

    uvicorn.run(
        "mnemo.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
