"""
IncidentTracker API - Main Application
FastAPI application with CORS, error handling, request logging and the
incident store lifecycle.
"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
import traceback

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import incidents_router
from app.core.config import get_cors_origins, get_incident_rules, settings
from app.core.exceptions import IncidentError, PersistenceFailure, ValidationFailed
from app.schemas.incident import ErrorCode, ErrorResponse
from app.services.incident_service import IncidentService
from app.services.incident_store import IncidentStore


# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


# ==================== STARTUP & SHUTDOWN ====================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the incident store before serving; a bad data file aborts startup."""
    logger.info("=" * 70)
    logger.info(f"Starting {settings.PROJECT_NAME} v{settings.VERSION}")
    logger.info("=" * 70)

    logger.info("Initializing incidents store...")
    store = IncidentStore(settings.INCIDENTS_FILE_PATH)
    try:
        store.initialize()
    except PersistenceFailure as exc:
        logger.error(f"[ERROR] Failed to start: {exc.message}")
        raise
    app.state.incident_service = IncidentService(store, get_incident_rules())
    logger.info(f"[OK] Store initialized ({store.count()} incidents)")
    logger.info(f"Data file: {store.path}")

    yield

    logger.info("Shutting down application...")
    app.state.incident_service = None
    logger.info("Application shutdown complete")


# Initialize FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description=settings.PROJECT_DESCRIPTION,
    lifespan=lifespan,
)


# ==================== MIDDLEWARE ====================


# CORS: Cross-Origin Resource Sharing
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=["*"],
)


# ==================== ROUTERS ====================


app.include_router(incidents_router, prefix=settings.API_PREFIX)


# ==================== ERROR HANDLERS ====================


def _error_response(status_code: int, detail: str, code: ErrorCode, errors=None) -> JSONResponse:
    body = ErrorResponse(detail=detail, code=code, errors=errors)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", exclude_none=True))


@app.exception_handler(ValidationFailed)
async def validation_failed_handler(request: Request, exc: ValidationFailed):
    logger.info(f"Rejected incident on {request.url.path}: {len(exc.errors)} error(s)")
    return _error_response(exc.status_code, exc.message, exc.code, exc.errors)


@app.exception_handler(PersistenceFailure)
async def persistence_failure_handler(request: Request, exc: PersistenceFailure):
    logger.error(f"Persistence failure on {request.method} {request.url.path}: {exc.message}")
    detail = exc.message if settings.DEBUG else "Failed to save incidents"
    return _error_response(exc.status_code, detail, exc.code)


@app.exception_handler(IncidentError)
async def incident_error_handler(request: Request, exc: IncidentError):
    return _error_response(exc.status_code, exc.message, exc.code)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Handle malformed request bodies with detailed response"""
    logger.warning(f"Validation error on {request.url}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "detail": "Validation error",
            "code": ErrorCode.VALIDATION_FAILED.value,
            "errors": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions"""
    logger.error(f"Unhandled exception: {exc}\n{traceback.format_exc()}")

    # Don't expose internal errors in production
    error_message = str(exc) if settings.DEBUG else "Internal server error"
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, error_message, ErrorCode.INTERNAL_ERROR)


# ==================== HEALTH ====================


@app.get("/health", tags=["System"])
async def health_check(request: Request):
    """Health check endpoint for monitoring"""
    service = getattr(request.app.state, "incident_service", None)
    return {
        "status": "ok" if service is not None else "starting",
        "incidents": service.store.count() if service is not None else 0,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ==================== REQUEST LOGGING ====================


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests"""
    # Skip logging for health checks
    if request.url.path == "/health":
        return await call_next(request)

    start_time = datetime.now(timezone.utc)
    client = request.client.host if request.client else "-"
    logger.info(f">> {request.method} {request.url.path} - {client}")

    try:
        response = await call_next(request)
        duration = (datetime.now(timezone.utc) - start_time).total_seconds()
        logger.info(f"<< {request.method} {request.url.path} - {response.status_code} ({duration:.2f}s)")
        return response
    except Exception as e:
        duration = (datetime.now(timezone.utc) - start_time).total_seconds()
        logger.error(f"[ERROR] {request.method} {request.url.path} - Error: {str(e)} ({duration:.2f}s)")
        raise
