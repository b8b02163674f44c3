from contextlib import asynccontextmanager
import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings
from app.api.v1.router import api_router
from app.core.exceptions import ServiceError
from app.core.logging import configure_logging
from app.database import async_session_factory


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
    - Configure logging

    Schema is managed by Alembic (`alembic upgrade head`).
    """
    configure_logging()
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    yield

    logger.info("Shutting down...")


# OpenAPI Tags with detailed descriptions
OPENAPI_TAGS = [
    {"name": "Referrals", "description": "Partner referrals, referral codes and pipeline status"},
    {"name": "Leads & Deals", "description": "Leads created from referral codes, conversion and deal finalization"},
    {"name": "Payments", "description": "Client payments and per-payment commission"},
    {"name": "Commissions", "description": "Partner commission summary"},
    {"name": "Payouts", "description": "Payout requests, processing with proof of payment, cancellation"},
    {"name": "Banks", "description": "Bank list, bank code and account lookups (Paystack)"},
]

FULL_API_DESCRIPTION = """
## Referral Commission API

Partners refer prospective clients, earn a commission on every confirmed
client payment, and claim it once the deal is finalized.

### Authentication

Include token in Authorization header: `Bearer <token>`.
Partner tokens carry `user_type=partner`; staff tokens `user_type=internal`.

### Responses

Success: `{"success": true, "message": ..., "data": ...}`

Failure: `{"success": false, "kind": ..., "message": ..., "errors": [...]}`

| Code | Kind |
|------|------|
| 400 | invalid_argument |
| 401 | unauthorized |
| 403 | forbidden |
| 404 | not_found |
| 409 | invalid_state / conflict |
| 502 | upstream |
| 500 | internal |
"""

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=FULL_API_DESCRIPTION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=OPENAPI_TAGS,
    swagger_ui_parameters={
        "deepLinking": True,
        "persistAuthorization": True,
    },
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router)


def _failure(status_code: int, kind: str, message: str, errors=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "kind": kind,
            "message": message,
            "errors": errors or [],
        },
    )


HTTP_KINDS = {
    400: "invalid_argument",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
}


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.warning(f"{request.method} {request.url.path} -> {exc.kind}: {exc.message}")
    return _failure(exc.status_code, exc.kind, exc.message, exc.errors)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path", "form")]
        errors.append(f"{'.'.join(loc) or 'request'}: {err.get('msg')}")
    return _failure(400, "invalid_argument", "Validation failed", errors)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    response = _failure(exc.status_code, HTTP_KINDS.get(exc.status_code, "error"), str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


# Global exception handler: details are logged, never returned unless DEBUG
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(
        f"Unhandled {type(exc).__name__} on {request.method} {request.url.path}: {exc}\n"
        f"{traceback.format_exc()}"
    )
    errors = [f"{type(exc).__name__}: {exc}"] if settings.DEBUG else []
    return _failure(500, "internal", "Internal server error", errors)


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint with database validation."""
    from sqlalchemy import text
    from datetime import datetime, timezone

    health_status = {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {
            "database": "unknown"
        }
    }

    # Check database connectivity
    try:
        async with async_session_factory() as session:
            result = await session.execute(text("SELECT 1"))
            result.scalar()
            health_status["checks"]["database"] = "connected"
    except Exception as e:
        logger.warning(f"Health check database error: {e}")
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = "error"

    # Return 503 if unhealthy
    if health_status["status"] == "unhealthy":
        return JSONResponse(status_code=503, content=health_status)

    return health_status


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "redoc": "/redoc",
    }
