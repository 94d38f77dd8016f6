# ============================================================================
# CLA Backend - FastAPI Application Entry Point
# ============================================================================
"""
Main FastAPI application module for the CLA backend.

This module sets up the FastAPI application with:
- Logging configured from ``settings.log_level``
- CORS middleware configuration for the CLA consoles
- Startup/shutdown handlers creating tables and closing the database
- Error handlers mapping service errors to ``ErrorResponse`` bodies
- API router integration

Usage:
    Direct: python -m cla_backend.main
    Server: uvicorn cla_backend.main:app --host 0.0.0.0 --port 8000 --reload
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .api.v1 import api_router
from .config import settings
from .errors import SignatureServiceError
from .models import ErrorResponse
from .services.database_service import database_service

# ============================================================================
# LOGGING
# ============================================================================

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("cla.main")

# ============================================================================
# APPLICATION INITIALIZATION
# ============================================================================

app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    description=(
        "CLA Backend API\n\n"
        "Signatures, approval lists and audit events for Contributor License "
        "Agreement management."
    ),
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# ============================================================================
# MIDDLEWARE CONFIGURATION
# ============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# ============================================================================
# APPLICATION EVENT HANDLERS
# ============================================================================


@app.on_event("startup")
async def startup_event() -> None:
    """Create missing tables and report the database status."""
    logger.info(f"Starting CLA backend {settings.api_version} (debug={settings.debug})")
    await database_service.init_db()
    health = await database_service.health_check()
    logger.info(f"Database: {health['database_type']} ({health['status']})")


@app.on_event("shutdown")
async def shutdown_event() -> None:
    logger.info("Shutting down CLA backend")
    await database_service.close()


# ============================================================================
# ERROR HANDLERS
# ============================================================================


def _error_json(status_code: int, error: str, detail: str, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    body = ErrorResponse(error=error, detail=detail, timestamp=datetime.now())
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"), headers=headers)


@app.exception_handler(SignatureServiceError)
async def signature_service_exception_handler(request: Request, exc: SignatureServiceError) -> JSONResponse:
    """Bad request, not found and forbidden service errors keep their own status codes."""
    return _error_json(exc.status_code, type(exc).__name__, exc.message)


@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return _error_json(422, "Validation Error", str(exc))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return _error_json(exc.status_code, f"HTTP {exc.status_code}", str(exc.detail), headers=exc.headers)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected errors; details only in debug mode."""
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return _error_json(500, "Internal Server Error", str(exc) if settings.debug else "An unexpected error occurred")


# ============================================================================
# ROUTER CONFIGURATION
# ============================================================================

app.include_router(api_router, prefix="/api/v1")


@app.get("/", tags=["root"])
async def root() -> Dict[str, Any]:
    return {
        "name": settings.api_title,
        "version": settings.api_version,
        "status": "running",
        "docs_url": "/docs",
        "health_check": "/api/v1/health",
        "timestamp": datetime.now(),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "cla_backend.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
