"""FastAPI application for the business data mapper."""

import logging
from typing import List

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.exceptions import CollectionNotFoundError, InvalidBusinessIdError
from api.routers import mapping
from datamapper.config import get_config
from datamapper.migration.exceptions import (
    EmptyCollectionError,
    MappingError,
    NoCollectionsFoundError,
)

config = get_config()

logging.basicConfig(
    level=getattr(logging, config.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Business Data Mapper API",
    description="Maps schema-less business spreadsheets into the unified relational schema",
    version="1.0.0",
)


def parse_cors_origins(value: str) -> List[str]:
    """Comma-separated CORS_ORIGINS -> list; empty means allow all."""
    origins = [origin.strip() for origin in (value or "").split(",") if origin.strip()]
    return origins or ["*"]


app.add_middleware(
    CORSMiddleware,
    allow_origins=parse_cors_origins(config.cors_origins),
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


def _error_response(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error_type": type(exc).__name__},
    )


@app.exception_handler(InvalidBusinessIdError)
async def invalid_business_id_handler(request: Request, exc: InvalidBusinessIdError):
    """Malformed business ID -> 400."""
    return _error_response(status.HTTP_400_BAD_REQUEST, exc)


async def not_found_handler(request: Request, exc: Exception):
    """Missing business, collection or documents -> 404."""
    logger.info(f"{request.url.path}: {exc}")
    return _error_response(status.HTTP_404_NOT_FOUND, exc)


for _not_found in (CollectionNotFoundError, NoCollectionsFoundError, EmptyCollectionError):
    app.add_exception_handler(_not_found, not_found_handler)


@app.exception_handler(MappingError)
async def mapping_error_handler(request: Request, exc: MappingError):
    """Any other pipeline error -> 400."""
    logger.error(f"Mapping error on {request.url.path}: {exc}")
    return _error_response(status.HTTP_400_BAD_REQUEST, exc)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Error contexts may hold exception objects, which are not JSON serializable
    errors = [
        {key: str(value) if isinstance(value, Exception) else value for key, value in error.items()}
        for error in exc.errors()
    ]
    logger.warning(f"Invalid request to {request.url.path}: {errors}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": errors, "error_type": "ValidationError"},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": str(exc) or "Internal server error", "error_type": type(exc).__name__},
    )


app.include_router(mapping.router)


@app.get("/")
def root():
    return {
        "message": "Business Data Mapper API",
        "version": app.version,
        "docs": "/docs",
    }


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "healthy"}
