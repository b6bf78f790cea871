from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.logging_config import configure_logging
from app.config import get_settings

from app.api.routers import bom as bom_routes
from app.api.routers import configurations as configuration_routes
from app.schemas.bom import BomErrorResponse
from app.services.bom_errors import (
    BomGenerationError,
    BomValidationError,
    MappingNotFoundError,
)


logger = logging.getLogger(__name__)

# Configure logging before anything else
configure_logging()
settings = get_settings()

app = FastAPI(
    title="CleanStation BOM Service",
    version="0.1.0",
    description="Sink order configuration → hierarchical and aggregated bill of materials.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

def _status_for(exc: BomGenerationError) -> int:
    if isinstance(exc, BomValidationError):
        return 400
    if isinstance(exc, MappingNotFoundError):
        return 422
    # catalog integrity errors are server-side data defects
    return 500


@app.exception_handler(BomGenerationError)
async def bom_generation_error_handler(request: Request, exc: BomGenerationError):
    status_code = _status_for(exc)
    if status_code >= 500:
        logger.error("BOM generation failed on %s: %s", request.url.path, exc)
    else:
        logger.warning("BOM generation rejected on %s: %s", request.url.path, exc)
    body = BomErrorResponse(
        kind=exc.kind,
        message=str(exc),
        problems=getattr(exc, "problems", []),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


# ---------------------------------------------------------------------------
# Routers (all mounted under /api/v1)
# ---------------------------------------------------------------------------

app.include_router(bom_routes.router, prefix="/api/v1")             # /api/v1/bom/...
app.include_router(configuration_routes.router, prefix="/api/v1")   # /api/v1/orders/...


@app.get("/health", tags=["system"])
async def health_check() -> dict:
    """
    Simple health check endpoint for monitoring / readiness probes.
    """
    return {"status": "ok"}
