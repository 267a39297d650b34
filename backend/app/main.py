r"""backend\app\main.py

Main entrypoint for the FastAPI application.

The API serves demand forecasts, restock recommendations and purchase orders
for every warehouse of the inventory system, alongside the product catalogue,
point-of-sale purchases and the analytics dashboard.  A health endpoint is
also provided for readiness/liveness checks.  Configuration is read from
environment variables and YAML files in `configs/`.
"""


from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
import logging
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from .api.v1 import (
    analytics,
    forecasts,
    health,
    products,
    purchases,
    restock,
    warehouses,
)
from .api.v1.deps import http_error
from .core.config import get_settings
from .core.errors import InventoryError
from .core.observability import TokenAndRateLimitMiddleware, metrics_endpoint

# Load .env from repo root
BASE_DIR = Path(__file__).resolve().parents[2]  # repo root
load_dotenv(BASE_DIR / ".env")

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="SmartShelf Inventory API", version="0.1.0")

settings = get_settings()
origins = [origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()] or ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,  # In production specify your UI domain(s)
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(TokenAndRateLimitMiddleware)

# Include versioned routers
app.include_router(health.router, prefix="/api/v1")
app.include_router(forecasts.router, prefix="/api/v1")
app.include_router(restock.router, prefix="/api/v1")
app.include_router(products.router, prefix="/api/v1")
app.include_router(purchases.router, prefix="/api/v1")
app.include_router(analytics.router, prefix="/api/v1")
app.include_router(warehouses.router, prefix="/api/v1")


@app.exception_handler(InventoryError)
async def _inventory_error_handler(request: Request, exc: InventoryError) -> JSONResponse:
    """Map service errors that escape a router onto the standard error payload."""

    error = http_error(exc)
    return JSONResponse(status_code=error.status_code, content={"detail": error.detail})


@app.exception_handler(Exception)
async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    LOGGER.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": {"error": "internal_error", "message": "An unexpected error occurred."}},
    )


@app.get("/", include_in_schema=False)
def _root() -> RedirectResponse:
    """Redirect the root path to the interactive docs."""

    return RedirectResponse(url="/docs")


@app.get("/metrics", include_in_schema=False)
async def _metrics() -> Response:
    """Expose Prometheus metrics."""

    return metrics_endpoint()


def run() -> None:
    """Serve the API on the host and port from the settings."""

    LOGGER.info("Starting SmartShelf Inventory API on %s:%d", settings.api_host, settings.api_port)
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    run()
