r"""backend\app\api\v1\health.py

Health check endpoints.

These endpoints can be used by orchestrators and load balancers to verify
that the service is running.  A simple GET request to `/api/v1/health`
returns a JSON payload with status information and the size of the loaded
catalogue.
"""

from fastapi import APIRouter

from . import deps

router = APIRouter()


@router.get("/health")
def health_check() -> dict[str, object]:
    """Return a basic health indicator."""
    return {
        "status": "ok",
        "warehouses": len(deps.STORE.list_warehouses()),
        "products": len(deps.STORE.list_products()),
    }
