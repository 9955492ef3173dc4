"""Health check endpoints for the podserve API."""

from fastapi import APIRouter, Depends

from podserve.api.dependencies import get_store
from podserve.catalog import CatalogStore

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def health_check():
    """
    Health check endpoint.

    Returns:
        A simple status object indicating the service is healthy
    """
    return {"ok": True}


@router.get("/readyz")
async def readiness_check(store: CatalogStore = Depends(get_store)):
    """
    Readiness check endpoint.

    Returns:
        Status object with the number of items in the current catalog
    """
    return {"ok": True, "items": len(store.read().items)}
