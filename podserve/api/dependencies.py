"""FastAPI dependencies for API routers."""

from fastapi import Request

from podserve.catalog import CatalogStore


def get_store(request: Request) -> CatalogStore:
    """Dependency returning the catalog store owned by the running app.

    The store is created in the app lifespan and lives on ``app.state`` for
    as long as the server runs.
    """
    return request.app.state.store


def get_cover(request: Request) -> bytes:
    """Dependency returning the cover image loaded at startup."""
    return request.app.state.cover
