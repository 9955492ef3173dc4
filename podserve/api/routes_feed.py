"""Podcast feed endpoint."""

from fastapi import APIRouter, Depends, Response

from podserve.api.dependencies import get_store
from podserve.catalog import CatalogStore

RSS_MEDIA_TYPE = "application/rss+xml; charset=UTF-8"

router = APIRouter(tags=["feed"])


@router.api_route("/feed", methods=["GET", "HEAD"])
@router.api_route("/pod", methods=["GET", "HEAD"], include_in_schema=False)
async def get_feed(store: CatalogStore = Depends(get_store)):
    """
    Serve the RSS document of the current catalog.

    The document is rendered once per refresh; requests get the stored bytes
    verbatim.
    """
    return Response(content=store.read().feed, media_type=RSS_MEDIA_TYPE)
