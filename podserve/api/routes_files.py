"""Media file downloads with range and conditional request support."""

import hashlib
import logging
import os
from email.utils import formatdate, parsedate_to_datetime

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import FileResponse
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import Headers

from podserve.api.dependencies import get_store
from podserve.catalog import CatalogStore, FileInfo

logger = logging.getLogger(__name__)

router = APIRouter(tags=["files"])


def validators_for(info: FileInfo) -> tuple[str, str]:
    """Return the (ETag, Last-Modified) pair derived from catalog metadata."""
    mtime = info.mod_time.timestamp()
    etag = hashlib.md5(f"{mtime}-{info.size}".encode(), usedforsecurity=False).hexdigest()
    return f'"{etag}"', formatdate(mtime, usegmt=True)


def is_not_modified(request_headers: Headers, etag: str, info: FileInfo) -> bool:
    """
    Evaluate conditional request headers against catalog metadata.

    If-None-Match takes precedence over If-Modified-Since, which is compared
    at one second resolution since HTTP dates carry no fractions.
    """
    if_none_match = request_headers.get("if-none-match")
    if if_none_match is not None:
        tags = [tag.strip().removeprefix("W/") for tag in if_none_match.split(",")]
        return "*" in tags or etag in tags

    if_modified_since = request_headers.get("if-modified-since")
    if if_modified_since is None:
        return False
    try:
        since = parsedate_to_datetime(if_modified_since)
    except (TypeError, ValueError):
        return False
    return int(info.mod_time.timestamp()) <= int(since.timestamp())


@router.api_route("/{path:path}", methods=["GET", "HEAD"])
async def get_file(
    path: str,
    request: Request,
    store: CatalogStore = Depends(get_store),
):
    """
    Serve one media file from the current catalog.

    Only paths present in the catalog are served. The file is opened fresh
    for every request and streamed with support for Range and If-Range,
    so clients can resume downloads and seek within audio.
    """
    info = store.read().files.get(path)
    if info is None:
        return Response(status_code=404)

    try:
        stat_result = await run_in_threadpool(os.stat, info.path)
    except OSError as e:
        # Deleted or unreadable since the last scan. A deletion after this
        # stat only shortens the body, since the 200 is already committed.
        logger.error(f"could not open file {path!r}: {e}")
        return Response(status_code=500)

    etag, last_modified = validators_for(info)
    if is_not_modified(request.headers, etag, info):
        return Response(
            status_code=304,
            headers={"etag": etag, "last-modified": last_modified},
        )

    response = FileResponse(
        info.path,
        media_type=info.mime_type,
        stat_result=stat_result,
    )
    response.headers["etag"] = etag
    response.headers["last-modified"] = last_modified
    return response
