"""Fixed assets served independently of the catalog."""

from importlib import resources
from pathlib import Path

from fastapi import APIRouter, Depends, Response

from podserve.api.dependencies import get_cover

router = APIRouter(tags=["static"])


@router.api_route("/cover.png", methods=["GET", "HEAD"])
async def get_cover_image(cover: bytes = Depends(get_cover)):
    """Serve the channel cover image."""
    return Response(content=cover, media_type="image/png")


def load_cover(cover_file: Path | None = None) -> bytes:
    """Read the cover image once; the bundled image unless a file is configured."""
    if cover_file is not None:
        return cover_file.read_bytes()
    return resources.files("podserve").joinpath("static/cover.png").read_bytes()
