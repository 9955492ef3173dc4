"""Media catalog: directory scan, feed rendering, snapshot store and refresh."""

from .builder import (
    MIME_TYPES,
    CatalogBuildError,
    build_snapshot,
    metadata_from_settings,
    render_feed,
    scan_entries,
    scan_items,
)
from .models import Enclosure, FileInfo, Item, Metadata, Snapshot
from .refresh import RefreshLoop
from .store import CatalogStore

__all__ = [
    "MIME_TYPES",
    "CatalogBuildError",
    "CatalogStore",
    "Enclosure",
    "FileInfo",
    "Item",
    "Metadata",
    "RefreshLoop",
    "Snapshot",
    "build_snapshot",
    "metadata_from_settings",
    "render_feed",
    "scan_entries",
    "scan_items",
]
