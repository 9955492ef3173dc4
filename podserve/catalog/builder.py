"""Build the media catalog and its RSS document from a directory tree."""

import logging
import os
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from email.utils import format_datetime
from pathlib import Path
from typing import Iterable
from urllib.parse import quote

from podserve.config import Settings

from .models import Enclosure, FileInfo, Item, Metadata, Snapshot

logger = logging.getLogger(__name__)

XML_HEADER = b'<?xml version="1.0" encoding="UTF-8"?>\n'

# XML namespaces declared on the <rss> element
NAMESPACES = {
    "itunes": "http://www.itunes.com/dtds/podcast-1.0.dtd",
    "content": "http://purl.org/rss/1.0/modules/content/",
}

# Types podcast clients accept for audio enclosures. Anything else is not
# part of the catalog.
MIME_TYPES = {
    ".mp3": "audio/mpeg",
    ".mp4": "audio/x-m4a",
    ".m4a": "audio/x-m4a",
}


class CatalogBuildError(Exception):
    """Raised when the media directory cannot be scanned."""


def metadata_from_settings(settings: Settings) -> Metadata:
    """Derive the immutable channel metadata from application settings."""
    return Metadata(
        title=settings.title,
        link=settings.base_url,
        description=settings.description,
        language=settings.language,
        cover_url=f"{settings.base_url}cover.png",
        external_url=settings.base_url,
        local_root=settings.dir.resolve(),
    )


def mime_type_for(name: str) -> str | None:
    """Return the enclosure MIME type for a file name, or None if unsupported."""
    return MIME_TYPES.get(os.path.splitext(name)[1].lower())


def _raise(err: OSError) -> None:
    raise err


def _display(name: str) -> str:
    """Decode a file system name for display and lookup.

    Names that are not valid UTF-8 carry surrogate escapes from os.walk; those
    bytes become U+FFFD, which is also what the server produces when it
    decodes the percent-escaped request path.
    """
    return os.fsencode(name).decode("utf-8", errors="replace")


def scan_entries(metadata: Metadata) -> list[tuple[Item, Path]]:
    """
    Walk the local root and pair one Item per supported media file with its
    path on disk.

    Hidden files and directories are skipped. Entries are ordered by their
    relative path so that an unchanged directory always yields the same list.

    Raises:
        CatalogBuildError: If the root or any entry below it cannot be read
    """
    root = metadata.local_root
    if not root.is_dir():
        raise CatalogBuildError(f"media directory {root} does not exist")

    entries = {}
    try:
        for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
            dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
            for name in sorted(filenames):
                if name.startswith("."):
                    continue
                mime = mime_type_for(name)
                if mime is None:
                    continue

                full_path = Path(dirpath) / name
                st = full_path.stat()
                fs_rel_path = full_path.relative_to(root).as_posix()
                rel_path = _display(fs_rel_path)
                if rel_path in entries:
                    logger.warning(
                        f"Skipping {fs_rel_path!r}: name collides with {rel_path!r}"
                    )
                    continue
                link = metadata.external_url + quote_path(fs_rel_path)

                item = Item(
                    title=_display(os.path.splitext(name)[0]),
                    path=rel_path,
                    mod_time=datetime.fromtimestamp(st.st_mtime, timezone.utc),
                    link=link,
                    enclosure=Enclosure(url=link, length=st.st_size, type=mime),
                )
                entries[rel_path] = (item, full_path)
    except (OSError, UnicodeError) as e:
        raise CatalogBuildError(f"could not scan {root}: {e}") from e

    return [entries[path] for path in sorted(entries)]


def scan_items(metadata: Metadata) -> list[Item]:
    """Return the catalog Items of the local root, ordered by relative path."""
    return [item for item, _ in scan_entries(metadata)]


def quote_path(rel_path: str) -> str:
    """Percent-escape a relative path for use in a URL, keeping separators.

    The escape works on the file system bytes, so names that are not valid
    UTF-8 still get a link that resolves to the file.
    """
    return quote(os.fsencode(rel_path), safe="/")


def render_feed(metadata: Metadata, items: Iterable[Item]) -> bytes:
    """Render the RSS 2.0 document for the given items."""
    rss = ET.Element(
        "rss",
        attrib={
            "version": "2.0",
            **{f"xmlns:{prefix}": uri for prefix, uri in NAMESPACES.items()},
        },
    )
    channel = ET.SubElement(rss, "channel")
    ET.SubElement(channel, "title").text = metadata.title
    ET.SubElement(channel, "link").text = metadata.link
    ET.SubElement(channel, "description").text = metadata.description
    ET.SubElement(channel, "language").text = metadata.language
    ET.SubElement(channel, "itunes:image", href=metadata.cover_url)

    for it in items:
        item = ET.SubElement(channel, "item")
        ET.SubElement(item, "title").text = it.title
        ET.SubElement(item, "link").text = it.link
        ET.SubElement(item, "description").text = it.description
        ET.SubElement(item, "guid", isPermaLink="true").text = it.link
        ET.SubElement(item, "pubDate").text = format_datetime(it.mod_time, usegmt=True)
        ET.SubElement(
            item,
            "enclosure",
            url=it.enclosure.url,
            length=str(it.enclosure.length),
            type=it.enclosure.type,
        )

    ET.indent(rss, space=" ")
    return XML_HEADER + ET.tostring(rss, encoding="unicode").encode("utf-8") + b"\n"


def build_snapshot(metadata: Metadata) -> Snapshot:
    """
    Scan the media directory and build a complete Snapshot.

    This is a pure function of the file system at call time; it either returns
    a full snapshot or raises, never a partial result.

    Args:
        metadata: Channel metadata, including the local root and link prefix

    Returns:
        Snapshot with the rendered feed, file map and ordered items

    Raises:
        CatalogBuildError: If the directory cannot be scanned
    """
    entries = scan_entries(metadata)
    items = [item for item, _ in entries]
    files = {
        item.path: FileInfo(
            path=full_path,
            mime_type=item.enclosure.type,
            size=item.enclosure.length,
            mod_time=item.mod_time,
        )
        for item, full_path in entries
    }
    try:
        feed = render_feed(metadata, items)
    except UnicodeError as e:
        raise CatalogBuildError(f"could not render feed: {e}") from e
    return Snapshot(feed=feed, files=files, items=tuple(items))
