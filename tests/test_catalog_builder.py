"""Tests for catalog building and feed rendering."""

import os
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import patch

import pytest

from podserve.catalog import (
    CatalogBuildError,
    Metadata,
    build_snapshot,
    metadata_from_settings,
    render_feed,
    scan_items,
)
from podserve.config import Settings

ITUNES = "{http://www.itunes.com/dtds/podcast-1.0.dtd}"


def make_metadata(root: Path, base_url: str = "http://pods.test/") -> Metadata:
    """Helper to create Metadata for a media directory."""
    return Metadata(
        title="Test Podcast",
        link=base_url,
        description="Episodes & extras",
        language="en-us",
        cover_url=f"{base_url}cover.png",
        external_url=base_url,
        local_root=root,
    )


def write_file(path: Path, size: int, mtime: float = 1_700_000_000) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\x00" * size)
    os.utime(path, (mtime, mtime))
    return path


@pytest.fixture
def media_dir(tmp_path):
    """A directory with supported and unsupported files."""
    write_file(tmp_path / "song.mp3", 300)
    write_file(tmp_path / "clip.mp4", 200)
    write_file(tmp_path / "note.m4a", 100)
    write_file(tmp_path / "image.png", 50)
    write_file(tmp_path / "readme.txt", 10)
    return tmp_path


class TestScanItems:
    """Tests for scan_items."""

    def test_extension_filtering(self, media_dir):
        """Only mp3/mp4/m4a files become catalog entries; others are silently skipped."""
        items = scan_items(make_metadata(media_dir))

        assert [i.path for i in items] == ["clip.mp4", "note.m4a", "song.mp3"]

    def test_mime_types(self, media_dir):
        items = {i.path: i for i in scan_items(make_metadata(media_dir))}

        assert items["song.mp3"].enclosure.type == "audio/mpeg"
        assert items["clip.mp4"].enclosure.type == "audio/x-m4a"
        assert items["note.m4a"].enclosure.type == "audio/x-m4a"

    def test_extension_match_is_case_insensitive(self, tmp_path):
        write_file(tmp_path / "LOUD.MP3", 10)

        items = scan_items(make_metadata(tmp_path))

        assert [i.title for i in items] == ["LOUD"]
        assert items[0].enclosure.type == "audio/mpeg"

    def test_item_fields(self, media_dir):
        """Items carry title, size, mtime and a link under the external URL."""
        item = next(i for i in scan_items(make_metadata(media_dir)) if i.path == "song.mp3")

        assert item.title == "song"
        assert item.description == ""
        assert item.mod_time == datetime.fromtimestamp(1_700_000_000, timezone.utc)
        assert item.link == "http://pods.test/song.mp3"
        assert item.enclosure.url == item.link
        assert item.enclosure.length == 300

    def test_nested_paths_are_escaped(self, tmp_path):
        write_file(tmp_path / "Season 1" / "Ep #1.mp3", 10)

        (item,) = scan_items(make_metadata(tmp_path))

        assert item.path == "Season 1/Ep #1.mp3"
        assert item.link == "http://pods.test/Season%201/Ep%20%231.mp3"

    def test_hidden_entries_are_skipped(self, tmp_path):
        write_file(tmp_path / ".partial.mp3", 10)
        write_file(tmp_path / ".cache" / "ep.mp3", 10)
        write_file(tmp_path / "ep.mp3", 10)

        assert [i.path for i in scan_items(make_metadata(tmp_path))] == ["ep.mp3"]

    def test_missing_root_raises(self, tmp_path):
        with pytest.raises(CatalogBuildError):
            scan_items(make_metadata(tmp_path / "missing"))

    def test_walk_failure_raises(self, media_dir):
        with patch("podserve.catalog.builder.os.walk", side_effect=PermissionError("denied")):
            with pytest.raises(CatalogBuildError, match="denied"):
                scan_items(make_metadata(media_dir))

    def test_stat_failure_raises(self, media_dir):
        """A file vanishing mid-scan fails the whole scan instead of yielding a partial list."""
        listing = [(str(media_dir), [], ["song.mp3", "ghost.mp3"])]
        with patch("podserve.catalog.builder.os.walk", return_value=iter(listing)):
            with pytest.raises(CatalogBuildError, match="ghost.mp3"):
                scan_items(make_metadata(media_dir))


class TestRenderFeed:
    """Tests for render_feed."""

    def test_document_structure(self, media_dir):
        metadata = make_metadata(media_dir)
        feed = render_feed(metadata, scan_items(metadata))

        assert feed.startswith(b'<?xml version="1.0" encoding="UTF-8"?>')
        root = ET.fromstring(feed)
        channel = root.find("channel")
        assert root.tag == "rss"
        assert root.attrib["version"] == "2.0"
        assert channel.findtext("title") == "Test Podcast"
        assert channel.findtext("link") == "http://pods.test/"
        assert channel.findtext("description") == "Episodes & extras"
        assert channel.findtext("language") == "en-us"
        assert channel.find(f"{ITUNES}image").attrib["href"] == "http://pods.test/cover.png"

        items = channel.findall("item")
        assert len(items) == 3
        song = items[2]
        assert song.findtext("title") == "song"
        assert song.findtext("link") == "http://pods.test/song.mp3"
        assert song.findtext("guid") == "http://pods.test/song.mp3"
        assert song.findtext("pubDate") == "Tue, 14 Nov 2023 22:13:20 GMT"
        enclosure = song.find("enclosure")
        assert enclosure.attrib == {
            "url": "http://pods.test/song.mp3",
            "length": "300",
            "type": "audio/mpeg",
        }

    def test_empty_catalog(self, tmp_path):
        feed = render_feed(make_metadata(tmp_path), [])

        assert ET.fromstring(feed).find("channel").findall("item") == []


class TestBuildSnapshot:
    """Tests for build_snapshot."""

    def test_fields_agree(self, media_dir):
        snapshot = build_snapshot(make_metadata(media_dir))

        assert set(snapshot.files) == {i.path for i in snapshot.items}
        info = snapshot.files["song.mp3"]
        assert info.path == media_dir / "song.mp3"
        assert info.mime_type == "audio/mpeg"
        assert info.size == 300
        assert info.mod_time == datetime.fromtimestamp(1_700_000_000, timezone.utc)

    def test_unchanged_directory_is_byte_identical(self, media_dir):
        metadata = make_metadata(media_dir)

        assert build_snapshot(metadata).feed == build_snapshot(metadata).feed

    def test_changed_file_changes_feed(self, media_dir):
        metadata = make_metadata(media_dir)
        before = build_snapshot(metadata)

        write_file(media_dir / "song.mp3", 301)

        assert build_snapshot(metadata).feed != before.feed


def test_metadata_from_settings(tmp_path):
    settings = Settings(
        _env_file=None,
        dir=tmp_path,
        base_url="https://pods.example.com",
        title="Mine",
    )

    metadata = metadata_from_settings(settings)

    assert metadata.title == "Mine"
    assert metadata.external_url == "https://pods.example.com/"
    assert metadata.cover_url == "https://pods.example.com/cover.png"
    assert metadata.local_root == tmp_path.resolve()


def write_raw_name(root: Path, raw_name: bytes, size: int = 40) -> None:
    """Create a file whose name is arbitrary bytes, skipping where the file system refuses."""
    try:
        with open(os.path.join(os.fsencode(root), raw_name), "wb") as f:
            f.write(b"\x00" * size)
    except OSError as e:
        pytest.skip(f"file system rejects non-UTF-8 names: {e}")


class TestUndecodableNames:
    """Names that are not valid UTF-8 still produce a valid catalog."""

    def test_snapshot_builds(self, tmp_path):
        write_raw_name(tmp_path, b"caf\xe9.mp3")
        write_file(tmp_path / "plain.mp3", 10)

        snapshot = build_snapshot(make_metadata(tmp_path))

        assert [i.path for i in snapshot.items] == ["caf\ufffd.mp3", "plain.mp3"]
        item = snapshot.items[0]
        assert item.title == "caf\ufffd"
        assert item.link == "http://pods.test/caf%E9.mp3"
        assert item.enclosure.length == 40

        info = snapshot.files["caf\ufffd.mp3"]
        assert info.path.exists()
        assert info.size == 40

    def test_feed_is_valid_utf8_xml(self, tmp_path):
        write_raw_name(tmp_path, b"caf\xe9.mp3")

        feed = build_snapshot(make_metadata(tmp_path)).feed

        feed.decode("utf-8")
        channel = ET.fromstring(feed).find("channel")
        item = channel.find("item")
        assert item.findtext("title") == "caf\ufffd"
        assert item.find("enclosure").get("url") == "http://pods.test/caf%E9.mp3"

    def test_colliding_names_keep_one_entry(self, tmp_path):
        """Two names that decode to the same key yield a single catalog entry."""
        write_raw_name(tmp_path, b"caf\xe9.mp3", size=10)
        write_raw_name(tmp_path, b"caf\xff.mp3", size=20)

        snapshot = build_snapshot(make_metadata(tmp_path))

        assert list(snapshot.files) == ["caf\ufffd.mp3"]
        assert len(snapshot.items) == 1

    def test_encoding_failure_raises_build_error(self, media_dir):
        with patch(
            "podserve.catalog.builder.render_feed",
            side_effect=UnicodeEncodeError("utf-8", "\udce9", 0, 1, "surrogates not allowed"),
        ):
            with pytest.raises(CatalogBuildError, match="could not render feed"):
                build_snapshot(make_metadata(media_dir))
