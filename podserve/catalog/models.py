"""Pydantic models for the media catalog."""

from datetime import datetime
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Metadata(BaseModel):
    """Channel-level configuration, set once at startup."""

    model_config = ConfigDict(frozen=True)

    title: str
    link: str
    description: str
    language: str
    cover_url: str
    external_url: str  # prefix for item links, ends with "/"
    local_root: Path


class Enclosure(BaseModel):
    """Downloadable media attachment of a feed item."""

    model_config = ConfigDict(frozen=True)

    url: str
    length: int
    type: str


class Item(BaseModel):
    """One catalog entry, keyed by its path relative to the root."""

    model_config = ConfigDict(frozen=True)

    title: str
    path: str
    mod_time: datetime
    link: str
    description: str = ""
    enclosure: Enclosure


class FileInfo(BaseModel):
    """Serving-time view of an Item."""

    model_config = ConfigDict(frozen=True)

    path: Path
    mime_type: str
    size: int
    mod_time: datetime


class Snapshot(BaseModel):
    """Feed document, file map and item list produced by one directory scan.

    The three fields are only ever replaced together.
    """

    model_config = ConfigDict(frozen=True)

    feed: bytes
    files: Mapping[str, FileInfo] = Field(default_factory=dict, validate_default=True)
    items: tuple[Item, ...] = ()

    @field_validator("files", mode="after")
    @classmethod
    def _read_only_files(cls, value: Mapping[str, FileInfo]) -> Mapping[str, FileInfo]:
        return MappingProxyType(dict(value))
