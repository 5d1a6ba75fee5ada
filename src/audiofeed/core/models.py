"""Data model that flows through the feed pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path


class CoverMode(Enum):
    """How a non-square image is made square."""

    CROP = "crop"
    PAD = "pad"


@dataclass(frozen=True)
class AudioAsset:
    """One audio file found by the scanner.

    Immutable snapshot taken during a single scan.
    """

    absolute_path: Path
    containing_folder_name: str  # "" for files directly in the library root
    file_name: str
    size_bytes: int
    modified_at: datetime

    @property
    def relative_path(self) -> str:
        """Path relative to the library root, with forward slashes."""
        if self.containing_folder_name:
            return f"{self.containing_folder_name}/{self.file_name}"
        return self.file_name


@dataclass(frozen=True)
class CoverArtAsset:
    """A derived square cover stored in the covers cache."""

    content_key: str
    size_pixels: int
    storage_path: Path
    public_url: str


@dataclass(frozen=True)
class ChannelInfo:
    """Channel-level fields of the feed."""

    title: str
    link: str
    description: str
    language: str
    copyright: str
    author: str
    email: str
    explicit: bool
    category: str
    image_url: str = ""  # as configured (remote source)
    cover_url: str = ""  # derived square copy, "" when unavailable

    @property
    def effective_image(self) -> str:
        return self.cover_url or self.image_url


@dataclass(frozen=True)
class FeedItem:
    identifier: str
    title: str
    author: str
    duration_formatted: str
    description: str
    enclosure_url: str
    enclosure_bytes: int
    enclosure_type: str
    published_at: datetime
    explicit: bool = False
    cover_url: str | None = None


@dataclass(frozen=True)
class FeedDocument:
    """A fully materialized feed. Regenerated wholesale, never patched."""

    channel: ChannelInfo
    items: tuple[FeedItem, ...]
    built_at: datetime

    @property
    def item_count(self) -> int:
        return len(self.items)


@dataclass
class CacheEntry:
    """The single materialized feed held by the cache controller."""

    document: FeedDocument
    built_at: float  # monotonic clock reading
    library_signature: str
    base_url: str
    ttl: float

    def age(self, now: float) -> float:
        return now - self.built_at

    def is_fresh(self, now: float, signature: str, base_url: str) -> bool:
        return (
            self.age(now) < self.ttl
            and signature == self.library_signature
            and base_url == self.base_url
        )
