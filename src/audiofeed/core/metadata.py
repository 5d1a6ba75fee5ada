"""Metadata extraction from embedded audio tags (mutagen).

Tags of every supported container are normalized into one TrackMetadata:

- ``common``: structured fields (title, artist, album, genre, date,
  albumartist, originalartist, label, website), each a list of strings
- ``format``: stream properties (duration, sample_rate, bitrate, codec)
- ``freeform``: user-defined key/value entries (ID3 TXXX, MP4 ``----``
  atoms, Vorbis comments) in file order
- ``picture``: the embedded cover image bytes, if any
"""

from __future__ import annotations

import base64
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import mutagen
from mutagen import MutagenError
from mutagen.flac import Picture
from mutagen.id3 import ID3
from mutagen.mp4 import MP4Tags

from audiofeed.core.errors import CorruptedFileError
from audiofeed.core.logging import get_logger

logger = get_logger(__name__)


class TagKind(Enum):
    """Shape of a looked-up tag value."""

    SCALAR = "scalar"
    LIST = "list"
    ABSENT = "absent"


@dataclass(frozen=True)
class TagValue:
    """Result of a dotted-path lookup: a scalar, a list, or absent."""

    kind: TagKind
    values: tuple[Any, ...] = ()

    @classmethod
    def of(cls, raw: Any) -> TagValue:
        if raw is None or raw == "":
            return ABSENT
        if isinstance(raw, (list, tuple)):
            values = tuple(v for v in raw if v is not None and v != "")
            if not values:
                return ABSENT
            return cls(TagKind.LIST, values)
        return cls(TagKind.SCALAR, (raw,))

    @property
    def present(self) -> bool:
        return self.kind is not TagKind.ABSENT

    def first(self) -> Any | None:
        """The scalar, or the first element of a list; None when absent."""
        return self.values[0] if self.values else None

    def text(self) -> str | None:
        value = self.first()
        if value is None:
            return None
        text = str(value).strip()
        return text or None


ABSENT = TagValue(TagKind.ABSENT)


@dataclass(frozen=True)
class TrackMetadata:
    """Parsed tag bag for one audio file. Recomputed on every build."""

    common: dict[str, list[str]] = field(default_factory=dict)
    format: dict[str, Any] = field(default_factory=dict)
    freeform: tuple[tuple[str, str], ...] = ()
    picture: bytes | None = None

    def lookup(self, path: str) -> TagValue:
        """Walk a dotted path such as ``common.title`` or ``format.duration``.

        A list met on the way is unwrapped to its first element before
        descending further; the final value keeps its multiplicity in the
        returned TagValue.
        """
        current: Any = {"common": self.common, "format": self.format}
        for part in path.split("."):
            if isinstance(current, (list, tuple)):
                current = current[0] if current else None
            if not isinstance(current, dict):
                return ABSENT
            current = current.get(part)
        return TagValue.of(current)

    def value(self, path: str) -> str | None:
        return self.lookup(path).text()

    def freeform_value(self, aliases: Iterable[str]) -> str | None:
        """Find a free-form entry by case-insensitive key.

        Aliases are tried in the given order; for each alias the first
        matching, non-empty entry in file order wins.
        """
        for alias in aliases:
            wanted = alias.lower()
            for key, value in self.freeform:
                if key.lower() == wanted and value.strip():
                    return value.strip()
        return None

    @property
    def title(self) -> str | None:
        return self.value("common.title")

    @property
    def artist(self) -> str | None:
        return self.value("common.artist")

    @property
    def album(self) -> str | None:
        return self.value("common.album")

    @property
    def genre(self) -> str | None:
        return self.value("common.genre")

    @property
    def duration(self) -> float | None:
        value = self.lookup("format.duration").first()
        return float(value) if value is not None else None


ID3_TEXT_FRAMES = {
    "title": "TIT2",
    "artist": "TPE1",
    "album": "TALB",
    "date": "TDRC",
    "albumartist": "TPE2",
    "originalartist": "TOPE",
    "label": "TPUB",
}

MP4_ATOMS = {
    "title": "\xa9nam",
    "artist": "\xa9ART",
    "album": "\xa9alb",
    "genre": "\xa9gen",
    "date": "\xa9day",
    "albumartist": "aART",
}

VORBIS_KEYS = {
    "title": "title",
    "artist": "artist",
    "album": "album",
    "genre": "genre",
    "date": "date",
    "albumartist": "albumartist",
    "originalartist": "originalartist",
    "label": "organization",
    "website": "website",
}

_FRONT_COVER = 3


def _texts(values: Iterable[Any]) -> list[str]:
    return [str(v).strip() for v in values if str(v).strip()]


def _read_id3(tags: ID3) -> tuple[dict[str, list[str]], list[tuple[str, str]], bytes | None]:
    common: dict[str, list[str]] = {}
    for name, frame_id in ID3_TEXT_FRAMES.items():
        frame = tags.get(frame_id)
        if frame is not None:
            common[name] = _texts(frame.text)

    genre = tags.get("TCON")
    if genre is not None:
        common["genre"] = _texts(genre.genres)

    urls = [f.url for f in tags.getall("WOAR")] + [f.url for f in tags.getall("WXXX")]
    if urls:
        common["website"] = _texts(urls)

    freeform = [(frame.desc, "\n".join(_texts(frame.text))) for frame in tags.getall("TXXX")]

    picture = None
    pictures = tags.getall("APIC")
    if pictures:
        front = [p for p in pictures if p.type == _FRONT_COVER]
        picture = (front or pictures)[0].data

    return common, freeform, picture


def _read_mp4(tags: MP4Tags) -> tuple[dict[str, list[str]], list[tuple[str, str]], bytes | None]:
    common = {name: _texts(tags[atom]) for name, atom in MP4_ATOMS.items() if atom in tags}

    freeform: list[tuple[str, str]] = []
    for key, values in tags.items():
        if not key.startswith("----:"):
            continue
        name = key.split(":", 2)[-1]
        text = "\n".join(bytes(v).decode("utf-8", errors="replace").strip() for v in values)
        freeform.append((name, text))

    picture = None
    covers = tags.get("covr")
    if covers:
        picture = bytes(covers[0])

    return common, freeform, picture


def _read_vorbis(audio: Any) -> tuple[dict[str, list[str]], list[tuple[str, str]], bytes | None]:
    tags = audio.tags
    common = {name: _texts(tags[key]) for name, key in VORBIS_KEYS.items() if key in tags}

    freeform = [
        (key, "\n".join(_texts(tags[key])))
        for key in tags.keys()
        if key.lower() != "metadata_block_picture"
    ]

    picture = None
    flac_pictures = getattr(audio, "pictures", None)
    if flac_pictures:
        picture = flac_pictures[0].data
    elif "metadata_block_picture" in tags:
        try:
            picture = Picture(base64.b64decode(tags["metadata_block_picture"][0])).data
        except (ValueError, MutagenError) as e:
            logger.verbose(f"Ignoring unreadable embedded picture: {e}")

    return common, freeform, picture


def extract_metadata(path: Path) -> TrackMetadata:
    """Read embedded tags from one audio file.

    Args:
        path: Audio file path

    Returns:
        TrackMetadata

    Raises:
        CorruptedFileError: If the file cannot be parsed or the format is unsupported
    """
    try:
        audio = mutagen.File(path)
    except (MutagenError, OSError, ValueError) as e:
        raise CorruptedFileError(str(path), str(e)) from e

    if audio is None:
        raise CorruptedFileError(str(path), "unsupported audio format")

    info = audio.info
    fmt: dict[str, Any] = {
        "duration": getattr(info, "length", None),
        "sample_rate": getattr(info, "sample_rate", None),
        "bitrate": getattr(info, "bitrate", None),
        "codec": type(audio).__name__,
    }

    tags = audio.tags
    if tags is None:
        common: dict[str, list[str]] = {}
        freeform: list[tuple[str, str]] = []
        pictures = getattr(audio, "pictures", None)
        picture = pictures[0].data if pictures else None
    elif isinstance(tags, ID3):
        common, freeform, picture = _read_id3(tags)
    elif isinstance(tags, MP4Tags):
        common, freeform, picture = _read_mp4(tags)
    else:
        common, freeform, picture = _read_vorbis(audio)

    metadata = TrackMetadata(
        common={k: v for k, v in common.items() if v},
        format=fmt,
        freeform=tuple(freeform),
        picture=picture or None,
    )
    logger.debug(f"Tags for {path.name}: common={metadata.common} freeform={list(metadata.freeform)}")
    return metadata
