"""Pytest configuration and fixtures."""

import os
import struct
import sys
import zlib
from io import BytesIO
from pathlib import Path

import pytest

# Add repo root and src to path (for 'plugins.*' and 'audiofeed.*' imports)
repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root))
sys.path.insert(0, str(repo_root / "src"))

# MPEG-1 Layer III, 128 kbps, 44.1 kHz, joint stereo: 417-byte frames.
MP3_FRAME_HEADER = b"\xff\xfb\x90\x64"
MP3_FRAME_SIZE = 417


@pytest.fixture(autouse=True)
def _reset_core_state():
    """Keep logger verbosity, log bus subscribers and the guid cache per-test."""
    from audiofeed.core.identifiers import clear_guid_cache
    from audiofeed.core.log_bus import get_log_bus
    from audiofeed.core.logging import VerbosityLevel, set_verbosity

    set_verbosity(VerbosityLevel.NORMAL)
    clear_guid_cache()
    get_log_bus().clear()
    yield
    set_verbosity(VerbosityLevel.NORMAL)
    clear_guid_cache()
    get_log_bus().clear()


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Drop AUDIOFEED_* variables inherited from the shell."""
    for key in list(os.environ):
        if key.startswith("AUDIOFEED_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def log_records():
    """Collect every LogRecord published while the test runs."""
    from audiofeed.core.log_bus import get_log_bus

    records = []
    unsubscribe = get_log_bus().subscribe_all(records.append)
    yield records
    unsubscribe()


def make_image_bytes(size=(40, 20), color=(200, 30, 30), fmt="JPEG", mode="RGB"):
    """Encode a solid-color image with Pillow."""
    from PIL import Image

    img = Image.new(mode, size, color)
    out = BytesIO()
    img.save(out, format=fmt)
    return out.getvalue()


def write_mp3(path, frames=40, title=None, artist=None, txxx=None, picture=None, website=None):
    """Write a silent, parseable MP3 with optional ID3 tags.

    Args:
        path: Destination file
        frames: Number of MPEG frames (about 26 ms each)
        title: TIT2 value
        artist: TPE1 value
        txxx: {description: value} user text frames
        picture: APIC front cover bytes (JPEG)
        website: WOAR url
    """
    from mutagen.id3 import APIC, ID3, TIT2, TPE1, TXXX, WOAR

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    frame = MP3_FRAME_HEADER + b"\x00" * (MP3_FRAME_SIZE - len(MP3_FRAME_HEADER))
    path.write_bytes(frame * frames)

    tags = ID3()
    if title:
        tags.add(TIT2(encoding=3, text=[title]))
    if artist:
        tags.add(TPE1(encoding=3, text=[artist]))
    for desc, value in (txxx or {}).items():
        tags.add(TXXX(encoding=3, desc=desc, text=[value]))
    if website:
        tags.add(WOAR(url=website))
    if picture:
        tags.add(APIC(encoding=3, mime="image/jpeg", type=3, desc="Cover", data=picture))
    tags.save(path)
    return path


@pytest.fixture
def cover_bytes():
    """Non-square JPEG cover (40x20)."""
    return make_image_bytes()


@pytest.fixture
def tagged_mp3(tmp_path, cover_bytes):
    """MP3 with title, artist, free-form frames and a front cover."""
    return write_mp3(
        tmp_path / "tagged.mp3",
        title="Night Drive",
        artist="Lumen",
        txxx={"DJ": "DJ Test", "Label": "Free Label", "Release Link": "https://example.com/r/1"},
        picture=cover_bytes,
        website="https://lumen.example.com",
    )


@pytest.fixture
def tracks_dir(tmp_path):
    path = tmp_path / "tracks"
    path.mkdir()
    return path


@pytest.fixture
def make_settings(tmp_path, tracks_dir):
    """Factory for FeedSettings over temporary directories.

    Overrides use dotted keys, e.g. ``make_settings({"covers.size": 64})``.
    """
    from audiofeed.core.config import ConfigResolver
    from audiofeed.core.settings import FeedSettings

    def _make(overrides=None):
        cli_args = {
            "paths.tracks_dir": str(tracks_dir),
            "paths.covers_cache_dir": str(tmp_path / "covers_cache"),
            "covers.size": 32,
        }
        cli_args.update(overrides or {})
        resolver = ConfigResolver(
            cli_args=cli_args,
            user_config_path=tmp_path / "missing-user.yaml",
            system_config_path=tmp_path / "missing-system.yaml",
        )
        return FeedSettings.from_resolver(resolver)

    return _make


@pytest.fixture
def settings(make_settings):
    return make_settings()


@pytest.fixture
def mp3_writer():
    """The write_mp3 helper, for tests that need several files."""
    return write_mp3


@pytest.fixture
def image_bytes():
    """The make_image_bytes helper."""
    return make_image_bytes


def _png_chunk(cid: bytes, data: bytes) -> bytes:
    return struct.pack(">I", len(data)) + cid + data + struct.pack(">I", zlib.crc32(cid + data))


def make_broken_png(width=16, height=16):
    """PNG whose pixel data stops halfway and is followed by a garbage chunk id.

    Opening succeeds; decoding hits the garbage and Pillow raises SyntaxError.
    """
    row = bytes((x * 7) % 251 for x in range(width * 3))
    raw = b"".join(b"\x00" + row for _ in range(height))
    stored = zlib.compress(raw, 0)
    ihdr = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + _png_chunk(b"IHDR", ihdr)
        + _png_chunk(b"IDAT", stored[: len(stored) // 2])
        + b"\x00\x00\x00\x00\xfc\xd9\xd2\x01"
        + b"\x00" * 8
    )


@pytest.fixture
def broken_png_bytes():
    return make_broken_png()
