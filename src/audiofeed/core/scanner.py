"""Library scanner: find audio files and fingerprint the set.

The library is either flat (files in the root) or one folder level deep.
Deeper nesting is ignored.
"""

from __future__ import annotations

import hashlib
import os
from datetime import datetime, timezone
from pathlib import Path

from audiofeed.core.errors import ScanError
from audiofeed.core.logging import get_logger
from audiofeed.core.models import AudioAsset

logger = get_logger(__name__)

AUDIO_EXTENSIONS = frozenset({".mp3", ".m4a", ".flac", ".wav", ".ogg"})

MIME_TYPES = {
    ".mp3": "audio/mpeg",
    ".m4a": "audio/mp4",
    ".flac": "audio/flac",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
}


def is_audio_file(name: str) -> bool:
    return os.path.splitext(name)[1].lower() in AUDIO_EXTENSIONS


def mime_type_for(name: str) -> str:
    return MIME_TYPES.get(os.path.splitext(name)[1].lower(), "audio/mpeg")


def _make_asset(entry: os.DirEntry[str], folder: str) -> AudioAsset:
    stat = entry.stat()
    return AudioAsset(
        absolute_path=Path(entry.path).resolve(),
        containing_folder_name=folder,
        file_name=entry.name,
        size_bytes=stat.st_size,
        modified_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
    )


def _list_dir(path: Path) -> list[os.DirEntry[str]]:
    try:
        with os.scandir(path) as it:
            return list(it)
    except OSError as e:
        raise ScanError(str(path), e.strerror or str(e)) from e


def scan_library(root: Path) -> list[AudioAsset]:
    """Collect audio files from the library root and its direct subfolders.

    Order follows directory enumeration, not sorted. An unreadable root gives
    an empty list and a warning; an unreadable subfolder is skipped.

    Args:
        root: Library directory

    Returns:
        List of AudioAsset
    """
    try:
        entries = _list_dir(root)
    except ScanError as e:
        logger.warning(e.message)
        return []

    assets: list[AudioAsset] = []
    for entry in entries:
        try:
            if entry.is_dir():
                try:
                    sub_entries = _list_dir(Path(entry.path))
                except ScanError as e:
                    logger.warning(e.message)
                    continue
                for sub in sub_entries:
                    if sub.is_file() and is_audio_file(sub.name):
                        assets.append(_make_asset(sub, entry.name))
            elif entry.is_file() and is_audio_file(entry.name):
                assets.append(_make_asset(entry, ""))
        except OSError as e:
            # File vanished between listing and stat.
            logger.verbose(f"Ignoring {entry.name}: {e}")

    logger.debug(f"Scanned {root}: {len(assets)} audio file(s)")
    return assets


def library_signature(assets: list[AudioAsset]) -> str:
    """Fingerprint the asset set by path and name (not content).

    Used only for change detection, never for identity.
    """
    parts = sorted(f"{asset.absolute_path}:{asset.file_name}" for asset in assets)
    return hashlib.md5("|".join(parts).encode("utf-8")).hexdigest()


def parse_track_info(
    folder_name: str,
    file_name: str,
    separator: str,
    default_artist: str,
) -> tuple[str, str]:
    """Derive fallback (artist, title) from the folder and file names.

    A folder named "{artist}{separator}{title}" supplies both; anything else
    falls back to the default artist and the file stem.
    """
    artist = default_artist
    title = os.path.splitext(file_name)[0]

    if separator:
        parts = folder_name.split(separator)
        if len(parts) >= 2:
            artist = parts[0].strip()
            title = separator.join(parts[1:]).strip()

    return artist, title
