"""Stable per-file identifiers for feed items.

The identifier depends only on (absolute path, size in bytes). Touching a
file without changing its content keeps its identity.
"""

from __future__ import annotations

import hashlib

from audiofeed.core.logging import get_logger

logger = get_logger(__name__)

URN_PREFIX = "urn:uuid:"

PRIMARY_DIGEST = "sha256"
FALLBACK_DIGEST = "md5"

# Append-only; plain dict reads/inserts need no lock.
_GUID_CACHE: dict[tuple[str, int], str] = {}


def _uuid_shape(hex_digest: str) -> str:
    h = hex_digest
    return f"{h[0:8]}-{h[8:12]}-{h[12:16]}-{h[16:20]}-{h[20:32]}"


def _digest(name: str, data: str) -> str:
    return hashlib.new(name, data.encode("utf-8")).hexdigest()


def fallback_guid(path: str) -> str:
    """Degraded identifier derived from the path alone."""
    return URN_PREFIX + _uuid_shape(_digest(FALLBACK_DIGEST, path))


def stable_guid(path: str, size: int) -> str:
    """Return the identifier for a file, memoized per process.

    Args:
        path: Absolute file path
        size: File size in bytes

    Returns:
        ``urn:uuid:xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx``
    """
    key = (path, size)
    cached = _GUID_CACHE.get(key)
    if cached is not None:
        return cached

    try:
        hex_digest = _digest(PRIMARY_DIGEST, f"{path}:{size}")
    except ValueError as e:
        # Digest disabled by the hashing backend; not memoized so a later
        # call can still produce the primary identifier.
        logger.warning(f"{PRIMARY_DIGEST} unavailable ({e}); using degraded id for {path}")
        return fallback_guid(path)

    guid = URN_PREFIX + _uuid_shape(hex_digest)
    _GUID_CACHE[key] = guid
    return guid


def clear_guid_cache() -> None:
    _GUID_CACHE.clear()
