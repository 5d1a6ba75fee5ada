"""Square cover art derivation with a content-addressed disk cache.

Covers are stored as ``{kind}_{hash}_{size}_{mode}.jpg`` in the covers cache
directory. The hash covers the source bytes (embedded pictures) or the
source URL (channel image), so an existing file is reused without decoding
or fetching anything. Stale files are never removed.
"""

from __future__ import annotations

import asyncio
import hashlib
import os
import re
import tempfile
import urllib.error
import urllib.request
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path

from PIL import Image

from audiofeed.core.errors import CoverError, NetworkError
from audiofeed.core.logging import get_logger
from audiofeed.core.models import CoverArtAsset, CoverMode

logger = get_logger(__name__)

COVERS_ROUTE = "/covers_cache"
WHITE = (255, 255, 255)

_FILENAME_RE = re.compile(r"^(track|channel)_[0-9a-f]{16}_\d+_(crop|pad)\.jpg$")


@dataclass(frozen=True)
class PadLayout:
    """Scaled content size and canvas margins for pad mode."""

    width: int
    height: int
    left: int
    top: int
    right: int
    bottom: int


def crop_box(width: int, height: int) -> tuple[int, int, int]:
    """Centered square of side min(width, height).

    Returns:
        (left, top, side)
    """
    side = min(width, height)
    return (width - side) // 2, (height - side) // 2, side


def pad_layout(width: int, height: int, size: int) -> PadLayout:
    """Fit the image inside a size x size canvas, larger side equal to size.

    Leftover margin goes floor to the leading edge, ceil to the trailing one.
    """
    ratio = min(size / width, size / height)
    new_width = max(1, round(width * ratio))
    new_height = max(1, round(height * ratio))
    free_x = size - new_width
    free_y = size - new_height
    return PadLayout(
        width=new_width,
        height=new_height,
        left=free_x // 2,
        top=free_y // 2,
        right=free_x - free_x // 2,
        bottom=free_y - free_y // 2,
    )


def _flatten(img: Image.Image) -> Image.Image:
    """Convert to RGB, compositing any transparency over white."""
    if img.mode in ("RGBA", "LA", "P", "PA"):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, WHITE)
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


def render_square(source: bytes, size: int, mode: CoverMode, quality: int = 90) -> bytes:
    """Turn arbitrary image bytes into a size x size JPEG.

    Raises:
        CoverError: On any decode or encode failure
    """
    try:
        with Image.open(BytesIO(source)) as opened:
            img = _flatten(opened)
            width, height = img.size

            if width == height == size:
                result = img
            elif mode is CoverMode.CROP:
                left, top, side = crop_box(width, height)
                result = img.crop((left, top, left + side, top + side)).resize(
                    (size, size), Image.Resampling.LANCZOS
                )
            else:
                layout = pad_layout(width, height, size)
                scaled = img.resize((layout.width, layout.height), Image.Resampling.LANCZOS)
                result = Image.new("RGB", (size, size), WHITE)
                result.paste(scaled, (layout.left, layout.top))

            out = BytesIO()
            result.save(out, format="JPEG", quality=quality)
            return out.getvalue()
    except Exception as e:
        # Pillow decoders raise SyntaxError and struct.error besides OSError.
        raise CoverError(f"Image processing failed: {e}") from e


def fetch_image(url: str, timeout: float = 10) -> bytes:
    """Download image bytes.

    Raises:
        NetworkError: On connection failure or a non-success status
    """
    try:
        with urllib.request.urlopen(url, timeout=timeout) as response:
            status = getattr(response, "status", 200)
            if status != 200:
                raise NetworkError(f"Failed to download image: HTTP {status}")
            return response.read()
    except urllib.error.HTTPError as e:
        raise NetworkError(f"Failed to download image: HTTP {e.code}") from e
    except (urllib.error.URLError, OSError, ValueError) as e:
        raise NetworkError(f"Failed to download image from {url}: {e}") from e


def _short_hash(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()[:16]


def _write_atomic(path: Path, data: bytes) -> None:
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".tmp-", suffix=".jpg")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


class CoverArtDeriver:
    """Derives square covers on demand and serves them from the disk cache."""

    def __init__(
        self,
        cache_dir: Path,
        size: int = 3000,
        mode: CoverMode = CoverMode.CROP,
        quality: int = 90,
        fetch_timeout: float = 10,
    ) -> None:
        self.cache_dir = Path(cache_dir)
        self.size = size
        self.mode = mode
        self.quality = quality
        self.fetch_timeout = fetch_timeout

    def content_key(self, source: bytes) -> str:
        return f"{_short_hash(source)}_{self.size}_{self.mode.value}"

    def _asset(self, kind: str, key: str, base_url: str) -> CoverArtAsset:
        filename = f"{kind}_{key}.jpg"
        return CoverArtAsset(
            content_key=key,
            size_pixels=self.size,
            storage_path=self.cache_dir / filename,
            public_url=f"{base_url}{COVERS_ROUTE}/{filename}",
        )

    async def _store(self, asset: CoverArtAsset, source: bytes) -> None:
        data = await asyncio.to_thread(render_square, source, self.size, self.mode, self.quality)
        try:
            await asyncio.to_thread(self.cache_dir.mkdir, parents=True, exist_ok=True)
            await asyncio.to_thread(_write_atomic, asset.storage_path, data)
        except OSError as e:
            raise CoverError(f"Cannot write cover {asset.storage_path.name}: {e}") from e

    async def derive_square_cover(self, source: bytes, base_url: str) -> CoverArtAsset:
        """Derive (or reuse) the square cover for embedded picture bytes.

        Raises:
            CoverError: If the image cannot be processed or stored
        """
        asset = self._asset("track", self.content_key(source), base_url)
        if await asyncio.to_thread(asset.storage_path.is_file):
            logger.verbose(f"Using cached cover {asset.storage_path.name}")
            return asset

        logger.verbose(f"Deriving cover {asset.storage_path.name}")
        await self._store(asset, source)
        return asset

    async def derive_remote_cover(self, url: str, base_url: str) -> CoverArtAsset:
        """Fetch a remote image and derive its square cover.

        The cache key is computed from the URL, so a cached cover skips the
        network entirely.

        Raises:
            NetworkError: If the fetch fails
            CoverError: If the image cannot be processed or stored
        """
        asset = self._asset("channel", self.content_key(url.encode("utf-8")), base_url)
        if await asyncio.to_thread(asset.storage_path.is_file):
            logger.verbose(f"Using cached channel cover {asset.storage_path.name}")
            return asset

        logger.verbose(f"Downloading channel cover: {url}")
        source = await asyncio.to_thread(fetch_image, url, self.fetch_timeout)
        await self._store(asset, source)
        logger.verbose("Channel cover processed and saved")
        return asset

    def resolve(self, filename: str) -> Path | None:
        """Map a generated filename to its stored file; None if unknown."""
        if not _FILENAME_RE.match(filename):
            return None
        path = self.cache_dir / filename
        return path if path.is_file() else None
