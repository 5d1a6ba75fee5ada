"""Feed build pipeline.

Scanner -> Extractor -> (identifier, cover, description) -> Assembler.
Failures are contained per file and per cover; only an empty result
fails the build.
"""

from __future__ import annotations

import asyncio
import dataclasses
import time
from collections.abc import Callable
from pathlib import Path
from urllib.parse import quote

from audiofeed.core.assembler import assemble_feed, format_duration
from audiofeed.core.covers import CoverArtDeriver
from audiofeed.core.description import synthesize_description
from audiofeed.core.errors import CoverError, FeedBuildError, MetadataError
from audiofeed.core.identifiers import stable_guid
from audiofeed.core.logging import get_logger
from audiofeed.core.metadata import TrackMetadata, extract_metadata
from audiofeed.core.models import AudioAsset, ChannelInfo, FeedDocument, FeedItem
from audiofeed.core.scanner import library_signature, mime_type_for, parse_track_info, scan_library
from audiofeed.core.settings import FeedSettings

logger = get_logger(__name__)

TRACKS_ROUTE = "/tracks"

Extractor = Callable[[Path], TrackMetadata]


class FeedBuilder:
    """Builds a FeedDocument from the library directory."""

    def __init__(
        self,
        settings: FeedSettings,
        covers: CoverArtDeriver | None = None,
        extractor: Extractor = extract_metadata,
    ) -> None:
        self.settings = settings
        self.covers = covers or CoverArtDeriver(
            settings.covers_cache_dir,
            size=settings.cover_size,
            mode=settings.cover_mode,
            quality=settings.jpeg_quality,
            fetch_timeout=settings.fetch_timeout,
        )
        self.extractor = extractor

    async def scan(self) -> list[AudioAsset]:
        return await asyncio.to_thread(scan_library, self.settings.tracks_dir)

    async def signature(self) -> str:
        """Current library fingerprint (paths and names only)."""
        return library_signature(await self.scan())

    async def channel_cover(self, base_url: str) -> str:
        """Derived channel cover URL, or "" when unavailable."""
        image_url = self.settings.channel.image_url
        if not image_url:
            return ""
        try:
            asset = await self.covers.derive_remote_cover(image_url, base_url)
        except CoverError as e:
            logger.warning(f"Failed to process channel cover: {e.message}")
            return ""
        return asset.public_url

    async def track_cover(self, metadata: TrackMetadata, asset: AudioAsset, base_url: str) -> str | None:
        if not self.settings.generate_square_covers or not metadata.picture:
            return None
        try:
            cover = await self.covers.derive_square_cover(metadata.picture, base_url)
        except CoverError as e:
            logger.verbose(f"Failed to process cover for {asset.file_name}: {e.message}")
            return None
        return cover.public_url

    def enclosure_url(self, asset: AudioAsset, base_url: str) -> str:
        return f"{base_url}{TRACKS_ROUTE}/{quote(asset.relative_path)}"

    async def build_item(
        self,
        asset: AudioAsset,
        channel: ChannelInfo,
        base_url: str,
    ) -> FeedItem:
        """Build one item.

        Raises:
            MetadataError: If the file's tags cannot be read
        """
        metadata = await asyncio.to_thread(self.extractor, asset.absolute_path)

        fallback_artist, fallback_title = parse_track_info(
            asset.containing_folder_name,
            asset.file_name,
            self.settings.separator,
            channel.author,
        )

        cover_url = await self.track_cover(metadata, asset, base_url)
        if not cover_url and channel.cover_url:
            cover_url = channel.cover_url

        description = synthesize_description(
            metadata,
            fallback_title,
            fallback_artist,
            None,
            self.settings.description,
        )

        return FeedItem(
            identifier=stable_guid(str(asset.absolute_path), asset.size_bytes),
            title=metadata.title or fallback_title,
            author=metadata.artist or fallback_artist,
            duration_formatted=format_duration(metadata.duration),
            description=description,
            enclosure_url=self.enclosure_url(asset, base_url),
            enclosure_bytes=asset.size_bytes,
            enclosure_type=mime_type_for(asset.file_name),
            published_at=asset.modified_at,
            explicit=channel.explicit,
            cover_url=cover_url,
        )

    async def build(self, base_url: str) -> FeedDocument:
        """Run the whole pipeline.

        Args:
            base_url: Public base URL baked into enclosure and cover URLs

        Returns:
            FeedDocument

        Raises:
            FeedBuildError: If no audio files exist or none could be read
        """
        started = time.monotonic()
        assets = await self.scan()
        if not assets:
            raise FeedBuildError(
                "No audio files found in tracks folder",
                f"Add audio files to {self.settings.tracks_dir}",
            )

        channel = dataclasses.replace(
            self.settings.channel,
            cover_url=await self.channel_cover(base_url),
        )

        items: list[FeedItem] = []
        for asset in assets:
            try:
                item = await self.build_item(asset, channel, base_url)
            except MetadataError as e:
                logger.verbose(f"Skipping file {asset.file_name}: {e.message}")
                continue
            items.append(item)
            logger.verbose(
                f"Added track: {item.title}" + (" (with cover)" if item.cover_url else " (without cover)")
            )

        if not items:
            raise FeedBuildError(
                f"None of the {len(assets)} audio file(s) could be read",
                "Check the files for corruption or unsupported formats",
            )

        document = assemble_feed(channel, items, self.settings.max_items)
        logger.info(
            f"Feed built: {document.item_count} of {len(items)} track(s) "
            f"in {time.monotonic() - started:.2f}s"
        )
        return document
