"""AudioFeed core - feed materialization pipeline.

Turns a directory of audio files into a stable, cacheable feed document.
Serving it over HTTP is the web_server plugin's job.
"""

__version__ = "1.0.0"

from audiofeed.core.assembler import assemble_feed, format_duration, order_items
from audiofeed.core.cache import CacheStatus, FeedCacheController
from audiofeed.core.config import ConfigResolver, ConfigSource
from audiofeed.core.covers import CoverArtDeriver, crop_box, pad_layout, render_square
from audiofeed.core.description import (
    DescriptionTemplate,
    SocialLink,
    render_template,
    synthesize_description,
)
from audiofeed.core.errors import (
    AudioFeedError,
    ConfigError,
    CorruptedFileError,
    CoverError,
    FeedBuildError,
    MetadataError,
    NetworkError,
    ScanError,
)
from audiofeed.core.identifiers import stable_guid
from audiofeed.core.logging import (
    VerbosityLevel,
    apply_logging_level,
    get_logger,
    get_verbosity,
    set_colors,
    set_verbosity,
)
from audiofeed.core.metadata import TagKind, TagValue, TrackMetadata, extract_metadata
from audiofeed.core.models import (
    AudioAsset,
    CacheEntry,
    ChannelInfo,
    CoverArtAsset,
    CoverMode,
    FeedDocument,
    FeedItem,
)
from audiofeed.core.pipeline import FeedBuilder
from audiofeed.core.scanner import library_signature, parse_track_info, scan_library
from audiofeed.core.settings import FeedSettings

__all__ = [
    # Models
    "AudioAsset",
    "CacheEntry",
    "ChannelInfo",
    "CoverArtAsset",
    "CoverMode",
    "FeedDocument",
    "FeedItem",
    # Config
    "ConfigResolver",
    "ConfigSource",
    "FeedSettings",
    # Errors
    "AudioFeedError",
    "ConfigError",
    "CorruptedFileError",
    "CoverError",
    "FeedBuildError",
    "MetadataError",
    "NetworkError",
    "ScanError",
    # Pipeline
    "scan_library",
    "library_signature",
    "parse_track_info",
    "extract_metadata",
    "TrackMetadata",
    "TagValue",
    "TagKind",
    "stable_guid",
    "CoverArtDeriver",
    "crop_box",
    "pad_layout",
    "render_square",
    "DescriptionTemplate",
    "SocialLink",
    "render_template",
    "synthesize_description",
    "assemble_feed",
    "format_duration",
    "order_items",
    "FeedBuilder",
    "FeedCacheController",
    "CacheStatus",
    # Logging
    "VerbosityLevel",
    "get_logger",
    "set_verbosity",
    "get_verbosity",
    "apply_logging_level",
    "set_colors",
]
