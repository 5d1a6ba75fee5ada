"""Typed feed settings resolved from ConfigResolver."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from audiofeed.core.config import ConfigResolver
from audiofeed.core.description import DescriptionTemplate, SocialLink
from audiofeed.core.errors import ConfigError
from audiofeed.core.models import ChannelInfo, CoverMode

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _as_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in _TRUE | _FALSE:
        return value.strip().lower() in _TRUE
    raise ConfigError(f"Config key '{key}' must be a bool, got {value!r}")


def _as_int(key: str, value: Any, minimum: int = 0) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"Config key '{key}' must be an int, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Config key '{key}' must be an int, got {value!r}") from None
    if number < minimum:
        raise ConfigError(f"Config key '{key}' must be >= {minimum}, got {number}")
    return number


def _as_str(key: str, value: Any) -> str:
    if isinstance(value, (dict, list)):
        raise ConfigError(f"Config key '{key}' must be a string")
    return str(value)


def _social_links(value: Any) -> tuple[SocialLink, ...]:
    if not isinstance(value, list):
        raise ConfigError("Config key 'social.links' must be a list")
    links = []
    for entry in value:
        if not isinstance(entry, dict) or "name" not in entry or "url" not in entry:
            raise ConfigError(
                "Each entry of 'social.links' needs 'name' and 'url'",
                "Example: {name: Bandcamp, url: https://example.bandcamp.com}",
            )
        links.append(SocialLink(name=str(entry["name"]), url=str(entry["url"])))
    return tuple(links)


@dataclass(frozen=True)
class FeedSettings:
    host: str
    port: int
    base_url: str
    tracks_dir: Path
    covers_cache_dir: Path
    channel: ChannelInfo
    max_items: int
    generate_square_covers: bool
    cover_size: int
    cover_mode: CoverMode
    jpeg_quality: int
    fetch_timeout: int
    cache_ttl_seconds: int
    separator: str
    description: DescriptionTemplate
    logging_level: str
    log_colors: bool

    @classmethod
    def from_resolver(cls, resolver: ConfigResolver) -> FeedSettings:
        """Build settings, validating and coercing every key.

        Raises:
            ConfigError: On a missing or invalid value
        """

        def get(key: str) -> Any:
            value, _source = resolver.resolve(key)
            return value

        def text(key: str) -> str:
            return _as_str(key, resolver.resolve_or(key, ""))

        mode_name = text("covers.mode").strip().lower()
        try:
            cover_mode = CoverMode(mode_name)
        except ValueError:
            raise ConfigError(
                f"Invalid 'covers.mode': {mode_name!r}. Allowed values: crop, pad"
            ) from None

        channel = ChannelInfo(
            title=text("feed.title"),
            link=text("feed.link"),
            description=text("feed.description"),
            language=text("feed.language"),
            copyright=text("feed.copyright"),
            author=text("feed.author"),
            email=text("feed.email"),
            explicit=_as_bool("feed.explicit", get("feed.explicit")),
            category=text("feed.category"),
            image_url=text("feed.channel_image").strip(),
        )

        description = DescriptionTemplate(
            enabled=_as_bool("description.enabled", get("description.enabled")),
            template=text("description.template"),
            credits_template=text("description.credits_template"),
            social_links=_social_links(resolver.resolve_or("social.links", [])),
        )

        return cls(
            host=text("server.host"),
            port=_as_int("server.port", get("server.port"), minimum=1),
            base_url=text("server.base_url").strip().rstrip("/"),
            tracks_dir=Path(text("paths.tracks_dir")).expanduser(),
            covers_cache_dir=Path(text("paths.covers_cache_dir")).expanduser(),
            channel=channel,
            max_items=_as_int("feed.max_items", get("feed.max_items")),
            generate_square_covers=_as_bool(
                "covers.generate_square", get("covers.generate_square")
            ),
            cover_size=_as_int("covers.size", get("covers.size"), minimum=1),
            cover_mode=cover_mode,
            jpeg_quality=_as_int("covers.jpeg_quality", get("covers.jpeg_quality"), minimum=1),
            fetch_timeout=_as_int("covers.fetch_timeout", get("covers.fetch_timeout"), minimum=1),
            cache_ttl_seconds=_as_int("cache.ttl_seconds", get("cache.ttl_seconds")),
            separator=text("parsing.separator"),
            description=description,
            logging_level=resolver.resolve_logging_level(),
            log_colors=_as_bool("logging.color", get("logging.color")),
        )
