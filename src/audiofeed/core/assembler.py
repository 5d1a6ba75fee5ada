"""Feed assembly: order, cap and wrap items into a FeedDocument."""

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import datetime, timezone

from audiofeed.core.models import ChannelInfo, FeedDocument, FeedItem


def format_duration(seconds: float | None) -> str:
    """Format seconds as H:MM:SS, or M:SS when under an hour.

    Missing, zero or non-numeric durations give "00:00".
    """
    if not seconds or not isinstance(seconds, (int, float)) or math.isnan(seconds):
        return "00:00"

    total = int(seconds)
    hrs, rem = divmod(total, 3600)
    mins, secs = divmod(rem, 60)
    if hrs > 0:
        return f"{hrs}:{mins:02d}:{secs:02d}"
    return f"{mins}:{secs:02d}"


def order_items(items: Iterable[FeedItem], max_items: int | None = None) -> list[FeedItem]:
    """Most recent first; ties keep scan order. Truncate after sorting."""
    ordered = sorted(items, key=lambda item: item.published_at, reverse=True)
    if max_items is not None and max_items >= 0:
        ordered = ordered[:max_items]
    return ordered


def assemble_feed(
    channel: ChannelInfo,
    items: Iterable[FeedItem],
    max_items: int | None = None,
    built_at: datetime | None = None,
) -> FeedDocument:
    """Combine channel fields and items into the final document.

    Args:
        channel: Channel-level fields (with derived cover URL, if any)
        items: Items in scan order
        max_items: Cap applied after sorting (None for no cap)
        built_at: Build timestamp, defaults to now (UTC)

    Returns:
        FeedDocument
    """
    return FeedDocument(
        channel=channel,
        items=tuple(order_items(items, max_items)),
        built_at=built_at or datetime.now(timezone.utc),
    )
