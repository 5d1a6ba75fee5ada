"""RSS 2.0 + iTunes serialization of a FeedDocument."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from email.utils import format_datetime

from audiofeed.core.models import FeedDocument, FeedItem

ITUNES_NS = "http://www.itunes.com/dtds/podcast-1.0.dtd"
ET.register_namespace("itunes", ITUNES_NS)


def _itunes(tag: str) -> str:
    return f"{{{ITUNES_NS}}}{tag}"


def _flag(value: bool) -> str:
    return "true" if value else "false"


def _text(parent: ET.Element, tag: str, text: str | None) -> ET.Element | None:
    # Empty values are omitted rather than emitted as empty nodes.
    if not text:
        return None
    el = ET.SubElement(parent, tag)
    el.text = text
    return el


def _item(channel_el: ET.Element, item: FeedItem) -> None:
    el = ET.SubElement(channel_el, "item")
    _text(el, "title", item.title)
    _text(el, "pubDate", format_datetime(item.published_at, usegmt=True))
    _text(el, "link", item.enclosure_url)
    guid = ET.SubElement(el, "guid", isPermaLink="false")
    guid.text = item.identifier
    _text(el, _itunes("duration"), item.duration_formatted)
    _text(el, _itunes("author"), item.author)
    _text(el, _itunes("explicit"), _flag(item.explicit))
    _text(el, "description", item.description)
    ET.SubElement(
        el,
        "enclosure",
        url=item.enclosure_url,
        type=item.enclosure_type,
        length=str(item.enclosure_bytes),
    )
    if item.cover_url:
        ET.SubElement(el, _itunes("image"), href=item.cover_url)


def render_rss(document: FeedDocument) -> str:
    """Serialize the document as an RSS 2.0 XML string."""
    channel = document.channel
    rss = ET.Element("rss", version="2.0")
    ch = ET.SubElement(rss, "channel")

    _text(ch, "title", channel.title)
    _text(ch, "link", channel.link)
    _text(ch, "description", channel.description)
    _text(ch, "language", channel.language)
    _text(ch, "copyright", channel.copyright)
    _text(ch, "lastBuildDate", format_datetime(document.built_at, usegmt=True))
    _text(ch, "webMaster", f"{channel.email} ({channel.author})")

    image_url = channel.effective_image
    if image_url:
        image = ET.SubElement(ch, "image")
        _text(image, "url", image_url)
        _text(image, "title", channel.title)
        _text(image, "link", channel.link)
        ET.SubElement(ch, _itunes("image"), href=image_url)

    owner = ET.SubElement(ch, _itunes("owner"))
    _text(owner, _itunes("name"), channel.author)
    _text(owner, _itunes("email"), channel.email)
    _text(ch, _itunes("author"), channel.author)
    _text(ch, _itunes("explicit"), _flag(channel.explicit))
    ET.SubElement(ch, _itunes("category"), text=channel.category)

    for item in document.items:
        _item(ch, item)

    ET.indent(rss)
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(rss, encoding="unicode")
