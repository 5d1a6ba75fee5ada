"""Per-track description rendering.

Every field resolves through the same chain: free-form tag (by alias) ->
structured tag field(s) -> caller fallback -> placeholder. Rendering is a
single pass over ``{NAME}`` placeholders; unknown names are left untouched.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from audiofeed.core.config import DEFAULT_CREDITS_TEMPLATE, DEFAULT_DESCRIPTION_TEMPLATE
from audiofeed.core.metadata import TrackMetadata

PLACEHOLDER = "-"

_PLACEHOLDER_RE = re.compile(r"\{([A-Z_]+)\}")


@dataclass(frozen=True)
class FieldRule:
    """How one template variable is resolved."""

    name: str
    freeform_aliases: tuple[str, ...] = ()
    structured_paths: tuple[str, ...] = ()
    fallback: str | None = None  # key into the caller's fallback mapping


# Alias order is the precedence order when several aliases are present.
FIELD_RULES: tuple[FieldRule, ...] = (
    FieldRule("TITLE", structured_paths=("common.title",), fallback="title"),
    FieldRule("AUTHOR", structured_paths=("common.artist",), fallback="author"),
    FieldRule("ALBUM", structured_paths=("common.album",)),
    FieldRule("GENRE", structured_paths=("common.genre",)),
    FieldRule(
        "ORIGINAL_ARTISTS",
        freeform_aliases=("orig aut", "original artists", "original artist"),
        structured_paths=("common.originalartist", "common.albumartist"),
    ),
    FieldRule("DATE", structured_paths=("common.date",)),
    FieldRule("LABEL", freeform_aliases=("label",), structured_paths=("common.label",)),
    FieldRule("DJ", freeform_aliases=("dj",)),
    FieldRule("CREDITS", freeform_aliases=("credits",)),
    FieldRule("RELEASE_BY", freeform_aliases=("release by",)),
    FieldRule(
        "RELEASE_LINK",
        freeform_aliases=("release link", "release url", "release_link"),
        structured_paths=("common.website",),
        fallback="release_link",
    ),
)

TEMPLATE_FIELDS = frozenset(rule.name for rule in FIELD_RULES) | {"SOCIAL_LINKS"}


@dataclass(frozen=True)
class SocialLink:
    name: str
    url: str


@dataclass(frozen=True)
class DescriptionTemplate:
    """Template configuration. Disabled means the built-in template."""

    enabled: bool = False
    template: str = DEFAULT_DESCRIPTION_TEMPLATE
    credits_template: str = DEFAULT_CREDITS_TEMPLATE
    social_links: tuple[SocialLink, ...] = ()


def render_template(template: str, variables: Mapping[str, str]) -> str:
    """Substitute ``{NAME}`` placeholders in one pass.

    Substituted values are never re-scanned, so a value containing
    ``{TITLE}`` stays literal.
    """

    def _sub(match: re.Match[str]) -> str:
        name = match.group(1)
        if name in TEMPLATE_FIELDS and name in variables:
            return variables[name]
        return match.group(0)

    return _PLACEHOLDER_RE.sub(_sub, template)


def format_social_links(links: Sequence[SocialLink]) -> str:
    if not links:
        return PLACEHOLDER
    return "\n".join(f"{link.name}: {link.url}" for link in links)


def _resolve(rule: FieldRule, metadata: TrackMetadata, fallbacks: Mapping[str, str | None]) -> str:
    value = metadata.freeform_value(rule.freeform_aliases)
    if value:
        return value
    for path in rule.structured_paths:
        value = metadata.value(path)
        if value:
            return value
    if rule.fallback:
        value = fallbacks.get(rule.fallback)
        if value:
            return value
    return PLACEHOLDER


def resolve_fields(
    metadata: TrackMetadata,
    fallback_title: str | None,
    fallback_author: str | None,
    fallback_release_link: str | None,
    social_links: Sequence[SocialLink] = (),
) -> dict[str, str]:
    """Resolve every template variable for one track."""
    fallbacks = {
        "title": fallback_title,
        "author": fallback_author,
        "release_link": fallback_release_link,
    }
    variables = {rule.name: _resolve(rule, metadata, fallbacks) for rule in FIELD_RULES}
    variables["SOCIAL_LINKS"] = format_social_links(social_links)
    return variables


def synthesize_description(
    metadata: TrackMetadata,
    fallback_title: str | None,
    fallback_author: str | None,
    fallback_release_link: str | None,
    config: DescriptionTemplate,
) -> str:
    """Render the description text for one track.

    The credits block is appended only when credits resolved to a real value.
    """
    variables = resolve_fields(
        metadata,
        fallback_title,
        fallback_author,
        fallback_release_link,
        config.social_links,
    )

    if config.enabled:
        template, credits_template = config.template, config.credits_template
    else:
        template, credits_template = DEFAULT_DESCRIPTION_TEMPLATE, DEFAULT_CREDITS_TEMPLATE

    text = render_template(template, variables)
    if variables["CREDITS"] != PLACEHOLDER:
        text += render_template(credits_template, variables)
    return text
