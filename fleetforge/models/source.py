"""
Content source tags.

A source tag marks which optional content pack an entity came from.
It changes how the entity is displayed and which alias it resolves
through, never any point or slot arithmetic.
"""

import re
from enum import Enum


class SourceTag(str, Enum):
    """Provenance marker for catalog entities."""

    REGULAR = "regular"
    LEGACY = "legacy"
    LEGENDS = "legends"
    LEGACY_BETA = "legacyBeta"
    ARC = "arc"
    NEXUS = "nexus"
    AMG = "amg"
    COMMUNITY = "community"


# Bracket text rendered after a name; tags missing here render nothing
SOURCE_BRACKETS: dict[SourceTag, str] = {
    SourceTag.LEGACY: "[Legacy]",
    SourceTag.LEGENDS: "[Legends]",
    SourceTag.LEGACY_BETA: "[LegacyBeta]",
    SourceTag.ARC: "[ARC]",
    SourceTag.NEXUS: "[Nexus]",
    SourceTag.COMMUNITY: "[Community]",
}

# Lowercased bracket contents -> tag
_BRACKET_LOOKUP: dict[str, SourceTag] = {
    bracket[1:-1].lower(): tag for tag, bracket in SOURCE_BRACKETS.items()
}

_BRACKET_PATTERN = re.compile(r"\[\s*([A-Za-z]+)\s*\]")


def format_source(source: SourceTag) -> str:
    """Return the bracket suffix for a source tag, or '' for untagged sources."""
    return SOURCE_BRACKETS.get(source, "")


def source_from_text(text: str | None) -> SourceTag | None:
    """
    Extract a source tag from a bracketed marker inside display text.

    Matching is case-insensitive ("[legacy]" and "[Legacy]" both map to
    SourceTag.LEGACY). Unknown brackets such as "[flagship]" are ignored.

    Returns:
        The tag of the first recognized bracket, or None if there is none.
    """
    if not text:
        return None
    for match in _BRACKET_PATTERN.finditer(text):
        tag = _BRACKET_LOOKUP.get(match.group(1).lower())
        if tag is not None:
            return tag
    return None


def source_from_pack(pack: str) -> SourceTag:
    """Map a content pack name (directory or storage key) to its source tag."""
    try:
        return SourceTag(pack)
    except ValueError:
        return _BRACKET_LOOKUP.get(pack.lower(), SourceTag.REGULAR)


def strip_source(text: str) -> str:
    """Remove recognized source brackets from display text."""

    def _drop(match: re.Match[str]) -> str:
        return "" if match.group(1).lower() in _BRACKET_LOOKUP else match.group(0)

    return " ".join(_BRACKET_PATTERN.sub(_drop, text).split())
