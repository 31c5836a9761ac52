"""
Fleet list dialect normalizers.

Each community export dialect has one normalizer that rewrites its text
into the canonical line grammar read by the fleet parser. Normalizers
are purely textual and total: a line that does not match an expected
pattern is passed through unchanged, and the parser decides what to do
with it.

Adding a dialect means adding one class and registering it in
NORMALIZERS; the parser never changes.
"""

import logging
import re
from typing import Protocol

from fleetforge.models.failure import UnknownFormatError

logger = logging.getLogger(__name__)

KINGSTON = "kingston"
AFD = "afd"
WARLORDS = "warlords"
STARFORGE = "starforge"

BULLET = "•"

_HTML_TAG = re.compile(r"<[^>]*>")
_OBJECTIVE_SUFFIX = re.compile(r"^(Assault|Defense|Navigation) Objective:\s*", re.IGNORECASE)
_OBJECTIVE_LINE = re.compile(r"^(Assault|Defense|Navigation):", re.IGNORECASE)


class Normalizer(Protocol):
    """Rewrites one dialect into canonical fleet text."""

    format_tag: str

    def normalize(self, text: str) -> str: ...


def clean_lines(text: str) -> list[str]:
    """Strip HTML tags, normalize line endings, trim lines and drop blanks."""
    text = _HTML_TAG.sub("", text).replace("\r\n", "\n").replace("\r", "\n")
    return [line.strip() for line in text.split("\n") if line.strip()]


def _objective_category(line: str) -> str:
    """'Assault Objective: X' -> 'Assault: X'. Other lines are returned as-is."""
    match = _OBJECTIVE_SUFFIX.match(line)
    if not match:
        return line
    return f"{match.group(1).capitalize()}: {line[match.end():]}".rstrip()


class KingstonNormalizer:
    """The canonical dialect; text passes through untouched."""

    format_tag = KINGSTON

    def normalize(self, text: str) -> str:
        return text


class AfdNormalizer:
    """
    Dialect with a "<name> (a/b/c)" header, a "====" rule, middle-dot
    bullets and combined cost annotations.

    Examples:
        "My Fleet (400/134/0)"        -> "Name: My Fleet"
        "· Admiral Motti (24)"        -> "• Admiral Motti (24)"
        "Victory II (85 + 21: 106)"   -> "Victory II (85)"
        "TIE Fighter (3 x 8)"         -> "TIE Fighter (24)"
        "3 x TIE Fighter (8)"         -> "• 3 x TIE Fighter (24)"
    """

    format_tag = AFD

    _HEADER = re.compile(r"^(.+?)\s*\(\d+/\d+/\d+\)")
    _RULE = re.compile(r"^=+$")
    _MIDDLE_DOT = re.compile(r"^·\s*")
    _COMBINED_COST = re.compile(r"\((\d+)\s*\+[^)]+\)")
    _MULTIPLIED_COST = re.compile(r"\((\d+)\s*x\s*(\d+)\)")
    _COUNTED_SQUADRON = re.compile(r"^(\d+)\s*x\s*([^(]+)\((\d+)\)")

    def normalize(self, text: str) -> str:
        lines = clean_lines(text)
        if not lines:
            return ""

        header = self._HEADER.match(lines[0])
        if header:
            lines[0] = f"Name: {header.group(1)}"
            if len(lines) > 1 and self._RULE.match(lines[1]):
                del lines[1]

        return "\n".join(self._rewrite(line) for line in lines)

    def _rewrite(self, line: str) -> str:
        line = self._MIDDLE_DOT.sub(f"{BULLET} ", line, count=1)
        line = self._COMBINED_COST.sub(r"(\1)", line, count=1)
        line = self._MULTIPLIED_COST.sub(
            lambda m: f"({int(m.group(1)) * int(m.group(2))})", line, count=1
        )
        line = self._COUNTED_SQUADRON.sub(
            lambda m: (
                f"{BULLET} {m.group(1)} x {m.group(2).strip()} "
                f"({int(m.group(1)) * int(m.group(3))})"
            ),
            line,
            count=1,
        )
        return line


class WarlordsNormalizer:
    """
    Dialect with hyphen bullets, "[flagship]" markers, "( N points)" costs
    and a "total ship cost" footer that ends the ship section.

    Squadron lines carry a leading count and a cost that is already the
    total for the group.
    """

    format_tag = WARLORDS

    _FACTION = re.compile(r"^Faction:\s*(.*)$", re.IGNORECASE)
    _SQUADRON_START = re.compile(r"^\d+\s+\w")
    _SQUADRON = re.compile(r"^(\d+)\s+(.+?)\s*\(\s*(\d+)\s*points?\)")
    _HYPHEN_BULLET = re.compile(r"^-\s+")
    _FLAGSHIP = re.compile(r"\[\s*flagship\s*\]\s*", re.IGNORECASE)
    _POINTS = re.compile(r"\(\s*(\d+)\s*points?\)")

    TOTAL_SHIP_COST = "total ship cost"
    TOTAL_SQUADRON_COST = "total squadron cost"

    def normalize(self, text: str) -> str:
        out: list[str] = []
        ships_done = False
        in_squadrons = False

        for line in clean_lines(text):
            faction = self._FACTION.match(line)
            if faction:
                out.append(f"Faction: {faction.group(1).strip()}")
                continue

            lowered = line.lower()
            if self.TOTAL_SHIP_COST in lowered:
                ships_done = True
                continue
            if self.TOTAL_SQUADRON_COST in lowered:
                continue

            if ships_done and not in_squadrons and self._SQUADRON_START.match(line):
                in_squadrons = True
                out.extend(["", "Squadrons:"])

            line = _objective_category(line)
            if _OBJECTIVE_LINE.match(line):
                out.extend(["", line])
                continue

            if in_squadrons and self._SQUADRON_START.match(line):
                out.append(self._rewrite_squadron(line))
                continue

            line = self._HYPHEN_BULLET.sub(f"{BULLET} ", line, count=1)
            line = self._FLAGSHIP.sub("", line, count=1)
            line = self._POINTS.sub(r"(\1)", line, count=1)
            out.append(line)

        return "\n".join(out)

    def _rewrite_squadron(self, line: str) -> str:
        match = self._SQUADRON.match(line)
        if not match:
            return line
        count, name, points = int(match.group(1)), match.group(2).strip(), match.group(3)
        if count == 1:
            return f"{BULLET} {name} ({points})"
        return f"{BULLET} {count} x {name} ({points})"


class StarforgeNormalizer:
    """
    Dialect with "<Category> Objective:" lines, an objective block after
    the ships, a bare "Squadrons" header and numeric-prefixed squadron
    counts with per-unit costs.

    Examples:
        "Assault Objective: Most Wanted" -> "Assault: Most Wanted"
        "2 TIE Fighter (8)"              -> "• 2 x TIE Fighter (16)"
        "3x TIE Fighter (8)"             -> "• 3 x TIE Fighter (24)"
    """

    format_tag = STARFORGE

    _COUNTED_SQUADRON = re.compile(r"^(\d+)\s*x?\s+(.+?)\s*\((\d+)\)\s*$", re.IGNORECASE)
    _COUNTED_TIGHT = re.compile(r"^(\d+)x(\S.*?)\s*\((\d+)\)\s*$", re.IGNORECASE)
    _NUMERIC_PREFIX = re.compile(r"^\d+\s*x?\s*\S", re.IGNORECASE)
    _OTHER_BULLET = re.compile(r"^[-*]\s+")
    _SHIP = re.compile(r"^[^•].*\(\d+\)\s*$")
    _HEADER = re.compile(r"^(Name|Faction|Commander|Total Points):", re.IGNORECASE)

    def normalize(self, text: str) -> str:
        lines = [_objective_category(line) for line in clean_lines(text)]
        lines = self._relocate_objectives(lines)

        out: list[str] = []
        in_squadrons = False
        for line in lines:
            if line.rstrip(":").lower() == "squadrons":
                in_squadrons = True
                out.extend(["", "Squadrons:"])
                continue

            if self._NUMERIC_PREFIX.match(line) and not line.startswith("="):
                if not in_squadrons:
                    in_squadrons = True
                    out.extend(["", "Squadrons:"])
                out.append(self._rewrite_squadron(line))
                continue

            out.append(self._OTHER_BULLET.sub(f"{BULLET} ", line, count=1))

        return "\n".join(out)

    def _is_ship(self, line: str) -> bool:
        return (
            bool(self._SHIP.match(line))
            and not self._HEADER.match(line)
            and not _OBJECTIVE_LINE.match(line)
            and not self._NUMERIC_PREFIX.match(line)
            and not self._OTHER_BULLET.match(line)
        )

    def _relocate_objectives(self, lines: list[str]) -> list[str]:
        """Move objective lines ahead of the first ship line."""
        objectives = [line for line in lines if _OBJECTIVE_LINE.match(line)]
        if not objectives:
            return lines

        rest = [line for line in lines if not _OBJECTIVE_LINE.match(line)]
        first_ship = next((i for i, line in enumerate(rest) if self._is_ship(line)), None)
        if first_ship is None:
            return rest + objectives

        logger.debug("Relocating %d objective lines ahead of ships", len(objectives))
        return rest[:first_ship] + objectives + [""] + rest[first_ship:]

    def _rewrite_squadron(self, line: str) -> str:
        match = self._COUNTED_TIGHT.match(line) or self._COUNTED_SQUADRON.match(line)
        if not match:
            return line
        count, name, per_unit = int(match.group(1)), match.group(2).strip(), int(match.group(3))
        return f"{BULLET} {count} x {name} ({count * per_unit})"


NORMALIZERS: dict[str, Normalizer] = {
    normalizer.format_tag: normalizer
    for normalizer in (
        KingstonNormalizer(),
        AfdNormalizer(),
        WarlordsNormalizer(),
        StarforgeNormalizer(),
    )
}


def get_normalizer(format_tag: str) -> Normalizer:
    """
    Look up the normalizer for a dialect tag.

    Raises:
        UnknownFormatError: If the tag is unknown
    """
    normalizer = NORMALIZERS.get(format_tag.lower())
    if normalizer is None:
        raise UnknownFormatError(format_tag, sorted(NORMALIZERS))
    return normalizer


def normalize(text: str, format_tag: str) -> str:
    """Rewrite fleet text in the given dialect into canonical fleet text."""
    return get_normalizer(format_tag).normalize(text)
