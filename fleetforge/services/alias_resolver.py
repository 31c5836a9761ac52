"""
Alias Resolution Service.

Maps human-readable display strings ("Name (points)", or an objective
name alone) to canonical catalog entity keys.

INVARIANTS:
1. Lookup is exact after whitespace normalization (no fuzzy matching)
2. A list of candidates is an errata ambiguity: a bare "-errata" key wins
   over "-errata-<source>" variants and over the original printing
3. Unresolved lookups return None and are reported by the caller,
   never silently dropped
"""

import logging
from dataclasses import dataclass, field

from fleetforge.models.source import SourceTag, format_source

logger = logging.getLogger(__name__)

# Display string -> single key, or candidate keys for errata ambiguities
AliasTable = dict[str, str | list[str]]

ERRATA_SUFFIX = "-errata"


@dataclass(frozen=True)
class ErrataKeys:
    """
    Keys of currently active errata revisions, partitioned by entity kind.

    Catalog-facing selectors use these to choose which of several
    same-name entries to expose; the alias resolver consults them when
    no bare "-errata" candidate exists.
    """

    ships: frozenset[str] = field(default_factory=frozenset)
    squadrons: frozenset[str] = field(default_factory=frozenset)
    upgrades: frozenset[str] = field(default_factory=frozenset)
    objectives: frozenset[str] = field(default_factory=frozenset)

    def all_keys(self) -> frozenset[str]:
        """Every active errata key regardless of kind."""
        return self.ships | self.squadrons | self.upgrades | self.objectives

    def __contains__(self, key: str) -> bool:
        return key in self.all_keys()


def normalize_display(text: str) -> str:
    """Trim and collapse internal whitespace."""
    return " ".join(text.split())


def display_string(name: str, points: int | None, source: SourceTag | None = None) -> str:
    """
    Build the alias lookup string for an entity.

    Examples:
        display_string("Gladiator I", 56) -> "Gladiator I (56)"
        display_string("Gladiator I", 56, SourceTag.LEGACY) -> "Gladiator I [Legacy] (56)"
        display_string("Most Wanted", None) -> "Most Wanted"
    """
    text = name
    bracket = format_source(source) if source else ""
    if bracket:
        text = f"{text} {bracket}"
    if points is not None:
        text = f"{text} ({points})"
    return text


def select_candidate(candidates: list[str], errata_keys: ErrataKeys | None = None) -> str | None:
    """
    Choose one key from an ambiguous candidate list.

    Precedence:
    1. A key ending exactly in "-errata" (the default-ruleset replacement)
    2. The first candidate listed in the active errata key set
    3. The first candidate
    """
    if not candidates:
        return None

    for key in candidates:
        if key.endswith(ERRATA_SUFFIX):
            return key

    if errata_keys is not None:
        active = errata_keys.all_keys()
        for key in candidates:
            if key in active:
                return key

    return candidates[0]


class AliasResolver:
    """
    Resolves display strings to entity keys using the alias table.

    Usage:
        resolver = AliasResolver(aliases, errata_keys)
        key = resolver.resolve("Gladiator I (56)")
        if key is None:
            skipped.append("Gladiator I (56)")
    """

    def __init__(self, aliases: AliasTable, errata_keys: ErrataKeys | None = None) -> None:
        self._aliases = aliases
        self._errata_keys = errata_keys
        # Whitespace-normalized index for lines with irregular spacing
        self._normalized: dict[str, str | list[str]] = {
            normalize_display(name): value for name, value in aliases.items()
        }

    def resolve(self, display: str) -> str | None:
        """
        Resolve a display string to a single entity key.

        Args:
            display: "Name (points)", optionally with a source bracket,
                or an objective name

        Returns:
            The entity key, or None if the display string is unknown
        """
        text = display.strip()
        value = self._aliases.get(text)
        if value is None:
            value = self._normalized.get(normalize_display(text))

        if value is None:
            logger.debug("ALIAS_MISS: %r", text)
            return None

        if isinstance(value, str):
            return value or None

        key = select_candidate(value, self._errata_keys)
        logger.debug("ALIAS_AMBIGUOUS: %r candidates=%s chose=%s", text, value, key)
        return key

    def __contains__(self, display: str) -> bool:
        return self.resolve(display) is not None

    def __len__(self) -> int:
        return len(self._aliases)
