"""
Fleet List Parser.

Turns canonical fleet text into a structured Fleet. Dialect text must
already have been rewritten by a normalizer.

=============================================================================
FAILURE BOUNDARY
=============================================================================

Fatal (raised, nothing returned):
- ImportInputError: input larger than MAX_IMPORT_TEXT_LENGTH
- FactionUndeterminedError: no faction line and nothing to infer it from
- FactionMismatchError: declared or inferred faction differs from the target

Recoverable (collected, parsing continues):
- skipped_items: recognized ship/upgrade/squadron/objective lines whose
  display string is not in the alias table or whose key is not in the catalog
- unparseable_lines: lines that match no pattern at all

Upgrades are attached exactly as listed, with slot indices assigned in
order of appearance. Slot availability is not checked here; the editing
session rebuilds parsed ships through the upgrade constraint engine.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

from fleetforge.config import MAX_IMPORT_TEXT_LENGTH
from fleetforge.models.cards import Objective, Ship
from fleetforge.models.failure import (
    FactionMismatchError,
    FactionUndeterminedError,
    ImportInputError,
)
from fleetforge.models.fleet import Fleet, new_instance_id, normalize_faction
from fleetforge.models.source import SourceTag, source_from_text, strip_source
from fleetforge.services.alias_resolver import AliasResolver
from fleetforge.services.content_catalog import ContentCatalog
from fleetforge.services.points import refresh_points

logger = logging.getLogger(__name__)

T = TypeVar("T")

# (ship name, points, target faction) -> name the catalog knows it by
SHIP_NAME_FIXUPS: dict[tuple[str, int, str], str] = {
    ("Venator II", 100, "empire"): "Venator II-Class Star Destroyer",
}

BULLET = "•"


# =============================================================================
# PARSE RESULT
# =============================================================================


@dataclass
class ParseResult:
    """
    Outcome of parsing one fleet list.

    `fleet.points` holds the recomputed totals; the declared values are
    what the text claimed and are kept only for comparison.
    """

    fleet: Fleet
    skipped_items: list[str] = field(default_factory=list)
    unparseable_lines: list[tuple[int, str]] = field(default_factory=list)
    declared_faction: str | None = None
    declared_total: int | None = None
    declared_squadron_points: int | None = None

    @property
    def has_problems(self) -> bool:
        return bool(self.skipped_items or self.unparseable_lines)


# =============================================================================
# PARSER
# =============================================================================


class FleetParser:
    """
    Line-classifying state machine over canonical fleet text.

    Usage:
        parser = FleetParser(resolver, catalog)
        result = parser.parse(text, "empire")
        for item in result.skipped_items:
            ...
    """

    _NAME = re.compile(r"^Name:\s*(.+)$")
    _TOTAL = re.compile(r"^Total Points:\s*(\d+)")
    _SUBTOTAL = re.compile(r"^=\s*(\d+)\s*Points")
    _OBJECTIVES = re.compile(r"^(Assault|Defense|Navigation)(?:\s+Objective)?:\s*(.*)$")
    _SHIP = re.compile(r"^(.+?)\s*\((\d+)\)")
    _UPGRADE = re.compile(rf"^{BULLET}\s*(.+?)\s*\((\d+)\)")
    _SQUADRON = re.compile(rf"^{BULLET}?\s*(?:(\d+)\s*x\s*)?(.+?)\s*\((\d+)\)")

    # Separates ace name from squadron name in exported unique squadrons
    ACE_SEPARATOR = " - "

    def __init__(self, resolver: AliasResolver, catalog: ContentCatalog) -> None:
        self._resolver = resolver
        self._catalog = catalog

    def parse(self, text: str, faction: str) -> ParseResult:
        """
        Parse canonical fleet text for a fleet of the given faction.

        Args:
            text: Canonical fleet text
            faction: Faction of the fleet being edited

        Returns:
            ParseResult with the fleet and everything that was skipped

        Raises:
            ImportInputError: If the text is too long
            FactionUndeterminedError: If the faction cannot be determined
            FactionMismatchError: If the fleet belongs to another faction
        """
        if len(text) > MAX_IMPORT_TEXT_LENGTH:
            raise ImportInputError(f"input exceeds {MAX_IMPORT_TEXT_LENGTH} characters")

        lines = text.split("\n")
        target = normalize_faction(faction)
        declared = self._declared_faction(lines)
        imported = declared or self._infer_faction(lines)

        if imported is None:
            raise FactionUndeterminedError()
        if imported != target:
            logger.warning("FACTION_MISMATCH: fleet is %s, target is %s", imported, target)
            raise FactionMismatchError(imported, target)

        logger.info("Parsing fleet text (%d lines) for %s", len(lines), target)

        result = ParseResult(fleet=Fleet(faction=target), declared_faction=declared)
        fleet = result.fleet
        in_squadrons = False
        current_ship: Ship | None = None
        # True after a ship line failed to resolve; its upgrades are skipped too
        ship_skipped = False

        for line_no, raw in enumerate(lines, 1):
            line = raw.strip()

            if not line:
                continue

            if line.startswith(("Faction:", "Commander:")):
                continue

            name = self._NAME.match(line)
            if name:
                fleet.name = name.group(1).strip()
                continue

            if line.startswith("Total Points:"):
                total = self._TOTAL.match(line)
                if total:
                    result.declared_total = int(total.group(1))
                continue

            if line.startswith("Squadrons:"):
                in_squadrons = True
                current_ship = None
                continue

            if line.startswith("="):
                subtotal = self._SUBTOTAL.match(line)
                if in_squadrons and subtotal:
                    result.declared_squadron_points = int(subtotal.group(1))
                # Ship subtotals are recomputed, never read
                continue

            objectives = self._OBJECTIVES.match(line)
            if objectives:
                self._parse_objectives(objectives.group(1), objectives.group(2), result)
                continue

            if in_squadrons:
                self._parse_squadron(line_no, line, result)
            elif not line.startswith(BULLET):
                current_ship = self._parse_ship(line_no, line, target, result)
                ship_skipped = current_ship is None and bool(self._SHIP.match(line))
            else:
                self._parse_upgrade(line_no, line, current_ship, ship_skipped, result)

        refresh_points(fleet)
        logger.info(
            "Parsed fleet %r: %d ships, %d squadrons, %d skipped, %d unparseable",
            fleet.name,
            len(fleet.ships),
            len(fleet.squadrons),
            len(result.skipped_items),
            len(result.unparseable_lines),
        )
        return result

    # -------------------------------------------------------------------------
    # Faction
    # -------------------------------------------------------------------------

    def _declared_faction(self, lines: list[str]) -> str | None:
        for line in lines:
            stripped = line.strip()
            if stripped.startswith("Faction:"):
                value = stripped.split(":", 1)[1].strip()
                if value:
                    return normalize_faction(value)
        return None

    def _infer_faction(self, lines: list[str]) -> str | None:
        """Faction of the first line that resolves to a ship or squadron."""
        for line in lines:
            stripped = line.strip()
            if not stripped or stripped.startswith(("Total Points:", "Squadrons:")):
                continue
            match = self._SQUADRON.match(stripped)
            if not match:
                continue
            count = int(match.group(1)) if match.group(1) else 1
            if count < 1:
                continue
            display = f"{match.group(2).strip()} ({_per_unit(int(match.group(3)), count)})"
            key = self._resolver.resolve(display)
            if key is None:
                continue
            ship = self._catalog.get_ship(key)
            if ship is not None and ship.faction:
                return normalize_faction(ship.faction)
            squadron = self._catalog.get_squadron(key)
            if squadron is not None and squadron.faction:
                return normalize_faction(squadron.faction)
        return None

    # -------------------------------------------------------------------------
    # Line handlers
    # -------------------------------------------------------------------------

    def _lookup(self, display: str, fetch: Callable[[str], T | None]) -> T | None:
        key = self._resolver.resolve(display)
        if key is None:
            logger.warning("Unresolved alias: %s", display)
            return None
        entity = fetch(key)
        if entity is None:
            logger.warning("Alias %s resolved to %s, which is not in the catalog", display, key)
        return entity

    def _parse_objectives(self, category: str, names: str, result: ParseResult) -> None:
        for name in (n.strip() for n in names.split(",")):
            if not name:
                continue
            objective = self._lookup(name, self._catalog.get_objective)
            if objective is None and strip_source(name) != name:
                objective = self._lookup(strip_source(name), self._catalog.get_objective)
            if objective is None:
                result.skipped_items.append(name)
                continue
            # The heading decides the category, not the card
            if objective.category != category.lower():
                objective = Objective(
                    key=objective.key,
                    name=objective.name,
                    category=category.lower(),
                    source=objective.source,
                )
            result.fleet.add_objective(objective)
            logger.debug("OBJECTIVE: %s -> %s", name, objective.key)

    def _parse_ship(
        self, line_no: int, line: str, target: str, result: ParseResult
    ) -> Ship | None:
        match = self._SHIP.match(line)
        if not match:
            result.unparseable_lines.append((line_no, line))
            return None

        name, points = match.group(1).strip(), int(match.group(2))
        name = SHIP_NAME_FIXUPS.get((name, points, target), name)
        display = f"{name} ({points})"

        model = self._lookup(display, self._catalog.get_ship)
        if model is None:
            result.skipped_items.append(display)
            return None

        ship = model.new_instance(
            new_instance_id("ship"), source=source_from_text(name) or SourceTag.REGULAR
        )
        result.fleet.ships.append(ship)
        logger.debug("SHIP: %s -> %s", display, ship.key)
        return ship

    def _parse_upgrade(
        self,
        line_no: int,
        line: str,
        ship: Ship | None,
        ship_skipped: bool,
        result: ParseResult,
    ) -> None:
        match = self._UPGRADE.match(line)
        if not match or (ship is None and not ship_skipped):
            result.unparseable_lines.append((line_no, line))
            return

        name, points = match.group(1).strip(), int(match.group(2))
        display = f"{name} ({points})"
        if ship is None:
            result.skipped_items.append(display)
            return

        upgrade = self._lookup(display, self._catalog.get_upgrade)
        if upgrade is None:
            result.skipped_items.append(display)
            return

        # The same card can be listed under different source brackets
        source = source_from_text(name) or SourceTag.REGULAR
        slot_index = sum(1 for u in ship.assigned_upgrades if u.type == upgrade.type)
        ship.assigned_upgrades.append(upgrade.placed(slot_index, source))
        logger.debug("UPGRADE: %s -> %s[%d] on %s", display, upgrade.type, slot_index, ship.name)

    def _parse_squadron(self, line_no: int, line: str, result: ParseResult) -> None:
        match = self._SQUADRON.match(line)
        count = int(match.group(1)) if match and match.group(1) else 1
        if not match or count < 1:
            result.unparseable_lines.append((line_no, line))
            return

        name = match.group(2).strip()
        per_unit = _per_unit(int(match.group(3)), count)
        display = f"{name} ({per_unit})"

        model = self._lookup(display, self._catalog.get_squadron)
        if model is None and self.ACE_SEPARATOR in name:
            # Exported aces read "Ace - Squadron"; some alias tables list the ace alone
            ace = name.split(self.ACE_SEPARATOR, 1)[0].strip()
            model = self._lookup(f"{ace} ({per_unit})", self._catalog.get_squadron)
        if model is None:
            result.skipped_items.append(display)
            return

        squadron = model.new_instance(
            new_instance_id("squadron"),
            count=count,
            source=source_from_text(name) or SourceTag.REGULAR,
        )
        result.fleet.squadrons.append(squadron)
        logger.debug("SQUADRON: %s x%d -> %s", display, count, squadron.key)


def _per_unit(total: int, count: int) -> int:
    """Per-unit points from a group total, rounding halves up."""
    return int(total / count + 0.5)


def parse_fleet(
    text: str,
    faction: str,
    resolver: AliasResolver,
    catalog: ContentCatalog,
) -> ParseResult:
    """Convenience wrapper around FleetParser.parse()."""
    return FleetParser(resolver, catalog).parse(text, faction)
