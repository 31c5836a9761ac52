"""
Fleet Editing Session.

A FleetEditor owns one Fleet together with the UniqueNameRegistry and
UpgradeConstraintEngine that keep it consistent. It is the single writer
for that fleet: every edit goes through one of its methods and every
edit recomputes the fleet's point totals from scratch.

=============================================================================
FAILURE BOUNDARY
=============================================================================

Edits that would break a rule raise a KnownError subclass and change
nothing:
- UniqueNameConflictError: a unique name is already in use
- SlotUnavailableError: the slot is missing, disabled or of another type
- EntityNotFoundError: the ship or squadron id is not in the fleet

import_text() is atomic. The imported fleet is built in a separate
session and only adopted once parsing and placement have finished; a
KnownError raised on the way leaves the current fleet untouched.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Literal

from fleetforge.config import settings
from fleetforge.models.cards import Objective, Ship, Squadron, Upgrade
from fleetforge.models.failure import FailureKind, KnownError
from fleetforge.models.fleet import Fleet, new_instance_id, normalize_faction
from fleetforge.parsers.card_updates import apply_card_updates
from fleetforge.parsers.fleet_parser import FleetParser
from fleetforge.parsers.normalizers import normalize
from fleetforge.services.alias_resolver import AliasResolver, display_string
from fleetforge.services.content_catalog import CatalogBundle, ContentCatalog
from fleetforge.services.fleet_formatter import serialize_fleet
from fleetforge.services.gamemode import check_fleet_violations
from fleetforge.services.points import refresh_points
from fleetforge.services.unique_registry import UniqueNameRegistry
from fleetforge.services.upgrade_engine import (
    COMMANDER_SLOT,
    ConstraintState,
    UpgradeConstraintEngine,
)

logger = logging.getLogger(__name__)

Direction = Literal["up", "down"]


# =============================================================================
# ERRORS
# =============================================================================


class UniqueNameConflictError(KnownError):
    """Raised when an entity's unique names are already in use."""

    def __init__(self, entity_name: str, names: list[str]):
        self.entity_name = entity_name
        self.names = names
        super().__init__(
            kind=FailureKind.UNIQUE_CONFLICT,
            message=f"{entity_name} conflicts with unique names already in the fleet",
            detail=", ".join(names),
            suggestion="Remove the card that already uses this name first.",
        )


class SlotUnavailableError(KnownError):
    """Raised when an upgrade cannot go into the requested slot."""

    def __init__(self, ship_name: str, slot_type: str, slot_index: int, reason: str):
        self.ship_name = ship_name
        self.slot_type = slot_type
        self.slot_index = slot_index
        self.reason = reason
        super().__init__(
            kind=FailureKind.SLOT_UNAVAILABLE,
            message=f"{ship_name} cannot take a {slot_type} upgrade in slot {slot_index}",
            detail=reason,
        )


class EntityNotFoundError(KnownError):
    """Raised when a ship or squadron id is not part of the fleet."""

    def __init__(self, kind: str, entity_id: str):
        self.entity_kind = kind
        self.entity_id = entity_id
        super().__init__(
            kind=FailureKind.NOT_FOUND,
            message=f"No {kind} with id {entity_id} in this fleet",
        )


# =============================================================================
# IMPORT REPORT
# =============================================================================


@dataclass
class ImportReport:
    """What an import added and what it had to leave out."""

    skipped_items: list[str] = field(default_factory=list)
    unparseable_lines: list[tuple[int, str]] = field(default_factory=list)
    declared_total: int | None = None
    total: int = 0

    @property
    def total_mismatch(self) -> bool:
        """True if the text declared a total that differs from the rebuilt fleet."""
        return self.declared_total is not None and self.declared_total != self.total


# =============================================================================
# EDITOR
# =============================================================================


class FleetEditor:
    """
    Editing session for one fleet.

    Usage:
        editor = FleetEditor.from_bundle(bundle, "empire")
        ship = editor.add_ship(bundle.catalog.get_ship("victory-ii"))
        editor.assign_upgrade(ship.id, motti, "commander", 0)
        text = editor.export_text()
    """

    def __init__(
        self,
        faction: str,
        catalog: ContentCatalog | None = None,
        resolver: AliasResolver | None = None,
        updates: dict[str, str] | None = None,
        enforce_unique_names: bool | None = None,
    ) -> None:
        self.catalog = catalog
        self.resolver = resolver
        self.updates = updates or {}
        self.enforce_unique_names = (
            settings.enforce_unique_names if enforce_unique_names is None else enforce_unique_names
        )
        self.fleet = Fleet(faction=normalize_faction(faction))
        self.registry = UniqueNameRegistry()
        self.engine = UpgradeConstraintEngine(self.registry)

    @classmethod
    def from_bundle(cls, bundle: CatalogBundle, faction: str, **kwargs) -> "FleetEditor":
        """Create an editor backed by a loaded catalog bundle."""
        resolver = AliasResolver(bundle.aliases, bundle.errata_keys)
        return cls(faction, bundle.catalog, resolver, bundle.updates, **kwargs)

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def ship(self, ship_id: str) -> Ship:
        ship = self.fleet.find_ship(ship_id)
        if ship is None:
            raise EntityNotFoundError("ship", ship_id)
        return ship

    def squadron(self, squadron_id: str) -> Squadron:
        squadron = self.fleet.find_squadron(squadron_id)
        if squadron is None:
            raise EntityNotFoundError("squadron", squadron_id)
        return squadron

    def constraint_state(self, ship_id: str) -> ConstraintState:
        return self.engine.state_for(self.ship(ship_id))

    def _check_unique(
        self, entity_name: str, names: list[str], releasing: list[str] | None = None
    ) -> None:
        if not self.enforce_unique_names:
            return
        conflicts = [n for n in self.registry.conflicts(names) if n not in (releasing or [])]
        if conflicts:
            logger.warning("UNIQUE_CONFLICT: %s blocked by %s", entity_name, conflicts)
            raise UniqueNameConflictError(entity_name, conflicts)

    def _refresh(self) -> None:
        refresh_points(self.fleet)

    # -------------------------------------------------------------------------
    # Ships
    # -------------------------------------------------------------------------

    def add_ship(self, model: Ship) -> Ship:
        """Add a fresh, empty instance of a catalog ship."""
        self._check_unique(model.name, model.unique_names())
        ship = model.new_instance(new_instance_id("ship"))
        self.engine.register_ship(ship)
        self.registry.add_all(ship.unique_names())
        self.fleet.ships.append(ship)
        self._refresh()
        return ship

    def remove_ship(self, ship_id: str) -> Ship:
        """Remove a ship with all its upgrades."""
        ship = self.ship(ship_id)
        self.engine.release_ship(ship)
        self.registry.remove_all(ship.unique_names())
        self.fleet.ships.remove(ship)
        self._refresh()
        return ship

    def copy_ship(self, ship_id: str) -> Ship:
        """
        Add another empty instance of a non-unique ship.

        The model is looked up again through the alias table when one is
        configured, so the copy reflects the current catalog.

        Raises:
            UniqueNameConflictError: If the ship is unique
        """
        original = self.ship(ship_id)
        if original.unique:
            raise UniqueNameConflictError(original.name, original.unique_names())

        model: Ship | None = None
        if self.resolver is not None and self.catalog is not None:
            key = self.resolver.resolve(
                display_string(original.name, original.points, original.source)
            )
            if key is not None:
                model = self.catalog.get_ship(key)
        if model is None:
            logger.debug("Copying %s from the fleet instance", original.name)
            model = original

        ship = model.new_instance(new_instance_id("ship"), source=original.source)
        self.engine.register_ship(ship)
        self.fleet.ships.append(ship)
        self._refresh()
        return ship

    def move_ship(self, ship_id: str, direction: Direction) -> None:
        _move(self.fleet.ships, self.ship(ship_id), direction)

    def set_ship_traits(self, ship_id: str, traits: list[str]) -> int:
        """
        Replace a ship's traits. Returns points removed by the slot change.
        """
        removed = self.engine.set_traits(self.ship(ship_id), traits)
        self._refresh()
        return removed

    # -------------------------------------------------------------------------
    # Upgrades
    # -------------------------------------------------------------------------

    def can_assign(self, ship_id: str, slot_type: str, slot_index: int) -> bool:
        """True if the slot exists and is either enabled or already occupied."""
        ship = self.ship(ship_id)
        if slot_index < 0 or slot_index >= ship.slot_count(slot_type):
            return False
        if ship.upgrade_at(slot_type, slot_index) is not None:
            return True
        return not self.engine.state_for(ship).is_disabled(slot_type)

    def assign_upgrade(self, ship_id: str, upgrade: Upgrade, slot_type: str, slot_index: int) -> int:
        """
        Put an upgrade in a slot, replacing the slot's current upgrade.

        Returns:
            Change in the ship's points

        Raises:
            EntityNotFoundError: If the ship is not in the fleet
            SlotUnavailableError: If the slot cannot take the upgrade
            UniqueNameConflictError: If the upgrade's unique names are taken
        """
        ship = self.ship(ship_id)
        if upgrade.type != slot_type:
            raise SlotUnavailableError(
                ship.name, slot_type, slot_index, f"{upgrade.name} is a {upgrade.type} upgrade"
            )
        if not self.can_assign(ship_id, slot_type, slot_index):
            raise SlotUnavailableError(
                ship.name, slot_type, slot_index, "slot is missing or disabled"
            )

        occupant = ship.upgrade_at(slot_type, slot_index)
        self._check_unique(
            upgrade.name,
            upgrade.unique_names(),
            releasing=occupant.unique_names() if occupant else [],
        )

        delta = self.engine.assign(ship, upgrade, slot_type, slot_index)
        self._refresh()
        return delta

    def unassign_upgrade(self, ship_id: str, slot_type: str, slot_index: int) -> int:
        """Empty a slot. Returns points removed, including cascaded removals."""
        removed = self.engine.unassign(self.ship(ship_id), slot_type, slot_index)
        self._refresh()
        return removed

    def upgrade_ineligibility(self, ship_id: str, upgrade: Upgrade) -> list[str]:
        """
        Reasons an upgrade may not be equipped on a ship; empty if it may.
        """
        ship = self.ship(ship_id)
        state = self.engine.state_for(ship)
        restrictions = upgrade.restrictions
        assigned_types = [u.type for u in ship.assigned_upgrades]
        reasons: list[str] = []

        if upgrade.bound_shiptype and upgrade.bound_shiptype not in (ship.name, ship.chassis):
            reasons.append(f"Only fits {upgrade.bound_shiptype}")
        if any(u.name == upgrade.name for u in ship.assigned_upgrades):
            reasons.append(f"{upgrade.name} is already equipped on this ship")
        if upgrade.modification and any(u.modification for u in ship.assigned_upgrades):
            reasons.append("Ship already has a modification")
        if state.is_disabled(upgrade.type):
            reasons.append(f"{upgrade.type} upgrades are disabled on this ship")

        blocked_by = set(restrictions.disqual_types) | set(restrictions.disable_types)
        conflicting = sorted(blocked_by.intersection(assigned_types))
        if conflicting:
            reasons.append(f"Cannot be combined with {', '.join(conflicting)} upgrades")

        if restrictions.sizes and ship.size not in restrictions.sizes:
            reasons.append(f"Requires ship size {', '.join(restrictions.sizes)}")
        if restrictions.traits and not set(restrictions.traits).intersection(ship.traits):
            reasons.append(f"Requires trait {', '.join(restrictions.traits)}")
        if restrictions.flagship and COMMANDER_SLOT not in assigned_types:
            reasons.append("Requires a commander on this ship")

        if ship.size in restrictions.disqualify_sizes and any(
            t in assigned_types or t in ship.available_upgrades
            for t in restrictions.disqualify_upgrade_types
        ):
            reasons.append(f"Not allowed on {ship.size} ships with these upgrade slots")

        if self.enforce_unique_names:
            for name in self.registry.conflicts(upgrade.unique_names()):
                reasons.append(f"Unique name in use: {name}")

        return reasons

    # -------------------------------------------------------------------------
    # Squadrons
    # -------------------------------------------------------------------------

    def add_squadron(self, model: Squadron, count: int = 1) -> Squadron:
        """
        Add a squadron. Unique squadrons are kept ahead of generic ones,
        sorted by display name.
        """
        self._check_unique(model.display_name, model.unique_names())
        squadron = model.new_instance(new_instance_id("squadron"), count=count)
        self._insert_squadron(squadron)
        self.registry.add_all(squadron.unique_names())
        self._refresh()
        return squadron

    def _insert_squadron(self, squadron: Squadron) -> None:
        squadrons = self.fleet.squadrons
        if not squadron.unique:
            squadrons.append(squadron)
            return
        uniques = [s for s in squadrons if s.unique]
        generics = [s for s in squadrons if not s.unique]
        index = next(
            (i for i, s in enumerate(uniques) if s.display_name > squadron.display_name),
            len(uniques),
        )
        uniques.insert(index, squadron)
        self.fleet.squadrons = uniques + generics

    def remove_squadron(self, squadron_id: str) -> Squadron:
        squadron = self.squadron(squadron_id)
        self.registry.remove_all(squadron.unique_names())
        self.fleet.squadrons.remove(squadron)
        self._refresh()
        return squadron

    def increment_squadron(self, squadron_id: str) -> Squadron:
        """
        Raises:
            UniqueNameConflictError: If the squadron is unique
        """
        squadron = self.squadron(squadron_id)
        if squadron.unique:
            raise UniqueNameConflictError(squadron.display_name, squadron.unique_names())
        squadron.count += 1
        self._refresh()
        return squadron

    def decrement_squadron(self, squadron_id: str) -> Squadron | None:
        """Lower a squadron's count; at zero the squadron is removed and None returned."""
        squadron = self.squadron(squadron_id)
        if squadron.count <= 1:
            self.remove_squadron(squadron_id)
            return None
        squadron.count -= 1
        self._refresh()
        return squadron

    def swap_squadron(self, squadron_id: str, model: Squadron) -> Squadron:
        """Replace a squadron with another model, keeping its position and count."""
        old = self.squadron(squadron_id)
        self._check_unique(model.display_name, model.unique_names(), releasing=old.unique_names())

        self.registry.remove_all(old.unique_names())
        count = 1 if model.unique else old.count
        new = model.new_instance(new_instance_id("squadron"), count=count)
        index = self.fleet.squadrons.index(old)
        self.fleet.squadrons[index] = new
        self.registry.add_all(new.unique_names())
        self._refresh()
        return new

    def move_squadron(self, squadron_id: str, direction: Direction) -> None:
        _move(self.fleet.squadrons, self.squadron(squadron_id), direction)

    # -------------------------------------------------------------------------
    # Objectives
    # -------------------------------------------------------------------------

    def select_objective(self, objective: Objective) -> None:
        self.fleet.add_objective(objective)

    def remove_objective(self, category: str, key: str | None = None) -> None:
        """Clear a category, or only the objective with `key` in it."""
        category = category.lower()
        if key is None:
            self.fleet.objectives.pop(category, None)
            return
        remaining = [o for o in self.fleet.objectives_for(category) if o.key != key]
        if remaining:
            self.fleet.objectives[category] = remaining
        else:
            self.fleet.objectives.pop(category, None)

    # -------------------------------------------------------------------------
    # Whole fleet
    # -------------------------------------------------------------------------

    def clear(self) -> None:
        """Remove every ship, squadron and objective."""
        for ship in list(self.fleet.ships):
            self.engine.release_ship(ship)
            self.registry.remove_all(ship.unique_names())
        for squadron in self.fleet.squadrons:
            self.registry.remove_all(squadron.unique_names())

        self.fleet.ships = []
        self.fleet.squadrons = []
        self.fleet.objectives = {}
        self._refresh()

        if len(self.registry):
            logger.error("REGISTRY_LEAK: names left after clear: %s", sorted(self.registry.names()))
            self.registry.clear()

    def export_text(self) -> str:
        return serialize_fleet(self.fleet)

    def violations(self, gamemode: str) -> list[str]:
        return check_fleet_violations(gamemode, self.fleet)

    def import_text(self, text: str, format_tag: str | None = None) -> ImportReport:
        """
        Replace the fleet with one read from text.

        The text is normalized from its dialect, card updates are applied,
        and the parsed fleet is rebuilt through the constraint engine.
        Upgrades whose slots are granted by other upgrades are retried
        until no further upgrade can be placed; whatever is left is
        reported as skipped.

        Raises:
            UnknownFormatError: If the format tag is unknown
            KnownError: Any fatal import error; the current fleet is unchanged
        """
        if self.resolver is None or self.catalog is None:
            raise RuntimeError("import_text needs a catalog and an alias resolver")

        format_tag = format_tag or settings.default_import_format
        logger.info("Importing fleet text (format=%s, %d chars)", format_tag, len(text))

        canonical = apply_card_updates(normalize(text, format_tag), self.updates)
        parsed = FleetParser(self.resolver, self.catalog).parse(canonical, self.fleet.faction)

        staging = FleetEditor(
            self.fleet.faction,
            self.catalog,
            self.resolver,
            self.updates,
            self.enforce_unique_names,
        )
        staging.fleet.name = parsed.fleet.name
        report = ImportReport(
            skipped_items=list(parsed.skipped_items),
            unparseable_lines=list(parsed.unparseable_lines),
            declared_total=parsed.declared_total,
        )

        for parsed_ship in parsed.fleet.ships:
            staging._rebuild_ship(parsed_ship, report)
        for parsed_squadron in parsed.fleet.squadrons:
            staging._rebuild_squadron(parsed_squadron, report)
        for category, objectives in parsed.fleet.objectives.items():
            staging.fleet.objectives[category] = list(objectives)
        staging._refresh()

        self.fleet = staging.fleet
        self.registry = staging.registry
        self.engine = staging.engine
        report.total = self.fleet.points.total

        logger.info(
            "Imported %r: %d ships, %d squadrons, %d points, %d skipped",
            self.fleet.name,
            len(self.fleet.ships),
            len(self.fleet.squadrons),
            report.total,
            len(report.skipped_items),
        )
        if report.total_mismatch:
            logger.warning(
                "Declared total %s differs from rebuilt total %d", report.declared_total, report.total
            )
        return report

    def _rebuild_ship(self, parsed: Ship, report: ImportReport) -> None:
        label = display_string(parsed.name, parsed.points, parsed.source)
        if self.enforce_unique_names and self.registry.conflicts(parsed.unique_names()):
            report.skipped_items.append(label)
            report.skipped_items.extend(
                display_string(u.name, u.points, u.source) for u in parsed.assigned_upgrades
            )
            return

        ship = parsed.new_instance(parsed.id)
        self.engine.register_ship(ship)
        self.registry.add_all(ship.unique_names())
        self.fleet.ships.append(ship)

        pending = list(parsed.assigned_upgrades)
        progress = True
        while pending and progress:
            progress = False
            for upgrade in list(pending):
                if self._place_parsed_upgrade(ship, upgrade):
                    pending.remove(upgrade)
                    progress = True

        # Also catches upgrades placed and later displaced by another import line
        placed = Counter(u.key for u in ship.assigned_upgrades)
        for upgrade in parsed.assigned_upgrades:
            if placed[upgrade.key] > 0:
                placed[upgrade.key] -= 1
                continue
            logger.warning("Could not place %s on %s", upgrade.name, ship.name)
            report.skipped_items.append(display_string(upgrade.name, upgrade.points, upgrade.source))

    def _place_parsed_upgrade(self, ship: Ship, upgrade: Upgrade) -> bool:
        """Place an imported upgrade in its listed slot, or the first free one."""
        if self.enforce_unique_names and self.registry.conflicts(upgrade.unique_names()):
            return False

        indices = range(ship.slot_count(upgrade.type))
        preferred = upgrade.slot_index or 0
        candidates = [preferred] if preferred in indices else []
        candidates.extend(i for i in indices if i != preferred)

        state = self.engine.state_for(ship)
        for index in candidates:
            if ship.upgrade_at(upgrade.type, index) is not None:
                continue
            if state.is_disabled(upgrade.type):
                return False
            self.engine.assign(ship, upgrade, upgrade.type, index, source=upgrade.source)
            return ship.upgrade_at(upgrade.type, index) is not None
        return False

    def _rebuild_squadron(self, parsed: Squadron, report: ImportReport) -> None:
        if self.enforce_unique_names and self.registry.conflicts(parsed.unique_names()):
            report.skipped_items.append(
                display_string(parsed.display_name, parsed.points, parsed.source)
            )
            return
        self.fleet.squadrons.append(parsed)
        self.registry.add_all(parsed.unique_names())


def _move(items: list, item: object, direction: Direction) -> None:
    """Swap an item with its neighbour. Moving past either end is a no-op."""
    if direction not in ("up", "down"):
        raise ValueError(f"direction must be 'up' or 'down', not {direction!r}")
    index = items.index(item)
    target = index - 1 if direction == "up" else index + 1
    if 0 <= target < len(items):
        items[index], items[target] = items[target], items[index]
