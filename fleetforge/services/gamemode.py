"""
Game-mode validation.

Each game mode is a declarative set of limits. `check_fleet_violations`
reads every limit through the same code path and returns one
human-readable string per violation; an empty list means the fleet is
legal for that mode.
"""

import logging
from dataclasses import dataclass, field

from fleetforge.models.cards import ObjectiveCategory
from fleetforge.models.fleet import Fleet
from fleetforge.services.points import compute_fleet_points
from fleetforge.services.upgrade_engine import COMMANDER_SLOT, is_flotilla

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GamemodeRestrictions:
    """
    Limits of one game mode. None or an empty tuple means "no limit".

    Attributes:
        points_limit: Maximum fleet total
        squadron_points_limit: Maximum squadron total
        flotilla_limit: Maximum number of flotilla ships
        ace_limit: Maximum number of ace squadron entries
        require_objectives: Every standard objective category must be filled
        require_commander: Some ship must carry a commander
        allowed_ship_sizes / disallowed_ship_sizes: Size filters
        ship_size_limits: Maximum ships per size
        allowed_commanders / disallowed_commanders: Commander name filters
        disallowed_squadron_unique_classes: Unique classes squadrons may not carry
        disallowed_upgrade_unique_classes: Unique classes upgrades may not carry
        forced_objectives: Category -> objective name that must be selected first
        allowed_factions / disallowed_factions: Faction filters
    """

    points_limit: int | None = None
    squadron_points_limit: int | None = None
    flotilla_limit: int | None = None
    ace_limit: int | None = None
    require_objectives: bool = False
    require_commander: bool = False
    allowed_ship_sizes: tuple[str, ...] = ()
    disallowed_ship_sizes: tuple[str, ...] = ()
    ship_size_limits: dict[str, int] = field(default_factory=dict)
    allowed_commanders: tuple[str, ...] = ()
    disallowed_commanders: tuple[str, ...] = ()
    disallowed_squadron_unique_classes: tuple[str, ...] = ()
    disallowed_upgrade_unique_classes: tuple[str, ...] = ()
    forced_objectives: dict[str, str] = field(default_factory=dict)
    allowed_factions: tuple[str, ...] = ()
    disallowed_factions: tuple[str, ...] = ()


GAMEMODE_RESTRICTIONS: dict[str, GamemodeRestrictions] = {
    "Task Force": GamemodeRestrictions(
        points_limit=200,
        squadron_points_limit=67,
        flotilla_limit=1,
        ace_limit=2,
        require_objectives=True,
        require_commander=True,
    ),
    "Standard": GamemodeRestrictions(
        points_limit=400,
        squadron_points_limit=134,
        flotilla_limit=2,
        ace_limit=4,
        require_objectives=True,
        require_commander=True,
    ),
    "Sector Fleet": GamemodeRestrictions(
        points_limit=800,
        squadron_points_limit=268,
        flotilla_limit=4,
        ace_limit=8,
        require_objectives=True,
        require_commander=True,
    ),
    "Campaign": GamemodeRestrictions(
        points_limit=600,
        squadron_points_limit=200,
        flotilla_limit=3,
        ace_limit=6,
    ),
    "Fighter Group": GamemodeRestrictions(
        points_limit=120,
        squadron_points_limit=120,
        flotilla_limit=0,
        ace_limit=3,
    ),
    "Unrestricted": GamemodeRestrictions(),
}


def get_restrictions(gamemode: str) -> GamemodeRestrictions | None:
    restrictions = GAMEMODE_RESTRICTIONS.get(gamemode)
    if restrictions is None:
        logger.warning(
            "No restrictions found for gamemode %r. Available: %s",
            gamemode,
            ", ".join(GAMEMODE_RESTRICTIONS),
        )
    return restrictions


def is_faction_allowed(faction: str, gamemode: str) -> bool:
    """True unless the game mode excludes the faction. Unknown modes allow all."""
    restrictions = get_restrictions(gamemode)
    if restrictions is None:
        return True
    if faction in restrictions.disallowed_factions:
        return False
    if restrictions.allowed_factions and faction not in restrictions.allowed_factions:
        return False
    return True


def check_fleet_violations(gamemode: str, fleet: Fleet) -> list[str]:
    """
    List the ways a fleet breaks a game mode's limits.

    Args:
        gamemode: Game mode name, e.g. "Standard"
        fleet: The fleet to check

    Returns:
        Violation messages in a stable order; empty if the fleet is legal
        or the game mode is unknown
    """
    restrictions = get_restrictions(gamemode)
    if restrictions is None:
        return []

    violations: list[str] = []
    points = compute_fleet_points(fleet)

    if not is_faction_allowed(fleet.faction, gamemode):
        violations.append(f'Faction "{fleet.faction}" is not allowed in this gamemode')

    if restrictions.points_limit is not None and points.total > restrictions.points_limit:
        violations.append(f"Fleet exceeds {restrictions.points_limit} point limit")

    if (
        restrictions.squadron_points_limit is not None
        and points.squadrons > restrictions.squadron_points_limit
    ):
        violations.append(f"Squadrons exceed {restrictions.squadron_points_limit} point limit")

    if restrictions.flotilla_limit is not None:
        flotillas = sum(1 for ship in fleet.ships if is_flotilla(ship))
        if flotillas > restrictions.flotilla_limit:
            violations.append(f"More than {restrictions.flotilla_limit} flotillas in fleet")

    if restrictions.ace_limit is not None:
        aces = sum(1 for squadron in fleet.squadrons if squadron.ace)
        if aces > restrictions.ace_limit:
            violations.append(f"More than {restrictions.ace_limit} aces in fleet")

    if restrictions.require_objectives and any(
        not fleet.objectives_for(category) for category in ObjectiveCategory
    ):
        violations.append("Missing objective card(s)")

    if restrictions.require_commander and fleet.commander() is None:
        violations.append("Fleet has no commander")

    for category, name in restrictions.forced_objectives.items():
        selected = fleet.objectives_for(category)
        if not selected or selected[0].name != name:
            violations.append(f'Required {category} objective "{name}" is missing')

    violations.extend(_ship_size_violations(fleet, restrictions))
    violations.extend(_commander_violations(fleet, restrictions))
    violations.extend(_unique_class_violations(fleet, restrictions))

    return violations


def _ship_size_violations(fleet: Fleet, restrictions: GamemodeRestrictions) -> list[str]:
    violations = []
    if restrictions.allowed_ship_sizes:
        bad = [s.size for s in fleet.ships if s.size not in restrictions.allowed_ship_sizes]
        if bad:
            violations.append(f"Fleet contains disallowed ship sizes: {', '.join(bad)}")
    if restrictions.disallowed_ship_sizes:
        bad = [s.size for s in fleet.ships if s.size in restrictions.disallowed_ship_sizes]
        if bad:
            violations.append(f"Fleet contains disallowed ship sizes: {', '.join(bad)}")
    for size, limit in restrictions.ship_size_limits.items():
        found = sum(1 for ship in fleet.ships if ship.size == size)
        if found > limit:
            violations.append(f"More than {limit} {size} ship(s) in fleet ({found} found)")
    return violations


def _commander_violations(fleet: Fleet, restrictions: GamemodeRestrictions) -> list[str]:
    commanders = [
        upgrade.name
        for ship in fleet.ships
        for upgrade in ship.assigned_upgrades
        if upgrade.type == COMMANDER_SLOT
    ]
    bad: list[str] = []
    if restrictions.allowed_commanders:
        bad.extend(c for c in commanders if c not in restrictions.allowed_commanders)
    if restrictions.disallowed_commanders:
        bad.extend(c for c in commanders if c in restrictions.disallowed_commanders)
    if bad:
        return [f"Fleet contains disallowed commanders: {', '.join(bad)}"]
    return []


def _unique_class_violations(fleet: Fleet, restrictions: GamemodeRestrictions) -> list[str]:
    violations = []
    banned_squadrons = set(restrictions.disallowed_squadron_unique_classes)
    if banned_squadrons and any(
        banned_squadrons.intersection(s.unique_classes) for s in fleet.squadrons
    ):
        violations.append("Fleet contains squadrons with disallowed unique classes")

    banned_upgrades = set(restrictions.disallowed_upgrade_unique_classes)
    if banned_upgrades and any(
        banned_upgrades.intersection(u.unique_classes)
        for ship in fleet.ships
        for u in ship.assigned_upgrades
    ):
        violations.append("Fleet contains upgrades with disallowed unique classes")
    return violations
