"""
Fleet List Formatter.

THIS MODULE HANDLES OUTPUT RENDERING ONLY.

Renders a Fleet as canonical fleet text. The output is deterministic
and is read back by FleetParser: parsing the rendered text reproduces
the same ships with the same upgrades in the same slots, the same
grouped squadrons and the same objective selections.

Point subtotals are recomputed here; the fleet's stored totals are
not trusted.
"""

from fleetforge.models.cards import ObjectiveCategory, Ship, Squadron, Upgrade
from fleetforge.models.fleet import Fleet, display_faction
from fleetforge.models.source import SourceTag, format_source
from fleetforge.services.points import compute_fleet_points, ship_total

BULLET = "•"

STANDARD_CATEGORIES = [category.value for category in ObjectiveCategory]


def serialize_fleet(fleet: Fleet) -> str:
    """
    Format a fleet as canonical fleet text.

    Args:
        fleet: The fleet to render

    Returns:
        Fleet text in the canonical dialect
    """
    points = compute_fleet_points(fleet)
    lines: list[str] = [
        f" Name: {fleet.name}",
        f"Faction: {display_faction(fleet.faction)}",
    ]

    commander = fleet.commander()
    if commander is not None:
        lines.append(f"Commander: {_card_label(commander.name, commander.source, commander.points)}")

    lines.append("")
    lines.extend(_objective_lines(fleet))

    if fleet.ships:
        lines.append("")
        for ship in fleet.ships:
            lines.extend(_ship_block(ship))
            lines.append("")

    lines.append("Squadrons:")
    lines.extend(_squadron_lines(fleet.squadrons))
    lines.append(f"= {points.squadrons} Points")
    lines.append("")
    lines.append(f"Total Points: {points.total}")

    return "\n".join(lines)


def _card_label(name: str, source: SourceTag, points: int) -> str:
    """'Name [Tag] (points)', with no bracket for untagged sources."""
    bracket = format_source(source)
    if bracket:
        return f"{name} {bracket} ({points})"
    return f"{name} ({points})"


def _objective_lines(fleet: Fleet) -> list[str]:
    categories = STANDARD_CATEGORIES + [
        c for c in fleet.objectives if c not in STANDARD_CATEGORIES
    ]
    lines = []
    for category in categories:
        selected = fleet.objectives_for(category)
        if not selected:
            continue
        names = ", ".join(objective.name for objective in selected)
        # The first objective's source tags the whole line
        bracket = format_source(selected[0].source)
        suffix = f" {bracket}" if bracket else ""
        lines.append(f"{category.capitalize()}: {names}{suffix}")
    return lines


def _ship_block(ship: Ship) -> list[str]:
    lines = [_card_label(ship.name, ship.source, ship.points)]
    lines.extend(_upgrade_line(upgrade) for upgrade in ship.assigned_upgrades)
    lines.append(f"= {ship_total(ship)} Points")
    return lines


def _upgrade_line(upgrade: Upgrade) -> str:
    return f"{BULLET} {_card_label(upgrade.name, upgrade.source, upgrade.points)}"


def _squadron_lines(squadrons: list[Squadron]) -> list[str]:
    """
    One line per unique squadron, one grouped line per kind of generic squadron.

    Generic squadrons are grouped by name, source and ace name; the group
    line shows the combined count and the combined cost.
    """
    lines: list[str] = []
    groups: dict[tuple[str, SourceTag, str], list[Squadron]] = {}
    order: list[tuple[str, SourceTag, str] | Squadron] = []

    for squadron in squadrons:
        if squadron.unique or squadron.ace_name:
            order.append(squadron)
            continue
        key = (squadron.name, squadron.source, squadron.ace_name)
        if key not in groups:
            groups[key] = []
            order.append(key)
        groups[key].append(squadron)

    for entry in order:
        if isinstance(entry, Squadron):
            name = entry.name
            if entry.ace_name and entry.ace_name != entry.name:
                name = f"{entry.ace_name} - {entry.name}"
            lines.append(f"{BULLET} {_card_label(name, entry.source, entry.points)}")
            continue

        group = groups[entry]
        first = group[0]
        count = sum(s.count for s in group)
        total = sum(s.points * s.count for s in group)
        lines.append(f"{BULLET} {count} x {_card_label(first.name, first.source, total)}")

    return lines
