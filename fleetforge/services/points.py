"""
Points accounting.

Totals are always derived from the current structural state; nothing
here caches or adjusts a previous total.
"""

from fleetforge.models.cards import Ship, Squadron
from fleetforge.models.fleet import Fleet, FleetPoints


def ship_total(ship: Ship) -> int:
    """Base points plus the points of every assigned upgrade."""
    return ship.points + sum(upgrade.points for upgrade in ship.assigned_upgrades)


def squadron_total(squadron: Squadron) -> int:
    """Per-unit points times count."""
    return squadron.points * squadron.count


def compute_fleet_points(fleet: Fleet) -> FleetPoints:
    ships = sum(ship_total(ship) for ship in fleet.ships)
    squadrons = sum(squadron_total(squadron) for squadron in fleet.squadrons)
    return FleetPoints(ships=ships, squadrons=squadrons, total=ships + squadrons)


def refresh_points(fleet: Fleet) -> FleetPoints:
    """Recompute and store the fleet's point totals."""
    fleet.points = compute_fleet_points(fleet)
    return fleet.points
