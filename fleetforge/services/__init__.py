"""
FleetForge services.

Alias resolution, catalog access, points accounting, the upgrade
constraint engine, fleet text rendering and game-mode validation.

The editing session (fleetforge.services.fleet_editor) is imported from
its module directly; it depends on the parsers, which depend on the
services exported here.
"""

from fleetforge.services.alias_resolver import (
    AliasResolver,
    AliasTable,
    ErrataKeys,
    display_string,
    select_candidate,
)
from fleetforge.services.content_catalog import (
    CatalogBundle,
    CatalogFetchError,
    ContentCatalog,
    InMemoryCatalog,
    download_catalog,
    load_catalog,
)
from fleetforge.services.fleet_formatter import serialize_fleet
from fleetforge.services.gamemode import (
    GAMEMODE_RESTRICTIONS,
    check_fleet_violations,
    is_faction_allowed,
)
from fleetforge.services.points import compute_fleet_points, ship_total, squadron_total
from fleetforge.services.unique_registry import UniqueNameRegistry
from fleetforge.services.upgrade_engine import (
    COMBO_SLOT_TYPES,
    ConstraintState,
    UpgradeConstraintEngine,
)

__all__ = [
    # Alias resolution
    "AliasResolver",
    "AliasTable",
    "ErrataKeys",
    "display_string",
    "select_candidate",
    # Catalog
    "CatalogBundle",
    "CatalogFetchError",
    "ContentCatalog",
    "InMemoryCatalog",
    "download_catalog",
    "load_catalog",
    # Rendering
    "serialize_fleet",
    # Game modes
    "GAMEMODE_RESTRICTIONS",
    "check_fleet_violations",
    "is_faction_allowed",
    # Points
    "compute_fleet_points",
    "ship_total",
    "squadron_total",
    # Constraint engine
    "COMBO_SLOT_TYPES",
    "ConstraintState",
    "UniqueNameRegistry",
    "UpgradeConstraintEngine",
]
