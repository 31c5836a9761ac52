import json
from pathlib import Path

import pytest

from fleetforge.models.cards import Ship, Squadron, Upgrade
from fleetforge.models.source import SourceTag
from fleetforge.services.alias_resolver import AliasResolver, ErrataKeys
from fleetforge.services.content_catalog import CatalogBundle, InMemoryCatalog
from fleetforge.services.fleet_editor import FleetEditor
from fleetforge.services.unique_registry import UniqueNameRegistry
from fleetforge.services.upgrade_engine import UpgradeConstraintEngine

# =============================================================================
# RAW CATALOG DOCUMENTS
# =============================================================================

SHIPS_DOCUMENT = {
    "ships": {
        "victory": {
            "size": "medium",
            "models": {
                "victory-ii": {
                    "name": "Victory II-Class Star Destroyer",
                    "points": 85,
                    "faction": "empire",
                    "chassis": "victory",
                    "traits": [],
                    "upgrades": [
                        "officer",
                        "officer",
                        "weapons-team",
                        "offensive-retro",
                        "turbolasers",
                        "ion-cannons",
                    ],
                },
            },
        },
        "gladiator": {
            "size": "small",
            "models": {
                "gladiator-i": {
                    "name": "Gladiator I-Class Star Destroyer",
                    "points": 56,
                    "faction": "empire",
                    "chassis": "gladiator",
                    "upgrades": ["officer", "turbolasers", "ordnance", ""],
                },
            },
        },
        "venator": {
            "size": "large",
            "models": {
                "venator-ii-empire": {
                    "name": "Venator II-Class Star Destroyer",
                    "points": 100,
                    "faction": "Empire",
                    "chassis": "venator",
                    "upgrades": ["officer", "weapons-team", "offensive-retro", "turbolasers"],
                },
            },
        },
        "gozanti": {
            "size": "small",
            "models": {
                "gozanti-cruisers": {
                    "name": "Gozanti-class Cruisers",
                    "points": 23,
                    "faction": "empire",
                    "chassis": "gozanti",
                    "traits": ["flotilla"],
                    "upgrades": ["offensive-retro", "defensive-retro"],
                },
            },
        },
        "imperial": {
            "size": "large",
            "models": {
                "chimaera": {
                    "name": "Chimaera",
                    "points": 110,
                    "faction": "empire",
                    "chassis": "imperial",
                    "unique": True,
                    "upgrades": ["officer", "turbolasers"],
                },
            },
        },
        "cr90": {
            "size": "small",
            "models": {
                "cr90-a": {
                    "name": "CR90 Corvette A",
                    "points": 44,
                    "faction": "rebel",
                    "chassis": "cr90",
                    "upgrades": ["officer", "turbolasers"],
                },
            },
        },
    }
}

UPGRADES_DOCUMENT = {
    "upgrades": {
        "admiral-motti": {
            "name": "Admiral Motti",
            "type": "commander",
            "points": 24,
            "unique": True,
            "faction": "empire",
        },
        "grand-moff-tarkin": {
            "name": "Grand Moff Tarkin",
            "type": "commander",
            "points": 38,
            "unique": True,
            "faction": ["empire"],
        },
        "director-isard": {
            "name": "Director Isard",
            "type": "officer",
            "points": 7,
            "unique": True,
            "unique-class": ["Isard"],
        },
        "intel-officer": {"name": "Intel Officer", "type": "officer", "points": 7},
        "intel-officer-errata": {"name": "Intel Officer", "type": "officer", "points": 7},
        "intel-officer-errata-arc": {"name": "Intel Officer", "type": "officer", "points": 7},
        "bridge-crew": {
            "name": "Bridge Command Crew",
            "type": "officer",
            "points": 4,
            "restrictions": {"flagship": True},
        },
        "flag-liaison": {
            "name": "Flag Liaison",
            "type": "officer",
            "points": 3,
            "unique": True,
            "restrictions": {"flagship": True},
        },
        "gunnery-team": {"name": "Gunnery Team", "type": "weapons-team", "points": 7},
        "expanded-hangar-bay": {
            "name": "Expanded Hangar Bay",
            "type": "offensive-retro",
            "points": 5,
        },
        "boarding-troopers": {
            "name": "Boarding Troopers",
            "type": "weapons-team-offensive-retro",
            "points": 6,
        },
        "electronic-countermeasures": {
            "name": "Electronic Countermeasures",
            "type": "defensive-retro",
            "points": 7,
        },
        "h9-turbolasers": {"name": "H9 Turbolasers", "type": "turbolasers", "points": 8},
        "engineering-refit": {
            "name": "Engineering Refit",
            "type": "ion-cannons",
            "points": 4,
            "restrictions": {"enable_upgrades": ["experimental-retrofit", ""]},
        },
        "gravity-well": {
            "name": "Gravity Well Projector",
            "type": "experimental-retrofit",
            "points": 10,
        },
        "dominator": {
            "name": "Dominator",
            "type": "title",
            "points": 12,
            "unique": True,
            "restrictions": {
                "disable_upgrades": ["ion-cannons"],
                "grey_upgrades": ["offensive-retro"],
            },
        },
        "insidious": {
            "name": "Insidious",
            "type": "title",
            "points": 3,
            "unique": True,
            "bound_shiptype": "gladiator",
            "restrictions": {},
        },
        "assault-proton-torpedoes": {
            "name": "Assault Proton Torpedoes",
            "type": "ordnance",
            "points": 5,
            "modification": True,
            "restrictions": {"size": ["small"], "disqual_upgrades": ["ion-cannons"]},
        },
        "heavy-refit": {
            "name": "Heavy Refit",
            "type": "turbolasers",
            "points": 6,
            "modification": True,
            "restrictions": {
                "traits": ["star-dreadnought"],
                "disqualify_if": {"size": ["medium"], "has_upgrade_type": ["weapons-team"]},
            },
        },
    }
}

LEGACY_UPGRADES_DOCUMENT = {
    "upgrades": {
        "expanded-hangar-bay-legacy": {
            "name": "Expanded Hangar Bay",
            "type": "offensive-retro",
            "points": 5,
            "alias": "Expanded Hangar Bay [Legacy] (5)",
        },
    }
}

SQUADRONS_DOCUMENT = {
    "squadrons": {
        "tie-fighter": {
            "name": "TIE Fighter Squadron",
            "points": 8,
            "faction": "empire",
            "squadron_type": "tie-fighter",
        },
        "tie-bomber": {
            "name": "TIE Bomber Squadron",
            "points": 9,
            "faction": "empire",
            "squadron_type": "tie-bomber",
        },
        "howlrunner": {
            "name": "TIE Fighter Squadron",
            "ace-name": "Howlrunner",
            "points": 16,
            "faction": "empire",
            "unique": True,
            "ace": True,
        },
        "mauler-mithel": {
            "name": "TIE Fighter Squadron",
            "ace-name": "Mauler Mithel",
            "points": 15,
            "faction": "empire",
            "unique": True,
            "ace": True,
        },
        "x-wing": {"name": "X-wing Squadron", "points": 13, "faction": "rebel"},
    }
}

OBJECTIVES_DOCUMENT = {
    "objectives": {
        "most-wanted": {"name": "Most Wanted", "type": "Assault"},
        "precision-strike": {"name": "Precision Strike", "type": "assault"},
        "fire-lanes": {"name": "Fire Lanes", "type": "defense"},
        "solar-corona": {"name": "Solar Corona", "type": "navigation"},
    }
}

ALIASES_DOCUMENT = {
    "Victory II-Class Star Destroyer (85)": "victory-ii",
    "Gladiator I-Class Star Destroyer (56)": "gladiator-i",
    "Venator II-Class Star Destroyer (100)": "venator-ii-empire",
    "Gozanti-class Cruisers (23)": "gozanti-cruisers",
    "Chimaera (110)": "chimaera",
    "CR90 Corvette A (44)": "cr90-a",
    "Admiral Motti (24)": "admiral-motti",
    "Grand Moff Tarkin (38)": "grand-moff-tarkin",
    "Director Isard (7)": "director-isard",
    "Intel Officer (7)": ["intel-officer-errata-arc", "intel-officer-errata", "intel-officer"],
    "Bridge Command Crew (4)": "bridge-crew",
    "Flag Liaison (3)": "flag-liaison",
    "Gunnery Team (7)": "gunnery-team",
    "Expanded Hangar Bay (5)": "expanded-hangar-bay",
    "Expanded Hangar Bay [Legacy] (5)": "expanded-hangar-bay-legacy",
    "Boarding Troopers (6)": "boarding-troopers",
    "Electronic Countermeasures (7)": "electronic-countermeasures",
    "H9 Turbolasers (8)": "h9-turbolasers",
    "Engineering Refit (4)": "engineering-refit",
    "Gravity Well Projector (10)": "gravity-well",
    "Dominator (12)": "dominator",
    "Insidious (3)": "insidious",
    "TIE Fighter Squadron (8)": "tie-fighter",
    "TIE Bomber Squadron (9)": "tie-bomber",
    "Howlrunner - TIE Fighter Squadron (16)": "howlrunner",
    "Mauler Mithel (15)": "mauler-mithel",
    "X-wing Squadron (13)": "x-wing",
    "Most Wanted": "most-wanted",
    "Precision Strike": "precision-strike",
    "Fire Lanes": "fire-lanes",
    "Solar Corona": "solar-corona",
    "Retired Card (4)": "retired-card",
}

ERRATA_DOCUMENT = {"upgrades": ["intel-officer-errata"]}

UPDATES_DOCUMENT = {"Old Motti (21)": "Admiral Motti (24)", "ignored": 5}


# =============================================================================
# CATALOG FIXTURES
# =============================================================================


@pytest.fixture
def catalog() -> InMemoryCatalog:
    """In-memory catalog with the regular documents plus the legacy upgrade pack."""
    catalog = InMemoryCatalog()
    catalog.add_document("ships", SHIPS_DOCUMENT, SourceTag.REGULAR)
    catalog.add_document("upgrades", UPGRADES_DOCUMENT, SourceTag.REGULAR)
    catalog.add_document("upgrades", LEGACY_UPGRADES_DOCUMENT, SourceTag.LEGACY)
    catalog.add_document("squadrons", SQUADRONS_DOCUMENT, SourceTag.REGULAR)
    catalog.add_document("objectives", OBJECTIVES_DOCUMENT, SourceTag.REGULAR)
    return catalog


@pytest.fixture
def errata_keys() -> ErrataKeys:
    return ErrataKeys(upgrades=frozenset(ERRATA_DOCUMENT["upgrades"]))


@pytest.fixture
def resolver(errata_keys: ErrataKeys) -> AliasResolver:
    return AliasResolver(ALIASES_DOCUMENT, errata_keys)


@pytest.fixture
def bundle(catalog: InMemoryCatalog, errata_keys: ErrataKeys) -> CatalogBundle:
    return CatalogBundle(
        catalog=catalog,
        aliases=dict(ALIASES_DOCUMENT),
        errata_keys=errata_keys,
        updates={"Old Motti (21)": "Admiral Motti (24)"},
    )


@pytest.fixture
def catalog_dir(tmp_path: Path) -> Path:
    """Catalog documents written to disk in the load_catalog layout."""
    documents = {
        "ships.json": SHIPS_DOCUMENT,
        "upgrades.json": UPGRADES_DOCUMENT,
        "squadrons.json": SQUADRONS_DOCUMENT,
        "objectives.json": OBJECTIVES_DOCUMENT,
        "aliases.json": ALIASES_DOCUMENT,
        "errata-keys.json": ERRATA_DOCUMENT,
        "updates.json": UPDATES_DOCUMENT,
        "legacy/upgrades.json": LEGACY_UPGRADES_DOCUMENT,
    }
    for name, data in documents.items():
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data), encoding="utf-8")
    return tmp_path


# =============================================================================
# SESSION FIXTURES
# =============================================================================


@pytest.fixture
def registry() -> UniqueNameRegistry:
    return UniqueNameRegistry()


@pytest.fixture
def engine(registry: UniqueNameRegistry) -> UpgradeConstraintEngine:
    return UpgradeConstraintEngine(registry)


@pytest.fixture
def editor(bundle: CatalogBundle) -> FleetEditor:
    return FleetEditor.from_bundle(bundle, "empire", enforce_unique_names=True)


@pytest.fixture
def victory(catalog: InMemoryCatalog, engine: UpgradeConstraintEngine) -> Ship:
    """A registered Victory II fleet instance with no upgrades."""
    ship = catalog.get_ship("victory-ii").new_instance("ship_victory")
    engine.register_ship(ship)
    return ship


@pytest.fixture
def upgrade(catalog: InMemoryCatalog):
    """Look up catalog upgrades by key."""

    def _get(key: str) -> Upgrade:
        found = catalog.get_upgrade(key)
        assert found is not None, key
        return found

    return _get


@pytest.fixture
def squadron(catalog: InMemoryCatalog):
    """Look up catalog squadrons by key."""

    def _get(key: str) -> Squadron:
        found = catalog.get_squadron(key)
        assert found is not None, key
        return found

    return _get
