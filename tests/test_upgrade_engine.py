"""
Tests for the upgrade constraint engine.

Every test that mutates a ship also checks that the unique-name registry
holds exactly the names claimed by the upgrades still assigned.
"""

from collections import Counter

import pytest

from fleetforge.models.cards import Restrictions, Ship, Upgrade
from fleetforge.services.content_catalog import InMemoryCatalog
from fleetforge.services.unique_registry import UniqueNameRegistry
from fleetforge.services.upgrade_engine import UpgradeConstraintEngine, is_flotilla

COMBO = "weapons-team-offensive-retro"


def assert_registry_matches(registry: UniqueNameRegistry, *ships: Ship) -> None:
    expected = Counter(
        name for ship in ships for upgrade in ship.assigned_upgrades for name in upgrade.unique_names()
    )
    assert registry.snapshot() == dict(expected)


def assert_slots_exist(ship: Ship) -> None:
    for upgrade in ship.assigned_upgrades:
        assert upgrade.slot_index < ship.slot_count(upgrade.type), upgrade.name


def assert_combo_law(engine: UpgradeConstraintEngine, ship: Ship) -> None:
    filled = engine.state_for(ship).filled_slot_indices
    assert len(filled.get(COMBO, [])) == min(
        len(filled.get("weapons-team", [])), len(filled.get("offensive-retro", []))
    )


# =============================================================================
# SLOT DERIVATION
# =============================================================================


class TestSlotDerivation:
    """Tests for deriving a ship's live slot list."""

    def test_regular_ship_slots(self, victory: Ship) -> None:
        """Commander first, combos from underlying slots, title last."""
        assert victory.available_upgrades == [
            "commander",
            "officer",
            "officer",
            "weapons-team",
            "offensive-retro",
            "turbolasers",
            "ion-cannons",
            COMBO,
            "title",
        ]

    def test_flotilla_has_no_commander_slot(
        self, catalog: InMemoryCatalog, engine: UpgradeConstraintEngine
    ) -> None:
        """Flotillas never get a commander slot."""
        gozanti = catalog.get_ship("gozanti-cruisers").new_instance("ship_gozanti")
        engine.register_ship(gozanti)

        assert is_flotilla(gozanti)
        assert gozanti.available_upgrades == ["offensive-retro", "defensive-retro", "title"]
        assert engine.combo_slot_count(gozanti, COMBO) == 0

    def test_combo_slot_count(self, engine: UpgradeConstraintEngine, victory: Ship) -> None:
        """Combo count is the smaller underlying count; unknown combos have none."""
        assert engine.combo_slot_count(victory, COMBO) == 1
        assert engine.combo_slot_count(victory, "unknown-combo") == 0

    def test_empty_state(self, engine: UpgradeConstraintEngine, victory: Ship) -> None:
        """A fresh ship has nothing disabled, enabled, greyed or filled."""
        state = engine.state_for(victory)

        assert state.disabled_slot_types == []
        assert state.enabled_slot_types == []
        assert state.greyed_slot_types == []
        assert state.filled_slot_indices == {}


# =============================================================================
# ASSIGN / UNASSIGN
# =============================================================================


class TestAssign:
    """Tests for placing and removing single upgrades."""

    def test_assign_returns_points_and_claims_names(
        self, engine: UpgradeConstraintEngine, victory: Ship, upgrade, registry: UniqueNameRegistry
    ) -> None:
        """Assigning adds the upgrade's points and unique names."""
        delta = engine.assign(victory, upgrade("director-isard"), "officer", 1)

        assert delta == 7
        assert victory.upgrade_at("officer", 1).key == "director-isard"
        assert registry.names() == frozenset({"Director Isard", "Isard"})
        assert engine.state_for(victory).is_filled("officer", 1)

    def test_type_mismatch_is_a_noop(
        self, engine: UpgradeConstraintEngine, victory: Ship, upgrade, registry: UniqueNameRegistry
    ) -> None:
        """An upgrade never goes into a slot of another type."""
        assert engine.assign(victory, upgrade("admiral-motti"), "officer", 0) == 0
        assert victory.assigned_upgrades == []
        assert len(registry) == 0

    def test_missing_slot_is_a_noop(
        self, engine: UpgradeConstraintEngine, victory: Ship, upgrade, registry: UniqueNameRegistry
    ) -> None:
        """An index past the ship's slots is rejected and releases its names."""
        assert engine.assign(victory, upgrade("director-isard"), "officer", 2) == 0
        assert victory.assigned_upgrades == []
        assert_registry_matches(registry, victory)

    def test_replacing_an_occupant(
        self, engine: UpgradeConstraintEngine, victory: Ship, upgrade, registry: UniqueNameRegistry
    ) -> None:
        """The occupant is removed and its names released."""
        engine.assign(victory, upgrade("director-isard"), "officer", 0)
        delta = engine.assign(victory, upgrade("bridge-crew"), "officer", 0)

        assert delta == -3
        assert [u.key for u in victory.assigned_upgrades] == ["bridge-crew"]
        assert_registry_matches(registry, victory)

    def test_unassign_returns_points(
        self, engine: UpgradeConstraintEngine, victory: Ship, upgrade, registry: UniqueNameRegistry
    ) -> None:
        """Unassigning reports the points removed."""
        engine.assign(victory, upgrade("admiral-motti"), "commander", 0)

        assert engine.unassign(victory, "commander", 0) == 24
        assert engine.unassign(victory, "commander", 0) == 0
        assert len(registry) == 0

    def test_upgrades_sorted_by_slot_order(
        self, engine: UpgradeConstraintEngine, victory: Ship, upgrade
    ) -> None:
        """Assigned upgrades follow the ship's slot order."""
        engine.assign(victory, upgrade("h9-turbolasers"), "turbolasers", 0)
        engine.assign(victory, upgrade("gunnery-team"), "weapons-team", 0)
        engine.assign(victory, upgrade("admiral-motti"), "commander", 0)

        assert [u.type for u in victory.assigned_upgrades] == [
            "commander",
            "weapons-team",
            "turbolasers",
        ]

    def test_source_from_alias_bracket(
        self, engine: UpgradeConstraintEngine, victory: Ship, upgrade
    ) -> None:
        """Pack variants keep the tag named in their alias."""
        engine.assign(victory, upgrade("expanded-hangar-bay-legacy"), "offensive-retro", 0)
        assert victory.upgrade_at("offensive-retro", 0).source.value == "legacy"

    def test_release_ship(
        self, engine: UpgradeConstraintEngine, victory: Ship, upgrade, registry: UniqueNameRegistry
    ) -> None:
        """Releasing a ship removes every upgrade and every name."""
        engine.assign(victory, upgrade("admiral-motti"), "commander", 0)
        engine.assign(victory, upgrade("director-isard"), "officer", 0)

        assert engine.release_ship(victory) == 31
        assert victory.assigned_upgrades == []
        assert len(registry) == 0


# =============================================================================
# RESTRICTIONS
# =============================================================================


class TestEnabledSlots:
    """Tests for slots granted by upgrades."""

    def test_enabled_slot_and_cascade(
        self, engine: UpgradeConstraintEngine, victory: Ship, upgrade
    ) -> None:
        """Removing a grantor removes what sits in the granted slot."""
        engine.assign(victory, upgrade("engineering-refit"), "ion-cannons", 0)
        assert "experimental-retrofit" in victory.available_upgrades
        assert engine.state_for(victory).enabled_slot_types == ["experimental-retrofit"]

        engine.assign(victory, upgrade("gravity-well"), "experimental-retrofit", 0)
        removed = engine.unassign(victory, "ion-cannons", 0)

        assert removed == 14
        assert victory.assigned_upgrades == []
        assert "experimental-retrofit" not in victory.available_upgrades
        assert engine.state_for(victory).enabled_slot_types == []

    def test_replacing_grantor_cascades(
        self, engine: UpgradeConstraintEngine, victory: Ship, upgrade
    ) -> None:
        """Replacing a grantor with a plain upgrade drops the granted slot's upgrade."""
        engine.assign(victory, upgrade("engineering-refit"), "ion-cannons", 0)
        engine.assign(victory, upgrade("gravity-well"), "experimental-retrofit", 0)

        plain = Upgrade(key="ion-battery", name="Ion Battery", type="ion-cannons", points=5)
        delta = engine.assign(victory, plain, "ion-cannons", 0)

        assert delta == 5 - 14
        assert [u.key for u in victory.assigned_upgrades] == ["ion-battery"]

    def test_unknown_types_are_ignored(
        self, engine: UpgradeConstraintEngine, victory: Ship
    ) -> None:
        """Restrictions naming unknown or combo types change nothing."""
        odd = Upgrade(
            key="odd",
            name="Odd Refit",
            type="turbolasers",
            points=1,
            restrictions=Restrictions(enable_types=(COMBO,), disable_types=("warp-drive",)),
        )
        before = list(victory.available_upgrades)

        assert engine.assign(victory, odd, "turbolasers", 0) == 1
        assert victory.available_upgrades == before
        assert engine.state_for(victory).disabled_slot_types == ["warp-drive"]

    def test_combo_slot_follows_underlying_slots(
        self, catalog: InMemoryCatalog, engine: UpgradeConstraintEngine, upgrade
    ) -> None:
        """Granting both underlying types creates a combo slot; losing one removes it."""
        gladiator = catalog.get_ship("gladiator-i").new_instance("ship_gladiator")
        engine.register_ship(gladiator)
        grantor = Upgrade(
            key="modular-bay",
            name="Modular Bay",
            type="turbolasers",
            points=2,
            restrictions=Restrictions(enable_types=("weapons-team", "offensive-retro")),
        )

        engine.assign(gladiator, grantor, "turbolasers", 0)
        assert engine.combo_slot_count(gladiator, COMBO) == 1
        engine.assign(gladiator, upgrade("boarding-troopers"), COMBO, 0)

        assert engine.unassign(gladiator, "turbolasers", 0) == 8
        assert gladiator.assigned_upgrades == []
        assert COMBO not in gladiator.available_upgrades


class TestComboSlots:
    """Tests for combo upgrades sharing underlying slots."""

    def test_combo_fills_underlying_indices(
        self, engine: UpgradeConstraintEngine, victory: Ship, upgrade
    ) -> None:
        """A combo upgrade consumes one index of each underlying type."""
        engine.assign(victory, upgrade("boarding-troopers"), COMBO, 0)
        state = engine.state_for(victory)

        assert state.is_filled(COMBO, 0)
        assert state.is_filled("weapons-team", 0)
        assert state.is_filled("offensive-retro", 0)

    def test_real_upgrade_evicts_combo(
        self, engine: UpgradeConstraintEngine, victory: Ship, upgrade
    ) -> None:
        """Filling an underlying slot the combo was using removes the combo."""
        engine.assign(victory, upgrade("boarding-troopers"), COMBO, 0)
        delta = engine.assign(victory, upgrade("gunnery-team"), "weapons-team", 0)

        assert delta == 7 - 6
        assert [u.key for u in victory.assigned_upgrades] == ["gunnery-team"]
        assert_slots_exist(victory)

    def test_combo_evicts_real_upgrade(
        self, engine: UpgradeConstraintEngine, victory: Ship, upgrade
    ) -> None:
        """A new combo upgrade displaces the upgrade in its underlying slot."""
        engine.assign(victory, upgrade("gunnery-team"), "weapons-team", 0)
        delta = engine.assign(victory, upgrade("boarding-troopers"), COMBO, 0)

        assert delta == 6 - 7
        assert [u.key for u in victory.assigned_upgrades] == ["boarding-troopers"]

    def test_real_upgrades_block_combo_slot(
        self, engine: UpgradeConstraintEngine, victory: Ship, upgrade
    ) -> None:
        """Real upgrades in both underlying slots mark the combo slot filled."""
        engine.assign(victory, upgrade("gunnery-team"), "weapons-team", 0)
        assert not engine.state_for(victory).is_filled(COMBO, 0)

        engine.assign(victory, upgrade("expanded-hangar-bay"), "offensive-retro", 0)
        state = engine.state_for(victory)

        assert state.is_filled(COMBO, 0)
        assert state.filled_slot_indices == {
            "weapons-team": [0],
            "offensive-retro": [0],
            COMBO: [0],
        }

        engine.unassign(victory, "weapons-team", 0)
        assert not engine.state_for(victory).is_filled(COMBO, 0)


class TestTitlesAndFlagships:
    """Tests for title and flagship exclusivity."""

    def test_title_state(self, engine: UpgradeConstraintEngine, victory: Ship, upgrade) -> None:
        """A title disables further titles and applies its own restrictions."""
        engine.assign(victory, upgrade("dominator"), "title", 0)
        state = engine.state_for(victory)

        assert state.is_disabled("title")
        assert state.is_disabled("ion-cannons")
        assert state.is_greyed("offensive-retro")

    def test_replacing_title(
        self, engine: UpgradeConstraintEngine, victory: Ship, upgrade, registry: UniqueNameRegistry
    ) -> None:
        """A new title in the slot replaces the old one and its restrictions."""
        engine.assign(victory, upgrade("dominator"), "title", 0)
        engine.assign(victory, upgrade("insidious"), "title", 0)
        state = engine.state_for(victory)

        assert [u.key for u in victory.assigned_upgrades] == ["insidious"]
        assert not state.is_disabled("ion-cannons")
        assert state.is_disabled("title")
        assert registry.names() == frozenset({"Insidious"})

    def test_one_flagship_upgrade_per_ship(
        self, engine: UpgradeConstraintEngine, victory: Ship, upgrade, registry: UniqueNameRegistry
    ) -> None:
        """A flagship upgrade evicts any other flagship upgrade."""
        engine.assign(victory, upgrade("bridge-crew"), "officer", 0)
        delta = engine.assign(victory, upgrade("flag-liaison"), "officer", 1)

        assert delta == 3 - 4
        assert [u.key for u in victory.assigned_upgrades] == ["flag-liaison"]

        engine.assign(victory, upgrade("bridge-crew"), "officer", 0)
        assert [u.key for u in victory.assigned_upgrades] == ["bridge-crew"]
        assert_registry_matches(registry, victory)

    def test_removing_another_upgrade_evicts_flagship(
        self, engine: UpgradeConstraintEngine, victory: Ship, upgrade, registry: UniqueNameRegistry
    ) -> None:
        """Removing a non-flagship upgrade also removes the flagship upgrade."""
        engine.assign(victory, upgrade("admiral-motti"), "commander", 0)
        engine.assign(victory, upgrade("flag-liaison"), "officer", 0)
        engine.assign(victory, upgrade("gunnery-team"), "weapons-team", 0)

        assert engine.unassign(victory, "weapons-team", 0) == 7 + 3
        assert [u.key for u in victory.assigned_upgrades] == ["admiral-motti"]
        assert registry.names() == frozenset({"Admiral Motti"})


class TestTraits:
    """Tests for trait changes."""

    def test_becoming_a_flotilla_drops_commander(
        self, engine: UpgradeConstraintEngine, victory: Ship, upgrade, registry: UniqueNameRegistry
    ) -> None:
        """Gaining the flotilla trait removes the commander slot and its upgrade."""
        engine.assign(victory, upgrade("admiral-motti"), "commander", 0)

        assert engine.set_traits(victory, ["Flotilla"]) == 24
        assert "commander" not in victory.available_upgrades
        assert len(registry) == 0

        engine.set_traits(victory, [])
        assert victory.available_upgrades[0] == "commander"


# =============================================================================
# INVARIANT SWEEP
# =============================================================================


@pytest.mark.parametrize(
    "steps",
    [
        [("assign", "engineering-refit", "ion-cannons", 0),
         ("assign", "gravity-well", "experimental-retrofit", 0),
         ("assign", "dominator", "title", 0),
         ("unassign", None, "ion-cannons", 0)],
        [("assign", "gunnery-team", "weapons-team", 0),
         ("assign", "boarding-troopers", COMBO, 0),
         ("assign", "expanded-hangar-bay", "offensive-retro", 0),
         ("assign", "director-isard", "officer", 1)],
        [("assign", "flag-liaison", "officer", 0),
         ("assign", "bridge-crew", "officer", 1),
         ("assign", "director-isard", "officer", 1),
         ("unassign", None, "officer", 0)],
        [("assign", "expanded-hangar-bay", "offensive-retro", 0),
         ("assign", "gunnery-team", "weapons-team", 0),
         ("unassign", None, "offensive-retro", 0),
         ("assign", "boarding-troopers", COMBO, 0),
         ("assign", "expanded-hangar-bay", "offensive-retro", 0),
         ("unassign", None, "weapons-team", 0)],
    ],
)
def test_slots_and_registry_stay_consistent(
    steps, engine: UpgradeConstraintEngine, victory: Ship, upgrade, registry: UniqueNameRegistry
) -> None:
    """After every step each upgrade has a slot, the registry matches and combo slots balance."""
    for action, key, slot_type, index in steps:
        if action == "assign":
            engine.assign(victory, upgrade(key), slot_type, index)
        else:
            engine.unassign(victory, slot_type, index)
        assert_slots_exist(victory)
        assert_registry_matches(registry, victory)
        assert_combo_law(engine, victory)
        assert sum(1 for u in victory.assigned_upgrades if u.type == "title") <= 1
        assert sum(1 for u in victory.assigned_upgrades if u.restrictions.flagship) <= 1
