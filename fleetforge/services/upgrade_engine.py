"""
Upgrade Constraint Engine.

Keeps every fleet ship's slot list, assigned upgrades and ConstraintState
consistent while upgrades are assigned and removed.

The engine does not apply deltas. After every mutation it rederives the
ship's slot list from its base slots, traits and the restrictions of the
upgrades still assigned, then removes whatever no longer fits until the
ship is stable. Reversing a removed upgrade's contributions is therefore
the same code path as applying them.

INVARIANTS:
1. Every assigned upgrade occupies a slot that exists in available_upgrades
2. Available combo slots = min(count of each underlying slot type); each
   assigned combo upgrade consumes one index of each underlying type
3. A ship carries at most one title and at most one flagship upgrade
4. Every unique name claimed by an assigned upgrade is in the registry;
   every removed upgrade releases exactly the names it claimed
5. Unknown slot types in restrictions are no-ops, never errors
"""

import logging
from dataclasses import dataclass, field

from fleetforge.models.cards import Ship, Upgrade
from fleetforge.models.source import SourceTag, source_from_text
from fleetforge.services.points import ship_total
from fleetforge.services.unique_registry import UniqueNameRegistry

logger = logging.getLogger(__name__)

# =============================================================================
# SLOT RULES
# =============================================================================

# Combo slot type -> the two slot types each combo upgrade consumes
COMBO_SLOT_TYPES: dict[str, tuple[str, str]] = {
    "weapons-team-offensive-retro": ("weapons-team", "offensive-retro"),
}

COMMANDER_SLOT = "commander"

# Every ship has one; an assigned title disables further titles
TITLE_SLOT = "title"

# Ships with this trait never get a commander slot
FLOTILLA_TRAIT = "flotilla"


def is_flotilla(ship: Ship) -> bool:
    return any(trait.lower() == FLOTILLA_TRAIT for trait in ship.traits)


@dataclass
class ConstraintState:
    """
    Derived per-ship slot state. Never persisted; always rebuilt from the
    ship's assigned upgrades.

    Attributes:
        disabled_slot_types: Types that may not receive new upgrades
        enabled_slot_types: Types granted by assigned upgrades
        greyed_slot_types: Types shown as selectable but discouraged
        filled_slot_indices: Occupied indices per slot type, including
            indices consumed by combo upgrades
    """

    disabled_slot_types: list[str] = field(default_factory=list)
    enabled_slot_types: list[str] = field(default_factory=list)
    greyed_slot_types: list[str] = field(default_factory=list)
    filled_slot_indices: dict[str, list[int]] = field(default_factory=dict)

    def is_disabled(self, slot_type: str) -> bool:
        return slot_type in self.disabled_slot_types

    def is_greyed(self, slot_type: str) -> bool:
        return slot_type in self.greyed_slot_types

    def is_filled(self, slot_type: str, slot_index: int) -> bool:
        return slot_index in self.filled_slot_indices.get(slot_type, [])


class UpgradeConstraintEngine:
    """
    Assigns and removes upgrades on fleet ships.

    One engine belongs to one editing session and shares that session's
    UniqueNameRegistry. It never raises for a slot that does not exist:
    an upgrade that cannot stay on the ship is removed again and the
    point delta is zero.
    """

    def __init__(
        self,
        registry: UniqueNameRegistry,
        combo_slots: dict[str, tuple[str, str]] | None = None,
    ) -> None:
        self.registry = registry
        self.combo_slots = dict(COMBO_SLOT_TYPES if combo_slots is None else combo_slots)
        self._states: dict[str, ConstraintState] = {}

    # -------------------------------------------------------------------------
    # Ship lifecycle
    # -------------------------------------------------------------------------

    def register_ship(self, ship: Ship) -> None:
        """Derive a ship's slots and state, keeping any upgrades that still fit."""
        self._refresh(ship)

    def release_ship(self, ship: Ship) -> int:
        """
        Remove every upgrade from a ship and forget its state.

        Returns:
            Points removed
        """
        removed = sum(upgrade.points for upgrade in ship.assigned_upgrades)
        for upgrade in ship.assigned_upgrades:
            self.registry.remove_all(upgrade.unique_names())
        ship.assigned_upgrades = []
        self._states.pop(ship.id, None)
        return removed

    def set_traits(self, ship: Ship, traits: list[str]) -> int:
        """
        Replace a ship's traits and rederive its slots.

        Gaining the flotilla trait drops the commander slot together with
        any commander assigned to it.

        Returns:
            Points removed by the change
        """
        before = ship_total(ship)
        ship.traits = list(traits)
        self._refresh(ship)
        return before - ship_total(ship)

    def state_for(self, ship: Ship) -> ConstraintState:
        state = self._states.get(ship.id)
        if state is None:
            state = self._build_state(ship)
            self._states[ship.id] = state
        return state

    def combo_slot_count(self, ship: Ship, combo_type: str) -> int:
        """Number of combo slots of a type the ship offers right now."""
        underlying = self.combo_slots.get(combo_type)
        if underlying is None:
            return 0
        return min(ship.slot_count(underlying[0]), ship.slot_count(underlying[1]))

    # -------------------------------------------------------------------------
    # Assign / unassign
    # -------------------------------------------------------------------------

    def assign(
        self,
        ship: Ship,
        upgrade: Upgrade,
        slot_type: str,
        slot_index: int,
        source: SourceTag | None = None,
    ) -> int:
        """
        Place an upgrade in a slot.

        The placed copy takes `source` when given (an imported bracket),
        otherwise the tag named in the upgrade's alias.

        The slot's current occupant is fully removed first (including
        anything it granted). A flagship upgrade evicts any other flagship
        upgrade on the ship.

        Returns:
            Change in the ship's total points
        """
        if upgrade.type != slot_type:
            logger.warning(
                "SLOT_TYPE_MISMATCH: %s is a %s upgrade, not %s", upgrade.name, upgrade.type, slot_type
            )
            return 0

        before = ship_total(ship)

        occupant = ship.upgrade_at(slot_type, slot_index)
        if occupant is not None:
            self._detach(ship, occupant)
            self._refresh(ship)

        if upgrade.restrictions.flagship:
            flagships = [u for u in ship.assigned_upgrades if u.restrictions.flagship]
            for other in flagships:
                logger.debug("FLAGSHIP_EVICT: %s replaces %s on %s", upgrade.name, other.name, ship.name)
                self._detach(ship, other)
            if flagships:
                self._refresh(ship)

        source = source or source_from_text(upgrade.alias) or upgrade.source
        placed = upgrade.placed(slot_index, source)
        ship.assigned_upgrades.append(placed)
        self.registry.add_all(placed.unique_names())
        self._refresh(ship, keep=placed)

        if not any(u is placed for u in ship.assigned_upgrades):
            logger.debug(
                "SLOT_MISSING: %s has no %s slot %d for %s",
                ship.name,
                slot_type,
                slot_index,
                upgrade.name,
            )

        return ship_total(ship) - before

    def unassign(self, ship: Ship, slot_type: str, slot_index: int) -> int:
        """
        Remove the upgrade in a slot, cascading to upgrades in slots it granted.

        Removing any upgrade other than a flagship upgrade also removes the
        ship's flagship upgrade.

        Returns:
            Points removed, cascades included (0 if the slot was empty)
        """
        upgrade = ship.upgrade_at(slot_type, slot_index)
        if upgrade is None:
            return 0

        before = ship_total(ship)
        if not upgrade.restrictions.flagship:
            for flagship in [u for u in ship.assigned_upgrades if u.restrictions.flagship]:
                logger.debug("FLAGSHIP_CASCADE: %s removed with %s", flagship.name, upgrade.name)
                self._detach(ship, flagship)
        self._detach(ship, upgrade)
        self._refresh(ship)
        return before - ship_total(ship)

    # -------------------------------------------------------------------------
    # Derivation
    # -------------------------------------------------------------------------

    def _detach(self, ship: Ship, upgrade: Upgrade) -> None:
        ship.assigned_upgrades = [u for u in ship.assigned_upgrades if u is not upgrade]
        self.registry.remove_all(upgrade.unique_names())

    def _derive_slots(self, ship: Ship) -> list[str]:
        fixed = (COMMANDER_SLOT, TITLE_SLOT)
        slots = [] if is_flotilla(ship) else [COMMANDER_SLOT]
        slots.extend(
            t for t in ship.base_upgrades if t not in fixed and t not in self.combo_slots
        )

        for upgrade in ship.assigned_upgrades:
            for slot_type in upgrade.restrictions.enable_types:
                if slot_type not in slots and slot_type not in self.combo_slots:
                    slots.append(slot_type)

        for combo_type, (first, second) in self.combo_slots.items():
            slots.extend([combo_type] * min(slots.count(first), slots.count(second)))

        slots.append(TITLE_SLOT)
        return slots

    def _find_orphan(self, ship: Ship) -> Upgrade | None:
        """An assigned upgrade whose slot no longer exists."""
        for upgrade in ship.assigned_upgrades:
            index = upgrade.slot_index or 0
            if index >= ship.slot_count(upgrade.type):
                return upgrade
        return None

    def _find_overcommitted(self, ship: Ship, keep: Upgrade | None) -> Upgrade | None:
        """
        An upgrade to drop because combo upgrades and real upgrades together
        use more slots of an underlying type than the ship has.

        Combo upgrades go first, newest slot first; `keep` (the upgrade
        being assigned) is never chosen.
        """
        for combo_type, underlying in self.combo_slots.items():
            combos = [u for u in ship.assigned_upgrades if u.type == combo_type]
            if not combos:
                continue
            for slot_type in underlying:
                real = [u for u in ship.assigned_upgrades if u.type == slot_type]
                if len(real) + len(combos) <= ship.slot_count(slot_type):
                    continue
                for pool in (combos, real):
                    candidates = [u for u in pool if u is not keep]
                    if candidates:
                        return max(candidates, key=lambda u: u.slot_index or 0)
        return None

    def _refresh(self, ship: Ship, keep: Upgrade | None = None) -> list[Upgrade]:
        """
        Rederive slots and drop upgrades that no longer fit until stable.

        Returns:
            Upgrades removed by the cascade
        """
        removed: list[Upgrade] = []
        while True:
            ship.available_upgrades = self._derive_slots(ship)
            victim = self._find_orphan(ship) or self._find_overcommitted(ship, keep)
            if victim is None:
                break
            logger.debug("CASCADE_REMOVE: %s from %s", victim.name, ship.name)
            self._detach(ship, victim)
            removed.append(victim)

        order = {slot_type: i for i, slot_type in reversed(list(enumerate(ship.available_upgrades)))}
        ship.assigned_upgrades.sort(
            key=lambda u: (order.get(u.type, len(order)), u.slot_index or 0)
        )
        self._states[ship.id] = self._build_state(ship)
        return removed

    def _build_state(self, ship: Ship) -> ConstraintState:
        state = ConstraintState()

        for upgrade in ship.assigned_upgrades:
            restrictions = upgrade.restrictions
            for slot_type in restrictions.disable_types:
                if slot_type not in state.disabled_slot_types:
                    state.disabled_slot_types.append(slot_type)
            if upgrade.type == TITLE_SLOT and TITLE_SLOT not in state.disabled_slot_types:
                state.disabled_slot_types.append(TITLE_SLOT)
            for slot_type in restrictions.grey_types:
                if slot_type not in state.greyed_slot_types:
                    state.greyed_slot_types.append(slot_type)
            for slot_type in restrictions.enable_types:
                if slot_type not in state.enabled_slot_types:
                    state.enabled_slot_types.append(slot_type)
            state.filled_slot_indices.setdefault(upgrade.type, []).append(upgrade.slot_index or 0)

        for combo_type, underlying in self.combo_slots.items():
            for combo in ship.assigned_upgrades:
                if combo.type != combo_type:
                    continue
                for slot_type in underlying:
                    filled = state.filled_slot_indices.setdefault(slot_type, [])
                    free = [i for i in range(ship.slot_count(slot_type)) if i not in filled]
                    if free:
                        filled.append(free[0])

            # A combo slot whose underlying slots are taken counts as filled,
            # whether a combo upgrade or real upgrades took them
            blocked = min(
                len(state.filled_slot_indices.get(slot_type, [])) for slot_type in underlying
            )
            filled = state.filled_slot_indices.get(combo_type, [])
            spare = [i for i in range(self.combo_slot_count(ship, combo_type)) if i not in filled]
            while len(filled) < blocked and spare:
                filled = state.filled_slot_indices.setdefault(combo_type, [])
                filled.append(spare.pop(0))

        for indices in state.filled_slot_indices.values():
            indices.sort()
        return state
