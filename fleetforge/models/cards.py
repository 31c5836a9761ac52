"""
Fleet entity models.

Catalog lookups return template entities. Templates are immutable
(Upgrade, Objective) or never mutated in place (Ship, Squadron):
the editing session works on fresh instances created with
`new_instance()`.

Restrictions are declarative data. Nothing in this module interprets
them; the upgrade constraint engine reads every upgrade's restrictions
through the same code path.
"""

from dataclasses import dataclass, field, replace
from enum import Enum

from fleetforge.models.source import SourceTag


class ObjectiveCategory(str, Enum):
    """The three standard objective categories."""

    ASSAULT = "assault"
    DEFENSE = "defense"
    NAVIGATION = "navigation"


class ExhaustType(str, Enum):
    """How an upgrade card readies after being exhausted."""

    BLANK = "blank"
    RECUR = "recur"
    NONRECUR = "nonrecur"


@dataclass(frozen=True, slots=True)
class Exhaust:
    """
    Exhaust descriptor of an upgrade card.

    Attributes:
        type: Readying behavior
        ready_tokens: Token types spent to ready the card
        ready_amount: Number of tokens spent to ready the card
    """

    type: ExhaustType
    ready_tokens: tuple[str, ...] = ()
    ready_amount: int | None = None


@dataclass(frozen=True, slots=True)
class Restrictions:
    """
    Declarative restrictions carried by an upgrade card.

    Attributes:
        disable_types: Slot types this upgrade disables on its ship
        enable_types: Slot types this upgrade grants to its ship
        grey_types: Slot types this upgrade greys out (selectable, discouraged)
        disqual_types: Slot types whose presence disqualifies this upgrade
        sizes: Ship sizes allowed to carry the upgrade (empty = any)
        traits: Ship traits of which at least one is required (empty = any)
        disqualify_sizes: Ship sizes for which `disqualify_upgrade_types` applies
        disqualify_upgrade_types: Slot types that disqualify the upgrade on those sizes
        flagship: At most one flagship upgrade per ship; requires a commander
    """

    disable_types: tuple[str, ...] = ()
    enable_types: tuple[str, ...] = ()
    grey_types: tuple[str, ...] = ()
    disqual_types: tuple[str, ...] = ()
    sizes: tuple[str, ...] = ()
    traits: tuple[str, ...] = ()
    disqualify_sizes: tuple[str, ...] = ()
    disqualify_upgrade_types: tuple[str, ...] = ()
    flagship: bool = False


@dataclass(frozen=True, slots=True)
class Upgrade:
    """
    An upgrade card, either a catalog template or an assigned instance.

    Assigned instances carry the `slot_index` they occupy; together with
    `type` it identifies the slot. Assigning never mutates the template,
    it places a copy made with `placed()`.
    """

    key: str
    name: str
    type: str
    points: int
    unique: bool = False
    unique_classes: tuple[str, ...] = ()
    faction: tuple[str, ...] = ()
    bound_shiptype: str = ""
    modification: bool = False
    restrictions: Restrictions = field(default_factory=Restrictions)
    exhaust: Exhaust | None = None
    ability: str = ""
    source: SourceTag = SourceTag.REGULAR
    alias: str | None = None
    slot_index: int | None = None

    def unique_names(self) -> list[str]:
        """Names this upgrade claims in the unique-name registry."""
        names = [self.name] if self.unique else []
        names.extend(uc for uc in self.unique_classes if uc)
        return names

    def placed(self, slot_index: int, source: SourceTag | None = None) -> "Upgrade":
        """Return a copy of this upgrade placed at `slot_index`."""
        return replace(self, slot_index=slot_index, source=source or self.source)


@dataclass(slots=True)
class Ship:
    """
    A ship in a fleet.

    `base_upgrades` is the slot list printed for the model in the catalog.
    `available_upgrades` is the live slot list: derived from the base
    slots, the ship's traits, and any slots granted by assigned upgrades.
    Only the upgrade constraint engine writes `available_upgrades` and
    `assigned_upgrades` on a fleet ship.
    """

    id: str
    key: str
    name: str
    points: int
    faction: str
    chassis: str = ""
    size: str = "small"
    unique: bool = False
    traits: list[str] = field(default_factory=list)
    source: SourceTag = SourceTag.REGULAR
    base_upgrades: tuple[str, ...] = ()
    available_upgrades: list[str] = field(default_factory=list)
    assigned_upgrades: list[Upgrade] = field(default_factory=list)

    def upgrade_at(self, slot_type: str, slot_index: int) -> Upgrade | None:
        """Return the upgrade occupying a slot, or None if the slot is empty."""
        for upgrade in self.assigned_upgrades:
            if upgrade.type == slot_type and upgrade.slot_index == slot_index:
                return upgrade
        return None

    def slot_count(self, slot_type: str) -> int:
        """Number of slots of a type the ship currently offers."""
        return self.available_upgrades.count(slot_type)

    def unique_names(self) -> list[str]:
        """Names the ship itself claims in the unique-name registry."""
        return [self.name] if self.unique else []

    def new_instance(self, instance_id: str, source: SourceTag | None = None) -> "Ship":
        """Create an empty fleet copy of this ship (no upgrades assigned)."""
        return Ship(
            id=instance_id,
            key=self.key,
            name=self.name,
            points=self.points,
            faction=self.faction,
            chassis=self.chassis or self.name,
            size=self.size or "small",
            unique=self.unique,
            traits=list(self.traits),
            source=source or self.source,
            base_upgrades=self.base_upgrades,
            available_upgrades=list(self.base_upgrades),
            assigned_upgrades=[],
        )


@dataclass(slots=True)
class Squadron:
    """
    A squadron entry in a fleet.

    Identical non-unique squadrons collapse into one record whose `count`
    is the multiplier. `points` is always the per-unit cost.
    """

    id: str
    key: str
    name: str
    points: int
    faction: str
    squadron_type: str = ""
    ace_name: str = ""
    unique: bool = False
    ace: bool = False
    unique_classes: tuple[str, ...] = ()
    source: SourceTag = SourceTag.REGULAR
    count: int = 1

    @property
    def display_name(self) -> str:
        """Ace name when present, otherwise the squadron name."""
        return self.ace_name or self.name

    def unique_names(self) -> list[str]:
        """
        Names this squadron claims in the unique-name registry.

        An ace claims its ace name, not the squadron type it flies, so two
        different aces of the same type can share a fleet.
        """
        names = [self.display_name] if self.unique else []
        names.extend(uc for uc in self.unique_classes if uc)
        return names

    def new_instance(
        self,
        instance_id: str,
        count: int = 1,
        source: SourceTag | None = None,
    ) -> "Squadron":
        """Create a fleet copy of this squadron with the given count."""
        return replace(self, id=instance_id, count=count, source=source or self.source)


@dataclass(frozen=True, slots=True)
class Objective:
    """
    An objective card.

    `category` is one of ObjectiveCategory's values for standard play,
    or any free-form string in sandbox play.
    """

    key: str
    name: str
    category: str
    source: SourceTag = SourceTag.REGULAR
