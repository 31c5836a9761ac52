import uuid
from dataclasses import dataclass, field

from fleetforge.models.cards import Objective, ObjectiveCategory, Ship, Squadron, Upgrade

SANDBOX_FACTION = "sandbox"


@dataclass(frozen=True, slots=True)
class FleetPoints:
    """
    Derived point totals of a fleet.

    Attributes:
        ships: Sum of every ship's base points plus assigned upgrade points
        squadrons: Sum of every squadron's per-unit points times its count
        total: ships + squadrons
    """

    ships: int = 0
    squadrons: int = 0
    total: int = 0


@dataclass
class Fleet:
    """
    A fleet list.

    Objectives are stored per category in selection order. Standard play
    holds at most one objective per category; the sandbox faction may
    hold several, including free-form categories.

    `points` is derived state: it is recomputed after every mutation and
    never trusted across operations.
    """

    faction: str
    name: str = "Untitled Fleet"
    ships: list[Ship] = field(default_factory=list)
    squadrons: list[Squadron] = field(default_factory=list)
    objectives: dict[str, list[Objective]] = field(default_factory=dict)
    points: FleetPoints = field(default_factory=FleetPoints)

    @property
    def is_sandbox(self) -> bool:
        """True if this fleet allows several objectives per category."""
        return self.faction == SANDBOX_FACTION

    def objectives_for(self, category: str | ObjectiveCategory) -> list[Objective]:
        """Selected objectives of a category (empty list if none)."""
        return self.objectives.get(_category_key(category), [])

    def add_objective(self, objective: Objective) -> None:
        """Select an objective, replacing the category's selection unless sandbox."""
        category = _category_key(objective.category)
        if self.is_sandbox:
            self.objectives.setdefault(category, []).append(objective)
        else:
            self.objectives[category] = [objective]

    def find_ship(self, ship_id: str) -> Ship | None:
        """Find a ship by instance id."""
        for ship in self.ships:
            if ship.id == ship_id:
                return ship
        return None

    def find_squadron(self, squadron_id: str) -> Squadron | None:
        """Find a squadron by instance id."""
        for squadron in self.squadrons:
            if squadron.id == squadron_id:
                return squadron
        return None

    def commander(self) -> Upgrade | None:
        """The first assigned commander upgrade in ship order, if any."""
        for ship in self.ships:
            for upgrade in ship.assigned_upgrades:
                if upgrade.type == "commander":
                    return upgrade
        return None


def _category_key(category: str | ObjectiveCategory) -> str:
    if isinstance(category, ObjectiveCategory):
        return category.value
    return category.lower()


# Declared faction spellings -> canonical faction
FACTION_ALIASES: dict[str, str] = {
    "imperial": "empire",
    "galactic empire": "empire",
    "rebel alliance": "rebel",
    "galactic republic": "republic",
    "separatist alliance": "separatist",
}


def normalize_faction(faction: str) -> str:
    """Lower-case a faction name and map known long forms to the canonical one."""
    lowered = " ".join(faction.split()).lower()
    return FACTION_ALIASES.get(lowered, lowered)


def display_faction(faction: str) -> str:
    """Faction name as written in fleet text ("empire" -> "Empire")."""
    return faction[:1].upper() + faction[1:]


def new_instance_id(prefix: str) -> str:
    """Fresh instance id for a ship or squadron placed in a fleet."""
    return f"{prefix}_{uuid.uuid4().hex}"
