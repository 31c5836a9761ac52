"""
Catalog Record Schemas.

Raw catalog JSON is UNTRUSTED. These pydantic models validate one record
at a time and convert it into the immutable domain entities the rest of
the system uses. A record that fails validation is rejected by the
loader; it never reaches the parser or the constraint engine.

JSON keys follow the content API (e.g. "unique-class", "ace-name",
"disable_upgrades"); attribute names are Python-style.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fleetforge.models.cards import (
    Exhaust,
    ExhaustType,
    Objective,
    Restrictions,
    Ship,
    Squadron,
    Upgrade,
)
from fleetforge.models.source import SourceTag


def _clean(values: list[str]) -> tuple[str, ...]:
    """Drop blank entries (the content API pads lists with "")."""
    return tuple(v.strip() for v in values if v and v.strip())


class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class DisqualifyIfRecord(_Record):
    size: list[str] = Field(default_factory=list)
    has_upgrade_type: list[str] = Field(default_factory=list)


class RestrictionsRecord(_Record):
    disable_upgrades: list[str] = Field(default_factory=list)
    enable_upgrades: list[str] = Field(default_factory=list)
    grey_upgrades: list[str] = Field(default_factory=list)
    disqual_upgrades: list[str] = Field(default_factory=list)
    size: list[str] = Field(default_factory=list)
    traits: list[str] = Field(default_factory=list)
    disqualify_if: DisqualifyIfRecord = Field(default_factory=DisqualifyIfRecord)
    flagship: bool = False

    def to_restrictions(self) -> Restrictions:
        return Restrictions(
            disable_types=_clean(self.disable_upgrades),
            enable_types=_clean(self.enable_upgrades),
            grey_types=_clean(self.grey_upgrades),
            disqual_types=_clean(self.disqual_upgrades),
            sizes=_clean(self.size),
            traits=_clean(self.traits),
            disqualify_sizes=_clean(self.disqualify_if.size),
            disqualify_upgrade_types=_clean(self.disqualify_if.has_upgrade_type),
            flagship=self.flagship,
        )


class ExhaustRecord(_Record):
    type: ExhaustType
    ready_token: list[str] = Field(default_factory=list)
    ready_amount: int | None = None


class UpgradeRecord(_Record):
    name: str
    type: str
    points: int = 0
    unique: bool = False
    unique_class: list[str] = Field(default_factory=list, alias="unique-class")
    faction: list[str] = Field(default_factory=list)
    bound_shiptype: str = ""
    modification: bool = False
    restrictions: RestrictionsRecord | None = None
    exhaust: ExhaustRecord | None = None
    ability: str = ""
    alias: str | None = None

    @field_validator("faction", mode="before")
    @classmethod
    def _faction_list(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value] if value else []
        return value

    @field_validator("restrictions", "exhaust", mode="before")
    @classmethod
    def _empty_block(cls, value: Any) -> Any:
        # The API sends {} or null for "no block"
        return value or None

    def to_upgrade(self, key: str, source: SourceTag) -> Upgrade:
        exhaust = None
        if self.exhaust is not None:
            exhaust = Exhaust(
                type=self.exhaust.type,
                ready_tokens=_clean(self.exhaust.ready_token),
                ready_amount=self.exhaust.ready_amount,
            )
        restrictions = self.restrictions or RestrictionsRecord()
        return Upgrade(
            key=key,
            name=self.name,
            type=self.type,
            points=self.points,
            unique=self.unique,
            unique_classes=_clean(self.unique_class),
            faction=_clean(self.faction),
            bound_shiptype=self.bound_shiptype,
            modification=self.modification,
            restrictions=restrictions.to_restrictions(),
            exhaust=exhaust,
            ability=self.ability,
            source=source,
            alias=self.alias,
        )


class ShipModelRecord(_Record):
    name: str
    points: int = 0
    faction: str = ""
    chassis: str = ""
    size: str | None = None
    unique: bool = False
    traits: list[str] = Field(default_factory=list)
    upgrades: list[str] = Field(default_factory=list)

    def to_ship(self, key: str, chassis_size: str, source: SourceTag) -> Ship:
        slots = _clean(self.upgrades)
        return Ship(
            id="",
            key=key,
            name=self.name,
            points=self.points,
            faction=self.faction.lower(),
            chassis=self.chassis or self.name,
            size=self.size or chassis_size,
            unique=self.unique,
            traits=list(_clean(self.traits)),
            source=source,
            base_upgrades=slots,
            available_upgrades=list(slots),
        )


class ShipChassisRecord(_Record):
    size: str = "small"
    models: dict[str, ShipModelRecord] = Field(default_factory=dict)


class SquadronRecord(_Record):
    name: str
    points: int = 0
    faction: str = ""
    squadron_type: str = ""
    ace_name: str = Field(default="", alias="ace-name")
    unique: bool = False
    ace: bool = False
    unique_class: list[str] = Field(default_factory=list, alias="unique-class")

    @field_validator("ace_name", mode="before")
    @classmethod
    def _ace_name_text(cls, value: Any) -> Any:
        return value or ""

    def to_squadron(self, key: str, source: SourceTag) -> Squadron:
        return Squadron(
            id="",
            key=key,
            name=self.name,
            points=self.points,
            faction=self.faction.lower(),
            squadron_type=self.squadron_type,
            ace_name=self.ace_name,
            unique=self.unique,
            ace=self.ace or bool(self.ace_name),
            unique_classes=_clean(self.unique_class),
            source=source,
        )


class ObjectiveRecord(_Record):
    name: str
    type: str

    def to_objective(self, key: str, source: SourceTag) -> Objective:
        return Objective(key=key, name=self.name, category=self.type.lower(), source=source)


class ErrataKeysRecord(_Record):
    ships: list[str] = Field(default_factory=list)
    squadrons: list[str] = Field(default_factory=list)
    upgrades: list[str] = Field(default_factory=list)
    objectives: list[str] = Field(default_factory=list)
