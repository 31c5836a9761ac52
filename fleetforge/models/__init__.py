from fleetforge.models.cards import (
    Exhaust,
    ExhaustType,
    Objective,
    ObjectiveCategory,
    Restrictions,
    Ship,
    Squadron,
    Upgrade,
)
from fleetforge.models.failure import (
    FactionMismatchError,
    FactionUndeterminedError,
    FailureDetail,
    FailureKind,
    ImportInputError,
    KnownError,
    UnknownFormatError,
)
from fleetforge.models.fleet import (
    FACTION_ALIASES,
    SANDBOX_FACTION,
    Fleet,
    FleetPoints,
    display_faction,
    new_instance_id,
    normalize_faction,
)
from fleetforge.models.source import (
    SOURCE_BRACKETS,
    SourceTag,
    format_source,
    source_from_pack,
    source_from_text,
    strip_source,
)

__all__ = [
    "Exhaust",
    "FACTION_ALIASES",
    "ExhaustType",
    "FactionMismatchError",
    "FactionUndeterminedError",
    "FailureDetail",
    "FailureKind",
    "Fleet",
    "FleetPoints",
    "ImportInputError",
    "KnownError",
    "Objective",
    "ObjectiveCategory",
    "Restrictions",
    "SANDBOX_FACTION",
    "SOURCE_BRACKETS",
    "Ship",
    "SourceTag",
    "Squadron",
    "UnknownFormatError",
    "Upgrade",
    "display_faction",
    "format_source",
    "new_instance_id",
    "normalize_faction",
    "source_from_pack",
    "source_from_text",
    "strip_source",
]
