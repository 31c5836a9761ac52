from fleetforge.parsers.card_updates import apply_card_updates
from fleetforge.parsers.fleet_parser import FleetParser, ParseResult, parse_fleet
from fleetforge.parsers.normalizers import (
    NORMALIZERS,
    Normalizer,
    get_normalizer,
    normalize,
)

__all__ = [
    "FleetParser",
    "NORMALIZERS",
    "Normalizer",
    "ParseResult",
    "apply_card_updates",
    "get_normalizer",
    "normalize",
    "parse_fleet",
]
