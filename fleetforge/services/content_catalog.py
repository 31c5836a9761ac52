"""
Content catalog service.

Loads catalog documents (ships, upgrades, squadrons, objectives, alias
table, errata keys, card updates) from disk and downloads them from the
content API. The rest of the system only sees the read interface
(`ContentCatalog`) and the alias/errata data.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from fleetforge.config import settings
from fleetforge.models.cards import Objective, Ship, Squadron, Upgrade
from fleetforge.models.catalog_records import (
    ErrataKeysRecord,
    ObjectiveRecord,
    ShipChassisRecord,
    SquadronRecord,
    UpgradeRecord,
)
from fleetforge.models.failure import FailureKind, KnownError
from fleetforge.models.source import SourceTag, source_from_pack
from fleetforge.services.alias_resolver import AliasTable, ErrataKeys

logger = logging.getLogger(__name__)

# Entity documents present in the root (regular pack) and in each pack directory
ENTITY_DOCUMENTS = ("ships", "upgrades", "squadrons", "objectives")

# Catalog-wide documents, root only
ALIASES_DOCUMENT = "aliases"
ERRATA_DOCUMENT = "errata-keys"
UPDATES_DOCUMENT = "updates"

# Content API endpoints for the regular pack and catalog-wide documents
CORE_ENDPOINTS: dict[str, str] = {
    "ships": "/api/ships/",
    "squadrons": "/api/squadrons/",
    "upgrades": "/api/upgrades/",
    "objectives": "/api/objectives/",
    ALIASES_DOCUMENT: "/aliases/",
    ERRATA_DOCUMENT: "/errata-keys/",
    UPDATES_DOCUMENT: "/updates/",
}


class CatalogFetchError(KnownError):
    """Raised when downloading a core catalog document fails."""

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(
            kind=FailureKind.CATALOG_UNAVAILABLE,
            message=message,
            detail=detail,
            suggestion="Check the content API URL and try the download again.",
        )


class ContentCatalog(Protocol):
    """Read interface of the content catalog. Lookups are side-effect free."""

    def get_ship(self, key: str) -> Ship | None: ...

    def get_upgrade(self, key: str) -> Upgrade | None: ...

    def get_squadron(self, key: str) -> Squadron | None: ...

    def get_objective(self, key: str) -> Objective | None: ...


@dataclass
class InMemoryCatalog:
    """
    ContentCatalog backed by dictionaries of validated entities.

    Later packs override earlier ones on key collisions, so optional
    packs loaded after the regular catalog win.
    """

    ships: dict[str, Ship] = field(default_factory=dict)
    upgrades: dict[str, Upgrade] = field(default_factory=dict)
    squadrons: dict[str, Squadron] = field(default_factory=dict)
    objectives: dict[str, Objective] = field(default_factory=dict)

    def get_ship(self, key: str) -> Ship | None:
        return self.ships.get(key)

    def get_upgrade(self, key: str) -> Upgrade | None:
        return self.upgrades.get(key)

    def get_squadron(self, key: str) -> Squadron | None:
        return self.squadrons.get(key)

    def get_objective(self, key: str) -> Objective | None:
        return self.objectives.get(key)

    def add_document(self, kind: str, data: dict[str, Any], source: SourceTag) -> int:
        """
        Validate and add one entity document.

        Args:
            kind: One of ENTITY_DOCUMENTS
            data: Parsed JSON, either {kind: {...}} or the inner mapping
            source: Source tag stamped on every entity in the document

        Returns:
            Number of entities added

        Raises:
            pydantic.ValidationError: If any record is malformed
        """
        items = data.get(kind, data)
        added = 0

        if kind == "ships":
            for chassis in items.values():
                record = ShipChassisRecord.model_validate(chassis)
                for key, model in record.models.items():
                    self.ships[key] = model.to_ship(key, record.size, source)
                    added += 1
        elif kind == "upgrades":
            for key, raw in items.items():
                self.upgrades[key] = UpgradeRecord.model_validate(raw).to_upgrade(key, source)
                added += 1
        elif kind == "squadrons":
            for key, raw in items.items():
                self.squadrons[key] = SquadronRecord.model_validate(raw).to_squadron(key, source)
                added += 1
        elif kind == "objectives":
            for key, raw in items.items():
                self.objectives[key] = ObjectiveRecord.model_validate(raw).to_objective(key, source)
                added += 1
        else:
            raise ValueError(f"Unknown catalog document kind: {kind}")

        return added


@dataclass
class CatalogBundle:
    """Everything the import/export pipeline needs from the content layer."""

    catalog: InMemoryCatalog
    aliases: AliasTable = field(default_factory=dict)
    errata_keys: ErrataKeys = field(default_factory=ErrataKeys)
    updates: dict[str, str] = field(default_factory=dict)


def _read_json(path: Path) -> Any | None:
    if not path.exists():
        return None
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def load_catalog(
    directory: Path | None = None,
    packs: list[str] | None = None,
) -> CatalogBundle:
    """
    Load catalog documents from a directory.

    Layout:
        <directory>/ships.json, upgrades.json, squadrons.json, objectives.json
        <directory>/aliases.json, errata-keys.json, updates.json
        <directory>/<pack>/ships.json, ... for each enabled pack

    Args:
        directory: Catalog root. Defaults to settings.catalog_dir
        packs: Optional content packs to load. Defaults to
            settings.enabled_content_packs

    Returns:
        CatalogBundle with the catalog, alias table, errata keys and updates

    Raises:
        FileNotFoundError: If the catalog directory does not exist
        pydantic.ValidationError: If a catalog record is malformed
    """
    if directory is None:
        directory = settings.catalog_dir
    if packs is None:
        packs = settings.enabled_content_packs

    if not directory.is_dir():
        raise FileNotFoundError(
            f"Catalog not found at {directory}. "
            "Run `python -m fleetforge.jobs.download_catalog` first."
        )

    catalog = InMemoryCatalog()
    sources: list[tuple[Path, SourceTag]] = [(directory, SourceTag.REGULAR)]
    sources.extend((directory / pack, source_from_pack(pack)) for pack in packs)

    for pack_dir, source in sources:
        for kind in ENTITY_DOCUMENTS:
            data = _read_json(pack_dir / f"{kind}.json")
            if data is None:
                continue
            try:
                count = catalog.add_document(kind, data, source)
            except ValidationError:
                logger.error("Invalid %s document in %s", kind, pack_dir)
                raise
            logger.info("Loaded %d %s from %s (%s)", count, kind, pack_dir, source.value)

    aliases = _read_json(directory / f"{ALIASES_DOCUMENT}.json") or {}
    errata = ErrataKeysRecord.model_validate(
        _read_json(directory / f"{ERRATA_DOCUMENT}.json") or {}
    )
    updates = _read_json(directory / f"{UPDATES_DOCUMENT}.json") or {}

    return CatalogBundle(
        catalog=catalog,
        aliases=aliases,
        errata_keys=ErrataKeys(
            ships=frozenset(errata.ships),
            squadrons=frozenset(errata.squadrons),
            upgrades=frozenset(errata.upgrades),
            objectives=frozenset(errata.objectives),
        ),
        updates={old: new for old, new in updates.items() if isinstance(new, str)},
    )


def pack_endpoints(pack: str) -> dict[str, str]:
    """Endpoints of one optional content pack, keyed by output path."""
    return {f"{pack}/{kind}": f"/{pack}/{kind}/" for kind in ENTITY_DOCUMENTS}


async def download_catalog(
    output_dir: Path | None = None,
    packs: list[str] | None = None,
    base_url: str | None = None,
) -> Path:
    """
    Download catalog documents from the content API.

    Core documents are required; a failed optional pack endpoint is
    logged and skipped.

    Args:
        output_dir: Where to write the documents. Defaults to settings.catalog_dir
        packs: Optional packs to download. Defaults to settings.enabled_content_packs
        base_url: Content API base URL. Defaults to settings.catalog_api_url

    Returns:
        The output directory

    Raises:
        CatalogFetchError: If a core document cannot be downloaded
    """
    if output_dir is None:
        output_dir = settings.catalog_dir
    if packs is None:
        packs = settings.enabled_content_packs
    if base_url is None:
        base_url = settings.catalog_api_url

    output_dir.mkdir(parents=True, exist_ok=True)

    optional: dict[str, str] = {}
    for pack in packs:
        optional.update(pack_endpoints(pack))

    async with httpx.AsyncClient(
        base_url=base_url.rstrip("/"), timeout=settings.http_timeout_seconds
    ) as client:
        for name, url in CORE_ENDPOINTS.items():
            try:
                data = await _fetch_json(client, url)
            except httpx.HTTPStatusError as e:
                raise CatalogFetchError(
                    f"Failed to fetch {name}: HTTP {e.response.status_code}"
                ) from e
            except httpx.RequestError as e:
                raise CatalogFetchError(f"Failed to fetch {name}: {e}") from e
            except ValueError as e:
                raise CatalogFetchError(
                    f"Failed to fetch {name}: invalid JSON", detail=str(e)
                ) from e
            _write_json(output_dir / f"{name}.json", data)
            logger.info("Fetched %s", name)

        for name, url in optional.items():
            try:
                data = await _fetch_json(client, url)
            except (httpx.HTTPError, ValueError) as e:
                logger.warning("Skipping optional catalog document %s: %s", name, e)
                continue
            _write_json(output_dir / f"{name}.json", data)
            logger.info("Fetched %s", name)

    return output_dir


async def _fetch_json(client: httpx.AsyncClient, url: str) -> Any:
    response = await client.get(url)
    response.raise_for_status()
    return response.json()


def _write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f)
