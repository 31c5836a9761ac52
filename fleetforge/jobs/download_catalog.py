"""
Download the fleet content catalog.

Run this job to fetch the latest ships, upgrades, squadrons, objectives,
alias table, errata keys and card updates from the content API.
"""

import argparse
import asyncio
import logging
from pathlib import Path

from fleetforge.config import settings
from fleetforge.services.content_catalog import CatalogFetchError, download_catalog

logger = logging.getLogger(__name__)


async def run_download(output_dir: Path | None = None, packs: list[str] | None = None) -> Path:
    """Download the catalog, including any optional content packs."""
    logger.info("Downloading fleet catalog from %s...", settings.catalog_api_url)

    try:
        path = await download_catalog(output_dir, packs)
        logger.info("Downloaded catalog to %s", path)
    except CatalogFetchError as e:
        logger.error("Failed to download catalog: %s", e)
        raise
    return path


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Download the fleet content catalog.")
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help=f"Directory for the catalog documents (default: {settings.catalog_dir})",
    )
    parser.add_argument(
        "--pack",
        action="append",
        dest="packs",
        default=None,
        help="Optional content pack to download; repeat for several (e.g. --pack legacy)",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    args = build_parser().parse_args(argv)
    asyncio.run(run_download(args.output, args.packs))


if __name__ == "__main__":
    main()
