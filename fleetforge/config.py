from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "FleetForge"
    debug: bool = False

    catalog_dir: Path = Path(__file__).parent.parent / "data"

    catalog_api_url: str = "https://api.fleetforge.example"

    # Dialect used when the caller does not name one
    default_import_format: str = "kingston"

    # Optional content packs loaded alongside the regular catalog
    # (e.g. ["legacy", "arc"])
    enabled_content_packs: list[str] = []

    # When True, the editing session refuses to add an entity whose
    # unique names are already in use elsewhere in the fleet
    enforce_unique_names: bool = True

    http_timeout_seconds: float = 30.0


settings = Settings()


# =============================================================================
# IMPORT SAFETY LIMITS
# =============================================================================

# Maximum raw import text length (a large fleet list is a few kilobytes)
MAX_IMPORT_TEXT_LENGTH = 100_000
