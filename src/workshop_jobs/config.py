"""Application configuration — loads .env, then overrides from settings.json."""

import json
import os
from pathlib import Path

from dotenv import load_dotenv

# Find the project root (where .env lives)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# Runtime settings file for in-app configuration
_SETTINGS_FILE = _PROJECT_ROOT / "data" / "settings.json"


def _load_settings() -> dict:
    """Load saved runtime settings from JSON file."""
    if _SETTINGS_FILE.exists():
        try:
            return json.loads(_SETTINGS_FILE.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            pass
    return {}


def _save_settings(settings: dict):
    """Persist runtime settings to JSON file."""
    _SETTINGS_FILE.parent.mkdir(parents=True, exist_ok=True)
    _SETTINGS_FILE.write_text(
        json.dumps(settings, indent=2), encoding="utf-8"
    )


def _as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


# Load saved settings once at import time
_runtime = _load_settings()


class Config:
    """Central configuration: .env defaults, settings.json overrides."""

    # Paths
    PROJECT_ROOT: Path = _PROJECT_ROOT
    DATABASE_PATH: Path = Path(
        os.getenv("DATABASE_PATH", str(_PROJECT_ROOT / "data" / "workshop.db"))
    )
    STORAGE_PATH: Path = Path(
        os.getenv("STORAGE_PATH", str(_PROJECT_ROOT / "data" / "storage"))
    )
    PHOTO_BUCKET: str = os.getenv("PHOTO_BUCKET", "job-photos")

    # Links encoded into QR codes and reports
    PUBLIC_BASE_URL: str = _runtime.get(
        "public_base_url",
        os.getenv("PUBLIC_BASE_URL", "http://localhost:5173"),
    )

    # Branding
    APP_TITLE: str = _runtime.get(
        "app_title",
        os.getenv("APP_TITLE", "Werkstatt Auftragsmanager"),
    )
    COMPANY_NAME: str = _runtime.get(
        "company_name",
        os.getenv("COMPANY_NAME", "Pro Automobile"),
    )

    # Closing rules (the simple variant of the workshop runs without
    # an odometer requirement)
    REQUIRE_ODOMETER_TO_CLOSE: bool = _as_bool(_runtime.get(
        "require_odometer_to_close",
        os.getenv("REQUIRE_ODOMETER_TO_CLOSE", "true"),
    ))

    # Elapsed-time refresh for the running entry
    TICK_INTERVAL_MS: int = int(os.getenv("TICK_INTERVAL_MS", "1000"))

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def update_branding(cls, app_title: str, company_name: str):
        """Update title and company name at runtime and persist to disk."""
        cls.APP_TITLE = app_title
        cls.COMPANY_NAME = company_name

        settings = _load_settings()
        settings["app_title"] = app_title
        settings["company_name"] = company_name
        _save_settings(settings)

    @classmethod
    def update_close_rules(cls, require_odometer: bool):
        """Toggle the odometer requirement for closing jobs and persist."""
        cls.REQUIRE_ODOMETER_TO_CLOSE = bool(require_odometer)

        settings = _load_settings()
        settings["require_odometer_to_close"] = bool(require_odometer)
        _save_settings(settings)

    @classmethod
    def update_public_base_url(cls, url: str):
        """Update the base URL used for job links and persist."""
        cls.PUBLIC_BASE_URL = url.rstrip("/")

        settings = _load_settings()
        settings["public_base_url"] = cls.PUBLIC_BASE_URL
        _save_settings(settings)
