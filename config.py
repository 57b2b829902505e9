"""
Central configuration for the PO ingestion pipeline.

All paths, store names, and decoder settings are defined here.
Override via environment variables or by passing a Config instance directly.

Settings priority (highest wins):
  1. Environment variables
  2. config/pipeline_settings.json  (admin-editable, persisted)
  3. Hardcoded defaults in this file
"""
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

# Project root (directory containing this file)
PROJECT_ROOT = Path(__file__).parent

# Default data locations (relative to project root)
DEFAULT_OUTPUT_DIR = PROJECT_ROOT / "output"
DEFAULT_DB_PATH    = DEFAULT_OUTPUT_DIR / "erp.db"
DEFAULT_STORE_NAME = "erp-data-storage"

ACCEPTED_SUFFIXES = (".csv", ".xlsx", ".xls")


def _env_list(name: str, default: str) -> list[str]:
    return [part.strip() for part in os.getenv(name, default).split(",") if part.strip()]


@dataclass
class Config:
    # --- Persistence ---
    output_dir: Path = field(
        default_factory=lambda: Path(os.getenv("OUTPUT_DIR", str(DEFAULT_OUTPUT_DIR)))
    )
    db_path: Path = field(
        default_factory=lambda: Path(os.getenv("DB_PATH", str(DEFAULT_DB_PATH)))
    )
    store_name: str = field(
        default_factory=lambda: os.getenv("STORE_NAME", DEFAULT_STORE_NAME)
    )
    # One snapshot row per store_name; every mutation rewrites it in full.

    # --- Delimited text decoding ---
    csv_delimiter: str = field(
        default_factory=lambda: os.getenv("CSV_DELIMITER", ",")
    )
    csv_encodings: list[str] = field(
        default_factory=lambda: _env_list("CSV_ENCODINGS", "utf-8-sig,cp1252,latin-1")
    )

    # --- Upload feedback ---
    preview_rows: int = field(
        default_factory=lambda: int(os.getenv("PREVIEW_ROWS", "5"))
    )
    max_rejections_reported: int = 100   # Cap on RowRejection entries per result

    def __post_init__(self) -> None:
        """Overlay runtime-tunable settings from pipeline_settings.json if present."""
        if len(self.csv_delimiter) != 1:
            raise ValueError(f"csv_delimiter must be a single character, got {self.csv_delimiter!r}")

        config_dir = Path(os.getenv("CONFIG_DIR", str(PROJECT_ROOT / "config")))
        settings_file = config_dir / "pipeline_settings.json"
        if not settings_file.exists():
            return
        _type_map: dict[str, type] = {
            "store_name":              str,
            "preview_rows":            int,
            "max_rejections_reported": int,
        }
        try:
            with open(settings_file, encoding="utf-8") as f:
                overrides = {k: v for k, v in json.load(f).items() if not k.startswith("_")}
            for key, val in overrides.items():
                if key in _type_map and hasattr(self, key):
                    setattr(self, key, _type_map[key](val))
        except (OSError, ValueError, TypeError) as exc:
            logger.warning("Failed to load pipeline_settings.json: %s", exc)

    def ensure_output_dir(self) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
