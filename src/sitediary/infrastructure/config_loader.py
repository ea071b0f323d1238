"""
Configuration loader module.

Loads the JSON settings file into the AppSettings domain model:
- config/sitediary.json: store path, sync endpoint/timeouts, export and
  document layout settings

A missing default file means "use defaults"; a file the user named
explicitly must exist.
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from sitediary.domain.errors import ConfigError
from sitediary.domain.settings import AppSettings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config") / "sitediary.json"


class ConfigLoader:
    """
    Load and validate the settings file.

    Usage:
        settings = ConfigLoader().load()
        settings = ConfigLoader("site/config.json").load()
    """

    def __init__(self, config_path: str | Path | None = None):
        """
        Initialize config loader.

        Args:
            config_path: Settings file. None uses config/sitediary.json
                         and tolerates its absence.
        """
        self.explicit = config_path is not None
        self.config_path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
        logger.debug("ConfigLoader initialized with: %s", self.config_path)

    def load(self) -> AppSettings:
        """
        Load settings.

        Returns:
            Validated AppSettings

        Raises:
            ConfigError: If the file is missing (when named explicitly),
                         unreadable, not valid JSON, or fails validation
        """
        data = self._load_json_file(self.config_path, required=self.explicit)
        if data is None:
            logger.debug("No settings file, using defaults")
            return AppSettings()

        try:
            settings = AppSettings.model_validate(data)
        except ValidationError as e:
            raise ConfigError(
                f"Invalid settings in {self.config_path}:\n{e}"
            ) from e

        logger.info("Settings loaded from %s", self.config_path)
        return settings

    def save(self, settings: AppSettings) -> Path:
        """Write settings as indented JSON, creating the directory if needed."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        self.config_path.write_text(
            json.dumps(settings.model_dump(mode="json"), indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
        logger.info("Settings written to %s", self.config_path)
        return self.config_path

    def _load_json_file(self, filepath: Path, required: bool) -> dict[str, Any] | None:
        """
        Load and parse a JSON file with clear error messages.

        Returns:
            Parsed JSON object, or None if an optional file is missing
        """
        if not filepath.exists():
            if required:
                raise ConfigError(f"Configuration file not found: {filepath}")
            return None

        try:
            content = filepath.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot read config file {filepath}: {e}") from e

        if not content.strip():
            raise ConfigError(
                f"Configuration file is empty: {filepath}\n"
                f"Hint: use {{}} for all defaults"
            )

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ConfigError(
                f"Invalid JSON in config file: {filepath}\n"
                f"Error at line {e.lineno}, column {e.colno}: {e.msg}"
            ) from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {filepath} must contain a JSON object")
        return data
