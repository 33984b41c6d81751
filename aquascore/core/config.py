"""core.config
---------------

Configuration loader/manager for AquaScore. Provides a central API for
loading settings from YAML/TOML/JSON files and retrieving them via
:py:meth:`ConfigManager.get`.
"""

import os
import json
from pathlib import Path

import yaml
import toml


class ConfigValidationError(Exception):
    """Raised when configuration loading or validation fails."""


RESOURCES_DIR = Path(__file__).resolve().parent.parent / "resources"


class ConfigManager:
    """
    Loads and manages configuration from file or defaults.
    Provides a central entry point for engine and store options.
    """

    SUPPORTED_TABLE_FORMATS: tuple[str, ...] = (".csv", ".parquet")
    FORMULAS: tuple[str, ...] = ("threshold", "legacy")

    DEFAULT_DB_PATH: str = "aquascore_samples.json"
    DEFAULT_THRESHOLDS_PATH: str = str(RESOURCES_DIR / "thresholds.yaml")
    MINIMAL_THRESHOLDS_PATH: str = str(RESOURCES_DIR / "thresholds_minimal.yaml")
    DEFAULT_FORMULA: str = "threshold"
    DEFAULT_PPB_DIVISOR: float = 1000.0

    def __init__(self, config_path=None):
        self.config = {
            "db_path": self.DEFAULT_DB_PATH,
            "thresholds_path": self.DEFAULT_THRESHOLDS_PATH,
            "formula": self.DEFAULT_FORMULA,
            "strict": False,
            "ppb_divisor": self.DEFAULT_PPB_DIVISOR,
        }
        self.supported_table_formats = list(self.SUPPORTED_TABLE_FORMATS)
        if config_path:
            self.load(config_path)

    def load(self, path: str) -> None:
        """
        Load configuration from a file (YAML, TOML, or JSON).
        Overwrites existing keys in self.config.
        """
        ext = os.path.splitext(path)[1].lower()
        try:
            with open(path, "r", encoding="utf-8") as f:
                if ext in (".yaml", ".yml"):
                    data = yaml.safe_load(f)
                elif ext == ".toml":
                    data = toml.load(f)
                elif ext == ".json":
                    data = json.load(f)
                else:
                    raise ConfigValidationError(f"Unsupported config format: {ext}")
        except ConfigValidationError:
            raise
        except Exception as e:
            raise ConfigValidationError(
                f"Failed to load config from {path}: {e}"
            ) from e
        if not isinstance(data, dict):
            raise ConfigValidationError(f"Config file {path} did not produce a dict")
        formula = data.get("formula")
        if formula is not None and formula not in self.FORMULAS:
            raise ConfigValidationError(
                f"Unknown formula '{formula}'. Choose from: {list(self.FORMULAS)}"
            )
        self.config.update(data)

    def get(self, key, default=None):
        """
        Retrieve a configuration value by key, or return `default` if not present.
        Default attributes like `supported_table_formats` are looked up too.

        Args:
            key (str): The configuration parameter to look up.
            default:  The value to return if `key` is not found.
        """
        if key in self.config:
            return self.config.get(key, default)
        elif hasattr(self, key):
            return getattr(self, key)
        else:
            return default

    def merge(self, other: "ConfigManager") -> None:
        """
        Merge another ConfigManager into this one.
        Values in other.config override this.config.
        """
        if not isinstance(other, ConfigManager):
            raise TypeError("Can only merge ConfigManager instances")
        self.config.update(other.config)
        self.supported_table_formats = list(
            dict.fromkeys(self.supported_table_formats + other.supported_table_formats)
        )

    def get_db_path(self) -> str:
        """Return the sample store path from config."""
        return str(self.get("db_path", self.DEFAULT_DB_PATH))

    def get_thresholds_path(self) -> str:
        """Return the threshold table YAML path from config."""
        return str(self.get("thresholds_path", self.DEFAULT_THRESHOLDS_PATH))
