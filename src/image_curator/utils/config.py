"""Configuration management for image-curator."""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from image_curator.core.coordinator import CuratorSettings

logger = logging.getLogger(__name__)


class Config:
    """Manages user configuration and settings."""

    DEFAULT_CONFIG_DIR = Path.home() / ".image-curator"
    DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.json"

    DEFAULT_SETTINGS = {
        "similarity_threshold": 5,  # Hamming distance for perceptual hashing
        "contract_address": "0xD127d434266eBF4CB4F861071ebA50A799A23d9d",
        "signatures_file": "master-hashes.json",
        "image_cache_dir": "minted-images",
        "ipfs_gateway": "https://ipfs.io/ipfs/",
        "request_timeout": 30,
        "workers": 1,
        "alchemy": {"network": "base-mainnet", "page_size": 100},
        "gist": {"filename": "censored-list.json"},
    }

    # Secrets never live in the config file
    SECRET_ENV_VARS = ("ALCHEMY_API_KEY", "GIST_ID", "GITHUB_TOKEN")

    def __init__(self, config_file: Optional[Path] = None, load_env: bool = True):
        """
        Initialize configuration.

        Args:
            config_file: Path to config file (default: ~/.image-curator/config.json)
            load_env: Load secrets from a ``.env`` file in the working directory
        """
        self.config_file = config_file or self.DEFAULT_CONFIG_FILE
        self.settings: Dict[str, Any] = {}
        if load_env:
            load_dotenv()
        self.load()

    def load(self) -> None:
        """Load configuration from file or create with defaults."""
        self.settings = copy.deepcopy(self.DEFAULT_SETTINGS)
        if self.config_file.exists():
            try:
                with open(self.config_file, "r", encoding="utf-8") as f:
                    _merge(self.settings, json.load(f))
                logger.debug(f"Loaded configuration from {self.config_file}")
            except json.JSONDecodeError as e:
                logger.warning(f"Invalid config file: {e}. Using defaults.")
        else:
            logger.info("No config file found. Creating with defaults.")
            self.save()

    def save(self) -> None:
        """Save configuration to file."""
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, "w", encoding="utf-8") as f:
            json.dump(self.settings, f, indent=2)
        logger.debug(f"Saved configuration to {self.config_file}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: Configuration key (supports dot notation, e.g., 'gist.filename')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        value = self.settings
        for k in key.split("."):
            if not isinstance(value, dict):
                return default
            value = value.get(k)
            if value is None:
                return default
        return value

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value.

        Args:
            key: Configuration key (supports dot notation)
            value: Value to set
        """
        keys = key.split(".")
        target = self.settings
        for k in keys[:-1]:
            if k not in target or not isinstance(target[k], dict):
                target[k] = {}
            target = target[k]
        target[keys[-1]] = value
        self.save()

    def secret(self, name: str) -> Optional[str]:
        """Read a secret (API key, token) from the environment."""
        if name not in self.SECRET_ENV_VARS:
            raise KeyError(f"Unknown secret: {name}")
        return os.environ.get(name) or None

    def to_settings(self, **overrides: Any) -> CuratorSettings:
        """
        Build the run settings handed to the coordinator.

        Args:
            **overrides: Values that take precedence over the file (CLI flags)

        Returns:
            Frozen CuratorSettings
        """
        values = {
            "threshold": int(self.get("similarity_threshold", 5)),
            "workers": int(self.get("workers", 1)),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return CuratorSettings(**values)


def _merge(base: Dict[str, Any], update: Dict[str, Any]) -> None:
    for key, value in update.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
