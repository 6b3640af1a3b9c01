"""Engine configuration service"""

import logging
import os
from pathlib import Path
from typing import Optional, Union

import yaml

from ..api.exceptions import ValidationError
from ..constants import DEFAULT_CONFIG_FILE, ENV_CONFIG_PATH
from ..models.config import EngineConfig, default_home

logger = logging.getLogger(__name__)


class ConfigService:
    """Locates, loads and saves the engine's YAML configuration

    Lookup order: explicit path, ``CONTEXT_DEPLOY_CONFIG``,
    ``~/.context-deploy/config.yaml``, built-in defaults.
    """

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        """Initialize config service

        Args:
            config_path: Explicit configuration file
        """
        self.explicit_path = Path(config_path).expanduser() if config_path else None
        self._config: Optional[EngineConfig] = None

    @property
    def config(self) -> EngineConfig:
        """Get current configuration (lazy load)"""
        if self._config is None:
            self.load_config()
        return self._config

    def find_config_file(self) -> Optional[Path]:
        """Resolve the configuration file to use

        Raises:
            ValidationError: If an explicitly named file does not exist
        """
        if self.explicit_path:
            if not self.explicit_path.is_file():
                raise ValidationError(f"Configuration file not found: {self.explicit_path}")
            return self.explicit_path

        env_path = os.environ.get(ENV_CONFIG_PATH)
        if env_path:
            path = Path(env_path).expanduser()
            if not path.is_file():
                raise ValidationError(f"Configuration file from {ENV_CONFIG_PATH} not found: {path}")
            return path

        default_path = default_home() / DEFAULT_CONFIG_FILE
        return default_path if default_path.is_file() else None

    def load_config(self) -> EngineConfig:
        """Load configuration from file, or defaults when none exists

        Returns:
            Loaded configuration

        Raises:
            ValidationError: If the file is not valid YAML or has unknown keys
        """
        path = self.find_config_file()
        if path is None:
            logger.debug("No configuration file found, using defaults")
            self._config = EngineConfig()
            return self._config

        with open(path, 'r', encoding='utf-8') as f:
            content = f.read()

        # Expand environment variables in the file
        content = os.path.expandvars(content)

        try:
            data = yaml.safe_load(content) or {}
        except yaml.YAMLError as e:
            raise ValidationError(f"Invalid YAML in {path}: {e}") from e

        if not isinstance(data, dict):
            raise ValidationError(f"Configuration in {path} must be a mapping")

        logger.debug("Loaded configuration from %s", path)
        self._config = EngineConfig.from_dict(data)
        return self._config

    def save_config(self, config: Optional[EngineConfig] = None, path: Optional[Path] = None) -> Path:
        """Save configuration to file

        Args:
            config: Configuration to save (uses current if not provided)
            path: Destination, defaults to the home configuration file

        Returns:
            Path written
        """
        if config:
            self._config = config

        if not self._config:
            raise ValueError("No configuration to save")

        path = path or self.explicit_path or self._config.home / DEFAULT_CONFIG_FILE
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w', encoding='utf-8') as f:
            yaml.dump(self._config.to_dict(), f, default_flow_style=False, sort_keys=False)

        logger.info("Configuration saved to %s", path)
        return path
