"""Configuration management with lazy validation."""

from functools import cached_property
from pathlib import Path

from blocksmith.models.config import Config, EditorConfig, PersistenceConfig
from blocksmith.utils.logging import get_logger


logger = get_logger(__name__)


class ConfigManager:
    """
    Configuration manager with lazy validation.

    A missing config file is not an error: every setting has a default.

    Example:
        >>> config_mgr = ConfigManager.load_default()
        >>> config_mgr.editor.indent_size
        2
    """

    def __init__(self, config: Config):
        """
        Initialize config manager with loaded config.

        Args:
            config: Loaded and validated Config instance
        """
        self._config = config

    @property
    def config(self) -> Config:
        return self._config

    @classmethod
    def load_default(cls) -> "ConfigManager":
        """
        Load configuration from ~/.config/blocksmith/config.yaml, or defaults.

        Raises:
            ValueError: If the file exists but is invalid
        """
        path = Path.home() / ".config" / "blocksmith" / "config.yaml"
        if not path.exists():
            logger.info("config_not_found_using_defaults", path=str(path))
            return cls(Config())
        return cls.load_from_path(path)

    @classmethod
    def load_from_path(cls, path: Path) -> "ConfigManager":
        """
        Load configuration from specific path.

        Args:
            path: Path to config.yaml file

        Returns:
            ConfigManager instance with loaded config

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        logger.info("config_loading", path=str(path))

        try:
            config = Config.load(path)
            logger.info("config_loaded", path=str(path))
            return cls(config)

        except FileNotFoundError as e:
            logger.error("config_not_found", path=str(path), error=str(e))
            raise

        except Exception as e:
            logger.error("config_validation_error", path=str(path), error=str(e))
            raise ValueError(f"Configuration validation failed: {e}") from e

    @cached_property
    def editor(self) -> EditorConfig:
        return self._config.editor

    @cached_property
    def persistence(self) -> PersistenceConfig:
        return self._config.persistence
