"""Configuration management for epubpack.

This module handles loading, saving, and managing user configuration settings.
The configuration is stored in ~/.epubpack/config.json. Directory settings are
relative to the project root (the folder the site generator runs in).
"""

import os
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, List, Optional, Union

# Set up logging
logger = logging.getLogger(__name__)

# Default configuration values
DEFAULT_CONFIG = {
    "site_output_directory": "_site",
    "staging_directory": "_site/epub",
    "output_directory": "_output",
    "template_directory": "assets/epub",
    "base_configs": ["_config.yml", "_configs/_config.epub.yml"],
    "generator_command": ["bundle", "exec", "jekyll", "build"],
    "validator_command": "epubcheck",
    "validator_jar": "epubcheck.jar",
    "halt_on_generator_error": False,
    "open_output_folder": True,
    "show_progress": True,
}

# Constants
CONFIG_DIR = Path.home() / ".epubpack"
CONFIG_FILE = CONFIG_DIR / "config.json"


def ensure_config_dir(config_file: Path = CONFIG_FILE) -> None:
    """Create the configuration directory if it doesn't exist.

    Sets appropriate permissions (700) for security.

    Args:
        config_file: Config file whose parent directory is created.

    Raises:
        OSError: If directory creation fails or permissions can't be set.
    """
    try:
        config_file.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        logger.debug(f"Config directory ensured at {config_file.parent}")
    except OSError as e:
        logger.error(f"Failed to create config directory: {e}")
        raise


def load_config(config_file: Path = CONFIG_FILE) -> Dict[str, Any]:
    """Load configuration from file or return default config.

    Args:
        config_file: Path of the JSON configuration file.

    Returns:
        Dict[str, Any]: The loaded configuration or default values.
    """
    ensure_config_dir(config_file)

    if not config_file.exists():
        logger.info("Config file doesn't exist. Creating with defaults.")
        save_config(DEFAULT_CONFIG, config_file)
        return dict(DEFAULT_CONFIG)

    try:
        with open(config_file, "r") as f:
            config = json.load(f)

        # Update with any missing default values
        updated = False
        for key, value in DEFAULT_CONFIG.items():
            if key not in config:
                config[key] = value
                updated = True

        if updated:
            save_config(config, config_file)

        logger.debug("Config loaded successfully")
        return config
    except (json.JSONDecodeError, OSError) as e:
        logger.error(f"Error loading config file: {e}")
        logger.info("Using default configuration")
        return dict(DEFAULT_CONFIG)


def save_config(config: Dict[str, Any], config_file: Path = CONFIG_FILE) -> bool:
    """Save configuration to file.

    Args:
        config: The configuration dictionary to save.
        config_file: Path of the JSON configuration file.

    Returns:
        bool: True if saving was successful, False otherwise.
    """
    ensure_config_dir(config_file)

    try:
        with open(config_file, "w") as f:
            json.dump(config, f, indent=2)
        os.chmod(config_file, 0o600)  # Secure file permissions
        logger.debug("Config saved successfully")
        return True
    except OSError as e:
        logger.error(f"Error saving config file: {e}")
        return False


@dataclass(frozen=True)
class ProjectPaths:
    """Resolved filesystem locations for one project."""

    project_root: Path
    site_output: Path
    staging_root: Path
    output_dir: Path
    template_dir: Path

    def site_tree(self, book_folder: str) -> Path:
        """Root of the generated HTML for a book, e.g. ``_site/book``."""
        return self.site_output / book_folder


class Config:
    """Configuration manager class for epubpack."""

    def __init__(self, config_file: Optional[Union[str, Path]] = None,
                 overrides: Optional[Dict[str, Any]] = None):
        """Initialize the configuration manager.

        Args:
            config_file: Alternative config file location.
            overrides: Values that take precedence over the stored ones
                for this session only (not saved).
        """
        self.config_file = Path(config_file) if config_file else CONFIG_FILE
        self._config = load_config(self.config_file)
        self._overrides = dict(overrides or {})

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value.

        Args:
            key: The configuration key to retrieve.
            default: Default value if key doesn't exist.

        Returns:
            The value for the specified key or default if not found.
        """
        if key in self._overrides:
            return self._overrides[key]
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> bool:
        """Set a configuration value.

        Args:
            key: The configuration key to set.
            value: The value to store.

        Returns:
            bool: True if setting was successful, False otherwise.
        """
        self._config[key] = value
        return self.save()

    def override(self, key: str, value: Any) -> None:
        """Override a value for this session without saving it."""
        self._overrides[key] = value

    def save(self) -> bool:
        """Save the current configuration to disk.

        Returns:
            bool: True if saving was successful, False otherwise.
        """
        return save_config(self._config, self.config_file)

    def generator_config_paths(self, extra: List[str]) -> List[str]:
        """Base configs followed by user-supplied extras, in override order."""
        return list(self.get("base_configs", [])) + list(extra)

    def paths(self, project_root: Union[str, Path, None] = None) -> ProjectPaths:
        """Resolve the configured directories against a project root.

        Args:
            project_root: Project folder; defaults to the current directory.

        Returns:
            ProjectPaths: Absolute locations used by the pipeline.
        """
        root = Path(project_root or Path.cwd()).resolve()
        return ProjectPaths(
            project_root=root,
            site_output=root / self.get("site_output_directory"),
            staging_root=root / self.get("staging_directory"),
            output_dir=root / self.get("output_directory"),
            template_dir=root / self.get("template_directory"),
        )
