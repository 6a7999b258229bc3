"""
Configuration management for the NK2 Extractor package.
Handles loading, validating, and providing access to configuration settings.
"""
import configparser
import json
import logging
import os
from typing import Any, Dict, List, Optional

import yaml

from .codepage import DEFAULT_CODEPAGE, Codepage, get_codepage
from .errors import NK2Error

# Default configuration values
DEFAULT_CONFIG = {
    'nk2': {
        'ascii_codepage': 'windows-1252',
        'recover_items': '0',
    },
    'export': {
        'output_dir': 'export',
        'format': 'text',
        'dump_item_values': '1',
        'json_pretty_print': '1',
    },
    'logging': {
        'log_level': 'INFO',
        'log_file': '',  # Empty means console only
    },
}

YAML_EXTENSIONS = ('.yaml', '.yml')


class ConfigManager:
    """Manages configuration loading, validation, and access."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize the configuration manager.

        Args:
            config_path: Optional path to a configuration file (INI, YAML or JSON).
                        If not provided, uses default settings.
        """
        self.config = configparser.ConfigParser()
        self.logger = logging.getLogger(__name__)
        self.config_path = config_path

        # Set default values
        for section, options in DEFAULT_CONFIG.items():
            self.config[section] = options

        # Load from file if provided
        if config_path and os.path.exists(config_path):
            self.load_config(config_path)

    def load_config(self, config_path: str) -> bool:
        """Load configuration from a file.

        INI files are read directly; YAML and JSON files must hold a mapping
        of sections to option mappings.

        Args:
            config_path: Path to the configuration file.

        Returns:
            bool: True if the configuration was loaded successfully, False otherwise.
        """
        try:
            extension = os.path.splitext(config_path)[1].lower()
            if extension in YAML_EXTENSIONS or extension == '.json':
                with open(config_path, 'r', encoding='utf-8') as f:
                    if extension == '.json':
                        data = json.load(f)
                    else:
                        data = yaml.safe_load(f)
                self._read_mapping(data or {})
            else:
                if not self.config.read(config_path, encoding='utf-8'):
                    raise FileNotFoundError(config_path)
            self.config_path = config_path
            self.logger.info(f"Loaded configuration from {config_path}")
            return True
        except (OSError, ValueError, yaml.YAMLError, configparser.Error) as e:
            self.logger.error(f"Error loading configuration from {config_path}: {e}")
            return False

    def _read_mapping(self, data: Dict[str, Any]) -> None:
        if not isinstance(data, dict):
            raise ValueError("configuration must be a mapping of sections")
        sections = {}
        for section, options in data.items():
            if not isinstance(options, dict):
                raise ValueError(f"section {section!r} must be a mapping")
            sections[str(section)] = {
                str(option): self._to_option_string(value)
                for option, value in options.items()
            }
        self.config.read_dict(sections)

    @staticmethod
    def _to_option_string(value: Any) -> str:
        if isinstance(value, bool):
            return '1' if value else '0'
        if value is None:
            return ''
        if isinstance(value, (list, tuple)):
            return ','.join(str(item) for item in value)
        return str(value)

    def save_config(self, config_path: str) -> bool:
        """Save the current configuration to a file.

        Args:
            config_path: Path where to save the configuration.

        Returns:
            bool: True if the configuration was saved successfully, False otherwise.
        """
        try:
            os.makedirs(os.path.dirname(os.path.abspath(config_path)), exist_ok=True)
            with open(config_path, 'w', encoding='utf-8') as f:
                self.config.write(f)
            self.logger.info(f"Saved configuration to {config_path}")
            return True
        except OSError as e:
            self.logger.error(f"Error saving configuration to {config_path}: {e}")
            return False

    def get(self, section: str, option: str, fallback: Any = None) -> Any:
        """Get a configuration value.

        Args:
            section: The configuration section.
            option: The configuration option.
            fallback: Value to return if the section or option doesn't exist.

        Returns:
            The configuration value, or the fallback if not found.
        """
        try:
            return self.config.get(section, option, fallback=fallback)
        except (configparser.NoSectionError, configparser.NoOptionError):
            return fallback

    def set(self, section: str, option: str, value: Any) -> None:
        if not self.config.has_section(section):
            self.config.add_section(section)
        self.config.set(section, option, self._to_option_string(value))

    def get_boolean(self, section: str, option: str, fallback: bool = False) -> bool:
        """Get a boolean configuration value.

        Returns:
            The boolean value of the configuration option, or the fallback if not found.
        """
        try:
            return self.config.getboolean(section, option, fallback=fallback)
        except (ValueError, AttributeError):
            return fallback

    def get_int(self, section: str, option: str, fallback: int = 0) -> int:
        """Get an integer configuration value.

        Returns:
            The integer value of the configuration option, or the fallback if not found.
        """
        try:
            return self.config.getint(section, option, fallback=fallback)
        except (ValueError, AttributeError):
            return fallback

    def get_list(self, section: str, option: str, fallback: List[str] = None,
                 delimiter: str = ',') -> List[str]:
        """Get a list of strings from a configuration value.

        Args:
            section: The configuration section.
            option: The configuration option.
            fallback: Value to return if the section or option doesn't exist.
            delimiter: The delimiter used to split the string into a list.

        Returns:
            A list of strings from the configuration value, or the fallback if not found.
        """
        if fallback is None:
            fallback = []

        value = self.get(section, option)
        if value is None:
            return fallback

        return [item.strip() for item in value.split(delimiter) if item.strip()]

    def get_ascii_codepage(self) -> Codepage:
        """Get the codepage for 8-bit strings.

        An unsupported value is logged and Windows-1252 is used instead.
        """
        value = self.get('nk2', 'ascii_codepage', 'windows-1252')
        try:
            return get_codepage(int(value) if str(value).isdigit() else value)
        except NK2Error as e:
            self.logger.warning(
                f"Unsupported ascii_codepage {value!r}, using {DEFAULT_CODEPAGE.name}: {e}"
            )
            return DEFAULT_CODEPAGE

    def get_output_dir(self) -> str:
        """Get the export directory, creating it if it doesn't exist.

        Returns:
            The absolute path to the output directory.
        """
        output_dir = self.get('export', 'output_dir', 'export')
        os.makedirs(output_dir, exist_ok=True)
        return os.path.abspath(output_dir)

    def get_log_file(self) -> Optional[str]:
        return self.get('logging', 'log_file', '') or None


# Default configuration instance
_config: Optional[ConfigManager] = None


def get_config(config_path: Optional[str] = None) -> ConfigManager:
    """Get the shared configuration instance.

    The instance is created on first use; a path given on that first call
    is loaded into it.

    Returns:
        The shared ConfigManager instance.
    """
    global _config
    if _config is None:
        _config = ConfigManager(config_path)
    return _config


def load_config(config_path: str = None) -> ConfigManager:
    """Load configuration from a file and return a ConfigManager instance.

    Args:
        config_path: Path to the configuration file.

    Returns:
        A ConfigManager instance with the loaded configuration.
    """
    return ConfigManager(config_path)
