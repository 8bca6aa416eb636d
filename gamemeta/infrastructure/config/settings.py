"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a dedicated
configuration file (~/.gamemeta/config.yaml). Keys use dotted names in YAML
(``igdb.client_id``) and upper-case names in the environment (``IGDB_CLIENT_ID``).
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from gamemeta.domain.exceptions import ConfigurationError
from gamemeta.domain.models.metadata import MetadataSource

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".gamemeta"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
DEFAULT_IMAGE_CACHE_DIR = DEFAULT_CONFIG_DIR / "images"
ENV_FILE_NAME = ".env"
DEFAULT_HTTP_TIMEOUT_SECONDS = 30.0
LOG_FORMATS = ("text", "json")

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False


def load_configuration(config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file
    3. YAML configuration file
    4. Default values passed to get_config

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
    """
    global _config, _loaded
    if _loaded:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. Load from YAML file (Lowest priority)
    if config_file.exists():
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(_flatten(yaml_config))
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a dictionary.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. Load from .env file (Medium priority)
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        # override=False: real environment variables take precedence
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug(".env file not found at or above current directory.")

    # 3. Environment Variables (Highest priority) are handled in get_config

    _loaded = True
    logger.debug("Configuration loading process completed.")


def _flatten(data: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Turns nested YAML mappings into dotted keys: {'igdb': {'secret': x}} -> {'igdb.secret': x}."""
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        full_key = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, prefix=f"{full_key}."))
        else:
            flat[full_key] = value
    return flat


def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by key.

    Priority:
    1. Test configuration (if in testing mode)
    2. Environment variable (key upper-cased, dots replaced by underscores)
    3. YAML config
    4. Default value

    Args:
        key: The configuration key
        default: Default value if the key is not found

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    env_key = key.upper().replace('.', '_')
    if env_key in os.environ:
        value = os.environ[env_key]
        if value.lower() == 'true':
            return True
        elif value.lower() == 'false':
            return False
        try:
            if '.' in value:
                return float(value)
            else:
                return int(value)
        except (ValueError, TypeError):
            return value

    if key in _config:
        return _config[key]

    logger.debug(f"Config key '{key}' not found in environment or loaded config. Returning default: {default}")
    return default


def set_config(key: str, value: Any) -> None:
    """Sets a configuration value in memory for the rest of the process.

    Args:
        key: Configuration key (e.g., 'metadata.source')
        value: Value to set
    """
    logger.debug(f"Setting config: {key} = {value}")
    _config[key] = value
    # Environment wins over _config in get_config, so mirror the value there
    os.environ[key.upper().replace('.', '_')] = str(value)


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    try:
        cwd = Path.cwd()
        for path in [cwd] + list(cwd.parents):
            env_path = path / ENV_FILE_NAME
            if env_path.is_file():
                return env_path
    except OSError as e:
        logger.warning(f"Error searching for .env file: {e}")
    return None


# --- Convenience Functions ---

def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ('true', '1', 'yes', 'on'):
            return True
        if lowered in ('false', '0', 'no', 'off', ''):
            return False
        logger.warning(f"Unexpected boolean value '{value}'. Defaulting to {default}.")
        return default
    return bool(value)


def get_metadata_source() -> MetadataSource:
    """The configured metadata source (defaults to None, i.e. disabled)."""
    value = get_config('metadata.source')
    try:
        return MetadataSource.parse(value)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e


def get_igdb_client_id() -> Optional[str]:
    value = get_config('igdb.client_id')
    return str(value) if value not in (None, '') else None


def get_igdb_secret() -> Optional[str]:
    value = get_config('igdb.secret')
    return str(value) if value not in (None, '') else None


def get_image_cache_dir() -> Path:
    return Path(str(get_config('images.cache_dir', DEFAULT_IMAGE_CACHE_DIR))).expanduser()


def get_http_timeout() -> float:
    value = get_config('http.timeout', DEFAULT_HTTP_TIMEOUT_SECONDS)
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid http.timeout '{value}'. Using {DEFAULT_HTTP_TIMEOUT_SECONDS}s.")
        return DEFAULT_HTTP_TIMEOUT_SECONDS


def get_debug_logging() -> bool:
    return _as_bool(get_config('logging.debug', False), False)


def get_log_format() -> str:
    """'text' or 'json'."""
    value = str(get_config('logging.format', 'text')).lower()
    if value not in LOG_FORMATS:
        logger.warning(f"Unknown logging.format '{value}'. Using 'text'.")
        return 'text'
    return value


def get_log_file() -> Optional[str]:
    value = get_config('logging.file')
    return str(value) if value else None


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values will override any existing configuration.

    Args:
        config_dict: Dictionary of configuration values to set
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")


def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")
