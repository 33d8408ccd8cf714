# trip_photos/config.py
"""Configuration management for the trip photo pipeline.

This module loads user-specific configuration from YAML files, using
platformdirs for cross-platform default locations. Configuration is optional;
sensible defaults are provided so the pipeline runs out of the box.

Design Principles:
    - Secrets stay local: the geocoding API key lives in config.yaml (gitignored)
      or in the GOOGLE_GEOCODING_API_KEY environment variable
    - Cross-platform: Uses platformdirs for XDG/macOS/Windows compatibility
    - Optional configuration: Works out-of-the-box with sensible defaults
    - Flexible: Supports partial configs that merge with defaults

Architecture:
    - config.yaml: User-specific settings (gitignored)
    - config.example.yaml: Public template for customization
    - platformdirs: Platform-appropriate default directories
    - Validation: Clear error messages for configuration issues
"""

import os
from pathlib import Path
from typing import Any

import yaml
from platformdirs import user_config_dir, user_log_dir

from trip_photos.errors import ConfigError

APP_NAME = "trip-photos"
API_KEY_ENV = "GOOGLE_GEOCODING_API_KEY"
DEFAULT_GEOCODE_ENDPOINT = "https://maps.googleapis.com/maps/api/geocode/json"
CACHE_POLICIES = ("unbounded", "lru", "ttl")


def get_default_config_path() -> Path:
    """Get platform-appropriate config file location.

    Returns default config file path using platformdirs:
    - Linux: ~/.config/trip-photos/config.yaml
    - macOS: ~/Library/Application Support/trip-photos/config.yaml
    - Windows: %APPDATA%/trip-photos/config.yaml

    Returns:
        Path: Platform-specific config file location.
    """
    config_dir = Path(user_config_dir(APP_NAME, appauthor=False))
    return config_dir / "config.yaml"


def get_default_paths() -> dict[str, Path]:
    """Get platform-appropriate default paths.

    Returns:
        Dict[str, Path]: Dictionary with keys:
            - input_directory: User's Pictures directory (home if missing)
            - log_directory: App log dir for CLI log files
    """
    pictures_dir = Path.home() / "Pictures"

    return {
        "input_directory": pictures_dir if pictures_dir.exists() else Path.home(),
        "log_directory": Path(user_log_dir(APP_NAME, appauthor=False)),
    }


def _merge_defaults(section: dict[str, Any], defaults: dict[str, Any]) -> dict[str, Any]:
    for key, value in defaults.items():
        if isinstance(value, dict):
            section[key] = _merge_defaults(section.get(key) or {}, value)
        else:
            section.setdefault(key, value)
    return section


def validate_config(config: dict[str, Any]) -> None:
    """Reject values the pipeline cannot run with.

    Raises:
        ConfigError: If a value is out of range or a cache policy is unknown.
    """
    processing = config["processing"]
    if int(processing["max_workers"]) < 1:
        raise ConfigError(
            f"processing.max_workers must be at least 1, got {processing['max_workers']}"
        )
    quality = float(processing["transcode_quality"])
    if not 0 < quality <= 1:
        raise ConfigError(
            f"processing.transcode_quality must be in (0, 1], got {quality}"
        )

    if int(config["grouping"]["location_precision"]) < 0:
        raise ConfigError("grouping.location_precision must not be negative")

    cache = config["geocoding"]["cache"]
    if cache["policy"] not in CACHE_POLICIES:
        raise ConfigError(
            f"Unknown geocoding.cache.policy '{cache['policy']}'.\n"
            f"Expected one of: {', '.join(CACHE_POLICIES)}"
        )
    if cache["policy"] == "lru" and int(cache["max_entries"]) < 1:
        raise ConfigError("geocoding.cache.max_entries must be at least 1")
    if cache["policy"] == "ttl" and float(cache["ttl_seconds"]) <= 0:
        raise ConfigError("geocoding.cache.ttl_seconds must be positive")


def load_config(config_path: str | None = None) -> dict[str, Any]:
    """Load configuration from YAML file with path expansion and validation.

    Args:
        config_path (Optional[str]): Path to YAML config file. If None, attempts:
            1. ./config.yaml (current directory)
            2. Platform-specific config directory via platformdirs
            If not found, uses built-in defaults.

    Returns:
        Dict[str, Any]: Configuration dictionary with structure:
            {
                'paths': {'input_directory': Path, 'log_directory': Path},
                'geocoding': {
                    'api_key': str | None,
                    'endpoint': str,
                    'timeout': float,
                    'language': str | None,
                    'cache': {'policy': str, 'max_entries': int, 'ttl_seconds': float}
                },
                'processing': {
                    'max_workers': int,
                    'transcode_quality': float,
                    'fetch_timeout': float,
                    'recursive': bool
                },
                'grouping': {'location_precision': int, 'date_format': str}
            }

    Raises:
        FileNotFoundError: If an explicit config_path does not exist.
        yaml.YAMLError: If config file is malformed.
        ConfigError: If a value fails validation.

    Example:
        >>> from trip_photos.config import load_config
        >>> config = load_config()
        >>> config['grouping']['location_precision']
        3

    Notes:
        Config precedence:
        1. Explicit config_path argument
        2. ./config.yaml (current directory)
        3. ~/.config/trip-photos/config.yaml (Linux/platformdirs)
        4. Built-in defaults (no file required)

        The GOOGLE_GEOCODING_API_KEY environment variable, when set, wins over
        geocoding.api_key from any file.
    """
    if config_path:
        config_file = Path(config_path).expanduser()
        if not config_file.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {config_path}\n"
                f"Specified config path does not exist."
            )
    else:
        local_config = Path("config.yaml")
        system_config = get_default_config_path()

        if local_config.exists():
            config_file = local_config
        elif system_config.exists():
            config_file = system_config
        else:
            config_file = None

    if config_file:
        try:
            with open(config_file) as f:
                config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise yaml.YAMLError(
                f"Error parsing config file {config_file}:\n{e}\n\n"
                f"Check YAML syntax - common issues:\n"
                f"- Incorrect indentation (use 2 spaces)\n"
                f"- Missing colons after keys\n"
                f"- Unquoted special characters"
            ) from e
    else:
        config = {}

    if "paths" not in config or config["paths"] is None:
        config["paths"] = {}

    # User config takes precedence; user-provided paths get ~ expanded
    for key, default_value in get_default_paths().items():
        if config["paths"].get(key) is None:
            config["paths"][key] = default_value
        else:
            config["paths"][key] = Path(config["paths"][key]).expanduser()

    _merge_defaults(
        config,
        {
            "geocoding": {
                "api_key": None,
                "endpoint": DEFAULT_GEOCODE_ENDPOINT,
                "timeout": 10.0,
                "language": None,
                "cache": {
                    "policy": "unbounded",
                    "max_entries": 1024,
                    "ttl_seconds": 86400.0,
                },
            },
            "processing": {
                "max_workers": 4,
                "transcode_quality": 0.8,
                "fetch_timeout": 30.0,
                "recursive": False,
            },
            "grouping": {
                "location_precision": 3,
                "date_format": "%Y-%m-%d",
            },
        },
    )

    env_key = os.environ.get(API_KEY_ENV)
    if env_key:
        config["geocoding"]["api_key"] = env_key

    validate_config(config)
    return config


def get_path(config: dict[str, Any], path_key: str) -> Path:
    """Get a specific path from config with validation.

    Args:
        config (Dict[str, Any]): Configuration dictionary from load_config().
        path_key (str): Key name in config['paths'] dict.

    Returns:
        Path: Expanded Path object for requested key.

    Raises:
        KeyError: If path_key doesn't exist in config['paths'].
    """
    if path_key not in config.get("paths", {}):
        available_keys = list(config.get("paths", {}).keys())
        raise KeyError(
            f"Path key '{path_key}' not found in config.\n"
            f"Available path keys: {available_keys}\n\n"
            f"Check your config.yaml has:\n"
            f"  paths:\n"
            f"    {path_key}: /your/path/here"
        )

    return config["paths"][path_key]
