"""
User configuration for RuntimeKit.

Configuration is an optional YAML file (default: ``<base>/config.yaml``):

    base_dir: ~/.runtimekit
    catalog: ~/my-languages.yaml   # file-backed language catalog
    download_timeout: 30
    download_retries: 1
    verify_timeout: 30
    install_timeout: 600
    lock_timeout: 600
"""

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from runtimekit.core.directory import get_base_dir
from runtimekit.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.yaml"


@dataclass
class RuntimeKitConfig:
    """Settings consumed by the runtime manager and executor."""

    base_dir: Path
    catalog: Optional[Path] = None
    download_timeout: int = 30
    download_retries: int = 1
    verify_timeout: int = 30
    install_timeout: int = 600
    lock_timeout: int = 600

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_dir: Optional[Path] = None) -> "RuntimeKitConfig":
        """
        Build a config from parsed YAML.

        Args:
            data: Mapping loaded from the config file
            base_dir: Fallback base directory when ``data`` has none

        Raises:
            ConfigError: If a value has the wrong type
        """
        known = {f.name for f in fields(cls)}
        for key in data:
            if key not in known:
                logger.warning(f"Ignoring unknown configuration key: {key}")

        values: Dict[str, Any] = {}
        base = data.get("base_dir") or base_dir or get_base_dir()
        values["base_dir"] = Path(str(base)).expanduser()

        if data.get("catalog"):
            values["catalog"] = Path(str(data["catalog"])).expanduser()

        for key in (
            "download_timeout",
            "download_retries",
            "verify_timeout",
            "install_timeout",
            "lock_timeout",
        ):
            if key in data:
                value = data[key]
                if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                    raise ConfigError(
                        f"Configuration key '{key}' must be a positive integer, got {value!r}"
                    )
                values[key] = value

        return cls(**values)


def load_config(
    config_file: Optional[Path] = None, base_dir: Optional[Path] = None
) -> RuntimeKitConfig:
    """
    Load configuration, falling back to defaults when no file exists.

    Args:
        config_file: Explicit config path; must exist when given
        base_dir: Base directory override (e.g. from the command line)

    Returns:
        RuntimeKitConfig

    Raises:
        ConfigError: If the file is missing (explicit path), unreadable or invalid
    """
    explicit = config_file is not None
    if config_file is None:
        config_file = (base_dir or get_base_dir()) / CONFIG_FILENAME

    config_file = Path(config_file)
    if not config_file.exists():
        if explicit:
            raise ConfigError(f"Configuration file not found: {config_file}")
        logger.debug(f"Config file not found (optional): {config_file}")
        return RuntimeKitConfig.from_dict({}, base_dir=base_dir)

    logger.debug(f"Loading configuration from {config_file}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_file}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read {config_file}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Configuration must be a mapping: {config_file}")

    if base_dir is not None:
        data = {**data, "base_dir": base_dir}
    return RuntimeKitConfig.from_dict(data, base_dir=base_dir)


__all__ = ["CONFIG_FILENAME", "RuntimeKitConfig", "load_config"]
