"""
Directory structure management for RuntimeKit.

Directory Structure (~/.runtimekit/ or %USERPROFILE%\\.runtimekit\\):
    - cache/          : Downloaded archives, named after the URL's last segment
    - runtimes/       : Installed toolchains, one '<language>-<version>' each
    - lock/           : Cross-process install locks
    - config.yaml     : Optional user configuration

The base directory can be relocated with the RUNTIMEKIT_HOME environment
variable or the ``base_dir`` configuration key.
"""

import os
from pathlib import Path
from typing import Dict, Optional

from runtimekit.core.exceptions import ConfigError

HOME_ENV_VAR = "RUNTIMEKIT_HOME"


def get_base_dir() -> Path:
    """
    Get the base directory path.

    Returns:
        Path: RUNTIMEKIT_HOME if set, otherwise
            - Windows: %USERPROFILE%\\.runtimekit
            - Linux/macOS: ~/.runtimekit

    Raises:
        ConfigError: If the home directory cannot be determined on Windows
    """
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()

    if os.name == "nt":
        user_profile = os.environ.get("USERPROFILE")
        if not user_profile:
            raise ConfigError(
                "USERPROFILE environment variable is not set. "
                "Cannot determine RuntimeKit base directory."
            )
        return Path(user_profile) / ".runtimekit"
    return Path.home() / ".runtimekit"


def ensure_base_structure(base_dir: Optional[Path] = None) -> Dict[str, Path]:
    """
    Create the base directory layout if missing.

    Args:
        base_dir: Base directory (default: ``get_base_dir()``)

    Returns:
        Mapping of 'base', 'cache', 'runtimes', 'lock' to their paths
    """
    base = Path(base_dir) if base_dir is not None else get_base_dir()
    layout = {
        "base": base,
        "cache": base / "cache",
        "runtimes": base / "runtimes",
        "lock": base / "lock",
    }
    for path in layout.values():
        path.mkdir(parents=True, exist_ok=True)
    return layout


__all__ = ["HOME_ENV_VAR", "get_base_dir", "ensure_base_structure"]
