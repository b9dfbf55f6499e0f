"""
Shared utilities for CLI commands.
"""

import sys
from typing import Optional

from runtimekit.core.config import RuntimeKitConfig, load_config
from runtimekit.runtime.manager import RuntimeManager


def load_cli_config(args) -> RuntimeKitConfig:
    """
    Load configuration honouring the global ``--config`` and ``--home`` flags.

    Raises:
        ConfigError: If the configuration is missing or invalid
    """
    return load_config(
        config_file=getattr(args, "config", None),
        base_dir=getattr(args, "home", None),
    )


def create_manager(args) -> RuntimeManager:
    """Build a RuntimeManager from the CLI configuration."""
    return RuntimeManager.from_config(load_cli_config(args))


def print_error(message: str, details: Optional[str] = None):
    """
    Print error message to stderr in consistent format.

    Args:
        message: Main error message
        details: Optional additional details (e.g. the failing program's output)
    """
    print(f"ERROR: {message}", file=sys.stderr)
    if details:
        print(details.rstrip("\n"), file=sys.stderr)


def safe_print(message: str, file=None):
    """
    Print message, degrading characters the console encoding cannot show.

    Args:
        message: Message to print
        file: Output file (default: stdout)
    """
    try:
        print(message, file=file)
    except UnicodeEncodeError:
        stream = file or sys.stdout
        encoding = getattr(stream, "encoding", None) or "ascii"
        print(message.encode(encoding, errors="replace").decode(encoding), file=file)
