"""
Ensure command implementation.

Installs a language runtime (if missing) and prints where it lives.
"""

import logging

from runtimekit.cli.utils import create_manager, print_error, safe_print
from runtimekit.core.exceptions import RuntimeKitError

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the ensure command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    try:
        manager = create_manager(args)
        runtime = manager.ensure_runtime(args.language)
    except RuntimeKitError as e:
        print_error(str(e))
        return 1

    safe_print(f"{runtime.language} {runtime.version}: {runtime.executable}")
    return 0
