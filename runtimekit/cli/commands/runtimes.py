"""
List command implementation.

Shows installed runtimes and the languages the catalog can provide for this
platform.
"""

import logging

from runtimekit.cli.utils import create_manager, print_error, safe_print
from runtimekit.core.exceptions import RuntimeKitError
from runtimekit.ecosystems import supported_languages

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the list command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    try:
        manager = create_manager(args)
    except RuntimeKitError as e:
        print_error(str(e))
        return 1

    installed = manager.list_installed()
    if installed:
        safe_print(f"Installed runtimes ({manager.runtimes_dir}):")
        for runtime in installed:
            safe_print(f"  {runtime.language:<8} {runtime.version:<10} {runtime.executable}")
    else:
        safe_print("No runtimes installed.")

    if args.installed:
        return 0

    safe_print(f"\nAvailable languages (platform: {manager.platform}):")
    adapters = set(supported_languages())
    for name in manager.registry.list_languages():
        definition = manager.registry.get_language(name)
        if manager.platform in definition.downloads:
            status = "download"
        else:
            status = "not available for this platform"
        healing = "" if name in adapters else ", no dependency repair"
        safe_print(f"  {name:<8} {definition.version:<10} {status}{healing}")
    return 0
