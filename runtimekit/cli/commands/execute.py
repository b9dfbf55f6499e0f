"""
Run and exec command implementation.

``runtimekit run python app.py --flag`` runs a file; ``runtimekit exec python
'print(1)'`` runs inline code. Both install missing packages and retry.
"""

import logging

from runtimekit.cli.utils import load_cli_config, print_error, safe_print
from runtimekit.core.exceptions import ExecutionError, RuntimeKitError
from runtimekit.executor.healing import Command, SelfHealingExecutor
from runtimekit.runtime.manager import RuntimeManager

logger = logging.getLogger(__name__)


def build_command(args) -> Command:
    """Translate parsed arguments into the shell's Command value."""
    if args.command == "exec":
        return Command(f"@{args.language}", tuple(args.code))
    return Command(args.language, tuple(args.args))


def run(args) -> int:
    """
    Run the run/exec command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, 1 for any classified failure)
    """
    command = build_command(args)

    try:
        config = load_cli_config(args)
        executor = SelfHealingExecutor(
            RuntimeManager.from_config(config),
            timeout=args.timeout,
            install_timeout=config.install_timeout,
        )
        outcome = executor.execute(args.language, command)
    except ExecutionError as e:
        print_error(str(e), e.output)
        return 1
    except RuntimeKitError as e:
        print_error(str(e))
        return 1

    if outcome.output:
        safe_print(outcome.output.rstrip("\n"))
    return 0
