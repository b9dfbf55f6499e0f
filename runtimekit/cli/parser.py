"""
RuntimeKit CLI argument parser.

This module implements the command-line interface for RuntimeKit using argparse.
"""

import argparse
import importlib
import logging
import sys
from pathlib import Path
from typing import List, Optional

from runtimekit import __version__

logger = logging.getLogger(__name__)


class CLI:
    """RuntimeKit command-line interface."""

    def __init__(self):
        """Initialize CLI with argument parser."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="runtimekit",
            description="RuntimeKit - run code in any language, installing what it needs",
            epilog='Use "runtimekit COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"RuntimeKit {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--config",
            type=Path,
            metavar="PATH",
            help="Path to configuration file (default: <home>/config.yaml)",
        )
        parser.add_argument(
            "--home",
            type=Path,
            metavar="PATH",
            help="Base directory for caches and runtimes (default: ~/.runtimekit)",
        )

        # Subcommands
        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_run_command(subparsers)
        self._add_exec_command(subparsers)
        self._add_ensure_command(subparsers)
        self._add_list_command(subparsers)

        return parser

    def _add_run_command(self, subparsers):
        """Add 'run' subcommand."""
        parser = subparsers.add_parser(
            "run",
            help="Run a source file",
            description="Run a source file, installing missing packages and retrying",
        )
        self._add_timeout_option(parser)
        parser.add_argument("language", help="Language (python, node, ruby, go, ...)")
        parser.add_argument(
            "args",
            nargs=argparse.REMAINDER,
            help="Source file followed by program arguments (passed through unparsed)",
        )

    def _add_exec_command(self, subparsers):
        """Add 'exec' subcommand."""
        parser = subparsers.add_parser(
            "exec",
            help="Run inline code",
            description="Run inline code, installing missing packages and retrying",
        )
        self._add_timeout_option(parser)
        parser.add_argument("language", help="Language (python, node, ruby, ...)")
        parser.add_argument(
            "code",
            nargs=argparse.REMAINDER,
            help="Code; multiple arguments are joined with spaces",
        )

    def _add_timeout_option(self, parser):
        parser.add_argument(
            "--timeout",
            type=float,
            metavar="SECONDS",
            help=(
                "Kill each run after SECONDS (default: no limit). "
                "Must come before LANGUAGE; later options go to the program"
            ),
        )

    def _add_ensure_command(self, subparsers):
        """Add 'ensure' subcommand."""
        parser = subparsers.add_parser(
            "ensure",
            help="Install a language runtime",
            description="Download and install a language runtime if it is missing",
        )
        parser.add_argument("language", help="Language to install")

    def _add_list_command(self, subparsers):
        """Add 'list' subcommand."""
        parser = subparsers.add_parser(
            "list",
            help="List runtimes",
            description="List installed runtimes and available languages",
        )
        parser.add_argument(
            "--installed",
            action="store_true",
            help="Only show installed runtimes",
        )

    def parse_args(self, args: Optional[List[str]] = None):
        """
        Parse command-line arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        parsed_args = self.parse_args(args)

        self._configure_logging(parsed_args)

        if not parsed_args.command:
            self.parser.print_help()
            return 1

        try:
            return self._dispatch_command(parsed_args)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130  # Standard exit code for SIGINT
        except Exception as e:
            logger.error(f"Error: {e}")
            if parsed_args.verbose:
                import traceback

                traceback.print_exc()
            return 1

    def _configure_logging(self, args):
        """
        Configure logging based on verbose/quiet flags.

        Args:
            args: Parsed arguments with verbose/quiet flags
        """
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(
            level=level,
            format=format_str,
            force=True,  # Reconfigure if already configured
        )
        # urllib3 connection chatter is not useful at INFO
        logging.getLogger("urllib3").setLevel(max(level, logging.WARNING))
        logging.getLogger("filelock").setLevel(max(level, logging.WARNING))

    def _dispatch_command(self, args) -> int:
        """
        Dispatch to appropriate command handler.

        Args:
            args: Parsed arguments with command field

        Returns:
            Exit code from command handler
        """
        command_map = {
            "run": "runtimekit.cli.commands.execute",
            "exec": "runtimekit.cli.commands.execute",
            "ensure": "runtimekit.cli.commands.ensure",
            "list": "runtimekit.cli.commands.runtimes",
        }

        module_name = command_map.get(args.command)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return 1

        module = importlib.import_module(module_name)
        return module.run(args)


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
