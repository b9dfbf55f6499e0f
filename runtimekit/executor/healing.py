"""
Self-healing code execution.

``SelfHealingExecutor.execute()`` runs code and, when it fails because a
third-party package is missing, installs the package into the language's
isolation overlay and tries again:

    attempt -> success                      -> return outcome
            -> failure -> no rule matched   -> UnrecognizedExecutionFailure
                       -> dependencies      -> install new ones -> attempt

Cycle breaking: a stuck counter grows whenever the blocking package is the
same as in the previous pass, or when a pass installs nothing new. A
different package resets it only if it has not been installed yet, so a
failure naming several already-installed packages still counts as stuck.
At 2 the call aborts with ``StuckLoopAborted``. There is no other attempt cap.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from runtimekit.core.exceptions import (
    DependencyInstallFailure,
    StuckLoopAborted,
    UnrecognizedExecutionFailure,
)
from runtimekit.core.process import ProcessResult, run_process
from runtimekit.ecosystems import canonical_language, get_adapter
from runtimekit.ecosystems.base import Command
from runtimekit.executor.detector import parse_error
from runtimekit.executor.isolation import IsolationBuilder
from runtimekit.runtime.manager import RuntimeManager

logger = logging.getLogger(__name__)

STUCK_THRESHOLD = 2


@dataclass
class HealingState:
    """Progress of one ``execute()`` call."""

    attempts: int = 0
    installed: List[str] = field(default_factory=list)
    last_failing: Optional[str] = None
    stuck: int = 0


@dataclass(frozen=True)
class ExecutionOutcome:
    """
    Successful execution.

    Attributes:
        attempts: Number of runs, including the successful one
        installed_packages: Packages installed during this call, in order
        result: The successful run
    """

    attempts: int
    installed_packages: List[str]
    result: ProcessResult

    @property
    def output(self) -> str:
        return self.result.output


class SelfHealingExecutor:
    """
    Runs commands with automatic installation of missing dependencies.

    Attributes:
        manager: RuntimeManager providing runtimes
        isolation: IsolationBuilder providing overlays
        cwd: Working directory for runs and installs (default: current)
        timeout: Per-run timeout in seconds, or None
        install_timeout: Per-install timeout in seconds
    """

    def __init__(
        self,
        manager: RuntimeManager,
        isolation: Optional[IsolationBuilder] = None,
        cwd: Optional[Path] = None,
        timeout: Optional[float] = None,
        install_timeout: Optional[float] = 600,
    ):
        self.manager = manager
        self.isolation = isolation or IsolationBuilder(manager)
        self.cwd = cwd
        self.timeout = timeout
        self.install_timeout = install_timeout

    def execute(self, language: str, command: Command) -> ExecutionOutcome:
        """
        Run ``command`` with ``language``, healing missing-package failures.

        Raises:
            LanguageNotFound, AcquisitionError: Runtime could not be provided
            ExecutionError: Command could not be built or started
            UnrecognizedExecutionFailure: Failure not caused by a missing package
            StuckLoopAborted: Installing packages stopped making progress
        """
        language = canonical_language(language)
        adapter = get_adapter(language, self.manager)
        runtime = self.manager.ensure_runtime(language)
        overlay = self.isolation.build(runtime)

        state = HealingState()
        while True:
            state.attempts += 1
            # Rebuilt each pass: the PHP command depends on the overlay contents
            argv = adapter.build_command(runtime, command)
            if state.attempts > 1:
                logger.info(f"Retrying (attempt {state.attempts})...")
            result = run_process(
                argv, cwd=self.cwd, env=overlay.apply(), timeout=self.timeout
            )

            if result.success:
                logger.info(
                    f"Execution succeeded after {state.attempts} attempt(s) "
                    f"({len(state.installed)} packages installed)"
                )
                return ExecutionOutcome(
                    attempts=state.attempts,
                    installed_packages=list(state.installed),
                    result=result,
                )

            dependencies = parse_error(language, result.output, self.manager)
            if dependencies is None:
                raise UnrecognizedExecutionFailure(result.output, result.returncode)

            new_installs = 0
            for dependency in dependencies:
                package = dependency.package
                already_installed = package in state.installed
                if package == state.last_failing:
                    state.stuck += 1
                elif not already_installed:
                    # Only a package that can still be installed clears the counter
                    state.stuck = 0
                state.last_failing = package

                if state.stuck >= STUCK_THRESHOLD:
                    raise StuckLoopAborted(
                        package, state.attempts, result.output, result.returncode
                    )

                if already_installed:
                    logger.info(f"Package {package} already installed, skipping")
                    continue

                logger.info(
                    f"Installing missing {language} package: {package} "
                    f"(via {dependency.package_manager})"
                )
                try:
                    adapter.install(
                        dependency,
                        runtime,
                        overlay,
                        cwd=self.cwd,
                        timeout=self.install_timeout,
                    )
                except DependencyInstallFailure as e:
                    logger.warning(f"Failed to install {package}: {e}")
                    if e.output:
                        logger.debug(e.output)
                    continue

                state.installed.append(package)
                new_installs += 1
                logger.info(f"Installed {package}")

            if new_installs == 0:
                state.stuck += 1
                if state.stuck >= STUCK_THRESHOLD:
                    raise StuckLoopAborted(
                        state.last_failing,
                        state.attempts,
                        result.output,
                        result.returncode,
                    )


__all__ = [
    "Command",
    "ExecutionOutcome",
    "HealingState",
    "SelfHealingExecutor",
    "STUCK_THRESHOLD",
]
