"""
Base ecosystem adapter abstraction.

An ecosystem adapter bundles everything that differs between languages:
how a missing package shows up in a failure, how the package manager
installs it, how the runtime's module search path is redirected into an
isolated overlay, and how a command line is built.

Classes:
    Command: Program name plus pre-tokenized arguments
    MissingDependency: One package a failed run asked for
    EnvOverlay: Environment changes that isolate a language's packages
    EcosystemAdapter: Abstract base class for per-language adapters

Adding an ecosystem means writing one ``EcosystemAdapter`` subclass and
registering it in ``runtimekit.ecosystems.ADAPTERS``.
"""

import logging
import os
import re
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from runtimekit.core.exceptions import DependencyInstallFailure, ExecutionError
from runtimekit.core.process import run_process
from runtimekit.runtime.index import RuntimeInfo
from runtimekit.runtime.registry import PackageManagerDescriptor

if TYPE_CHECKING:
    from runtimekit.runtime.manager import RuntimeManager

logger = logging.getLogger(__name__)

OVERLAY_DIRNAME = "overlay"


# =============================================================================
# Data types
# =============================================================================


@dataclass(frozen=True)
class Command:
    """
    A command as handed over by the shell.

    ``@python print(1)`` arrives as ``Command("@python", ["print(1)"])``
    (inline form); ``python app.py --flag`` arrives as
    ``Command("python", ["app.py", "--flag"])`` (file form).
    """

    name: str
    args: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "args", tuple(self.args))

    @property
    def is_inline(self) -> bool:
        return self.name.startswith("@")

    @property
    def code(self) -> str:
        """Inline source: the arguments joined by single spaces."""
        return " ".join(self.args)


@dataclass(frozen=True)
class MissingDependency:
    """
    A package that a failed run could not find.

    Attributes:
        language: Language id the failure came from
        package: Normalised package name as the package manager knows it
        package_manager: Package manager id (pip, npm, gem...)
        install_command: Package manager arguments that install the package
    """

    language: str
    package: str
    package_manager: str
    install_command: Tuple[str, ...]


@dataclass(frozen=True)
class EnvOverlay:
    """
    Environment changes that point a language at its isolated package dir.

    Attributes:
        overlay_dir: Root of the isolated package directory
        variables: Variables set (replacing inherited values)
        path_prepend: Directories placed in front of PATH
    """

    overlay_dir: Path
    variables: Dict[str, str] = field(default_factory=dict)
    path_prepend: Tuple[Path, ...] = ()

    def apply(self, base_env: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """
        Return a new environment with the overlay applied.

        Args:
            base_env: Environment to start from (default: ``os.environ``)
        """
        env = dict(os.environ if base_env is None else base_env)
        env.update(self.variables)
        if self.path_prepend:
            parts = [str(p) for p in self.path_prepend]
            if env.get("PATH"):
                parts.append(env["PATH"])
            env["PATH"] = os.pathsep.join(parts)
        return env


# =============================================================================
# Abstract adapter
# =============================================================================


class EcosystemAdapter(ABC):
    """
    Per-language behaviour used by the isolation builder and healing loop.

    Subclasses declare their detection rules as class attributes:

        language: Language id ('python')
        package_manager: Package manager id ('pip')
        package_manager_executable: Tool name to locate ('pip')
        install_subcommand: Tokens placed before the package arguments
        inline_flag: Interpreter flag for inline code, or None
        error_patterns: Ordered regexes; group 1 is the raw module name

    and implement ``normalize_package``, ``overlay_variables`` and
    ``install_args``.

    The three package manager attributes are fallbacks: when the adapter has
    a manager whose catalog describes the language's package manager, the
    catalog entry is used instead.

    Attributes:
        manager: RuntimeManager used to locate bundled tools, or None
    """

    language: str = ""
    package_manager: str = ""
    package_manager_executable: str = ""
    install_subcommand: Tuple[str, ...] = ("install",)
    inline_flag: Optional[str] = None
    error_patterns: Tuple["re.Pattern", ...] = ()

    def __init__(self, manager: Optional["RuntimeManager"] = None):
        self.manager = manager

    def package_manager_descriptor(self) -> PackageManagerDescriptor:
        """Package manager from the manager's catalog, else the adapter's own."""
        if self.manager is not None:
            registry = self.manager.registry
            if registry.has_language(self.language):
                descriptor = registry.get_language(self.language).package_manager
                if descriptor is not None:
                    return descriptor
        return PackageManagerDescriptor(
            name=self.package_manager,
            executable=self.package_manager_executable,
            install_command=self.install_subcommand,
        )

    # -------------------------------------------------------------------------
    # Detection
    # -------------------------------------------------------------------------

    def detect_missing(self, output: str) -> List[MissingDependency]:
        """
        Extract missing dependencies from a failed run's output.

        Patterns are tried in order; duplicates (by normalised package name)
        are dropped, keeping first-seen order.

        Returns:
            Possibly empty list of dependencies
        """
        descriptor = self.package_manager_descriptor()
        found: List[MissingDependency] = []
        seen = set()
        for pattern in self.error_patterns:
            for match in pattern.finditer(output):
                package = self.normalize_package(match.group(1))
                if not package or package in seen:
                    continue
                seen.add(package)
                found.append(
                    MissingDependency(
                        language=self.language,
                        package=package,
                        package_manager=descriptor.name,
                        install_command=(
                            *descriptor.install_command,
                            *self.package_args(package),
                        ),
                    )
                )
        return found

    @abstractmethod
    def normalize_package(self, raw: str) -> Optional[str]:
        """
        Map a module name from an error message to an installable package.

        Returns:
            Package name, or None if the module is not installable
            (core modules, relative paths)
        """
        pass

    def package_args(self, package: str) -> List[str]:
        """Arguments naming ``package`` after the install subcommand."""
        return [package]

    # -------------------------------------------------------------------------
    # Isolation
    # -------------------------------------------------------------------------

    def overlay_dir(self, runtime: RuntimeInfo) -> Path:
        return runtime.path / OVERLAY_DIRNAME

    def isolate(self, runtime: RuntimeInfo) -> EnvOverlay:
        """Describe the isolated environment for ``runtime`` (no disk access)."""
        overlay = self.overlay_dir(runtime)
        return EnvOverlay(
            overlay_dir=overlay,
            variables=self.overlay_variables(overlay),
            path_prepend=tuple(self.bin_dirs(runtime)),
        )

    @abstractmethod
    def overlay_variables(self, overlay: Path) -> Dict[str, str]:
        """Environment variables redirecting package resolution to ``overlay``."""
        pass

    def overlay_subdirs(self, overlay: Path) -> List[Path]:
        """Directories created inside the overlay on first use."""
        return [overlay]

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def build_command(self, runtime: RuntimeInfo, command: Command) -> List[str]:
        """
        Build the argv for running ``command`` with ``runtime``.

        Raises:
            ExecutionError: If inline code is not supported, no file was
                given, or the file does not exist
        """
        if command.is_inline:
            if self.inline_flag is None:
                raise ExecutionError(
                    f"Inline execution is not supported for {self.language}"
                )
            return [str(runtime.executable), self.inline_flag, command.code]

        if not command.args:
            raise ExecutionError("No file specified")
        source = command.args[0]
        if not Path(source).exists():
            raise ExecutionError(f"File not found: {source}")
        return self.file_command(runtime, source, list(command.args[1:]))

    def file_command(self, runtime: RuntimeInfo, source: str, args: List[str]) -> List[str]:
        return [str(runtime.executable), source, *args]

    # -------------------------------------------------------------------------
    # Installation
    # -------------------------------------------------------------------------

    def ensure_package_manager(self, runtime: RuntimeInfo, overlay: EnvOverlay) -> List[str]:
        """
        Return the argv prefix that invokes the package manager.

        Raises:
            DependencyInstallFailure: If the package manager is unavailable
        """
        descriptor = self.package_manager_descriptor()
        tool = self.find_tool(runtime, descriptor.executable)
        if tool is None:
            raise DependencyInstallFailure(
                "",
                f"{descriptor.name} not found in {runtime.path} or on PATH",
            )
        return [str(tool)]

    @abstractmethod
    def install_args(self, dependency: MissingDependency, overlay: EnvOverlay) -> List[str]:
        """Extra arguments that direct the install into the overlay."""
        pass

    def install(
        self,
        dependency: MissingDependency,
        runtime: RuntimeInfo,
        overlay: EnvOverlay,
        cwd: Optional[Path] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Install one dependency into the overlay.

        Raises:
            DependencyInstallFailure: If the package manager is missing or
                exits non-zero
        """
        try:
            prefix = self.ensure_package_manager(runtime, overlay)
        except DependencyInstallFailure as e:
            raise DependencyInstallFailure(dependency.package, str(e), e.output) from e

        cmd = [*prefix, *dependency.install_command, *self.install_args(dependency, overlay)]
        logger.debug(f"Install command: {' '.join(cmd)}")

        try:
            result = run_process(
                cmd, cwd=cwd, env=overlay.apply(), timeout=timeout
            )
        except ExecutionError as e:
            raise DependencyInstallFailure(
                dependency.package,
                f"Failed to run {dependency.package_manager}: {e}",
                e.output,
            ) from e

        if not result.success:
            raise DependencyInstallFailure(
                dependency.package,
                f"{dependency.package_manager} exited with code {result.returncode} "
                f"installing {dependency.package}",
                result.output,
            )

    # -------------------------------------------------------------------------
    # Tool lookup
    # -------------------------------------------------------------------------

    def bin_dirs(self, runtime: RuntimeInfo) -> List[Path]:
        if self.manager is not None:
            return self.manager.bin_dirs(runtime)
        return [runtime.executable.parent]

    def find_tool(self, runtime: RuntimeInfo, name: str) -> Optional[Path]:
        """
        Locate a tool, preferring the copy shipped inside the runtime.

        Falls back to PATH for tools that distributions do not bundle
        (mvn, composer, cpan).
        """
        if self.manager is not None:
            tool = self.manager.find_tool(runtime, name)
            if tool is not None:
                return tool
        else:
            candidate = runtime.executable.parent / name
            if candidate.is_file():
                return candidate

        system_tool = shutil.which(name)
        return Path(system_tool) if system_tool else None


def compile_patterns(*patterns: str) -> Tuple["re.Pattern", ...]:
    return tuple(re.compile(p) for p in patterns)


def first_segment(name: str, separator: str) -> str:
    return name.split(separator, 1)[0]


__all__ = [
    "Command",
    "MissingDependency",
    "EnvOverlay",
    "EcosystemAdapter",
    "OVERLAY_DIRNAME",
    "compile_patterns",
    "first_segment",
]

