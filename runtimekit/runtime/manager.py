"""
Runtime lifecycle management.

``RuntimeManager.ensure_runtime()`` turns a language id into a runnable
toolchain on disk:

    registry lookup -> platform key -> DownloadInfo -> download (cached)
    -> extract into <base>/runtimes/<language>-<version>/ -> locate executable
    -> runnability probe -> index

Installs of the same language are deduplicated in-process (``SingleFlight``)
and serialised across processes (``LockManager.runtime_lock``). A runtime
finished by another process while this one waited on the lock is picked up
without downloading anything.

Example:
    >>> manager = RuntimeManager(Path.home() / ".runtimekit")
    >>> python = manager.ensure_runtime("python")
    >>> python.executable
    PosixPath('/home/user/.runtimekit/runtimes/python-3.11.6/bin/python3')
"""

import logging
import subprocess
from pathlib import Path
from typing import List, Optional

from runtimekit.core.config import RuntimeKitConfig
from runtimekit.core.directory import ensure_base_structure
from runtimekit.core.exceptions import (
    AcquisitionError,
    ExecutableNotFound,
    LanguageNotFound,
    RuntimeVerificationFailure,
)
from runtimekit.core.locking import LockManager, LockTimeout, SingleFlight
from runtimekit.core.platform import detect_platform
from runtimekit.runtime.downloader import RuntimeDownloader
from runtimekit.runtime.index import RuntimeIndex, RuntimeInfo
from runtimekit.runtime.installer import RuntimeInstaller
from runtimekit.runtime.registry import LanguageDefinition, LanguageRegistry

logger = logging.getLogger(__name__)

WINDOWS_SUFFIXES = (".exe", ".cmd", ".bat")


def executable_candidates(
    root: Path, name: str, bin_dirs, windows: bool = False
) -> List[Path]:
    """
    Ordered candidate paths for an executable inside a runtime tree.

    Each bin dir is tried first, then the runtime root. On Windows the
    ``.exe``/``.cmd``/``.bat`` variants are tried before the bare name.
    """
    names = [name + suffix for suffix in WINDOWS_SUFFIXES] + [name] if windows else [name]

    directories: List[Path] = []
    for bin_dir in list(bin_dirs) + ["."]:
        directory = root if bin_dir in (".", "") else root / bin_dir
        if directory not in directories:
            directories.append(directory)

    return [directory / n for directory in directories for n in names]


class RuntimeManager:
    """
    Tracks installed runtimes and installs missing ones on demand.

    Attributes:
        base_dir: RuntimeKit base directory
        runtimes_dir: ``<base>/runtimes``
        registry: Language catalog
        index: Installed-runtime index
    """

    def __init__(
        self,
        base_dir: Path,
        registry: Optional[LanguageRegistry] = None,
        downloader: Optional[RuntimeDownloader] = None,
        installer: Optional[RuntimeInstaller] = None,
        platform: Optional[str] = None,
        verify_timeout: int = 30,
        lock_timeout: int = 600,
    ):
        layout = ensure_base_structure(base_dir)
        self.base_dir = layout["base"]
        self.runtimes_dir = layout["runtimes"]
        self.registry = registry or LanguageRegistry.load()
        self.downloader = downloader or RuntimeDownloader(self.base_dir)
        self.installer = installer or RuntimeInstaller()
        self.platform = platform or detect_platform().platform_key()
        self.windows = self.platform.startswith("windows")
        self.verify_timeout = verify_timeout
        self.lock_timeout = lock_timeout

        self.lock_manager = LockManager(layout["lock"])
        self.index = RuntimeIndex()
        self._flights = SingleFlight()

        self.index.scan(self.runtimes_dir, self._resolve_installed)

    @classmethod
    def from_config(cls, config: RuntimeKitConfig) -> "RuntimeManager":
        registry = LanguageRegistry.load(config.catalog)
        downloader = RuntimeDownloader(
            config.base_dir,
            timeout=config.download_timeout,
            max_retries=config.download_retries,
        )
        return cls(
            config.base_dir,
            registry=registry,
            downloader=downloader,
            verify_timeout=config.verify_timeout,
            lock_timeout=config.lock_timeout,
        )

    # ========================================================================
    # Public API
    # ========================================================================

    def ensure_runtime(self, language: str) -> RuntimeInfo:
        """
        Return an installed runtime for ``language``, installing it if needed.

        Raises:
            LanguageNotFound: Unknown language
            PlatformUnsupported: No archive for this platform
            DownloadFailure, ChecksumMismatch: Acquisition failed
            ArchiveFormatUnsupported, ExtractionFailure: Unpacking failed
            ExecutableNotFound, RuntimeVerificationFailure: Installed tree unusable
        """
        info = self.index.get(language)
        if info is not None:
            return info

        self.registry.get_language(language)
        return self._flights.do(language, lambda: self._install(language))

    def get_runtime(self, language: str) -> Optional[RuntimeInfo]:
        """Return the indexed runtime without installing anything."""
        return self.index.get(language)

    def list_installed(self) -> List[RuntimeInfo]:
        return sorted(self.index.snapshot().values(), key=lambda info: info.language)

    def runtime_dir(self, language: str) -> Path:
        definition = self.registry.get_language(language)
        return self.runtimes_dir / f"{language}-{definition.version}"

    def bin_dirs(self, runtime: RuntimeInfo) -> List[Path]:
        """Existing executable directories of a runtime, in search order."""
        result: List[Path] = []
        for bin_dir in list(self._bin_dir_names(runtime.language)) + ["."]:
            directory = runtime.path if bin_dir in (".", "") else runtime.path / bin_dir
            if directory.is_dir() and directory not in result:
                result.append(directory)
        return result

    def find_tool(self, runtime: RuntimeInfo, name: str) -> Optional[Path]:
        """
        Locate a tool shipped inside a runtime (npm, gem, cargo...).

        Returns:
            Path to the tool, or None if the runtime does not ship it
        """
        for candidate in executable_candidates(
            runtime.path, name, self._bin_dir_names(runtime.language), self.windows
        ):
            if candidate.is_file():
                return candidate
        return None

    # ========================================================================
    # Installation
    # ========================================================================

    def _install(self, language: str) -> RuntimeInfo:
        info = self.index.get(language)
        if info is not None:
            return info

        definition = self.registry.get_language(language)
        download = definition.get_download_url(self.platform)
        runtime_id = f"{language}-{definition.version}"
        dest_dir = self.runtimes_dir / runtime_id

        try:
            with self.lock_manager.runtime_lock(runtime_id, timeout=self.lock_timeout):
                executable = self._resolve_installed(language, dest_dir)
                if executable is not None:
                    logger.debug(f"{runtime_id} already present on disk")
                else:
                    logger.info(
                        f"Installing {definition.name} {definition.version} for {self.platform}..."
                    )
                    archive = self.downloader.download(download.url, download.sha256)
                    self.installer.install(archive, dest_dir)
                    executable = self.find_executable(definition, dest_dir)
                self.verify_executable(definition, executable)
        except LockTimeout as e:
            raise AcquisitionError(
                f"Timed out waiting for another process to install {runtime_id}"
            ) from e

        info = RuntimeInfo(
            language=language,
            version=definition.version,
            path=dest_dir,
            executable=executable,
        )
        self.index.put(info)
        logger.info(f"{definition.name} {definition.version} ready to use")
        return info

    def find_executable(self, definition: LanguageDefinition, runtime_dir: Path) -> Path:
        """
        Locate the main executable in an installed runtime tree.

        The catalog name is tried in every location before any alias.

        Raises:
            ExecutableNotFound: If no candidate path exists
        """
        for name in (definition.executable, *definition.executable_aliases):
            for candidate in executable_candidates(
                runtime_dir, name, definition.bin_dirs, self.windows
            ):
                if candidate.is_file():
                    return candidate
        raise ExecutableNotFound(definition.executable, runtime_dir)

    def verify_executable(self, definition: LanguageDefinition, executable: Path) -> None:
        """
        Run the version probe to confirm the executable runs.

        Raises:
            RuntimeVerificationFailure: If the probe fails or times out
        """
        cmd = [str(executable), *definition.version_args]
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.verify_timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise RuntimeVerificationFailure(
                f"Failed to run {executable}: {e}"
            ) from e

        if result.returncode != 0:
            raise RuntimeVerificationFailure(
                f"{executable} {' '.join(definition.version_args)} exited with "
                f"code {result.returncode}: {result.stderr.strip()}"
            )
        version_line = (result.stdout or result.stderr).strip().splitlines()
        if version_line:
            logger.debug(f"Verified {executable}: {version_line[0]}")

    def _resolve_installed(self, language: str, runtime_dir: Path) -> Optional[Path]:
        try:
            definition = self.registry.get_language(language)
        except LanguageNotFound:
            return None
        try:
            return self.find_executable(definition, runtime_dir)
        except ExecutableNotFound:
            return None

    def _bin_dir_names(self, language: str):
        try:
            return self.registry.get_language(language).bin_dirs
        except LanguageNotFound:
            return ("bin",)


__all__ = ["RuntimeManager", "RuntimeInfo", "executable_candidates"]
