"""
In-memory index of installed runtimes.

The index maps a language id to the ``RuntimeInfo`` of its installed
runtime. It is shared by every thread using a ``RuntimeManager`` and is
guarded by a reader/writer lock: lookups run concurrently, updates run alone.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional

from runtimekit.core.locking import ReadWriteLock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuntimeInfo:
    """An installed, runnable runtime."""

    language: str
    """Language id (e.g., 'python')"""

    version: str
    """Installed version (e.g., '3.11.6')"""

    path: Path
    """Runtime root directory (``<base>/runtimes/<language>-<version>``)"""

    executable: Path
    """Absolute path of the language's main executable"""

    @property
    def runtime_id(self) -> str:
        return f"{self.language}-{self.version}"


# (language, runtime_dir) -> executable path, or None if the dir is unusable
ExecutableResolver = Callable[[str, Path], Optional[Path]]


def parse_runtime_dir_name(name: str) -> Optional[tuple]:
    """
    Split a runtime directory name into (language, version) at the first hyphen.

    Example:
        >>> parse_runtime_dir_name("node-20.10.0")
        ('node', '20.10.0')
        >>> parse_runtime_dir_name("python") is None
        True
    """
    language, sep, version = name.partition("-")
    if not sep or not language or not version:
        return None
    return language, version


class RuntimeIndex:
    """Thread-safe language -> RuntimeInfo map."""

    def __init__(self):
        self._lock = ReadWriteLock()
        self._runtimes: Dict[str, RuntimeInfo] = {}

    def get(self, language: str) -> Optional[RuntimeInfo]:
        with self._lock.read_lock():
            return self._runtimes.get(language)

    def put(self, info: RuntimeInfo) -> None:
        with self._lock.write_lock():
            self._runtimes[info.language] = info

    def snapshot(self) -> Dict[str, RuntimeInfo]:
        """Return a copy of the current mapping."""
        with self._lock.read_lock():
            return dict(self._runtimes)

    def scan(self, runtimes_dir: Path, resolver: ExecutableResolver) -> int:
        """
        Index runtimes already present on disk.

        Directories whose name does not parse, whose language is unknown to
        the resolver, or whose executable is missing are skipped.

        Args:
            runtimes_dir: Directory holding ``<language>-<version>`` folders
            resolver: Returns the executable for a runtime dir, or None

        Returns:
            Number of runtimes indexed
        """
        runtimes_dir = Path(runtimes_dir)
        if not runtimes_dir.is_dir():
            return 0

        found = []
        for entry in sorted(runtimes_dir.iterdir()):
            if not entry.is_dir() or entry.name.startswith("."):
                continue
            parsed = parse_runtime_dir_name(entry.name)
            if parsed is None:
                logger.debug(f"Skipping unrecognised runtime directory: {entry.name}")
                continue
            language, version = parsed
            executable = resolver(language, entry)
            if executable is None:
                logger.debug(f"Skipping incomplete runtime directory: {entry.name}")
                continue
            found.append(RuntimeInfo(language, version, entry, executable))

        with self._lock.write_lock():
            for info in found:
                self._runtimes[info.language] = info

        if found:
            logger.debug(f"Indexed {len(found)} installed runtime(s) from {runtimes_dir}")
        return len(found)


__all__ = ["RuntimeInfo", "RuntimeIndex", "ExecutableResolver", "parse_runtime_dir_name"]
