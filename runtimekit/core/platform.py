"""
Platform detection for RuntimeKit.

Maps the host operating system and CPU architecture to the platform key used
by the language catalog (e.g., 'linux-x86_64', 'macos-aarch64').

Detection never fails: an unrecognized system or machine is passed through
lowercased, and simply won't match any catalog entry downstream.

Usage:
    from runtimekit.core.platform import detect_platform, platform_key

    info = detect_platform()
    print(info.os, info.arch)
    print(platform_key())  # 'linux-x86_64'
"""

import functools
import platform
from dataclasses import dataclass


@dataclass(frozen=True)
class PlatformInfo:
    """
    Host platform information.

    Attributes:
        os: Operating system ('linux', 'macos', 'windows', or raw system name)
        arch: CPU architecture ('x86_64', 'aarch64', 'i686', 'armv7l', or raw machine)
    """

    os: str
    arch: str

    def platform_key(self) -> str:
        """
        Get the catalog platform key.

        Example:
            >>> PlatformInfo('linux', 'x86_64').platform_key()
            'linux-x86_64'
        """
        return f"{self.os}-{self.arch}"

    @property
    def is_windows(self) -> bool:
        return self.os == "windows"

    def __str__(self) -> str:
        return self.platform_key()


@functools.lru_cache(maxsize=1)
def detect_platform() -> PlatformInfo:
    """
    Detect current platform information.

    This function is cached - it only runs detection once per process.

    Returns:
        PlatformInfo for the host
    """
    return PlatformInfo(os=_detect_os(), arch=_detect_architecture())


def platform_key() -> str:
    """Return the catalog platform key for the host."""
    return detect_platform().platform_key()


def _detect_os() -> str:
    system = platform.system().lower()

    if system == "windows":
        return "windows"
    elif system == "linux":
        return "linux"
    elif system == "darwin":
        return "macos"
    return system or "unknown"


def _detect_architecture() -> str:
    machine = platform.machine().lower()

    if machine in ("x86_64", "amd64", "x64"):
        return "x86_64"
    elif machine in ("aarch64", "arm64", "armv8l", "armv8b"):
        return "aarch64"
    elif machine in ("i386", "i686", "x86"):
        return "i686"
    elif machine.startswith("arm"):
        return "armv7l"
    return machine or "unknown"


def clear_platform_cache():
    """
    Clear the platform detection cache.

    Useful for testing with a patched ``platform`` module.
    """
    detect_platform.cache_clear()


__all__ = [
    "PlatformInfo",
    "detect_platform",
    "platform_key",
    "clear_platform_cache",
]
