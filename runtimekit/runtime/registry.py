"""
Language registry and catalog loading.

The registry maps a language id ('python', 'node', ...) to its pinned
version, executable name, per-platform download and package manager.
It is read-only after construction.

``LanguageRegistry.load()`` is the single entry point. Without arguments it
uses the compiled-in catalog; given a YAML/JSON file it uses the file-backed
loader. Both produce the same structures, so consumers never change.

Catalog file format:

    languages:
      python:
        name: Python
        version: 3.11.6
        executable: python3
        executable_aliases: [python]
        bin_dirs: [bin]
        version_args: [--version]
        package_manager: {name: pip, executable: pip, install_command: [install]}
        downloads:
          linux-x86_64: {url: https://..., sha256: ""}
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml

from runtimekit.core.exceptions import (
    LanguageNotFound,
    PlatformUnsupported,
    RegistryError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DownloadInfo:
    """Archive location for one platform."""

    url: str
    sha256: str = ""
    """Expected SHA256; empty means the archive is not verified"""


@dataclass(frozen=True)
class PackageManagerDescriptor:
    """How to reach a language's native package manager."""

    name: str
    """Package manager id (e.g., 'pip', 'npm')"""

    executable: str
    """Executable base name, looked up inside the runtime first"""

    install_command: Tuple[str, ...] = ("install",)
    """Subcommand tokens placed before the package name"""


@dataclass(frozen=True)
class LanguageDefinition:
    """Catalog entry for one language."""

    name: str
    version: str
    executable: str
    downloads: Mapping[str, DownloadInfo] = field(default_factory=dict)
    package_manager: Optional[PackageManagerDescriptor] = None
    bin_dirs: Tuple[str, ...] = ("bin",)
    version_args: Tuple[str, ...] = ("--version",)
    executable_aliases: Tuple[str, ...] = ()
    """Other names the executable may have, tried after ``executable``"""

    def get_download_url(self, platform: str) -> DownloadInfo:
        """
        Get download information for a platform key.

        Raises:
            PlatformUnsupported: If the language has no archive for platform
        """
        info = self.downloads.get(platform)
        if info is None:
            raise PlatformUnsupported(self.name, platform)
        return info

    @property
    def platforms(self) -> List[str]:
        return sorted(self.downloads)


# ============================================================================
# Loaders
# ============================================================================


class CatalogLoader(ABC):
    """Source of language definitions."""

    @abstractmethod
    def load(self) -> Dict[str, LanguageDefinition]:
        """Return language definitions keyed by language id."""


class BuiltinCatalogLoader(CatalogLoader):
    """Compiled-in catalog."""

    def load(self) -> Dict[str, LanguageDefinition]:
        return dict(BUILTIN_LANGUAGES)


class FileCatalogLoader(CatalogLoader):
    """Catalog read from a YAML or JSON file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Dict[str, LanguageDefinition]:
        if not self.path.exists():
            raise RegistryError(f"Catalog file not found: {self.path}")

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise RegistryError(f"Invalid catalog file {self.path}: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("languages"), dict):
            raise RegistryError(
                f"Invalid catalog structure: missing 'languages' mapping\n"
                f"File: {self.path}"
            )

        languages = {}
        for language_id, entry in data["languages"].items():
            try:
                languages[str(language_id)] = _definition_from_dict(entry)
            except (KeyError, TypeError, ValueError) as e:
                raise RegistryError(
                    f"Invalid catalog entry for {language_id}: {e}"
                ) from e
        return languages


def _definition_from_dict(entry: Dict[str, Any]) -> LanguageDefinition:
    downloads = {
        str(platform): DownloadInfo(url=info["url"], sha256=info.get("sha256") or "")
        for platform, info in (entry.get("downloads") or {}).items()
    }

    package_manager = None
    pm = entry.get("package_manager")
    if pm:
        package_manager = PackageManagerDescriptor(
            name=pm["name"],
            executable=pm.get("executable", pm["name"]),
            install_command=tuple(pm.get("install_command", ["install"])),
        )

    return LanguageDefinition(
        name=entry["name"],
        version=str(entry["version"]),
        executable=entry["executable"],
        downloads=downloads,
        package_manager=package_manager,
        bin_dirs=tuple(entry.get("bin_dirs", ["bin"])),
        version_args=tuple(entry.get("version_args", ["--version"])),
        executable_aliases=tuple(entry.get("executable_aliases", [])),
    )


# ============================================================================
# Registry
# ============================================================================


class LanguageRegistry:
    """
    Read-only catalog of known language distributions.

    Example:
        >>> registry = LanguageRegistry.load()
        >>> node = registry.get_language("node")
        >>> node.get_download_url("linux-x86_64").url
        'https://nodejs.org/dist/v20.10.0/node-v20.10.0-linux-x64.tar.xz'
    """

    def __init__(self, languages: Mapping[str, LanguageDefinition]):
        self._languages = dict(languages)

    @classmethod
    def load(cls, catalog_path: Optional[Path] = None) -> "LanguageRegistry":
        """
        Build the registry.

        Args:
            catalog_path: Optional YAML/JSON catalog; compiled-in table if None

        Raises:
            RegistryError: If the catalog file cannot be loaded
        """
        loader: CatalogLoader
        if catalog_path is not None:
            loader = FileCatalogLoader(catalog_path)
        else:
            loader = BuiltinCatalogLoader()

        registry = cls(loader.load())
        logger.debug(f"Loaded registry with {len(registry._languages)} languages")
        return registry

    def get_language(self, name: str) -> LanguageDefinition:
        """
        Look up a language definition.

        Raises:
            LanguageNotFound: If name is not in the catalog
        """
        try:
            return self._languages[name]
        except KeyError:
            raise LanguageNotFound(name) from None

    def has_language(self, name: str) -> bool:
        return name in self._languages

    def list_languages(self) -> List[str]:
        return sorted(self._languages)

    def list_platforms(self, name: str) -> List[str]:
        return self.get_language(name).platforms


# ============================================================================
# Compiled-in catalog
# ============================================================================

_PYTHON_STANDALONE = (
    "https://github.com/indygreg/python-build-standalone/releases/download/20231002"
)
_RUBY_BUILDER = "https://github.com/ruby/ruby-builder/releases/download/toolcache"
_TEMURIN = (
    "https://github.com/adoptium/temurin21-binaries/releases/download/jdk-21.0.1%2B12"
)

BUILTIN_LANGUAGES: Dict[str, LanguageDefinition] = {
    "python": LanguageDefinition(
        name="Python",
        version="3.11.6",
        executable="python3",
        downloads={
            "linux-x86_64": DownloadInfo(
                f"{_PYTHON_STANDALONE}/cpython-3.11.6+20231002-x86_64-unknown-linux-gnu-install_only.tar.gz"
            ),
            "linux-aarch64": DownloadInfo(
                f"{_PYTHON_STANDALONE}/cpython-3.11.6+20231002-aarch64-unknown-linux-gnu-install_only.tar.gz"
            ),
            "macos-x86_64": DownloadInfo(
                f"{_PYTHON_STANDALONE}/cpython-3.11.6+20231002-x86_64-apple-darwin-install_only.tar.gz"
            ),
            "macos-aarch64": DownloadInfo(
                f"{_PYTHON_STANDALONE}/cpython-3.11.6+20231002-aarch64-apple-darwin-install_only.tar.gz"
            ),
            "windows-x86_64": DownloadInfo(
                f"{_PYTHON_STANDALONE}/cpython-3.11.6+20231002-x86_64-pc-windows-msvc-shared-install_only.tar.gz"
            ),
        },
        package_manager=PackageManagerDescriptor("pip", "pip", ("install",)),
        bin_dirs=("bin", "."),
        # Windows builds ship python.exe only
        executable_aliases=("python",),
    ),
    "node": LanguageDefinition(
        name="Node.js",
        version="20.10.0",
        executable="node",
        downloads={
            "linux-x86_64": DownloadInfo(
                "https://nodejs.org/dist/v20.10.0/node-v20.10.0-linux-x64.tar.xz"
            ),
            "linux-aarch64": DownloadInfo(
                "https://nodejs.org/dist/v20.10.0/node-v20.10.0-linux-arm64.tar.xz"
            ),
            "macos-x86_64": DownloadInfo(
                "https://nodejs.org/dist/v20.10.0/node-v20.10.0-darwin-x64.tar.gz"
            ),
            "macos-aarch64": DownloadInfo(
                "https://nodejs.org/dist/v20.10.0/node-v20.10.0-darwin-arm64.tar.gz"
            ),
            "windows-x86_64": DownloadInfo(
                "https://nodejs.org/dist/v20.10.0/node-v20.10.0-win-x64.zip"
            ),
        },
        package_manager=PackageManagerDescriptor("npm", "npm", ("install",)),
    ),
    "go": LanguageDefinition(
        name="Go",
        version="1.21.5",
        executable="go",
        downloads={
            "linux-x86_64": DownloadInfo("https://go.dev/dl/go1.21.5.linux-amd64.tar.gz"),
            "linux-aarch64": DownloadInfo("https://go.dev/dl/go1.21.5.linux-arm64.tar.gz"),
            "macos-x86_64": DownloadInfo("https://go.dev/dl/go1.21.5.darwin-amd64.tar.gz"),
            "macos-aarch64": DownloadInfo("https://go.dev/dl/go1.21.5.darwin-arm64.tar.gz"),
            "windows-x86_64": DownloadInfo("https://go.dev/dl/go1.21.5.windows-amd64.zip"),
        },
        package_manager=PackageManagerDescriptor("go", "go", ("get",)),
        version_args=("version",),
    ),
    "java": LanguageDefinition(
        name="Java",
        version="21.0.1",
        executable="java",
        downloads={
            "linux-x86_64": DownloadInfo(
                f"{_TEMURIN}/OpenJDK21U-jdk_x64_linux_hotspot_21.0.1_12.tar.gz"
            ),
            "linux-aarch64": DownloadInfo(
                f"{_TEMURIN}/OpenJDK21U-jdk_aarch64_linux_hotspot_21.0.1_12.tar.gz"
            ),
            "windows-x86_64": DownloadInfo(
                f"{_TEMURIN}/OpenJDK21U-jdk_x64_windows_hotspot_21.0.1_12.zip"
            ),
        },
        package_manager=PackageManagerDescriptor("maven", "mvn", ("dependency:copy",)),
    ),
    "ruby": LanguageDefinition(
        name="Ruby",
        version="3.2.2",
        executable="ruby",
        downloads={
            "linux-x86_64": DownloadInfo(f"{_RUBY_BUILDER}/ruby-3.2.2-ubuntu-22.04.tar.gz"),
            "macos-x86_64": DownloadInfo(f"{_RUBY_BUILDER}/ruby-3.2.2-macos-latest.tar.gz"),
        },
        package_manager=PackageManagerDescriptor("gem", "gem", ("install",)),
    ),
    "rust": LanguageDefinition(
        name="Rust",
        version="1.74.0",
        executable="rustc",
        downloads={
            "linux-x86_64": DownloadInfo(
                "https://static.rust-lang.org/dist/rust-1.74.0-x86_64-unknown-linux-gnu.tar.gz"
            ),
            "linux-aarch64": DownloadInfo(
                "https://static.rust-lang.org/dist/rust-1.74.0-aarch64-unknown-linux-gnu.tar.gz"
            ),
            "macos-x86_64": DownloadInfo(
                "https://static.rust-lang.org/dist/rust-1.74.0-x86_64-apple-darwin.tar.gz"
            ),
            "macos-aarch64": DownloadInfo(
                "https://static.rust-lang.org/dist/rust-1.74.0-aarch64-apple-darwin.tar.gz"
            ),
        },
        package_manager=PackageManagerDescriptor("cargo", "cargo", ("add",)),
        bin_dirs=("bin", "rustc/bin", "cargo/bin"),
    ),
    # Lighter support: dependency detection and installs, no managed download
    "php": LanguageDefinition(
        name="PHP",
        version="8.2",
        executable="php",
        package_manager=PackageManagerDescriptor("composer", "composer", ("require",)),
    ),
    "perl": LanguageDefinition(
        name="Perl",
        version="5.38",
        executable="perl",
        package_manager=PackageManagerDescriptor("cpan", "cpan", ("install",)),
        version_args=("-v",),
    ),
}


__all__ = [
    "DownloadInfo",
    "PackageManagerDescriptor",
    "LanguageDefinition",
    "CatalogLoader",
    "BuiltinCatalogLoader",
    "FileCatalogLoader",
    "LanguageRegistry",
    "BUILTIN_LANGUAGES",
]
