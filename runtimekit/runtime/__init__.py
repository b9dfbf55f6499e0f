"""
Runtime acquisition: catalog, download, install and the installed-runtime index.
"""

from runtimekit.runtime.registry import (
    DownloadInfo,
    PackageManagerDescriptor,
    LanguageDefinition,
    LanguageRegistry,
)
from runtimekit.runtime.downloader import RuntimeDownloader
from runtimekit.runtime.installer import RuntimeInstaller
from runtimekit.runtime.index import RuntimeIndex, RuntimeInfo
from runtimekit.runtime.manager import RuntimeManager

__all__ = [
    "DownloadInfo",
    "PackageManagerDescriptor",
    "LanguageDefinition",
    "LanguageRegistry",
    "RuntimeDownloader",
    "RuntimeInstaller",
    "RuntimeIndex",
    "RuntimeInfo",
    "RuntimeManager",
]
