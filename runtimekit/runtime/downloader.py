"""
Runtime archive acquisition.

Archives are cached under ``<base>/cache/`` and named after the last path
segment of their URL, so a second install of the same runtime (after the
runtime directory was removed, say) does not touch the network.
"""

import logging
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import unquote, urlparse

from runtimekit.core.download import (
    DownloadProgress,
    download_file,
    format_progress,
)

logger = logging.getLogger(__name__)


def cache_filename(url: str) -> str:
    """
    Derive the cache filename from a download URL.

    Example:
        >>> cache_filename("https://go.dev/dl/go1.21.5.linux-amd64.tar.gz")
        'go1.21.5.linux-amd64.tar.gz'
    """
    path = unquote(urlparse(url).path)
    name = path.rstrip("/").rsplit("/", 1)[-1]
    if not name:
        raise ValueError(f"Cannot derive a filename from URL: {url}")
    return name


class _ProgressLogger:
    """Log download progress in quarter steps."""

    def __init__(self, name: str):
        self.name = name
        self._next_step = 25

    def __call__(self, progress: DownloadProgress):
        if progress.percentage >= self._next_step:
            logger.info(f"{self.name}: {format_progress(progress)}")
            while self._next_step <= progress.percentage:
                self._next_step += 25


class RuntimeDownloader:
    """
    Fetches runtime archives into the shared cache directory.

    Example:
        >>> downloader = RuntimeDownloader(Path.home() / ".runtimekit")
        >>> archive = downloader.download(info.url, info.sha256)
    """

    def __init__(
        self,
        base_dir: Path,
        timeout: int = 30,
        max_retries: int = 1,
        progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    ):
        self.cache_dir = Path(base_dir) / "cache"
        self.timeout = timeout
        self.max_retries = max_retries
        self.progress_callback = progress_callback

    def cache_path(self, url: str) -> Path:
        return self.cache_dir / cache_filename(url)

    def download(self, url: str, expected_checksum: str = "") -> Path:
        """
        Return a local archive for ``url``, downloading it if needed.

        Args:
            url: Archive URL
            expected_checksum: SHA256 hex digest; empty disables verification

        Returns:
            Path to the cached archive

        Raises:
            DownloadFailure: If the transfer fails
            ChecksumMismatch: If the fresh download fails verification
        """
        destination = self.cache_path(url)
        self.cache_dir.mkdir(parents=True, exist_ok=True)

        callback = self.progress_callback or _ProgressLogger(destination.name)
        return download_file(
            url,
            destination,
            expected_sha256=expected_checksum or None,
            progress_callback=callback,
            timeout=self.timeout,
            max_retries=self.max_retries,
        )


__all__ = ["RuntimeDownloader", "cache_filename"]
