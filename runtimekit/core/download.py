"""
Network download manager with progress tracking and checksum verification.

This module provides:
- Streamed HTTP/HTTPS downloads written to disk chunk by chunk
- Progress reporting (bytes, percentage, speed, ETA) when the server
  declares a content length
- SHA256 verification while streaming
- Reuse of an already-downloaded file whose checksum still matches
"""

import hashlib
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import requests
from requests.exceptions import RequestException

from runtimekit.core.exceptions import ChecksumMismatch, DownloadFailure

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192


@dataclass
class DownloadProgress:
    """Progress information for a download."""

    bytes_downloaded: int
    total_bytes: int
    percentage: float
    speed_bps: float  # bytes per second
    eta_seconds: float  # estimated time remaining

    def __str__(self) -> str:
        """Format progress for display."""
        return format_progress(self)


class StreamingHasher:
    """Compute hash incrementally for streaming downloads."""

    def __init__(self, algorithm: str = "sha256"):
        """
        Initialize streaming hasher.

        Args:
            algorithm: Hash algorithm ('sha256' or 'sha512')

        Raises:
            ValueError: If algorithm is not supported
        """
        self.algorithm = algorithm.lower()

        if self.algorithm == "sha256":
            self.hasher = hashlib.sha256()
        elif self.algorithm == "sha512":
            self.hasher = hashlib.sha512()
        else:
            raise ValueError(f"Unsupported hash algorithm: {algorithm}")

    def update(self, data: bytes):
        """Add data to hash computation."""
        self.hasher.update(data)

    def finalize(self) -> str:
        """Get final hash value as hex string."""
        return self.hasher.hexdigest()

    def verify(self, expected_hash: str) -> bool:
        """Check if computed hash matches expected value (case-insensitive)."""
        return self.finalize().lower() == expected_hash.lower()


def download_file(
    url: str,
    destination: Path,
    expected_sha256: Optional[str] = None,
    progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    timeout: int = 30,
    max_retries: int = 1,
) -> Path:
    """
    Download file from URL to destination with checksum verification.

    An existing file at ``destination`` is reused without any network
    request when its checksum matches (or when no checksum is configured).
    A mismatching file is deleted and downloaded again.

    Args:
        url: URL to download from
        destination: Local path to save file
        expected_sha256: Expected SHA256 hash; empty or None skips verification
        progress_callback: Optional callback for progress updates
        timeout: Request timeout in seconds
        max_retries: Number of attempts for transport errors

    Returns:
        Path to downloaded file

    Raises:
        DownloadFailure: If the transfer fails on every attempt
        ChecksumMismatch: If the downloaded file does not match expected_sha256
        ValueError: If URL or destination is invalid

    Example:
        >>> download_file(
        ...     "https://nodejs.org/dist/v20.10.0/node-v20.10.0-linux-x64.tar.xz",
        ...     Path("cache/node-v20.10.0-linux-x64.tar.xz"),
        ... )
    """
    if not url:
        raise ValueError("URL cannot be empty")

    if not destination:
        raise ValueError("Destination path cannot be empty")

    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)

    if destination.exists():
        if verify_checksum(destination, expected_sha256):
            logger.info(f"Using cached file: {destination.name}")
            return destination
        logger.warning(f"Cached file corrupted, re-downloading: {destination.name}")
        destination.unlink()

    attempts = max(1, max_retries)
    for attempt in range(attempts):
        try:
            return _download_with_progress(
                url=url,
                destination=destination,
                expected_sha256=expected_sha256,
                progress_callback=progress_callback,
                timeout=timeout,
            )
        except (RequestException, OSError) as e:
            destination.unlink(missing_ok=True)
            if attempt == attempts - 1:
                raise DownloadFailure(
                    f"Download of {url} failed after {attempts} attempt(s): {e}"
                ) from e

            backoff_seconds = 2**attempt
            logger.warning(
                f"Download attempt {attempt + 1} failed: {e}. "
                f"Retrying in {backoff_seconds}s..."
            )
            time.sleep(backoff_seconds)

    raise DownloadFailure(f"Download of {url} failed for unknown reason")


def _download_with_progress(
    url: str,
    destination: Path,
    expected_sha256: Optional[str],
    progress_callback: Optional[Callable[[DownloadProgress], None]],
    timeout: int,
) -> Path:
    """
    Perform a single streamed download.

    Raises:
        ChecksumMismatch: If checksum doesn't match
        RequestException: If HTTP request fails
    """
    logger.info(f"Downloading from {url}...")

    response = requests.get(url, stream=True, timeout=timeout, allow_redirects=True)
    response.raise_for_status()

    total_size = _content_length(response)

    hasher = StreamingHasher("sha256") if expected_sha256 else None

    downloaded = 0
    start_time = time.time()
    last_progress_time = start_time

    with open(destination, "wb") as f:
        for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
            if not chunk:
                continue
            f.write(chunk)
            downloaded += len(chunk)

            if hasher:
                hasher.update(chunk)

            # Report progress at most twice a second
            current_time = time.time()
            if (
                progress_callback
                and total_size > 0
                and (
                    current_time - last_progress_time >= 0.5
                    or downloaded == total_size
                )
            ):
                elapsed = current_time - start_time
                speed = downloaded / elapsed if elapsed > 0 else 0
                remaining = max(total_size - downloaded, 0)
                eta = remaining / speed if speed > 0 else 0

                progress_callback(
                    DownloadProgress(
                        bytes_downloaded=downloaded,
                        total_bytes=total_size,
                        percentage=downloaded / total_size * 100,
                        speed_bps=speed,
                        eta_seconds=eta,
                    )
                )
                last_progress_time = current_time

    if expected_sha256 and hasher:
        if not hasher.verify(expected_sha256):
            actual_hash = hasher.finalize()
            destination.unlink()
            raise ChecksumMismatch(destination.name, expected_sha256, actual_hash)
        logger.debug("Checksum verified successfully")

    logger.info(f"Download complete: {destination}")
    return destination


def _content_length(response) -> int:
    """Declared body size, or 0 when absent or malformed (progress disabled)."""
    try:
        return max(int(response.headers.get("content-length") or 0), 0)
    except ValueError:
        logger.debug(f"Ignoring invalid content-length: {response.headers.get('content-length')}")
        return 0


def verify_checksum(file_path: Path, expected_sha256: Optional[str]) -> bool:
    """
    Verify file SHA256 checksum.

    Args:
        file_path: Path to file to verify
        expected_sha256: Expected SHA256 hash (hex string). Empty or None
            means no checksum is configured and always verifies.

    Returns:
        True if checksum matches, False otherwise

    Raises:
        FileNotFoundError: If file doesn't exist
    """
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    if not expected_sha256:
        return True

    hasher = hashlib.sha256()
    with open(file_path, "rb") as f:
        while chunk := f.read(CHUNK_SIZE):
            hasher.update(chunk)

    return hasher.hexdigest().lower() == expected_sha256.lower()


def format_progress(progress: DownloadProgress) -> str:
    """
    Format progress for display.

    Example:
        >>> progress = DownloadProgress(52428800, 104857600, 50.0, 1048576, 50)
        >>> print(format_progress(progress))
        50.0/100.0 MB (50.0%) at 1.0 MB/s ETA: 50s
    """
    mb_downloaded = progress.bytes_downloaded / 1024 / 1024
    mb_total = progress.total_bytes / 1024 / 1024
    speed_mbps = progress.speed_bps / 1024 / 1024

    if progress.total_bytes > 0:
        return (
            f"{mb_downloaded:.1f}/{mb_total:.1f} MB "
            f"({progress.percentage:.1f}%) "
            f"at {speed_mbps:.1f} MB/s "
            f"ETA: {progress.eta_seconds:.0f}s"
        )
    else:
        return f"{mb_downloaded:.1f} MB at {speed_mbps:.1f} MB/s"


__all__ = [
    "DownloadProgress",
    "StreamingHasher",
    "download_file",
    "verify_checksum",
    "format_progress",
]
