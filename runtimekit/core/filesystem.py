"""
File system utilities for RuntimeKit.

This module provides:
- Archive extraction (.zip, .tar.gz/.tgz, .tar.xz) with path validation
- Unix permission preservation for zip members
- Safe directory removal and small path helpers
"""

import os
import shutil
import stat
import sys
import tarfile
import zipfile
from pathlib import Path
from typing import Callable, Optional, Union

from runtimekit.core.exceptions import (
    ArchiveFormatUnsupported,
    ExtractionFailure,
)

IS_WINDOWS = os.name == "nt"
IS_UNIX = not IS_WINDOWS

SUPPORTED_ARCHIVE_SUFFIXES = (".zip", ".tar.gz", ".tgz", ".tar.xz")


class FilesystemError(Exception):
    """Base exception for filesystem operations."""

    pass


# ============================================================================
# Path Utilities
# ============================================================================


def is_relative_to(path: Path, parent: Path) -> bool:
    """
    Check if path is relative to (under) parent directory.

    Example:
        >>> is_relative_to(Path("/home/user/project/file.txt"), Path("/home/user"))
        True
    """
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


def is_supported_archive(name: str) -> bool:
    """Return True if the filename has an extension ``extract_archive`` handles."""
    return name.lower().endswith(SUPPORTED_ARCHIVE_SUFFIXES)


# ============================================================================
# Archive Extraction
# ============================================================================


def _validate_archive_path(path: str, destination: Path) -> None:
    """
    Validate that an archive member path is safe to extract.

    Raises:
        ExtractionFailure: If path attempts directory traversal
    """
    member_path = (destination / path).resolve()

    if not is_relative_to(member_path, destination.resolve()):
        raise ExtractionFailure(
            f"Archive member '{path}' attempts directory traversal. "
            "Extraction has been blocked."
        )


def extract_archive(
    archive_path: Union[str, Path],
    destination: Union[str, Path],
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> None:
    """
    Extract an archive to a destination directory.

    The format is selected by file extension:
    - .zip (entry by entry, restoring stored Unix permission bits)
    - .tar.gz, .tgz
    - .tar.xz

    Args:
        archive_path: Path to the archive file
        destination: Directory to extract to
        progress_callback: Optional callback(current, total) for progress

    Raises:
        ArchiveFormatUnsupported: If archive format is not recognized
        ExtractionFailure: If extraction fails (corrupt archive, I/O error,
            unsafe member paths)

    Example:
        >>> extract_archive('node-v20.10.0-linux-x64.tar.xz', '/tmp/node')
    """
    archive_path = Path(archive_path)
    destination = Path(destination)

    archive_name = archive_path.name.lower()
    if not is_supported_archive(archive_name):
        raise ArchiveFormatUnsupported(
            f"Unsupported archive format: {archive_path.name}. "
            "Supported: .zip, .tar.gz, .tgz, .tar.xz"
        )

    if not archive_path.exists():
        raise ExtractionFailure(f"Archive not found: {archive_path}")

    destination.mkdir(parents=True, exist_ok=True)

    try:
        if archive_name.endswith(".zip"):
            _extract_zip(archive_path, destination, progress_callback)
        elif archive_name.endswith((".tar.gz", ".tgz")):
            _extract_tar(archive_path, destination, "r:gz", progress_callback)
        else:
            _extract_tar(archive_path, destination, "r:xz", progress_callback)
    except ExtractionFailure:
        raise
    except Exception as e:
        raise ExtractionFailure(f"Failed to extract {archive_path}: {e}") from e


def _extract_zip(
    archive_path: Path,
    destination: Path,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> None:
    """Extract a ZIP archive, restoring Unix modes and symlinks."""
    with zipfile.ZipFile(archive_path, "r") as zf:
        members = zf.infolist()
        total = len(members)

        for member in members:
            _validate_archive_path(member.filename, destination)

        for i, member in enumerate(members):
            target = destination / member.filename
            mode = member.external_attr >> 16

            if member.is_dir():
                target.mkdir(parents=True, exist_ok=True)
            elif IS_UNIX and stat.S_ISLNK(mode):
                target.parent.mkdir(parents=True, exist_ok=True)
                link_target = zf.read(member).decode("utf-8")
                _validate_archive_path(
                    str(Path(member.filename).parent / link_target), destination
                )
                if target.is_symlink() or target.exists():
                    target.unlink()
                os.symlink(link_target, target)
                continue
            else:
                target.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(member) as src, open(target, "wb") as dst:
                    shutil.copyfileobj(src, dst)

            permissions = stat.S_IMODE(mode)
            if IS_UNIX and permissions:
                os.chmod(target, permissions)

            if progress_callback:
                progress_callback(i + 1, total)


def _extract_tar(
    archive_path: Path,
    destination: Path,
    mode: str,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> None:
    """Extract a tar archive with specified compression."""
    with tarfile.open(archive_path, mode) as tar:
        members = tar.getmembers()
        total = len(members)

        for member in members:
            _validate_archive_path(member.name, destination)

        # Python 3.12+ applies its own safety filter; paths were validated above
        if sys.version_info >= (3, 12):
            tar.extractall(destination, filter="data")
        else:
            tar.extractall(destination)

        if progress_callback:
            progress_callback(total, total)


# ============================================================================
# Safe File Operations
# ============================================================================


def safe_rmtree(
    path: Union[str, Path], require_prefix: Optional[Union[str, Path]] = None
) -> None:
    """
    Safely remove a directory tree with safeguards.

    Args:
        path: Directory to remove
        require_prefix: If specified, path must be under this directory

    Raises:
        ValueError: If path is not under require_prefix
        FilesystemError: If deletion fails
    """
    path = Path(path).resolve()

    if require_prefix is not None:
        require_prefix = Path(require_prefix).resolve()
        if not is_relative_to(path, require_prefix):
            raise ValueError(
                f"Refusing to delete '{path}': not under required prefix '{require_prefix}'"
            )

    if not path.exists():
        return

    if not path.is_dir():
        raise FilesystemError(f"Path is not a directory: {path}")

    try:
        if IS_WINDOWS:

            def handle_remove_readonly(func, path, exc):
                """Error handler for Windows read-only files."""
                if not os.access(path, os.W_OK):
                    os.chmod(path, 0o777)
                    func(path)
                else:
                    raise

            shutil.rmtree(path, onerror=handle_remove_readonly)
        else:
            shutil.rmtree(path)

    except Exception as e:
        raise FilesystemError(f"Failed to remove directory '{path}': {e}") from e


__all__ = [
    "FilesystemError",
    "IS_WINDOWS",
    "IS_UNIX",
    "is_relative_to",
    "is_supported_archive",
    "extract_archive",
    "safe_rmtree",
]
