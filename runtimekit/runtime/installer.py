"""
Runtime archive installation.

Archives are unpacked into a staging directory next to the destination,
normalised (distribution archives usually wrap everything in one top-level
folder such as ``node-v20.10.0-linux-x64/``), then moved into place.
"""

import logging
import shutil
import tempfile
from pathlib import Path

from runtimekit.core.exceptions import ExtractionFailure
from runtimekit.core.filesystem import extract_archive, safe_rmtree

logger = logging.getLogger(__name__)


class RuntimeInstaller:
    """Unpacks runtime archives into their final directory."""

    def install(self, archive: Path, dest_dir: Path) -> Path:
        """
        Install an archive's contents into ``dest_dir``.

        Args:
            archive: Downloaded archive (.zip, .tar.gz, .tgz, .tar.xz)
            dest_dir: Final runtime directory

        Returns:
            dest_dir

        Raises:
            ArchiveFormatUnsupported: If the extension is not recognised
            ExtractionFailure: If extraction or the final move fails
        """
        archive = Path(archive)
        dest_dir = Path(dest_dir)
        dest_dir.parent.mkdir(parents=True, exist_ok=True)

        staging = Path(
            tempfile.mkdtemp(prefix=f".{dest_dir.name}-", dir=dest_dir.parent)
        )
        logger.info(f"Extracting {archive.name}...")

        try:
            extract_archive(archive, staging)
            root = self._normalize_root_directory(staging)
            self._move_contents(root, dest_dir)
        finally:
            safe_rmtree(staging, require_prefix=dest_dir.parent)

        logger.debug(f"Installed {archive.name} into {dest_dir}")
        return dest_dir

    def _normalize_root_directory(self, extract_dir: Path) -> Path:
        """
        Return the directory holding the runtime tree.

        A single top-level directory is treated as the root; anything else
        means the archive extracted directly.
        """
        items = list(extract_dir.iterdir())
        if len(items) == 1 and items[0].is_dir() and not items[0].is_symlink():
            return items[0]
        return extract_dir

    def _move_contents(self, source: Path, dest_dir: Path) -> None:
        dest_dir.mkdir(parents=True, exist_ok=True)
        try:
            for item in source.iterdir():
                target = dest_dir / item.name
                if target.is_dir() and not target.is_symlink():
                    shutil.rmtree(target)
                elif target.exists() or target.is_symlink():
                    target.unlink()
                shutil.move(str(item), str(target))
        except OSError as e:
            raise ExtractionFailure(f"Failed to move runtime into {dest_dir}: {e}") from e


__all__ = ["RuntimeInstaller"]
