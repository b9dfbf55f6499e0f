"""
Tests for runtime archive installation.
"""

import pytest

from runtimekit.core.exceptions import ArchiveFormatUnsupported, ExtractionFailure
from runtimekit.runtime.installer import RuntimeInstaller
from tests.fixtures.runtimes import SCRIPT_OK, build_archive


@pytest.fixture
def installer():
    return RuntimeInstaller()


def _leftovers(directory):
    return [p.name for p in directory.iterdir() if p.name.startswith(".")]


def test_single_top_level_directory_is_collapsed(tmp_path, installer, fakelang_archive):
    dest = tmp_path / "runtimes" / "fakelang-1.0.0"

    result = installer.install(fakelang_archive, dest)

    assert result == dest
    assert (dest / "bin" / "fake").read_text() == SCRIPT_OK
    assert (dest / "lib" / "core.txt").exists()
    assert not (dest / "fakelang-1.0.0").exists()


def test_flat_archive_installs_as_is(tmp_path, installer):
    archive = build_archive(
        tmp_path / "flat.zip",
        {"go/bin/go": ("#!/bin/sh\n", 0o755), "VERSION": ("go1.21.5", 0o644)},
    )
    dest = tmp_path / "runtimes" / "go-1.21.5"

    installer.install(archive, dest)

    assert (dest / "go" / "bin" / "go").exists()
    assert (dest / "VERSION").read_text() == "go1.21.5"


def test_staging_directory_removed(tmp_path, installer, fakelang_archive):
    runtimes = tmp_path / "runtimes"

    installer.install(fakelang_archive, runtimes / "fakelang-1.0.0")

    assert _leftovers(runtimes) == []


def test_reinstall_replaces_existing_files(tmp_path, installer, fakelang_archive):
    dest = tmp_path / "runtimes" / "fakelang-1.0.0"
    (dest / "bin").mkdir(parents=True)
    (dest / "bin" / "fake").write_text("stale")
    (dest / "extra.txt").write_text("kept")

    installer.install(fakelang_archive, dest)

    assert (dest / "bin" / "fake").read_text() == SCRIPT_OK
    assert (dest / "extra.txt").read_text() == "kept"


def test_unsupported_format(tmp_path, installer):
    archive = tmp_path / "runtime.pkg"
    archive.write_bytes(b"xar!")
    runtimes = tmp_path / "runtimes"

    with pytest.raises(ArchiveFormatUnsupported):
        installer.install(archive, runtimes / "fakelang-1.0.0")

    assert _leftovers(runtimes) == []
    assert not (runtimes / "fakelang-1.0.0").exists()


def test_corrupt_archive_cleans_staging(tmp_path, installer):
    archive = tmp_path / "broken.tar.gz"
    archive.write_bytes(b"not gzip data")
    runtimes = tmp_path / "runtimes"

    with pytest.raises(ExtractionFailure):
        installer.install(archive, runtimes / "fakelang-1.0.0")

    assert _leftovers(runtimes) == []
