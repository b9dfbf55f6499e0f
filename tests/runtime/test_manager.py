"""
Tests for RuntimeManager.

The fakelang runtime is a tar.gz served through ``responses`` whose
executable is a shell script, so the whole acquisition pipeline runs:
download, extraction, executable lookup and the version probe.
"""

import shutil
import threading
from pathlib import Path

import pytest
import responses
from filelock import FileLock

from runtimekit.core.config import RuntimeKitConfig
from runtimekit.core.exceptions import (
    AcquisitionError,
    ChecksumMismatch,
    ExecutableNotFound,
    LanguageNotFound,
    PlatformUnsupported,
    RuntimeVerificationFailure,
)
from runtimekit.runtime.manager import RuntimeManager, executable_candidates
from runtimekit.runtime.registry import DownloadInfo, LanguageRegistry
from tests.fixtures.runtimes import (
    FAKELANG_URL,
    SCRIPT_OK,
    TEST_PLATFORM,
    build_archive,
    fakelang_definition,
    make_script,
    unix_only,
)


@pytest.fixture
def base_dir(tmp_path):
    return tmp_path / "base"


@pytest.fixture
def manager(base_dir, fake_registry):
    return RuntimeManager(base_dir, registry=fake_registry, platform=TEST_PLATFORM)


def serve(archive: Path):
    responses.add(responses.GET, FAKELANG_URL, body=archive.read_bytes())


# ============================================================================
# Executable lookup
# ============================================================================


class TestExecutableCandidates:
    def test_bin_dirs_then_root(self):
        root = Path("/rt")
        assert executable_candidates(root, "node", ("bin",)) == [
            root / "bin" / "node",
            root / "node",
        ]

    def test_root_bin_dir_not_duplicated(self):
        root = Path("/rt")
        assert executable_candidates(root, "python3", ("bin", ".")) == [
            root / "bin" / "python3",
            root / "python3",
        ]

    def test_windows_suffixes_first(self):
        root = Path("/rt")
        candidates = executable_candidates(root, "npm", ("bin",), windows=True)

        assert candidates[:4] == [
            root / "bin" / "npm.exe",
            root / "bin" / "npm.cmd",
            root / "bin" / "npm.bat",
            root / "bin" / "npm",
        ]
        assert candidates[-1] == root / "npm"


# ============================================================================
# ensure_runtime
# ============================================================================


@unix_only
class TestEnsureRuntime:
    @responses.activate
    def test_installs_runtime(self, manager, base_dir, fakelang_archive):
        serve(fakelang_archive)

        info = manager.ensure_runtime("fakelang")

        runtime_dir = base_dir / "runtimes" / "fakelang-1.0.0"
        assert info.language == "fakelang"
        assert info.version == "1.0.0"
        assert info.path == runtime_dir
        assert info.executable == runtime_dir / "bin" / "fake"
        assert (runtime_dir / "lib" / "core.txt").exists()
        assert (base_dir / "cache" / "fakelang-1.0.0-linux-x64.tar.gz").exists()
        assert manager.get_runtime("fakelang") == info
        assert manager.list_installed() == [info]

    @responses.activate
    def test_second_call_is_idempotent(self, manager, fakelang_archive):
        serve(fakelang_archive)

        first = manager.ensure_runtime("fakelang")
        second = manager.ensure_runtime("fakelang")

        assert first == second
        assert len(responses.calls) == 1

    @responses.activate
    def test_new_manager_indexes_existing_runtime(
        self, manager, base_dir, fake_registry, fakelang_archive
    ):
        serve(fakelang_archive)
        installed = manager.ensure_runtime("fakelang")

        fresh = RuntimeManager(base_dir, registry=fake_registry, platform=TEST_PLATFORM)

        assert fresh.get_runtime("fakelang") == installed
        assert fresh.ensure_runtime("fakelang") == installed
        assert len(responses.calls) == 1

    @responses.activate
    def test_runtime_installed_by_another_process(self, manager, base_dir):
        # Appears after this manager scanned; no URL is registered
        make_script(base_dir / "runtimes" / "fakelang-1.0.0" / "bin" / "fake", SCRIPT_OK)

        info = manager.ensure_runtime("fakelang")

        assert info.executable == base_dir / "runtimes" / "fakelang-1.0.0" / "bin" / "fake"
        assert len(responses.calls) == 0

    @responses.activate
    def test_reinstall_after_runtime_dir_removed_uses_cache(
        self, base_dir, fake_registry, fakelang_archive
    ):
        serve(fakelang_archive)
        RuntimeManager(base_dir, registry=fake_registry, platform=TEST_PLATFORM).ensure_runtime(
            "fakelang"
        )
        shutil.rmtree(base_dir / "runtimes" / "fakelang-1.0.0")
        fresh = RuntimeManager(base_dir, registry=fake_registry, platform=TEST_PLATFORM)

        info = fresh.ensure_runtime("fakelang")

        assert info.executable.exists()
        assert len(responses.calls) == 1

    @responses.activate
    def test_concurrent_callers_share_one_install(self, manager, fakelang_archive):
        serve(fakelang_archive)
        results = []
        errors = []

        def worker():
            try:
                results.append(manager.ensure_runtime("fakelang"))
            except Exception as e:  # noqa: BLE001
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(results) == 5
        assert len(set(results)) == 1
        assert len(responses.calls) == 1

    def test_unknown_language(self, manager):
        with pytest.raises(LanguageNotFound):
            manager.ensure_runtime("cobol")

    def test_platform_without_download(self, manager):
        with pytest.raises(PlatformUnsupported):
            manager.ensure_runtime("php")

    def test_host_platform_not_in_catalog(self, base_dir, fake_registry):
        manager = RuntimeManager(base_dir, registry=fake_registry, platform="freebsd-riscv64")

        with pytest.raises(PlatformUnsupported, match="freebsd-riscv64"):
            manager.ensure_runtime("fakelang")

    @responses.activate
    def test_checksum_mismatch(self, base_dir, fakelang_archive):
        registry = LanguageRegistry(
            {
                "fakelang": fakelang_definition(
                    downloads={TEST_PLATFORM: DownloadInfo(FAKELANG_URL, "0" * 64)}
                )
            }
        )
        manager = RuntimeManager(base_dir, registry=registry, platform=TEST_PLATFORM)
        serve(fakelang_archive)

        with pytest.raises(ChecksumMismatch):
            manager.ensure_runtime("fakelang")

        assert manager.get_runtime("fakelang") is None
        assert not (base_dir / "runtimes" / "fakelang-1.0.0").exists()

    @responses.activate
    def test_executable_missing_from_archive(self, manager, tmp_path):
        archive = build_archive(
            tmp_path / "dist" / "fakelang.tar.gz",
            {"fakelang-1.0.0/bin/other": ("#!/bin/sh\n", 0o755)},
        )
        serve(archive)

        with pytest.raises(ExecutableNotFound, match="'fake'"):
            manager.ensure_runtime("fakelang")

        assert manager.get_runtime("fakelang") is None

    @responses.activate
    def test_failing_version_probe(self, manager, tmp_path):
        archive = build_archive(
            tmp_path / "dist" / "fakelang.tar.gz",
            {"fakelang-1.0.0/bin/fake": ("#!/bin/sh\necho broken >&2\nexit 1\n", 0o755)},
        )
        serve(archive)

        with pytest.raises(RuntimeVerificationFailure, match="broken"):
            manager.ensure_runtime("fakelang")

        assert manager.get_runtime("fakelang") is None

    def test_lock_timeout(self, base_dir, fake_registry):
        manager = RuntimeManager(
            base_dir, registry=fake_registry, platform=TEST_PLATFORM, lock_timeout=0.1
        )
        held = FileLock(base_dir / "lock" / "runtime-fakelang-1.0.0.lock")
        errors = []

        def contender():
            try:
                manager.ensure_runtime("fakelang")
            except AcquisitionError as e:
                errors.append(e)

        with held:
            thread = threading.Thread(target=contender)
            thread.start()
            thread.join()

        assert len(errors) == 1
        assert "another process" in str(errors[0])


# ============================================================================
# Runtime layout helpers
# ============================================================================


@unix_only
class TestRuntimeLayout:
    @responses.activate
    def test_bin_dirs_and_find_tool(self, manager, tmp_path):
        archive = build_archive(
            tmp_path / "dist" / "fakelang.tar.gz",
            {
                "fakelang-1.0.0/bin/fake": (SCRIPT_OK, 0o755),
                "fakelang-1.0.0/bin/fpm": ("#!/bin/sh\n", 0o755),
            },
        )
        serve(archive)
        runtime = manager.ensure_runtime("fakelang")

        assert manager.bin_dirs(runtime) == [runtime.path / "bin", runtime.path]
        assert manager.find_tool(runtime, "fpm") == runtime.path / "bin" / "fpm"
        assert manager.find_tool(runtime, "absent") is None

    def test_windows_python_found_by_alias(self, tmp_path):
        manager = RuntimeManager(tmp_path / "home", platform="windows-x86_64")
        definition = manager.registry.get_language("python")
        runtime_dir = tmp_path / "python-3.11.6"
        make_script(runtime_dir / "python.exe", "")

        assert manager.find_executable(definition, runtime_dir) == runtime_dir / "python.exe"

    def test_primary_executable_name_wins_over_alias(self, tmp_path):
        manager = RuntimeManager(tmp_path / "home", platform="linux-x86_64")
        definition = manager.registry.get_language("python")
        runtime_dir = tmp_path / "python-3.11.6"
        make_script(runtime_dir / "bin" / "python", "")
        make_script(runtime_dir / "python3", "")

        assert manager.find_executable(definition, runtime_dir) == runtime_dir / "python3"

    def test_alias_missing_raises(self, tmp_path):
        manager = RuntimeManager(tmp_path / "home", platform="windows-x86_64")
        definition = manager.registry.get_language("python")

        with pytest.raises(ExecutableNotFound):
            manager.find_executable(definition, tmp_path / "empty")

    def test_runtime_dir(self, manager, base_dir):
        assert manager.runtime_dir("fakelang") == base_dir / "runtimes" / "fakelang-1.0.0"

    def test_base_structure_created(self, manager, base_dir):
        for name in ("cache", "runtimes", "lock"):
            assert (base_dir / name).is_dir()

    def test_from_config(self, tmp_path):
        catalog = tmp_path / "languages.yaml"
        catalog.write_text(
            "languages:\n"
            "  tiny:\n"
            "    name: Tiny\n"
            "    version: '0.1'\n"
            "    executable: tiny\n"
        )
        config = RuntimeKitConfig(
            base_dir=tmp_path / "rk",
            catalog=catalog,
            download_timeout=5,
            download_retries=3,
            verify_timeout=7,
            lock_timeout=9,
        )

        manager = RuntimeManager.from_config(config)

        assert manager.registry.list_languages() == ["tiny"]
        assert manager.downloader.timeout == 5
        assert manager.downloader.max_retries == 3
        assert manager.verify_timeout == 7
        assert manager.lock_timeout == 9
        assert manager.base_dir == tmp_path / "rk"
