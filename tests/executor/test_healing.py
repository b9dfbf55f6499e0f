"""
Tests for the self-healing execution loop.

Runs and installs are mocked: ``run_process`` returns scripted results and
``PythonAdapter.install`` records which packages were requested.
"""

import logging
from unittest.mock import MagicMock, patch

import pytest

from runtimekit.core.exceptions import (
    DependencyInstallFailure,
    ExecutionError,
    LanguageNotFound,
    StuckLoopAborted,
    UnrecognizedExecutionFailure,
)
from runtimekit.core.process import ProcessResult
from runtimekit.ecosystems import Command
from runtimekit.ecosystems.python import PythonAdapter
from runtimekit.executor.healing import SelfHealingExecutor
from runtimekit.runtime.manager import RuntimeManager
from runtimekit.runtime.registry import LanguageRegistry

RUN_PROCESS = "runtimekit.executor.healing.run_process"

MISSING_YAML = "ModuleNotFoundError: No module named 'yaml'"
MISSING_REQUESTS = "ModuleNotFoundError: No module named 'requests'"


def ok(output="done\n"):
    return ProcessResult(args=[], returncode=0, output=output)


def failed(output, returncode=1):
    return ProcessResult(args=[], returncode=returncode, output=output)


@pytest.fixture
def manager(fake_python_runtime):
    manager = MagicMock(spec=RuntimeManager)
    manager.registry = LanguageRegistry.load()
    manager.ensure_runtime.return_value = fake_python_runtime
    manager.bin_dirs.return_value = [fake_python_runtime.path / "bin"]
    return manager


@pytest.fixture
def executor(manager, tmp_path):
    return SelfHealingExecutor(manager, cwd=tmp_path, timeout=30)


@pytest.fixture
def install():
    with patch.object(PythonAdapter, "install", autospec=True) as mock_install:
        yield mock_install


def installed_packages(mock_install):
    return [c[0][1].package for c in mock_install.call_args_list]


COMMAND = Command("@python", ["import yaml, requests"])


class TestSuccess:
    def test_first_attempt(self, executor, install):
        with patch(RUN_PROCESS, return_value=ok("hello\n")):
            outcome = executor.execute("python", COMMAND)

        assert outcome.attempts == 1
        assert outcome.installed_packages == []
        assert outcome.output == "hello\n"
        install.assert_not_called()

    def test_runs_in_overlay_environment(self, executor, install, fake_python_runtime, tmp_path):
        with patch(RUN_PROCESS, return_value=ok()) as mock_run:
            executor.execute("python3", COMMAND)

        args, kwargs = mock_run.call_args
        assert args[0] == [str(fake_python_runtime.executable), "-c", "import yaml, requests"]
        assert kwargs["cwd"] == tmp_path
        assert kwargs["timeout"] == 30
        assert kwargs["env"]["PYTHONPATH"] == str(
            fake_python_runtime.path / "overlay" / "site-packages"
        )

    def test_installs_each_new_package_then_succeeds(self, executor, install, caplog):
        results = [failed(MISSING_YAML), failed(MISSING_REQUESTS), ok()]

        with caplog.at_level(logging.INFO, logger="runtimekit.executor.healing"):
            with patch(RUN_PROCESS, side_effect=results):
                outcome = executor.execute("python", COMMAND)

        assert outcome.attempts == 3
        assert outcome.installed_packages == ["PyYAML", "requests"]
        assert installed_packages(install) == ["PyYAML", "requests"]
        assert "Retrying (attempt 2)..." in caplog.text
        assert "Execution succeeded after 3 attempt(s) (2 packages installed)" in caplog.text

    def test_installs_all_packages_from_one_failure_in_order(self, executor, install):
        results = [failed(f"{MISSING_YAML}\n{MISSING_REQUESTS}"), ok()]

        with patch(RUN_PROCESS, side_effect=results):
            outcome = executor.execute("python", COMMAND)

        assert outcome.attempts == 2
        assert installed_packages(install) == ["PyYAML", "requests"]

    def test_install_uses_executor_settings(self, manager, install, fake_python_runtime, tmp_path):
        executor = SelfHealingExecutor(manager, cwd=tmp_path, install_timeout=42)

        with patch(RUN_PROCESS, side_effect=[failed(MISSING_YAML), ok()]):
            executor.execute("python", COMMAND)

        _, dependency, runtime, overlay = install.call_args[0]
        assert runtime is fake_python_runtime
        assert overlay.overlay_dir == fake_python_runtime.path / "overlay"
        assert install.call_args[1] == {"cwd": tmp_path, "timeout": 42}

    def test_already_installed_package_is_skipped(self, executor, install, caplog):
        results = [
            failed(MISSING_YAML),
            failed(f"{MISSING_YAML}\n{MISSING_REQUESTS}"),
            ok(),
        ]

        with caplog.at_level(logging.INFO, logger="runtimekit.executor.healing"):
            with patch(RUN_PROCESS, side_effect=results):
                outcome = executor.execute("python", COMMAND)

        assert outcome.installed_packages == ["PyYAML", "requests"]
        assert installed_packages(install) == ["PyYAML", "requests"]
        assert "Package PyYAML already installed, skipping" in caplog.text


class TestFailure:
    def test_same_package_keeps_failing(self, executor, install):
        with patch(RUN_PROCESS, return_value=failed(MISSING_YAML)) as mock_run:
            with pytest.raises(StuckLoopAborted) as exc_info:
                executor.execute("python", COMMAND)

        assert install.call_count <= 2
        assert installed_packages(install) == ["PyYAML"]
        assert mock_run.call_count == 2
        assert exc_info.value.package == "PyYAML"
        assert exc_info.value.output == MISSING_YAML
        assert exc_info.value.returncode == 1

    def test_several_packages_that_stay_missing(self, executor, install):
        output = f"{MISSING_YAML}\n{MISSING_REQUESTS}"

        with patch(RUN_PROCESS, return_value=failed(output)) as mock_run:
            with pytest.raises(StuckLoopAborted) as exc_info:
                executor.execute("python", COMMAND)

        assert installed_packages(install) == ["PyYAML", "requests"]
        assert mock_run.call_count == 3
        assert exc_info.value.output == output

    def test_already_installed_package_does_not_reset_stuck_counter(self, executor, install):
        results = [
            failed(MISSING_YAML),
            failed(MISSING_REQUESTS),
            failed(MISSING_YAML),
            failed(MISSING_REQUESTS),
            ok(),
        ]

        with patch(RUN_PROCESS, side_effect=results) as mock_run:
            with pytest.raises(StuckLoopAborted):
                executor.execute("python", COMMAND)

        assert installed_packages(install) == ["PyYAML", "requests"]
        assert mock_run.call_count == 4

    def test_install_failure_is_logged_then_stuck(self, executor, install, caplog):
        install.side_effect = DependencyInstallFailure("PyYAML", "pip exited with code 1")

        with caplog.at_level(logging.WARNING, logger="runtimekit.executor.healing"):
            with patch(RUN_PROCESS, return_value=failed(MISSING_YAML)):
                with pytest.raises(StuckLoopAborted):
                    executor.execute("python", COMMAND)

        assert install.call_count == 1
        assert "Failed to install PyYAML" in caplog.text

    def test_unrecognized_failure_is_not_retried(self, executor, install):
        output = "Traceback...\nZeroDivisionError: division by zero\n"

        with patch(RUN_PROCESS, return_value=failed(output, returncode=2)) as mock_run:
            with pytest.raises(UnrecognizedExecutionFailure) as exc_info:
                executor.execute("python", COMMAND)

        assert exc_info.value.output == output
        assert exc_info.value.returncode == 2
        assert mock_run.call_count == 1
        install.assert_not_called()

    def test_unknown_language(self, executor, manager):
        with pytest.raises(LanguageNotFound):
            executor.execute("cobol", Command("@cobol", ["DISPLAY 1"]))

        manager.ensure_runtime.assert_not_called()

    def test_runtime_errors_propagate(self, executor, manager):
        manager.ensure_runtime.side_effect = ExecutionError("no runtime")

        with pytest.raises(ExecutionError, match="no runtime"):
            executor.execute("python", COMMAND)

    def test_missing_source_file(self, executor, tmp_path):
        with pytest.raises(ExecutionError, match="File not found"):
            executor.execute("python", Command("python", [str(tmp_path / "nope.py")]))
