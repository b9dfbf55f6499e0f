"""
RuntimeKit - run code in any of several languages without a pre-installed
toolchain, repairing missing-package failures automatically.

Two entry points:

    from runtimekit import RuntimeManager, SelfHealingExecutor, Command

    manager = RuntimeManager(Path.home() / ".runtimekit")
    manager.ensure_runtime("node")

    executor = SelfHealingExecutor(manager)
    outcome = executor.execute("python", Command("@python", ["import yaml"]))
"""

try:
    from importlib.metadata import version

    __version__ = version("runtimekit")
except Exception:
    __version__ = "0.1.0"

from runtimekit.executor.healing import (  # noqa: E402
    Command,
    ExecutionOutcome,
    SelfHealingExecutor,
)
from runtimekit.runtime.manager import RuntimeManager  # noqa: E402
from runtimekit.runtime.index import RuntimeInfo  # noqa: E402

__all__ = [
    "__version__",
    "Command",
    "ExecutionOutcome",
    "RuntimeInfo",
    "RuntimeManager",
    "SelfHealingExecutor",
]
