"""
Code execution with automatic dependency repair.
"""

from runtimekit.executor.detector import MissingDependency, parse_error
from runtimekit.executor.healing import (
    Command,
    ExecutionOutcome,
    HealingState,
    SelfHealingExecutor,
)
from runtimekit.executor.isolation import EnvOverlay, IsolationBuilder

__all__ = [
    "Command",
    "EnvOverlay",
    "ExecutionOutcome",
    "HealingState",
    "IsolationBuilder",
    "MissingDependency",
    "SelfHealingExecutor",
    "parse_error",
]
