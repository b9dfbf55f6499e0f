"""
Ecosystem adapters.

One adapter per supported language; ``get_adapter()`` is the only lookup.

Example Usage:
-------------
    from runtimekit.ecosystems import get_adapter

    adapter = get_adapter("python")
    deps = adapter.detect_missing("ModuleNotFoundError: No module named 'yaml'")
    deps[0].package  # 'PyYAML'
"""

from typing import TYPE_CHECKING, Dict, List, Optional, Type

from runtimekit.core.exceptions import LanguageNotFound
from runtimekit.ecosystems.base import (
    Command,
    EcosystemAdapter,
    EnvOverlay,
    MissingDependency,
)
from runtimekit.ecosystems.go import GoAdapter
from runtimekit.ecosystems.java import JavaAdapter
from runtimekit.ecosystems.node import NodeAdapter
from runtimekit.ecosystems.perl import PerlAdapter
from runtimekit.ecosystems.php import PhpAdapter
from runtimekit.ecosystems.python import PythonAdapter
from runtimekit.ecosystems.ruby import RubyAdapter
from runtimekit.ecosystems.rust import RustAdapter

if TYPE_CHECKING:
    from runtimekit.runtime.manager import RuntimeManager

ADAPTERS: Dict[str, Type[EcosystemAdapter]] = {
    adapter.language: adapter
    for adapter in (
        PythonAdapter,
        NodeAdapter,
        RubyAdapter,
        GoAdapter,
        RustAdapter,
        JavaAdapter,
        PhpAdapter,
        PerlAdapter,
    )
}

ALIASES = {
    "nodejs": "node",
    "python3": "python",
    "golang": "go",
}


def canonical_language(language: str) -> str:
    """Resolve aliases ('nodejs' -> 'node'); unknown names pass through."""
    name = language.lower()
    return ALIASES.get(name, name)


def get_adapter(
    language: str, manager: Optional["RuntimeManager"] = None
) -> EcosystemAdapter:
    """
    Create the adapter for a language.

    Args:
        language: Language id or alias
        manager: RuntimeManager for locating bundled tools

    Raises:
        LanguageNotFound: If no adapter exists for the language
    """
    try:
        adapter_class = ADAPTERS[canonical_language(language)]
    except KeyError:
        raise LanguageNotFound(language) from None
    return adapter_class(manager)


def supported_languages() -> List[str]:
    return sorted(ADAPTERS)


__all__ = [
    "ADAPTERS",
    "Command",
    "EcosystemAdapter",
    "EnvOverlay",
    "MissingDependency",
    "canonical_language",
    "get_adapter",
    "supported_languages",
    "PythonAdapter",
    "NodeAdapter",
    "RubyAdapter",
    "GoAdapter",
    "RustAdapter",
    "JavaAdapter",
    "PhpAdapter",
    "PerlAdapter",
]
