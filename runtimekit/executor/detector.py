"""
Missing-dependency detection.

``parse_error()`` is a pure function over a failed run's combined output.
The per-language rules live on the ecosystem adapters; this module is the
language-keyed front door used by the healing loop.
"""

import logging
from typing import TYPE_CHECKING, List, Optional

from runtimekit.core.exceptions import LanguageNotFound
from runtimekit.ecosystems import get_adapter
from runtimekit.ecosystems.base import MissingDependency

if TYPE_CHECKING:
    from runtimekit.runtime.manager import RuntimeManager

logger = logging.getLogger(__name__)


def parse_error(
    language: str, output: str, manager: Optional["RuntimeManager"] = None
) -> Optional[List[MissingDependency]]:
    """
    Classify a failure as one or more missing dependencies.

    Args:
        language: Language id or alias
        output: Combined stdout/stderr of the failed run
        manager: RuntimeManager whose catalog names the package manager

    Returns:
        Dependencies in first-seen order, deduplicated by package name, or
        None when no rule matched (the failure is not a missing dependency)

    Example:
        >>> parse_error("python", "ModuleNotFoundError: No module named 'cv2'")[0].package
        'opencv-python'
        >>> parse_error("node", "Error: Cannot find module 'fs'") is None
        True
    """
    try:
        adapter = get_adapter(language, manager)
    except LanguageNotFound:
        logger.debug(f"No dependency rules for language: {language}")
        return None

    dependencies = adapter.detect_missing(output)
    if not dependencies:
        return None

    logger.debug(
        f"Detected missing {language} packages: "
        f"{', '.join(d.package for d in dependencies)}"
    )
    return dependencies


__all__ = ["MissingDependency", "parse_error"]
