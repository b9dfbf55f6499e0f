"""
Per-language isolation overlays.

Each installed runtime gets an ``overlay/`` directory inside its own tree
that takes priority in module resolution. The directory is created the
first time the language is used, and the overlay description is cached so
later calls reuse it.
"""

import logging
import threading
from typing import TYPE_CHECKING, Dict, Optional

from runtimekit.ecosystems import get_adapter
from runtimekit.ecosystems.base import EnvOverlay
from runtimekit.runtime.index import RuntimeInfo

if TYPE_CHECKING:
    from runtimekit.runtime.manager import RuntimeManager

logger = logging.getLogger(__name__)


class IsolationBuilder:
    """
    Builds and caches ``EnvOverlay`` objects per runtime.

    Example:
        >>> builder = IsolationBuilder(manager)
        >>> overlay = builder.build(manager.ensure_runtime("python"))
        >>> overlay.variables["PYTHONPATH"]
        '/home/user/.runtimekit/runtimes/python-3.11.6/overlay/site-packages'
    """

    def __init__(self, manager: Optional["RuntimeManager"] = None):
        self.manager = manager
        self._lock = threading.Lock()
        self._overlays: Dict[str, EnvOverlay] = {}

    def build(self, runtime: RuntimeInfo) -> EnvOverlay:
        """
        Return the overlay for ``runtime``, creating its directories if absent.

        Raises:
            LanguageNotFound: If no adapter exists for the runtime's language
        """
        key = runtime.runtime_id
        with self._lock:
            overlay = self._overlays.get(key)
            if overlay is not None:
                return overlay

            adapter = get_adapter(runtime.language, self.manager)
            overlay = adapter.isolate(runtime)
            for directory in adapter.overlay_subdirs(overlay.overlay_dir):
                if not directory.exists():
                    directory.mkdir(parents=True, exist_ok=True)
                    logger.debug(f"Created isolation directory: {directory}")

            self._overlays[key] = overlay
            return overlay


__all__ = ["EnvOverlay", "IsolationBuilder"]
