"""
Node.js ecosystem adapter.

Packages go to ``<overlay>/node_modules`` via ``npm install --prefix`` and
are resolved through NODE_PATH.
"""

from pathlib import Path
from typing import Dict, List, Optional

from runtimekit.ecosystems.base import (
    EcosystemAdapter,
    EnvOverlay,
    MissingDependency,
    compile_patterns,
)

CORE_MODULES = frozenset(
    [
        "assert",
        "buffer",
        "child_process",
        "cluster",
        "crypto",
        "dgram",
        "dns",
        "domain",
        "events",
        "fs",
        "http",
        "https",
        "net",
        "os",
        "path",
        "punycode",
        "querystring",
        "readline",
        "repl",
        "stream",
        "string_decoder",
        "timers",
        "tls",
        "tty",
        "url",
        "util",
        "v8",
        "vm",
        "zlib",
    ]
)


def is_core_module(name: str) -> bool:
    if name.startswith("node:"):
        return True
    return name.split("/", 1)[0] in CORE_MODULES


class NodeAdapter(EcosystemAdapter):
    language = "node"
    package_manager = "npm"
    package_manager_executable = "npm"
    inline_flag = "-e"
    error_patterns = compile_patterns(
        r"Cannot find module '([^']+)'",
        r"Can't resolve '([^']+)'",
    )

    def normalize_package(self, raw: str) -> Optional[str]:
        """
        Reduce a require() specifier to its npm package.

        Core modules and file paths are not installable. Deep imports keep
        only the package part: ``lodash/fp`` -> ``lodash``,
        ``@babel/core/lib/x`` -> ``@babel/core``.
        """
        if is_core_module(raw) or raw.startswith((".", "/")) or ":" in raw:
            return None
        parts = raw.split("/")
        if raw.startswith("@"):
            return "/".join(parts[:2]) if len(parts) > 1 else None
        return parts[0]

    def node_modules(self, overlay: Path) -> Path:
        return overlay / "node_modules"

    def overlay_variables(self, overlay: Path) -> Dict[str, str]:
        return {"NODE_PATH": str(self.node_modules(overlay))}

    def overlay_subdirs(self, overlay: Path) -> List[Path]:
        return [overlay, self.node_modules(overlay)]

    def install_args(self, dependency: MissingDependency, overlay: EnvOverlay) -> List[str]:
        return ["--prefix", str(overlay.overlay_dir), "--no-audit", "--no-fund"]
