"""
Go ecosystem adapter.

Module downloads land in GOPATH inside the overlay; ``go get`` records the
requirement in the go.mod of the working directory.
"""

from pathlib import Path
from typing import Dict, List, Optional

from runtimekit.ecosystems.base import (
    EcosystemAdapter,
    EnvOverlay,
    MissingDependency,
    compile_patterns,
)
from runtimekit.runtime.index import RuntimeInfo


class GoAdapter(EcosystemAdapter):
    language = "go"
    package_manager = "go"
    package_manager_executable = "go"
    install_subcommand = ("get",)
    error_patterns = compile_patterns(
        r"package ([^\s]+) is not in",
        r"no required module provides package ([^\s;]+)",
    )

    def normalize_package(self, raw: str) -> Optional[str]:
        return raw

    def overlay_variables(self, overlay: Path) -> Dict[str, str]:
        return {"GOPATH": str(overlay / "gopath")}

    def overlay_subdirs(self, overlay: Path) -> List[Path]:
        return [overlay, overlay / "gopath"]

    def install_args(self, dependency: MissingDependency, overlay: EnvOverlay) -> List[str]:
        return []

    def file_command(self, runtime: RuntimeInfo, source: str, args: List[str]) -> List[str]:
        return [str(runtime.executable), "run", source, *args]
