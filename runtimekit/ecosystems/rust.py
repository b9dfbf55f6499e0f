"""
Rust ecosystem adapter.

A file runs inside a scratch cargo project kept in the overlay: the source
becomes ``src/main.rs`` and ``cargo run`` builds and executes it, passing
the program arguments after ``--``. Missing crates are added to that
project's Cargo.toml with ``cargo add``. CARGO_HOME points into the overlay
so the registry cache stays out of ``~/.cargo``.
"""

import shutil
from pathlib import Path
from typing import Dict, List, Optional

from runtimekit.core.exceptions import ExecutionError
from runtimekit.ecosystems.base import (
    EcosystemAdapter,
    EnvOverlay,
    MissingDependency,
    compile_patterns,
    first_segment,
)
from runtimekit.runtime.index import RuntimeInfo

PROJECT_MANIFEST = """\
[package]
name = "runtimekit-script"
version = "0.1.0"
edition = "2021"

[dependencies]
"""


class RustAdapter(EcosystemAdapter):
    language = "rust"
    package_manager = "cargo"
    package_manager_executable = "cargo"
    install_subcommand = ("add",)
    error_patterns = compile_patterns(
        r"unresolved import `([^`]+)`",
        r"use of undeclared crate or module `([^`]+)`",
    )

    def normalize_package(self, raw: str) -> Optional[str]:
        crate = first_segment(raw, "::")
        if crate in ("crate", "self", "super", "std", "core", "alloc"):
            return None
        return crate

    def project_dir(self, overlay: Path) -> Path:
        return overlay / "project"

    def manifest(self, overlay: Path) -> Path:
        return self.project_dir(overlay) / "Cargo.toml"

    def ensure_project(self, overlay: Path) -> Path:
        """Create the scratch project on first use; return its manifest."""
        manifest = self.manifest(overlay)
        (self.project_dir(overlay) / "src").mkdir(parents=True, exist_ok=True)
        if not manifest.exists():
            manifest.write_text(PROJECT_MANIFEST, encoding="utf-8")
        return manifest

    def overlay_variables(self, overlay: Path) -> Dict[str, str]:
        return {"CARGO_HOME": str(overlay / "cargo")}

    def overlay_subdirs(self, overlay: Path) -> List[Path]:
        return [overlay, overlay / "cargo", self.project_dir(overlay) / "src"]

    def file_command(self, runtime: RuntimeInfo, source: str, args: List[str]) -> List[str]:
        overlay = self.overlay_dir(runtime)
        manifest = self.ensure_project(overlay)
        shutil.copyfile(source, self.project_dir(overlay) / "src" / "main.rs")

        cargo = self.find_tool(runtime, self.package_manager_descriptor().executable)
        if cargo is None:
            raise ExecutionError(f"cargo not found in {runtime.path} or on PATH")
        return [str(cargo), "run", "--quiet", "--manifest-path", str(manifest), "--", *args]

    def install_args(self, dependency: MissingDependency, overlay: EnvOverlay) -> List[str]:
        manifest = self.ensure_project(overlay.overlay_dir)
        return ["--manifest-path", str(manifest)]
