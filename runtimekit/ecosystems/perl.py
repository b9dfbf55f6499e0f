"""Perl ecosystem adapter (CPAN modules installed under INSTALL_BASE=overlay)."""

from pathlib import Path
from typing import Dict, List, Optional

from runtimekit.ecosystems.base import (
    EcosystemAdapter,
    EnvOverlay,
    MissingDependency,
    compile_patterns,
)


class PerlAdapter(EcosystemAdapter):
    language = "perl"
    package_manager = "cpan"
    package_manager_executable = "cpan"
    inline_flag = "-e"
    error_patterns = compile_patterns(r"Can't locate ([^\s]+)\.pm in")

    def normalize_package(self, raw: str) -> Optional[str]:
        return raw.replace("/", "::")

    def overlay_variables(self, overlay: Path) -> Dict[str, str]:
        return {
            "PERL5LIB": str(overlay / "lib" / "perl5"),
            "PERL_MM_OPT": f"INSTALL_BASE={overlay}",
            "PERL_MB_OPT": f"--install_base {overlay}",
            "PERL_MM_USE_DEFAULT": "1",
        }

    def overlay_subdirs(self, overlay: Path) -> List[Path]:
        return [overlay, overlay / "lib" / "perl5"]

    def install_args(self, dependency: MissingDependency, overlay: EnvOverlay) -> List[str]:
        return []
