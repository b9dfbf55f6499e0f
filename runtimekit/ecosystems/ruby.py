"""Ruby ecosystem adapter (gems installed under GEM_HOME in the overlay)."""

from pathlib import Path
from typing import Dict, List, Optional

from runtimekit.ecosystems.base import (
    EcosystemAdapter,
    EnvOverlay,
    MissingDependency,
    compile_patterns,
)


class RubyAdapter(EcosystemAdapter):
    language = "ruby"
    package_manager = "gem"
    package_manager_executable = "gem"
    inline_flag = "-e"
    error_patterns = compile_patterns(r"cannot load such file -- ([^\s\(]+)")

    def normalize_package(self, raw: str) -> Optional[str]:
        return raw

    def gem_home(self, overlay: Path) -> Path:
        return overlay / "gems"

    def overlay_variables(self, overlay: Path) -> Dict[str, str]:
        gem_home = str(self.gem_home(overlay))
        return {"GEM_HOME": gem_home, "GEM_PATH": gem_home}

    def overlay_subdirs(self, overlay: Path) -> List[Path]:
        return [overlay, self.gem_home(overlay)]

    def install_args(self, dependency: MissingDependency, overlay: EnvOverlay) -> List[str]:
        return ["--install-dir", str(self.gem_home(overlay.overlay_dir)), "--no-document"]
