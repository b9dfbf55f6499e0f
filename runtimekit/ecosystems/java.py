"""
Java ecosystem adapter.

Missing packages are resolved to Maven coordinates and copied into
``<overlay>/lib`` with the maven-dependency-plugin; CLASSPATH picks up every
jar there. Maven is not part of the JDK, so ``mvn`` comes from PATH.
"""

import os
from pathlib import Path
from typing import Dict, List, Optional

from runtimekit.ecosystems.base import (
    EcosystemAdapter,
    EnvOverlay,
    MissingDependency,
    compile_patterns,
)

# Java package prefix -> Maven coordinates
PACKAGE_TO_ARTIFACT = {
    "com.google.gson": "com.google.code.gson:gson:2.10",
    "org.json": "org.json:json:20230227",
    "com.fasterxml.jackson": "com.fasterxml.jackson.core:jackson-databind:2.15.0",
}


class JavaAdapter(EcosystemAdapter):
    language = "java"
    package_manager = "maven"
    package_manager_executable = "mvn"
    install_subcommand = ("dependency:copy",)
    error_patterns = compile_patterns(r"package ([\w.]+) does not exist")

    def normalize_package(self, raw: str) -> Optional[str]:
        """
        Map a Java package to Maven coordinates.

        Example:
            >>> JavaAdapter().normalize_package("org.json")
            'org.json:json:20230227'
            >>> JavaAdapter().normalize_package("org.apache.commons.lang3")
            'org.apache.commons.lang3:lang3:LATEST'
        """
        for prefix, artifact in PACKAGE_TO_ARTIFACT.items():
            if raw.startswith(prefix):
                return artifact
        return f"{raw}:{raw.rsplit('.', 1)[-1]}:LATEST"

    def package_args(self, package: str) -> List[str]:
        return [f"-Dartifact={package}"]

    def lib_dir(self, overlay: Path) -> Path:
        return overlay / "lib"

    def overlay_variables(self, overlay: Path) -> Dict[str, str]:
        # Wildcard entry is expanded by the JVM, not the shell
        return {"CLASSPATH": os.pathsep.join([str(self.lib_dir(overlay) / "*"), "."])}

    def overlay_subdirs(self, overlay: Path) -> List[Path]:
        return [overlay, self.lib_dir(overlay)]

    def install_args(self, dependency: MissingDependency, overlay: EnvOverlay) -> List[str]:
        return [
            f"-DoutputDirectory={self.lib_dir(overlay.overlay_dir)}",
            f"-Dmaven.repo.local={overlay.overlay_dir / 'repository'}",
            "--batch-mode",
        ]
