"""
PHP ecosystem adapter.

Composer installs into ``<overlay>/vendor``; when the autoloader exists it is
prepended to every run so installed classes resolve.
"""

from pathlib import Path
from typing import Dict, List, Optional

from runtimekit.ecosystems.base import (
    Command,
    EcosystemAdapter,
    EnvOverlay,
    MissingDependency,
    compile_patterns,
    first_segment,
)
from runtimekit.runtime.index import RuntimeInfo

# Namespace prefix -> Composer package
NAMESPACE_TO_PACKAGE = {
    "Monolog\\": "monolog/monolog",
    "Symfony\\": "symfony/symfony",
    "Guzzle\\": "guzzlehttp/guzzle",
    "GuzzleHttp\\": "guzzlehttp/guzzle",
    "PHPUnit\\": "phpunit/phpunit",
}


class PhpAdapter(EcosystemAdapter):
    language = "php"
    package_manager = "composer"
    package_manager_executable = "composer"
    install_subcommand = ("require",)
    inline_flag = "-r"
    error_patterns = compile_patterns(
        r"Class '([^']+)' not found",
        r'Class "([^"]+)" not found',
    )

    def normalize_package(self, raw: str) -> Optional[str]:
        """
        Map a class name to a Composer package.

        Example:
            >>> PhpAdapter().normalize_package("Monolog\\\\Logger")
            'monolog/monolog'
        """
        name = raw.lstrip("\\")
        for namespace, package in NAMESPACE_TO_PACKAGE.items():
            if name.startswith(namespace):
                return package
        return first_segment(name, "\\").lower()

    def autoloader(self, overlay: Path) -> Path:
        return overlay / "vendor" / "autoload.php"

    def overlay_variables(self, overlay: Path) -> Dict[str, str]:
        return {
            "COMPOSER_HOME": str(overlay / "composer"),
            "COMPOSER_VENDOR_DIR": str(overlay / "vendor"),
        }

    def overlay_subdirs(self, overlay: Path) -> List[Path]:
        return [overlay, overlay / "composer"]

    def install_args(self, dependency: MissingDependency, overlay: EnvOverlay) -> List[str]:
        return ["--working-dir", str(overlay.overlay_dir), "--no-interaction"]

    def _autoload_args(self, runtime: RuntimeInfo) -> List[str]:
        autoloader = self.autoloader(self.overlay_dir(runtime))
        if autoloader.is_file():
            return ["-d", f"auto_prepend_file={autoloader}"]
        return []

    def build_command(self, runtime: RuntimeInfo, command: Command) -> List[str]:
        cmd = super().build_command(runtime, command)
        return [cmd[0], *self._autoload_args(runtime), *cmd[1:]]
