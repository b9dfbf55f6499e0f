"""
Python ecosystem adapter.

Packages are installed with ``python -m pip install <pkg> --target
<overlay>/site-packages`` and found through PYTHONPATH. User site-packages
are disabled so nothing from the host leaks into the run.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional

from runtimekit.core.download import download_file
from runtimekit.core.exceptions import (
    AcquisitionError,
    DependencyInstallFailure,
    ExecutionError,
)
from runtimekit.core.process import run_process
from runtimekit.ecosystems.base import (
    EcosystemAdapter,
    EnvOverlay,
    MissingDependency,
    compile_patterns,
    first_segment,
)
from runtimekit.runtime.index import RuntimeInfo

logger = logging.getLogger(__name__)

GET_PIP_URL = "https://bootstrap.pypa.io/get-pip.py"

# Import name -> distribution name, for modules whose names differ
IMPORT_TO_PACKAGE = {
    "PIL": "Pillow",
    "cv2": "opencv-python",
    "sklearn": "scikit-learn",
    "yaml": "PyYAML",
    "bs4": "beautifulsoup4",
    "dateutil": "python-dateutil",
    "dotenv": "python-dotenv",
    "sqlalchemy": "SQLAlchemy",
    "redis": "redis",
    "pymongo": "pymongo",
    "psycopg2": "psycopg2-binary",
}


class PythonAdapter(EcosystemAdapter):
    language = "python"
    package_manager = "pip"
    package_manager_executable = "pip"
    inline_flag = "-c"
    error_patterns = compile_patterns(
        r"ModuleNotFoundError: No module named '([^']+)'",
        r"ImportError:.*from '([^']+)'",
    )

    def normalize_package(self, raw: str) -> Optional[str]:
        """
        Map an import name to its distribution name.

        Example:
            >>> PythonAdapter().normalize_package("sklearn.linear_model")
            'scikit-learn'
            >>> PythonAdapter().normalize_package("requests.adapters")
            'requests'
        """
        for import_name, package in IMPORT_TO_PACKAGE.items():
            if raw == import_name or raw.startswith(f"{import_name}."):
                return package
        return first_segment(raw, ".")

    def site_packages(self, overlay: Path) -> Path:
        return overlay / "site-packages"

    def overlay_variables(self, overlay: Path) -> Dict[str, str]:
        return {
            "PYTHONPATH": str(self.site_packages(overlay)),
            "PYTHONNOUSERSITE": "1",
        }

    def overlay_subdirs(self, overlay: Path) -> List[Path]:
        return [overlay, self.site_packages(overlay)]

    def install_args(self, dependency: MissingDependency, overlay: EnvOverlay) -> List[str]:
        return [
            "--target",
            str(self.site_packages(overlay.overlay_dir)),
            "--disable-pip-version-check",
        ]

    def ensure_package_manager(self, runtime: RuntimeInfo, overlay: EnvOverlay) -> List[str]:
        """
        Return ``[python, -m, pip]``, bootstrapping pip with get-pip.py if the
        runtime does not ship it. A catalog that names another package
        manager gets the generic lookup instead.
        """
        if self.package_manager_descriptor().name != self.package_manager:
            return super().ensure_package_manager(runtime, overlay)

        python = str(runtime.executable)
        env = overlay.apply()
        prefix = [python, "-m", "pip"]

        if self._pip_available(prefix, env):
            return prefix

        logger.info("pip not available, bootstrapping with get-pip.py")
        get_pip_path = overlay.overlay_dir / "get-pip.py"
        try:
            download_file(GET_PIP_URL, get_pip_path)
            result = run_process([python, str(get_pip_path)], env=env, timeout=300)
        except (AcquisitionError, ExecutionError) as e:
            raise DependencyInstallFailure("pip", f"Failed to bootstrap pip: {e}") from e
        finally:
            get_pip_path.unlink(missing_ok=True)

        if not result.success or not self._pip_available(prefix, env):
            raise DependencyInstallFailure(
                "pip", "Failed to bootstrap pip with get-pip.py", result.output
            )
        logger.info("pip installed successfully")
        return prefix

    def _pip_available(self, prefix: List[str], env: Dict[str, str]) -> bool:
        try:
            result = run_process([*prefix, "--version"], env=env, timeout=30)
        except ExecutionError:
            return False
        if result.success:
            logger.debug(f"pip available: {result.output.strip()}")
        return result.success
