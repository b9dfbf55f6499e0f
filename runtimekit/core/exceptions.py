"""
Centralized exception hierarchy for RuntimeKit.

Runtime acquisition failures (download, checksum, extraction, verification)
are fatal to ``ensure_runtime`` and reach the caller as a single classified
error. Execution failures carry the output of the failing attempt so callers
can show it verbatim.
"""

from typing import Optional


# ============================================================================
# Base Exceptions
# ============================================================================


class RuntimeKitError(Exception):
    """Base exception for all RuntimeKit errors."""

    pass


class ConfigError(RuntimeKitError):
    """Raised when the configuration file cannot be loaded or is invalid."""

    pass


# ============================================================================
# Registry Exceptions
# ============================================================================


class RegistryError(RuntimeKitError):
    """Base exception for language registry errors."""

    pass


class LanguageNotFound(RegistryError):
    """Raised when a language is not present in the registry."""

    def __init__(self, language: str):
        self.language = language
        super().__init__(f"Language not found: {language}")


class PlatformUnsupported(RegistryError):
    """Raised when a language has no download for the requested platform."""

    def __init__(self, language: str, platform: str):
        self.language = language
        self.platform = platform
        super().__init__(
            f"No download available for {language} on platform: {platform}"
        )


# ============================================================================
# Acquisition Exceptions
# ============================================================================


class AcquisitionError(RuntimeKitError):
    """Base exception for download and install failures."""

    pass


class DownloadFailure(AcquisitionError):
    """Raised when an archive cannot be fetched."""

    pass


class ChecksumMismatch(DownloadFailure):
    """Raised when a freshly downloaded archive fails checksum verification."""

    def __init__(self, filename: str, expected: str, actual: str):
        self.filename = filename
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Checksum mismatch for {filename}: expected {expected}, got {actual}"
        )


class ArchiveError(AcquisitionError):
    """Base exception for archive handling errors."""

    pass


class ArchiveFormatUnsupported(ArchiveError):
    """Archive format is not supported."""

    pass


class ExtractionFailure(ArchiveError):
    """Failed to extract an archive (corrupt data, disk I/O, unsafe paths)."""

    pass


class RuntimeProvisionError(AcquisitionError):
    """Base exception for post-install runtime checks."""

    pass


class ExecutableNotFound(RuntimeProvisionError):
    """Raised when no executable is found in an installed runtime."""

    def __init__(self, executable: str, runtime_dir):
        self.executable = executable
        self.runtime_dir = runtime_dir
        super().__init__(f"Could not find executable '{executable}' in {runtime_dir}")


class RuntimeVerificationFailure(RuntimeProvisionError):
    """Raised when an installed executable fails its runnability probe."""

    pass


# ============================================================================
# Execution Exceptions
# ============================================================================


class ExecutionError(RuntimeKitError):
    """
    Base exception for code execution errors.

    Attributes:
        output: Combined stdout/stderr of the failing attempt, if any
        returncode: Exit code of the failing attempt, if any
    """

    def __init__(
        self,
        message: str,
        output: str = "",
        returncode: Optional[int] = None,
    ):
        self.output = output
        self.returncode = returncode
        super().__init__(message)


class DependencyInstallFailure(ExecutionError):
    """Raised when a package manager fails to install a dependency."""

    def __init__(self, package: str, message: str, output: str = ""):
        self.package = package
        super().__init__(message, output=output)


class StuckLoopAborted(ExecutionError):
    """Raised when self-healing keeps failing without making progress."""

    def __init__(self, package: Optional[str], attempts: int, output: str = "",
                 returncode: Optional[int] = None):
        self.package = package
        self.attempts = attempts
        blocker = f" on '{package}'" if package else ""
        super().__init__(
            f"Self-healing stuck{blocker} after {attempts} attempt(s); aborting",
            output=output,
            returncode=returncode,
        )


class UnrecognizedExecutionFailure(ExecutionError):
    """Raised when a failure does not match any missing-dependency pattern."""

    def __init__(self, output: str, returncode: Optional[int] = None):
        super().__init__(
            f"Execution failed with exit code: {returncode}",
            output=output,
            returncode=returncode,
        )


__all__ = [
    "RuntimeKitError",
    "ConfigError",
    "RegistryError",
    "LanguageNotFound",
    "PlatformUnsupported",
    "AcquisitionError",
    "DownloadFailure",
    "ChecksumMismatch",
    "ArchiveError",
    "ArchiveFormatUnsupported",
    "ExtractionFailure",
    "RuntimeProvisionError",
    "ExecutableNotFound",
    "RuntimeVerificationFailure",
    "ExecutionError",
    "DependencyInstallFailure",
    "StuckLoopAborted",
    "UnrecognizedExecutionFailure",
]
