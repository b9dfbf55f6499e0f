"""
Core functionality for RuntimeKit.

This package contains the foundational modules that other components depend on.
"""

from .directory import (
    get_base_dir,
    ensure_base_structure,
)

from .locking import (
    LockManager,
    LockTimeout,
    ReadWriteLock,
    SingleFlight,
)

from .platform import (
    PlatformInfo,
    detect_platform,
    platform_key,
    clear_platform_cache,
)

from .config import (
    RuntimeKitConfig,
    load_config,
)

from .exceptions import (
    RuntimeKitError,
    ConfigError,
    RegistryError,
    LanguageNotFound,
    PlatformUnsupported,
    AcquisitionError,
    DownloadFailure,
    ChecksumMismatch,
    ArchiveError,
    ArchiveFormatUnsupported,
    ExtractionFailure,
    RuntimeProvisionError,
    ExecutableNotFound,
    RuntimeVerificationFailure,
    ExecutionError,
    DependencyInstallFailure,
    StuckLoopAborted,
    UnrecognizedExecutionFailure,
)

__all__ = [
    "get_base_dir",
    "ensure_base_structure",
    "LockManager",
    "LockTimeout",
    "ReadWriteLock",
    "SingleFlight",
    "PlatformInfo",
    "detect_platform",
    "platform_key",
    "clear_platform_cache",
    "RuntimeKitConfig",
    "load_config",
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
