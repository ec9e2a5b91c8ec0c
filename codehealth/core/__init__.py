"""Core utilities for configuration, logging, file discovery and errors."""

from .config import (
    AutoFixConfig,
    CheckToggles,
    HealthConfig,
    Thresholds,
    WatcherConfig,
    load_config,
)
from .exceptions import (
    AnalysisError,
    CodeHealthError,
    ConfigurationError,
    FileReadError,
    FixError,
    FixWriteError,
    InvalidConfigError,
    WatcherError,
    WatcherStartError,
    WatcherStateError,
)
from .file_discovery import (
    DEFAULT_IGNORE_PATTERNS,
    find_directories,
    find_source_files,
    is_test_file,
    read_source_file,
    read_source_files,
    should_ignore,
)
from .logging_config import configure_health_logging, get_event_logger

__all__ = [
    # Configuration
    "HealthConfig",
    "CheckToggles",
    "Thresholds",
    "AutoFixConfig",
    "WatcherConfig",
    "load_config",
    # Logging
    "configure_health_logging",
    "get_event_logger",
    # File discovery
    "DEFAULT_IGNORE_PATTERNS",
    "find_source_files",
    "find_directories",
    "is_test_file",
    "read_source_file",
    "read_source_files",
    "should_ignore",
    # Exceptions
    "CodeHealthError",
    "ConfigurationError",
    "InvalidConfigError",
    "AnalysisError",
    "FileReadError",
    "WatcherError",
    "WatcherStartError",
    "WatcherStateError",
    "FixError",
    "FixWriteError",
]
