"""Custom exception hierarchy for codehealth.

Infrastructure failures (unreadable files, broken detectors, failed writes)
are reported through these types and never turned into score deductions.
"""


class CodeHealthError(Exception):
    """Base exception for all codehealth errors.

    All custom exceptions should inherit from this class to allow
    callers to catch all codehealth-specific errors with a single
    except clause when appropriate.
    """
    pass


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(CodeHealthError):
    """Base exception for configuration errors."""
    pass


class InvalidConfigError(ConfigurationError):
    """Configuration file is invalid or malformed."""
    pass


# =============================================================================
# Analysis Errors
# =============================================================================

class AnalysisError(CodeHealthError):
    """Base exception for analysis errors."""
    pass


class FileReadError(AnalysisError):
    """A source file could not be read or decoded."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


# =============================================================================
# Watcher Errors
# =============================================================================

class WatcherError(CodeHealthError):
    """Base exception for file watcher errors."""
    pass


class WatcherStartError(WatcherError):
    """The watcher could not establish its filesystem watch."""
    pass


class WatcherStateError(WatcherError):
    """Operation is not valid in the watcher's current state."""
    pass


# =============================================================================
# Fix Errors
# =============================================================================

class FixError(CodeHealthError):
    """Base exception for auto-fix errors."""
    pass


class FixWriteError(FixError):
    """A fixed file could not be written back."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path
