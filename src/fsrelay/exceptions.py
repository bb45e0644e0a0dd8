"""Custom exceptions for the fsrelay package."""


class WatcherError(Exception):
    """Base exception for all watcher errors."""
    pass


class ConfigurationError(WatcherError):
    """Watcher configuration is invalid or incomplete."""
    pass


class NoPathsError(ConfigurationError):
    """watch() was called with an empty path registry."""
    pass


class WatcherAlreadyRunningError(WatcherError):
    """Watcher is already running, or was mutated after it started."""
    pass


class PipelineError(WatcherError):
    """Error related to middleware pipeline execution."""
    pass


class ContinuationError(PipelineError):
    """A continuation was invoked twice or out of order."""

    def __init__(self, message: str, index: int, reached: int):
        super().__init__(message)
        self.index = index
        self.reached = reached
