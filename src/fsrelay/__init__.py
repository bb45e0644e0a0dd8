"""
fsrelay

Watches a set of root folders and runs every filesystem change through an
ordered middleware pipeline.

Features:
- Debouncing of raw notifications keyed by path, kind and flag
- Classification into CREATE, MODIFY, REMOVE and OTHER at delivery time
- Onion-style middleware with single-use continuations
- Concurrent, independently failing per-event traversals
- watchdog-backed raw event source (native or polling observer)
"""

from .models import (
    RawKind,
    SemanticKind,
    RawFSEvent,
    RawEventBatch,
    WatcherEvent,
    identity_key,
)

from .config import WatchOptions, ignore_patterns, DEFAULT_IGNORE_PATTERNS

from .exceptions import (
    WatcherError,
    ConfigurationError,
    NoPathsError,
    WatcherAlreadyRunningError,
    PipelineError,
    ContinuationError,
)

from .registry import PathRegistry
from .debouncer import Debouncer
from .classifier import classify, get_file_info, resolve
from .pipeline import Context, Continuation, Pipeline, TraversalState
from .fs_watcher import watch_fs
from .watcher import Watcher


__all__ = [
    # Models
    "RawKind",
    "SemanticKind",
    "RawFSEvent",
    "RawEventBatch",
    "WatcherEvent",
    "identity_key",
    # Config
    "WatchOptions",
    "ignore_patterns",
    "DEFAULT_IGNORE_PATTERNS",
    # Exceptions
    "WatcherError",
    "ConfigurationError",
    "NoPathsError",
    "WatcherAlreadyRunningError",
    "PipelineError",
    "ContinuationError",
    # Components
    "PathRegistry",
    "Debouncer",
    "classify",
    "get_file_info",
    "resolve",
    "Context",
    "Continuation",
    "Pipeline",
    "TraversalState",
    "watch_fs",
    # Facade
    "Watcher",
]

__version__ = "0.1.0"
