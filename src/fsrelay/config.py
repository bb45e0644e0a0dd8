"""Configuration for the fsrelay package."""

import fnmatch
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional


IgnorePredicate = Callable[[str], bool]


DEFAULT_IGNORE_PATTERNS = (
    "*.tmp",
    "*.swp",
    "*.swo",
    "*~",
    ".git/*",
    ".git",
    "__pycache__/*",
    "__pycache__",
    "*.pyc",
    ".DS_Store",
    "Thumbs.db",
)


@dataclass(frozen=True)
class WatchOptions:
    """
    Configuration options for a Watcher.

    Options are immutable; a running watcher never sees them change.

    Attributes:
        base: Directory that relative watch roots are joined onto
        recursive: Whether to watch directories recursively
        debounce_ms: Quiet window in milliseconds before a burst is delivered,
            None or 0 to deliver every raw event immediately
        ignore: Predicate over a path; True drops the event
        use_polling: Use watchdog's polling observer instead of the native one
    """
    base: Path
    recursive: bool = True
    debounce_ms: Optional[int] = 50
    ignore: Optional[IgnorePredicate] = None
    use_polling: bool = False

    def __post_init__(self):
        if self.base is None:
            raise ValueError("base directory is required")
        if not isinstance(self.base, Path):
            object.__setattr__(self, "base", Path(self.base))
        if self.debounce_ms is not None and self.debounce_ms < 0:
            raise ValueError(f"debounce_ms must not be negative: {self.debounce_ms}")

    @property
    def debounce_window(self) -> Optional[float]:
        """Debounce window in seconds, or None when debouncing is off."""
        if not self.debounce_ms:
            return None
        return self.debounce_ms / 1000.0

    def should_ignore(self, path: str) -> bool:
        """
        Check if a path should be dropped before debouncing.

        Args:
            path: Path to check

        Returns:
            True if the path should be ignored
        """
        if self.ignore is None:
            return False
        return bool(self.ignore(path))


def ignore_patterns(patterns: Iterable[str]) -> IgnorePredicate:
    """
    Build an ignore predicate from glob patterns.

    A pattern matches the file name, any trailing part of the path, or the
    full path.

    Args:
        patterns: Glob patterns such as "*.tmp" or "node_modules/*"

    Returns:
        Predicate returning True for paths matching any pattern
    """
    patterns = tuple(patterns)

    def matcher(path: str) -> bool:
        path_str = str(path)
        name = Path(path_str).name

        for pattern in patterns:
            if fnmatch.fnmatch(name, pattern):
                return True
            if fnmatch.fnmatch(path_str, f"*/{pattern}"):
                return True
            if fnmatch.fnmatch(path_str, pattern):
                return True

        return False

    return matcher
