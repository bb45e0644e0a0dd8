"""Data models for the fsrelay package."""

import hashlib
import json
import os
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional, Tuple


class RawKind(Enum):
    """Kinds of raw change notifications reported by the platform."""
    ANY = "any"
    ACCESS = "access"
    CREATE = "create"
    MODIFY = "modify"
    REMOVE = "remove"
    OTHER = "other"


class SemanticKind(Enum):
    """Kinds of changes delivered to the pipeline after classification."""
    CREATE = "create"
    MODIFY = "modify"
    REMOVE = "remove"
    OTHER = "other"


@dataclass(frozen=True)
class RawFSEvent:
    """
    A single raw change notification for one path.

    Attributes:
        path: Affected path, as reported by the source
        kind: Raw kind reported by the source
        flag: Optional platform-defined flag (e.g. "directory")
    """
    path: str
    kind: RawKind
    flag: Optional[str] = None


@dataclass(frozen=True)
class RawEventBatch:
    """
    A batch as yielded by the raw event source.

    One platform notification can touch several paths (a rename reports
    both the old and the new name), all sharing one kind and flag.

    Attributes:
        paths: Affected paths
        kind: Raw kind shared by every path
        flag: Optional platform-defined flag
    """
    paths: Tuple[str, ...]
    kind: RawKind
    flag: Optional[str] = None

    def __len__(self) -> int:
        return len(self.paths)

    def events(self) -> Iterator[RawFSEvent]:
        """Split the batch into one RawFSEvent per affected path."""
        for path in self.paths:
            yield RawFSEvent(path=path, kind=self.kind, flag=self.flag)


@dataclass(frozen=True)
class WatcherEvent:
    """
    A classified change, ready to be dispatched.

    Attributes:
        path: Affected path
        kind: Semantic kind derived from the raw kind and file existence
        file: Metadata looked up at delivery time, None if the file is gone
        raw_kind: The raw kind this event was classified from
        flag: Platform flag carried over from the raw event
    """
    path: str
    kind: SemanticKind
    file: Optional[os.stat_result]
    raw_kind: RawKind
    flag: Optional[str] = None

    @property
    def exists(self) -> bool:
        return self.file is not None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "path": self.path,
            "kind": self.kind.value,
            "exists": self.exists,
            "size": self.file.st_size if self.file is not None else None,
            "mtime": self.file.st_mtime if self.file is not None else None,
            "raw": {
                "kind": self.raw_kind.value,
                "flag": self.flag,
            },
        }


def identity_key(event: RawFSEvent) -> str:
    """
    Compute the debounce identity key of a raw event.

    The key covers path, kind and flag, so two different raw kinds for the
    same path debounce independently.

    Args:
        event: The raw event

    Returns:
        Hex digest that is stable across equal inputs
    """
    payload = json.dumps(
        {"path": event.path, "kind": event.kind.value, "flag": event.flag},
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()
