"""Classification of raw change kinds into semantic kinds."""

import os
from typing import Optional

from .models import RawFSEvent, RawKind, SemanticKind, WatcherEvent


def get_file_info(path: str) -> Optional[os.stat_result]:
    """
    Look up file metadata.

    Args:
        path: Path to the file

    Returns:
        The stat result, or None if the file does not exist

    Raises:
        OSError: For any failure other than the file being absent
    """
    try:
        return os.stat(path)
    except (FileNotFoundError, NotADirectoryError):
        return None


def classify(raw_kind: RawKind, file_exists: bool) -> SemanticKind:
    """
    Map a raw kind and the current existence of the file to a semantic kind.

    A "modify" for a file that is gone is reported as a removal; editors
    that save by rename produce exactly that.

    Args:
        raw_kind: Kind reported by the raw event source
        file_exists: Whether the file exists at classification time

    Returns:
        The semantic kind
    """
    if raw_kind == RawKind.CREATE:
        return SemanticKind.CREATE

    if raw_kind == RawKind.MODIFY:
        if file_exists:
            return SemanticKind.MODIFY
        return SemanticKind.REMOVE

    if raw_kind == RawKind.REMOVE:
        return SemanticKind.REMOVE

    return SemanticKind.OTHER


def resolve(event: RawFSEvent) -> WatcherEvent:
    """
    Classify a delivered raw event.

    The metadata lookup happens now, not when the raw event occurred, so a
    file deleted during the debounce window is reported as removed.

    Args:
        event: The raw event surviving debounce

    Returns:
        The classified event

    Raises:
        OSError: If the metadata lookup fails for a reason other than
            the file being absent
    """
    file = get_file_info(event.path)
    return WatcherEvent(
        path=event.path,
        kind=classify(event.kind, file is not None),
        file=file,
        raw_kind=event.kind,
        flag=event.flag,
    )
