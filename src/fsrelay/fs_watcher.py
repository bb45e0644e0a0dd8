"""Raw filesystem event source using the watchdog library."""

import asyncio
import logging
from typing import AsyncIterator, Callable, Optional, Sequence

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.polling import PollingObserver

from .models import RawEventBatch, RawKind


logger = logging.getLogger(__name__)


RawEventSource = Callable[..., AsyncIterator[RawEventBatch]]


# watchdog event_type -> raw kind
_KIND_MAP = {
    "created": RawKind.CREATE,
    "deleted": RawKind.REMOVE,
    "modified": RawKind.MODIFY,
    "moved": RawKind.MODIFY,
    "opened": RawKind.ACCESS,
    "closed": RawKind.ACCESS,
    "closed_no_write": RawKind.ACCESS,
}

DIRECTORY_FLAG = "directory"


def to_raw_batch(event: FileSystemEvent) -> RawEventBatch:
    """
    Convert a watchdog event to a RawEventBatch.

    A move is reported as a modify of both the source and the destination;
    classification later turns the vanished source into a removal.

    Args:
        event: The watchdog event

    Returns:
        The raw batch
    """
    paths = [_decode(event.src_path)]
    dest_path = getattr(event, "dest_path", "")
    if event.event_type == "moved" and dest_path:
        paths.append(_decode(dest_path))

    return RawEventBatch(
        paths=tuple(paths),
        kind=_KIND_MAP.get(event.event_type, RawKind.OTHER),
        flag=DIRECTORY_FLAG if event.is_directory else None,
    )


def _decode(path) -> str:
    if isinstance(path, bytes):
        return path.decode("utf-8", errors="surrogateescape")
    return str(path)


class FSEventHandler(FileSystemEventHandler):
    """Handler that forwards watchdog events into an asyncio queue."""

    def __init__(self, loop: asyncio.AbstractEventLoop, queue: "asyncio.Queue[RawEventBatch]"):
        super().__init__()
        self.loop = loop
        self.queue = queue

    def on_any_event(self, event: FileSystemEvent) -> None:
        # Runs on the observer thread
        if self.loop.is_closed():
            return
        batch = to_raw_batch(event)
        try:
            self.loop.call_soon_threadsafe(self.queue.put_nowait, batch)
        except RuntimeError:
            logger.debug(f"Event loop closed, dropping {batch.kind.value} {batch.paths}")


async def watch_fs(
    paths: Sequence[str],
    recursive: bool = True,
    use_polling: bool = False,
    stop_event: Optional[asyncio.Event] = None,
) -> AsyncIterator[RawEventBatch]:
    """
    Yield raw event batches for the given roots.

    The observer starts on first iteration and is stopped when the
    generator is closed, or when stop_event is set.

    Args:
        paths: Roots to subscribe to; duplicates are scheduled twice
        recursive: Whether to watch subdirectories
        use_polling: Use PollingObserver instead of the native observer
        stop_event: Ends iteration once set

    Yields:
        RawEventBatch objects, in the order watchdog reported them
    """
    loop = asyncio.get_running_loop()
    queue: "asyncio.Queue[RawEventBatch]" = asyncio.Queue()
    handler = FSEventHandler(loop, queue)

    observer = PollingObserver() if use_polling else Observer()
    stop_wait: Optional[asyncio.Task] = None

    try:
        # A root that fails to schedule still stops the emitters already started
        for path in paths:
            observer.schedule(handler, path, recursive=recursive)
        observer.start()
        logger.info(f"Watching {len(paths)} root(s) (recursive={recursive}, polling={use_polling})")

        if stop_event is not None:
            stop_wait = asyncio.ensure_future(stop_event.wait())

        while True:
            get_next = asyncio.ensure_future(queue.get())
            waiters = {get_next} if stop_wait is None else {get_next, stop_wait}
            try:
                await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
            except BaseException:
                get_next.cancel()
                raise

            if get_next.done():
                yield get_next.result()
                continue

            get_next.cancel()
            break
    finally:
        if stop_wait is not None:
            stop_wait.cancel()
        observer.stop()
        if observer.is_alive():
            observer.join(timeout=5.0)
        logger.info("Stopped watching")
