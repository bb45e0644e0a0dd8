"""Watcher facade: source, ignore filter, debouncer, classifier and pipeline."""

import asyncio
import logging
from pathlib import Path
from typing import Callable, Generic, Iterable, List, Optional, Set, TypeVar, Union

from .classifier import resolve
from .config import WatchOptions
from .debouncer import Debouncer
from .exceptions import NoPathsError, WatcherAlreadyRunningError
from .fs_watcher import RawEventSource, watch_fs
from .models import RawFSEvent
from .pipeline import Context, Middleware, Pipeline
from .registry import PathRegistry


logger = logging.getLogger(__name__)

S = TypeVar("S")

ReadyCallback = Callable[[], None]
ErrorCallback = Callable[[BaseException, RawFSEvent], None]


class Watcher(Generic[S]):
    """
    Watches a set of roots and runs every coalesced change through a
    middleware pipeline.

    Roots and middleware are registered before watch() is called. Once
    watching has started both are read-only and further registrations
    raise WatcherAlreadyRunningError.

    Each delivered event is classified and dispatched in its own task.
    The loop that consumes the raw source never waits for those tasks, so
    several traversals can be in flight at once. A failure inside one
    traversal is reported to the error callbacks (or logged when there are
    none) and does not affect the others.

    Example:
        watcher = Watcher(WatchOptions(base=Path("/project")), ["src"])

        @watcher.use
        async def log_changes(ctx, call_next):
            print(ctx.event.value, ctx.path)
            await call_next()

        await watcher.watch()
    """

    def __init__(
        self,
        options: WatchOptions,
        paths: Optional[Union[str, Path, Iterable[Union[str, Path]]]] = None,
        source: RawEventSource = watch_fs,
        state_factory: Callable[[], S] = dict,
    ):
        """
        Initialize the watcher.

        Args:
            options: Watch options; base directory, debounce window, ignore filter
            paths: Initial roots, relative to options.base or absolute
            source: Raw event source factory (defaults to the watchdog source)
            state_factory: Builds the scratch state of each event context
        """
        self.options = options
        self._registry = PathRegistry(options.base)
        self._pipeline = Pipeline()
        self._source = source
        self._state_factory = state_factory

        self._ready_callbacks: List[ReadyCallback] = []
        self._error_callbacks: List[ErrorCallback] = []

        self._debouncer: Optional[Debouncer] = None
        self._tasks: Set[asyncio.Task] = set()
        self._stop_event: Optional[asyncio.Event] = None
        self._running = False

        if paths:
            self.add_paths(paths)

    # -- registration -------------------------------------------------

    def add_path(self, path: Union[str, Path]) -> str:
        """Add a watch root. Returns the resolved root."""
        return self._registry.add_path(path)

    def add_paths(self, paths: Union[str, Path, Iterable[Union[str, Path]]]) -> List[str]:
        """Add several watch roots. Returns the resolved roots."""
        return self._registry.add_paths(paths)

    @property
    def paths(self) -> List[str]:
        return self._registry.paths

    def use(self, middleware: Middleware) -> Middleware:
        """Append a middleware stage. Usable as a decorator."""
        return self._pipeline.use(middleware)

    @property
    def pipeline(self) -> Pipeline:
        return self._pipeline

    def on_ready(self, callback: ReadyCallback) -> ReadyCallback:
        """Register a callback fired once watching has started."""
        self._ready_callbacks.append(callback)
        return callback

    def on_error(self, callback: ErrorCallback) -> ErrorCallback:
        """Register a callback receiving (exception, raw_event) for failed events."""
        self._error_callbacks.append(callback)
        return callback

    # -- state ----------------------------------------------------------

    @property
    def is_watching(self) -> bool:
        return self._running

    @property
    def in_flight(self) -> int:
        """Number of traversals currently running."""
        return len(self._tasks)

    @property
    def pending(self) -> int:
        """Number of identity keys waiting for their debounce window."""
        if self._debouncer is None:
            return 0
        return self._debouncer.pending

    # -- lifecycle ------------------------------------------------------

    async def watch(self) -> None:
        """
        Watch the registered roots until the source ends or stop() is called.

        After the source ends, pending debounce entries are allowed to fire
        and in-flight traversals to finish before returning.

        Raises:
            NoPathsError: If no roots are registered; the source is never created
            WatcherAlreadyRunningError: If already watching
            Exception: Anything raised by the raw event source
        """
        if len(self._registry) == 0:
            raise NoPathsError("No paths provided to watch for")

        if self._running:
            raise WatcherAlreadyRunningError("Watcher is already running")

        self._running = True
        self._registry.freeze()
        self._pipeline.freeze()
        self._stop_event = asyncio.Event()
        self._debouncer = Debouncer(self.options.debounce_window, self._deliver)

        try:
            self._fire_ready()

            source = self._source(
                self._registry.paths,
                recursive=self.options.recursive,
                use_polling=self.options.use_polling,
                stop_event=self._stop_event,
            )
            try:
                async for batch in source:
                    for event in batch.events():
                        self._submit(event)
            except BaseException:
                dropped = self._debouncer.cancel_all()
                if dropped:
                    logger.warning(f"Raw event source failed, dropped {dropped} pending event(s)")
                raise
            finally:
                aclose = getattr(source, "aclose", None)
                if aclose is not None:
                    await aclose()

            await self._drain()
        finally:
            self._running = False

        logger.info("Watcher stopped")

    def stop(self) -> None:
        """Ask a running watch() to stop consuming the source and drain."""
        if self._stop_event is not None:
            self._stop_event.set()

    async def _drain(self) -> None:
        await self._debouncer.wait_idle()
        while self._tasks:
            await asyncio.wait(set(self._tasks))

    # -- event flow -----------------------------------------------------

    def _submit(self, event: RawFSEvent) -> None:
        if self.options.should_ignore(event.path):
            logger.debug(f"Ignoring {event.kind.value} {event.path}")
            return
        self._debouncer.submit(event)

    def _deliver(self, event: RawFSEvent) -> None:
        """Spawn a tracked task that classifies and dispatches one event."""
        task = asyncio.ensure_future(self._handle(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _handle(self, event: RawFSEvent) -> None:
        try:
            watcher_event = resolve(event)
            context = Context.from_event(watcher_event, self._state_factory())
            await self._pipeline.dispatch(context)
        except Exception as e:
            self._report_error(e, event)

    def _report_error(self, error: Exception, event: RawFSEvent) -> None:
        if not self._error_callbacks:
            logger.error(f"Error handling {event.kind.value} {event.path}: {error}", exc_info=error)
            return

        for callback in self._error_callbacks:
            try:
                callback(error, event)
            except Exception:
                logger.exception(f"Error callback failed for {event.path}")

    def _fire_ready(self) -> None:
        logger.info(f"Watcher ready with {len(self._registry)} root(s)")
        for callback in self._ready_callbacks:
            callback()
