"""Onion-style middleware pipeline with single-use continuations."""

import inspect
import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, List, Optional, Sequence, Tuple, TypeVar

from .exceptions import ContinuationError, WatcherAlreadyRunningError
from .models import RawKind, SemanticKind, WatcherEvent


logger = logging.getLogger(__name__)

S = TypeVar("S")


@dataclass
class Context(Generic[S]):
    """
    Per-event record shared by every stage of one traversal.

    A fresh Context is built for each delivered event and is never shared
    between traversals. `state` is application-defined scratch space.

    Attributes:
        path: Affected path
        event: Semantic kind of the change
        file: Metadata looked up at delivery time, None if the file is gone
        flag: Platform flag of the raw event
        raw_kind: Raw kind the event was classified from
        state: Mutable scratch state
    """
    path: str
    event: SemanticKind
    file: Optional[os.stat_result]
    flag: Optional[str]
    raw_kind: RawKind
    state: S

    @classmethod
    def from_event(cls, event: WatcherEvent, state: S) -> "Context[S]":
        """Create a context for a classified event."""
        return cls(
            path=event.path,
            event=event.kind,
            file=event.file,
            flag=event.flag,
            raw_kind=event.raw_kind,
            state=state,
        )


class TraversalState(Enum):
    """States of a single pipeline traversal."""
    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    ERRORED = "errored"


Middleware = Callable[[Context, "Continuation"], Optional[Awaitable[None]]]


class _Downstream:
    """
    Awaitable for the stages after a continuation.

    The coroutine is created on first await. When a stage returns without
    awaiting it, the traversal awaits it instead, so calling the
    continuation always runs the rest of the pipeline.
    """

    __slots__ = ("_traversal", "_index", "consumed")

    def __init__(self, traversal: "_Traversal", index: int):
        self._traversal = traversal
        self._index = index
        self.consumed = False

    def __await__(self):
        if self.consumed:
            raise RuntimeError(f"downstream of stage {self._index - 1} already awaited")
        self.consumed = True
        return self._traversal.step(self._index).__await__()


class Continuation:
    """
    Single-use handle that resumes the pipeline at the next stage.

    Calling it validates the call immediately and returns an awaitable
    that runs every downstream stage. Calling it a second time raises
    ContinuationError at the call site.
    """

    __slots__ = ("_traversal", "index", "_called", "downstream")

    def __init__(self, traversal: "_Traversal", index: int):
        self._traversal = traversal
        self.index = index
        self._called = False
        self.downstream: Optional[_Downstream] = None

    @property
    def called(self) -> bool:
        return self._called

    def __call__(self) -> Awaitable[None]:
        if self._called:
            raise self._traversal.fail(
                f"continuation to stage {self.index} invoked more than once",
                self.index,
            )
        self._called = True
        self._traversal.enter(self.index)
        self.downstream = _Downstream(self._traversal, self.index)
        return self.downstream

    def __repr__(self) -> str:
        return f"Continuation(index={self.index}, called={self._called})"


class _Traversal:
    """
    Index-driven state machine for one event.

    `reached` is the highest stage index entered so far. Entering an index
    that is not strictly greater moves the traversal to ERRORED. The first
    violation is kept in `error` and re-raised by run() even if a stage
    caught it.
    """

    def __init__(self, middleware: Sequence[Middleware], context: Context):
        self.middleware = middleware
        self.context = context
        self.state = TraversalState.PENDING
        self.reached = -1
        self.error: Optional[ContinuationError] = None

    def fail(self, message: str, index: int) -> ContinuationError:
        self.state = TraversalState.ERRORED
        error = ContinuationError(message, index=index, reached=self.reached)
        if self.error is None:
            self.error = error
        return error

    def enter(self, index: int) -> None:
        if self.state is TraversalState.ERRORED:
            raise ContinuationError(
                f"traversal for {self.context.path} has already failed",
                index=index,
                reached=self.reached,
            )
        if index <= self.reached:
            raise self.fail(
                f"stage {index} entered after stage {self.reached}",
                index,
            )
        self.reached = index
        self.state = TraversalState.RUNNING

    async def step(self, index: int) -> None:
        if index >= len(self.middleware):
            return

        continuation = Continuation(self, index + 1)
        result = self.middleware[index](self.context, continuation)
        if inspect.isawaitable(result):
            await result

        # Stage called its continuation but never awaited it
        downstream = continuation.downstream
        if downstream is not None and not downstream.consumed and self.state is not TraversalState.ERRORED:
            await downstream

    async def run(self) -> TraversalState:
        try:
            self.enter(0)
            await self.step(0)
        except BaseException:
            self.state = TraversalState.ERRORED
            raise

        if self.error is not None:
            raise self.error

        self.state = TraversalState.DONE
        return self.state


class Pipeline:
    """
    Ordered list of middleware stages.

    Stages run in registration order. Each stage receives the shared
    context and a continuation; code placed after awaiting the
    continuation runs once every later stage has finished. A stage that
    never calls its continuation ends the traversal for that event.

    Stages are appended before the watcher starts. Once frozen, the
    pipeline rejects new stages.
    """

    def __init__(self, middleware: Optional[Sequence[Middleware]] = None):
        self._middleware: List[Middleware] = []
        self._frozen = False
        for stage in middleware or ():
            self.use(stage)

    def use(self, middleware: Middleware) -> Middleware:
        """
        Append a middleware stage.

        Returns the middleware unchanged, so this works as a decorator.

        Raises:
            TypeError: If middleware is not callable
            WatcherAlreadyRunningError: If the pipeline is frozen
        """
        if not callable(middleware):
            raise TypeError(f"middleware must be callable, got {middleware!r}")
        if self._frozen:
            raise WatcherAlreadyRunningError(
                "Cannot register middleware while the watcher is running"
            )
        self._middleware.append(middleware)
        return middleware

    def freeze(self) -> None:
        """Make the stage list read-only."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def middleware(self) -> Tuple[Middleware, ...]:
        return tuple(self._middleware)

    def __len__(self) -> int:
        return len(self._middleware)

    async def dispatch(self, context: Context[Any]) -> TraversalState:
        """
        Run every stage over a context.

        A stage may be a plain function; if it calls its continuation
        without awaiting it, the downstream stages run once it returns.

        Args:
            context: Fresh context for one delivered event

        Returns:
            TraversalState.DONE

        Raises:
            ContinuationError: On a continuation protocol violation, even
                when the offending stage caught it
            Exception: Anything raised by a middleware stage
        """
        logger.debug(f"Dispatching {context.event.value} {context.path} through {len(self._middleware)} stage(s)")
        traversal = _Traversal(tuple(self._middleware), context)
        return await traversal.run()
