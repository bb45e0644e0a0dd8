"""Shared helpers for fsrelay tests."""

import asyncio

from fsrelay.models import RawEventBatch, RawKind


class FakeSource:
    """
    Scripted raw event source.

    Steps are RawEventBatch objects (yielded), numbers (seconds to sleep)
    or callables (run in place, e.g. to delete a file mid-stream).
    Every call is recorded in `calls`.
    """

    def __init__(self, *steps):
        self.steps = steps
        self.calls = []

    def __call__(self, paths, recursive=True, use_polling=False, stop_event=None):
        self.calls.append({
            "paths": list(paths),
            "recursive": recursive,
            "use_polling": use_polling,
        })
        return self._iterate()

    async def _iterate(self):
        for step in self.steps:
            if isinstance(step, RawEventBatch):
                yield step
            elif callable(step):
                step()
            else:
                await asyncio.sleep(step)


def batch(kind: RawKind, *paths, flag=None) -> RawEventBatch:
    return RawEventBatch(paths=tuple(str(p) for p in paths), kind=kind, flag=flag)
