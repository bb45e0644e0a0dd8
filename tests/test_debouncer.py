"""Tests for debouncer module."""

import asyncio

import pytest

from fsrelay.debouncer import Debouncer
from fsrelay.models import RawFSEvent, RawKind, identity_key


WINDOW = 0.05


def modify(path: str, flag=None) -> RawFSEvent:
    return RawFSEvent(path, RawKind.MODIFY, flag)


class TestDebouncerDisabled:
    """Tests for Debouncer without a window."""

    @pytest.mark.parametrize("window", [None, 0])
    def test_forwards_immediately(self, window):
        delivered = []
        debouncer = Debouncer(window, delivered.append)

        events = [modify("/a"), modify("/a"), RawFSEvent("/b", RawKind.CREATE)]
        for event in events:
            debouncer.submit(event)

        assert delivered == events
        assert debouncer.pending == 0
        assert debouncer.enabled is False


class TestDebouncer:
    """Tests for Debouncer with a window."""

    @pytest.mark.asyncio
    async def test_delivers_after_window(self):
        delivered = []
        debouncer = Debouncer(WINDOW, delivered.append)

        debouncer.submit(modify("/a"))
        assert delivered == []
        assert debouncer.pending == 1
        assert identity_key(modify("/a")) in debouncer

        await asyncio.sleep(WINDOW * 2)

        assert delivered == [modify("/a")]
        assert debouncer.pending == 0

    @pytest.mark.asyncio
    async def test_burst_delivers_last_event_once(self):
        delivered = []
        key_func = lambda e: e.path
        debouncer = Debouncer(WINDOW, delivered.append, key_func=key_func)

        first = RawFSEvent("/a", RawKind.MODIFY, flag="1")
        second = RawFSEvent("/a", RawKind.MODIFY, flag="2")
        third = RawFSEvent("/a", RawKind.MODIFY, flag="3")
        for event in (first, second, third):
            debouncer.submit(event)
            await asyncio.sleep(WINDOW / 5)
            assert debouncer.pending == 1

        await asyncio.sleep(WINDOW * 2)

        assert delivered == [third]

    @pytest.mark.asyncio
    async def test_separate_bursts_deliver_in_order(self):
        delivered = []
        key_func = lambda e: e.path
        debouncer = Debouncer(WINDOW, delivered.append, key_func=key_func)

        first = RawFSEvent("/a", RawKind.MODIFY, flag="1")
        second = RawFSEvent("/a", RawKind.MODIFY, flag="2")

        debouncer.submit(first)
        await asyncio.sleep(WINDOW * 3)
        assert delivered == [first]

        debouncer.submit(second)
        await asyncio.sleep(WINDOW * 3)

        assert delivered == [first, second]
        assert debouncer.pending == 0

    @pytest.mark.asyncio
    async def test_resubmission_restarts_window(self):
        delivered = []
        window = 0.2
        debouncer = Debouncer(window, delivered.append)

        debouncer.submit(modify("/a"))
        await asyncio.sleep(window * 0.6)
        debouncer.submit(modify("/a"))
        await asyncio.sleep(window * 0.6)

        # The first window would have elapsed by now
        assert delivered == []

        await asyncio.sleep(window)
        assert delivered == [modify("/a")]

    @pytest.mark.asyncio
    async def test_distinct_keys_debounce_independently(self):
        delivered = []
        debouncer = Debouncer(WINDOW, delivered.append)

        debouncer.submit(modify("/a"))
        debouncer.submit(RawFSEvent("/a", RawKind.REMOVE))
        debouncer.submit(modify("/b"))
        assert debouncer.pending == 3

        await asyncio.sleep(WINDOW * 2)

        assert len(delivered) == 3
        assert set(delivered) == {
            modify("/a"),
            RawFSEvent("/a", RawKind.REMOVE),
            modify("/b"),
        }

    @pytest.mark.asyncio
    async def test_cancel_all(self):
        delivered = []
        debouncer = Debouncer(WINDOW, delivered.append)

        debouncer.submit(modify("/a"))
        debouncer.submit(modify("/b"))

        assert debouncer.cancel_all() == 2
        assert debouncer.pending == 0

        await asyncio.sleep(WINDOW * 2)
        assert delivered == []

    @pytest.mark.asyncio
    async def test_wait_idle(self):
        delivered = []
        debouncer = Debouncer(WINDOW, delivered.append)

        await debouncer.wait_idle()

        debouncer.submit(modify("/a"))
        await asyncio.wait_for(debouncer.wait_idle(), timeout=1.0)

        assert delivered == [modify("/a")]
        assert debouncer.pending == 0

    @pytest.mark.asyncio
    async def test_entry_removed_before_delivery(self):
        seen = []
        debouncer = None

        def on_ready(event):
            seen.append(debouncer.pending)

        debouncer = Debouncer(WINDOW, on_ready)
        debouncer.submit(modify("/a"))
        await asyncio.sleep(WINDOW * 2)

        assert seen == [0]
