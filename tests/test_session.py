"""Tests for debounced interactive regeneration."""

import asyncio

import pytest

from railcad.config import Settings
from railcad.params import Parameters
from railcad.session import Debouncer, InteractiveSession, PendingTask


class FakeSystem:
    """Records generate calls instead of building meshes."""

    def __init__(self, delay=0.05):
        self.settings = Settings(debounce_delay=delay)
        self.calls = []

    def generate(self, params, skip_holes=False, include_connector=False):
        self.calls.append((params, skip_holes))
        return len(self.calls)


def test_pending_task_replaces_callback():
    fired = []

    async def scenario():
        task = PendingTask()
        task.schedule(0.01, lambda: fired.append('first'))
        task.schedule(0.01, lambda: fired.append('second'))
        assert task.pending
        await asyncio.sleep(0.05)
        assert not task.pending

    asyncio.run(scenario())
    assert fired == ['second']


def test_pending_task_run_now():
    fired = []

    async def scenario():
        task = PendingTask()
        assert not task.run_now()
        task.schedule(10.0, lambda: fired.append(1))
        assert task.run_now()
        assert not task.pending
        await asyncio.sleep(0)

    asyncio.run(scenario())
    assert fired == [1]


def test_debouncer_negative_delay():
    with pytest.raises(ValueError):
        Debouncer(-1.0)


def test_debouncer_cancel():
    fired = []

    async def scenario():
        debouncer = Debouncer(0.01)
        debouncer.trigger(lambda: fired.append(1))
        debouncer.cancel()
        await asyncio.sleep(0.03)

    asyncio.run(scenario())
    assert fired == []


def test_burst_of_edits_runs_one_full_generation():
    system = FakeSystem(delay=0.05)

    async def scenario():
        session = InteractiveSession(system, Parameters())
        for width in (8.0, 9.0, 10.0):
            session.edit(inner_width=width)
            await asyncio.sleep(0.01)
        assert session.pending
        await asyncio.sleep(0.1)
        assert not session.pending

    asyncio.run(scenario())
    previews = [p for p, skip in system.calls if skip]
    full = [p for p, skip in system.calls if not skip]
    assert [p.inner_width for p in previews] == [8.0, 9.0, 10.0]
    assert len(full) == 1
    assert full[0].inner_width == 10.0


def test_flush_runs_immediately():
    system = FakeSystem(delay=10.0)

    async def scenario():
        session = InteractiveSession(system)
        session.edit(length=50)
        assert session.flush()
        assert not session.flush()
        session.close()

    asyncio.run(scenario())
    assert system.calls[-1][1] is False
    assert system.calls[-1][0].length == 50


def test_invalid_edit_leaves_session_untouched():
    system = FakeSystem()

    async def scenario():
        session = InteractiveSession(system, Parameters(length=40))
        with pytest.raises(ValueError):
            session.edit(length=-1)
        assert session.params.length == 40
        assert not session.pending

    asyncio.run(scenario())
    assert system.calls == []
