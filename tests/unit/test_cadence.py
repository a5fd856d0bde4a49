"""Unit tests for the repeating timers owned by the session controller."""

from __future__ import annotations

import asyncio

import pytest

from ambient_scribe.session.timers import Cadence

pytestmark = pytest.mark.unit


class TestCadence:

    def test_fires_repeatedly_until_cancelled(self) -> None:
        calls = []
        cadence = Cadence("test", 0.01, lambda: calls.append(1))

        async def scenario():
            cadence.start()
            await asyncio.sleep(0.08)
            cadence.cancel()
            fired = len(calls)
            await asyncio.sleep(0.05)
            return fired

        fired = asyncio.run(scenario())
        assert fired >= 2
        assert len(calls) == fired
        assert cadence.ticks == fired
        assert not cadence.running

    def test_first_call_waits_one_interval(self) -> None:
        calls = []
        cadence = Cadence("slow", 10, lambda: calls.append(1))

        async def scenario():
            cadence.start()
            await asyncio.sleep(0.02)
            running = cadence.running
            cadence.cancel()
            return running

        assert asyncio.run(scenario()) is True
        assert calls == []

    def test_failing_action_does_not_stop_cadence(self) -> None:
        calls = []

        def action():
            calls.append(1)
            raise RuntimeError("boom")

        cadence = Cadence("flaky", 0.01, action)

        async def scenario():
            cadence.start()
            await asyncio.sleep(0.06)
            cadence.cancel()

        asyncio.run(scenario())
        assert len(calls) >= 2

    def test_start_is_idempotent(self) -> None:
        cadence = Cadence("once", 10, lambda: None)

        async def scenario():
            cadence.start()
            first = cadence._task
            cadence.start()
            same = cadence._task is first
            cadence.cancel()
            return same

        assert asyncio.run(scenario())

    def test_cancel_before_start_is_safe(self) -> None:
        Cadence("never", 1, lambda: None).cancel()
