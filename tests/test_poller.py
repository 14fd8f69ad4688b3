# tests/test_poller.py
"""Unit tests for LatestResponsePoller."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import asyncio
import pytest
from fleet_rental.exceptions import FleetError
from fleet_rental.services.poller import LatestResponsePoller


class TestLatestResponsePoller:
    @pytest.mark.asyncio
    async def test_stale_response_is_discarded(self):
        release_first = asyncio.Event()
        calls = []

        async def fetch():
            calls.append(len(calls) + 1)
            if len(calls) == 1:
                await release_first.wait()
                return "old"
            return "new"

        applied = []
        poller = LatestResponsePoller("test", fetch, applied.append, interval_seconds=60)

        slow = asyncio.create_task(poller.poll_once())
        await asyncio.sleep(0)
        fast_applied = await poller.poll_once()
        release_first.set()
        slow_applied = await slow

        assert fast_applied is True
        assert slow_applied is False
        assert applied == ["new"]
        assert poller.applied_seq == 2

    @pytest.mark.asyncio
    async def test_failed_fetch_keeps_previous_data(self):
        async def fetch():
            raise FleetError("entity API down")

        applied = []
        poller = LatestResponsePoller("test", fetch, applied.append, interval_seconds=60)

        assert await poller.poll_once() is False
        assert applied == []
        assert poller.applied_seq == 0

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        async def fetch():
            return "ok"

        applied = []
        poller = LatestResponsePoller("test", fetch, applied.append, interval_seconds=0.01)

        poller.start()
        assert poller.running
        await asyncio.sleep(0.05)
        await poller.stop()

        assert not poller.running
        assert len(applied) >= 1
        count = len(applied)
        await asyncio.sleep(0.03)
        assert len(applied) == count
