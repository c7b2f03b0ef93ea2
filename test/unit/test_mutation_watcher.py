"""Tests for intelbridge.mutation_watcher."""
import asyncio
from unittest.mock import MagicMock

import pytest

from intelbridge.document import LiveDocument
from intelbridge.mutation_watcher import MutationWatcher, WatcherState


class TestDebounce:

    def test_burst_coalesces_to_one_trigger(self, clock):
        trigger = MagicMock()
        watcher = MutationWatcher(trigger, clock, delay=0.5)

        for _ in range(100):
            watcher.notify()
            clock.advance(0.01)

        assert trigger.call_count == 0
        assert watcher.pending
        clock.advance(0.5)
        assert trigger.call_count == 1
        assert watcher.state is WatcherState.IDLE
        assert watcher.notifications == 100
        assert watcher.triggers == 1

    def test_fires_delay_after_last_notification(self, clock):
        fired_at = []
        watcher = MutationWatcher(lambda: fired_at.append(clock.now), clock, delay=0.5)

        watcher.notify()
        clock.advance(0.3)
        watcher.notify()
        clock.advance(0.49)
        assert fired_at == []
        clock.advance(0.02)
        assert fired_at == [pytest.approx(0.8)]

    def test_only_one_live_timer(self, clock):
        watcher = MutationWatcher(MagicMock(), clock, delay=0.5)
        for _ in range(5):
            watcher.notify()
        assert len(clock.pending) == 1

    def test_separate_bursts_trigger_separately(self, clock):
        trigger = MagicMock()
        watcher = MutationWatcher(trigger, clock, delay=0.5)
        watcher.notify()
        clock.advance(1)
        watcher.notify()
        clock.advance(1)
        assert trigger.call_count == 2

    def test_no_trigger_without_notification(self, clock):
        trigger = MagicMock()
        MutationWatcher(trigger, clock, delay=0.5)
        clock.advance(10)
        trigger.assert_not_called()

    def test_trigger_error_is_contained(self, clock):
        trigger = MagicMock(side_effect=RuntimeError("boom"))
        watcher = MutationWatcher(trigger, clock, delay=0.5)
        watcher.notify()
        clock.advance(1)
        assert trigger.call_count == 1
        assert watcher.state is WatcherState.IDLE
        # still usable
        watcher.notify()
        clock.advance(1)
        assert trigger.call_count == 2

    def test_negative_delay_rejected(self, clock):
        with pytest.raises(ValueError):
            MutationWatcher(MagicMock(), clock, delay=-1)

    def test_flush(self, clock):
        trigger = MagicMock()
        watcher = MutationWatcher(trigger, clock, delay=0.5)
        assert watcher.flush() is False
        watcher.notify()
        assert watcher.flush() is True
        trigger.assert_called_once()
        assert clock.pending == []

    def test_cancel(self, clock):
        trigger = MagicMock()
        watcher = MutationWatcher(trigger, clock, delay=0.5)
        watcher.notify()
        watcher.cancel()
        clock.advance(1)
        trigger.assert_not_called()
        assert watcher.state is WatcherState.IDLE


class TestDocumentSubscription:

    def test_attach_notifies_on_mutation(self, clock):
        doc = LiveDocument()
        trigger = MagicMock()
        watcher = MutationWatcher(trigger, clock, delay=0.5)
        watcher.attach(doc)

        doc.append_html(doc.body, "<p>one</p>")
        doc.append_html(doc.body, "<p>two</p>")
        assert watcher.notifications == 2
        clock.advance(0.5)
        trigger.assert_called_once()

    def test_detach(self, clock):
        doc = LiveDocument()
        watcher = MutationWatcher(MagicMock(), clock, delay=0.5)
        watcher.attach(doc)
        watcher.detach()
        doc.append_html(doc.body, "<p>x</p>")
        assert watcher.notifications == 0

    def test_attach_twice_subscribes_once(self, clock):
        doc = LiveDocument()
        watcher = MutationWatcher(MagicMock(), clock, delay=0.5)
        watcher.attach(doc)
        watcher.attach(doc)
        doc.append_html(doc.body, "<p>x</p>")
        assert watcher.notifications == 1


class TestEventLoopScheduler:

    @pytest.mark.asyncio
    async def test_runs_on_event_loop(self):
        loop = asyncio.get_running_loop()
        fired = asyncio.Event()
        watcher = MutationWatcher(fired.set, loop, delay=0.01)
        watcher.notify()
        watcher.notify()
        await asyncio.wait_for(fired.wait(), timeout=1)
        assert watcher.triggers == 1
