"""Tests pour les destinations d'événements (EventBroadcaster, CompositeBroadcastSink)."""

from unittest.mock import MagicMock

import pytest

from libsync.adapters.broadcast.sinks import (
    CompositeBroadcastSink,
    EventBroadcaster,
    LoggingBroadcastSink,
)
from libsync.core.ports.broadcast import EVENT_PROGRESS, IBroadcastSink


class TestEventBroadcaster:
    """Diffusion en mémoire vers les abonnés."""

    @pytest.mark.asyncio
    async def test_subscribers_receive_events(self):
        broadcaster = EventBroadcaster()
        first = broadcaster.subscribe()
        second = broadcaster.subscribe()

        broadcaster.emit(EVENT_PROGRESS, {"integration_id": "jf-1", "indexed": 3})

        assert first.get_nowait() == (EVENT_PROGRESS, {"integration_id": "jf-1", "indexed": 3})
        assert second.qsize() == 1

    @pytest.mark.asyncio
    async def test_unsubscribed_queue_no_longer_receives(self):
        broadcaster = EventBroadcaster()
        queue = broadcaster.subscribe()
        broadcaster.unsubscribe(queue)

        broadcaster.emit(EVENT_PROGRESS, {})

        assert queue.empty()
        assert broadcaster.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_full_queue_drops_events(self):
        """Un abonné lent perd des événements, emit ne bloque jamais."""
        broadcaster = EventBroadcaster(queue_size=2)
        queue = broadcaster.subscribe()

        for i in range(5):
            broadcaster.emit(EVENT_PROGRESS, {"indexed": i})

        assert queue.qsize() == 2
        assert queue.get_nowait()[1] == {"indexed": 0}


class TestCompositeBroadcastSink:
    """Émission vers plusieurs destinations."""

    def test_emits_to_all_sinks(self):
        first = MagicMock(spec=IBroadcastSink)
        second = MagicMock(spec=IBroadcastSink)

        CompositeBroadcastSink([first, second]).emit("evt", {"a": 1})

        first.emit.assert_called_once_with("evt", {"a": 1})
        second.emit.assert_called_once_with("evt", {"a": 1})

    def test_failing_sink_does_not_stop_others(self):
        failing = MagicMock(spec=IBroadcastSink)
        failing.emit.side_effect = RuntimeError("boom")
        other = MagicMock(spec=IBroadcastSink)

        CompositeBroadcastSink([failing, other, LoggingBroadcastSink()]).emit("evt", {})

        other.emit.assert_called_once()
