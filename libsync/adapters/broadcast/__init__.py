"""Diffusion des événements de synchronisation."""

from libsync.adapters.broadcast.sinks import (
    CompositeBroadcastSink,
    EventBroadcaster,
    LoggingBroadcastSink,
)

__all__ = ["CompositeBroadcastSink", "EventBroadcaster", "LoggingBroadcastSink"]
