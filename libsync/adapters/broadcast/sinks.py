"""
Implémentations du port IBroadcastSink.

- LoggingBroadcastSink : journalise les événements (mode CLI ou tâche planifiée)
- EventBroadcaster : diffusion en mémoire vers des abonnés (flux SSE de l'API web)
- CompositeBroadcastSink : émet vers plusieurs destinations
"""

import asyncio
from typing import Any, Iterable

from loguru import logger

from libsync.core.ports.broadcast import EVENT_ERROR, EVENT_PROGRESS, IBroadcastSink

# Taille de la file d'un abonné : au-delà, les événements sont abandonnés
SUBSCRIBER_QUEUE_SIZE = 256


class LoggingBroadcastSink(IBroadcastSink):
    """Journalise chaque événement (progression en DEBUG, erreurs en WARNING)."""

    def emit(self, event: str, payload: dict[str, Any]) -> None:
        if event == EVENT_PROGRESS:
            logger.debug(f"{event}: {payload}")
        elif event == EVENT_ERROR:
            logger.warning(f"{event}: {payload}")
        else:
            logger.info(f"{event}: {payload}")


class EventBroadcaster(IBroadcastSink):
    """
    Diffusion des événements vers des files asyncio.

    emit() ne bloque jamais : si la file d'un abonné est pleine (client lent),
    l'événement est abandonné pour cet abonné.
    """

    def __init__(self, queue_size: int = SUBSCRIBER_QUEUE_SIZE) -> None:
        self._queue_size = queue_size
        self._subscribers: set[asyncio.Queue] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)

    def emit(self, event: str, payload: dict[str, Any]) -> None:
        for queue in list(self._subscribers):
            try:
                queue.put_nowait((event, payload))
            except asyncio.QueueFull:
                logger.debug(f"File d'abonné pleine, événement {event} abandonné")


class CompositeBroadcastSink(IBroadcastSink):
    """Émet vers toutes les destinations ; l'échec de l'une n'affecte pas les autres."""

    def __init__(self, sinks: Iterable[IBroadcastSink]) -> None:
        self._sinks = list(sinks)

    def emit(self, event: str, payload: dict[str, Any]) -> None:
        for sink in self._sinks:
            try:
                sink.emit(event, payload)
            except Exception as e:
                logger.warning(f"Diffusion de {event} impossible via {type(sink).__name__}: {e}")
