"""
Port de diffusion des événements de synchronisation.

Les implémentations ne doivent jamais bloquer : une erreur de diffusion est
journalisée par l'appelant et n'interrompt pas la synchronisation.
"""

from abc import ABC, abstractmethod
from typing import Any

# Noms des événements émis par le moteur
EVENT_PROGRESS = "library_sync_progress"
EVENT_COMPLETE = "library_sync_complete"
EVENT_ERROR = "library_sync_error"


class IBroadcastSink(ABC):
    """Destination des événements de progression et de fin de synchronisation."""

    @abstractmethod
    def emit(self, event: str, payload: dict[str, Any]) -> None:
        """Émet un événement."""
        ...
