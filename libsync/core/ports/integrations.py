"""
Port d'accès aux intégrations configurées.

Les intégrations (URL, token, activation) sont gérées par un système externe ;
le moteur se contente de les lire.
"""

from abc import ABC, abstractmethod
from typing import Optional

from libsync.core.entities.integration import Integration


class IIntegrationRegistry(ABC):
    """Lecture des intégrations configurées."""

    @abstractmethod
    def get(self, integration_id: str) -> Optional[Integration]:
        """Récupère une intégration par son ID."""
        ...

    @abstractmethod
    def list_all(self) -> list[Integration]:
        """Liste toutes les intégrations."""
        ...
