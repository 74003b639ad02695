"""
Interfaces ports pour les repositories.

Contrats de persistance du catalogue normalisé et des statuts de synchronisation.
L'implémentation concrète (SQLite via SQLModel) se trouve dans
libsync.infrastructure.persistence.repositories.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from libsync.core.entities.media import CanonicalMediaItem
from libsync.core.entities.sync import SyncStatus


class IMediaLibraryRepository(ABC):
    """
    Interface de stockage du catalogue normalisé.

    L'identité d'un élément est (integration_id, item_key).
    """

    @abstractmethod
    def upsert(self, item: CanonicalMediaItem) -> CanonicalMediaItem:
        """Insère ou met à jour un élément (indexed_at mis à jour)."""
        ...

    @abstractmethod
    def delete_by_integration(self, integration_id: str) -> int:
        """Supprime tous les éléments d'une intégration. Retourne le nombre supprimé."""
        ...

    @abstractmethod
    def count_by_integration(self, integration_id: str) -> int:
        """Nombre d'éléments indexés pour une intégration."""
        ...

    @abstractmethod
    def get_by_key(self, integration_id: str, item_key: str) -> Optional[CanonicalMediaItem]:
        """Récupère un élément par son identité."""
        ...

    @abstractmethod
    def list_by_integration(self, integration_id: str) -> list[CanonicalMediaItem]:
        """Liste les éléments d'une intégration, par titre."""
        ...

    @abstractmethod
    def search(
        self, query: str, integration_id: Optional[str] = None, limit: int = 20
    ) -> list[CanonicalMediaItem]:
        """Recherche plein texte sur les titres, avec repli approximatif."""
        ...

    @abstractmethod
    def has_tmdb_id(self, tmdb_id: int) -> bool:
        """True si un élément portant cet ID TMDB est déjà indexé."""
        ...


class ISyncStatusRepository(ABC):
    """Interface de stockage des statuts de synchronisation."""

    @abstractmethod
    def get(self, integration_id: str) -> Optional[SyncStatus]:
        """Récupère le statut d'une intégration."""
        ...

    @abstractmethod
    def update(self, integration_id: str, **fields: Any) -> SyncStatus:
        """Met à jour les champs donnés, en créant la ligne si elle n'existe pas."""
        ...

    @abstractmethod
    def delete(self, integration_id: str) -> bool:
        """Supprime le statut. Retourne True si une ligne a été supprimée."""
        ...

    @abstractmethod
    def list_all(self) -> list[SyncStatus]:
        """Liste tous les statuts."""
        ...

    @abstractmethod
    def reset_stale(
        self, message: str, exclude_ids: frozenset[str] = frozenset()
    ) -> list[str]:
        """Passe en erreur les statuts 'syncing' orphelins. Retourne les IDs réinitialisés."""
        ...

