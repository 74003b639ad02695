"""
Port de stratégie de synchronisation par fournisseur.

Chaque type de serveur média (Plex, Jellyfin, Emby) implémente IProviderSyncStrategy.
Le moteur de synchronisation ne connaît que cette interface : la pagination,
le schéma des éléments et l'authentification restent propres à chaque variante.

Toutes les opérations réseau retournent un FetchResult au lieu de lever une
exception, afin que la politique de retry décide seule de relancer ou non.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Generic, Optional, TypeVar

from libsync.core.entities.media import CanonicalMediaItem, MediaType

T = TypeVar("T")


@dataclass(frozen=True)
class LibrarySection:
    """
    Section (bibliothèque) d'un serveur média.

    Attributs:
        key: Clé native de la section
        title: Nom affiche
        media_type: MOVIE ou SHOW
    """

    key: str
    title: str
    media_type: MediaType


@dataclass
class FetchResult(Generic[T]):
    """
    Résultat d'un appel fournisseur.

    Attributs:
        success: True si l'appel a abouti
        data: Données décodées (si success)
        status: Code HTTP (None si erreur transport)
        error: Message d'erreur (si échec)
        retryable: True pour un échec transitoire (timeout, connexion, 5xx)
    """

    success: bool
    data: Optional[T] = None
    status: Optional[int] = None
    error: Optional[str] = None
    retryable: bool = False

    @classmethod
    def ok(cls, data: T, status: Optional[int] = 200) -> "FetchResult[T]":
        return cls(success=True, data=data, status=status)

    @classmethod
    def failure(
        cls, error: str, status: Optional[int] = None, retryable: bool = False
    ) -> "FetchResult[T]":
        return cls(success=False, status=status, error=error, retryable=retryable)


@dataclass
class ItemPage:
    """Page d'éléments bruts et jeton de la page suivante (None si dernière page)."""

    items: list[dict[str, Any]] = field(default_factory=list)
    next_page_token: Optional[int] = None


@dataclass(frozen=True)
class ImageRequest:
    """URL d'image à télécharger et en-têtes d'authentification éventuels."""

    url: str
    headers: Optional[dict[str, str]] = None


class IProviderSyncStrategy(ABC):
    """
    Interface d'une stratégie de synchronisation fournisseur.

    Les jetons de page sont des offsets entiers : None pour la première page,
    puis l'offset du prochain élément tant qu'il reste des éléments.
    """

    @abstractmethod
    async def list_sections(self) -> FetchResult[list[LibrarySection]]:
        """Liste les sections de type film ou série."""
        ...

    @abstractmethod
    async def count_items(self, section: LibrarySection) -> FetchResult[int]:
        """Nombre total d'éléments d'une section."""
        ...

    @abstractmethod
    async def fetch_page(
        self, section: LibrarySection, page_token: Optional[int] = None
    ) -> FetchResult[ItemPage]:
        """Récupère une page d'éléments bruts."""
        ...

    @abstractmethod
    async def fetch_recently_added(
        self, section: LibrarySection, limit: int
    ) -> FetchResult[list[dict[str, Any]]]:
        """Récupère les derniers éléments ajoutés à une section (plus récent d'abord)."""
        ...

    @abstractmethod
    def map_item(
        self, integration_id: str, section: LibrarySection, raw: dict[str, Any]
    ) -> CanonicalMediaItem:
        """Convertit un élément brut du fournisseur en élément canonique."""
        ...

    @abstractmethod
    def thumbnail_request(self, item: CanonicalMediaItem) -> Optional[ImageRequest]:
        """Requête de la vignette (120x180), ou None si l'élément n'a pas d'image."""
        ...

    @abstractmethod
    def large_image_request(self, item: CanonicalMediaItem) -> Optional[ImageRequest]:
        """Requête de l'image détail (480x720), ou None si l'élément n'a pas d'image."""
        ...

    async def close(self) -> None:
        """Libère les ressources réseau de la stratégie."""
        return None
