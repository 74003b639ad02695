"""
Entité intégration (instance de serveur média configurée).

Les intégrations sont gérées hors de ce package : le moteur de synchronisation
se contente de les lire via le port IIntegrationRegistry.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class IntegrationType(Enum):
    """Types de serveurs média disposant d'une stratégie de synchronisation."""

    PLEX = "plex"
    JELLYFIN = "jellyfin"
    EMBY = "emby"


@dataclass
class Integration:
    """
    Instance d'intégration configurée.

    Attributs :
        id : Identifiant unique (ex: "plex-abc1")
        type : Type brut de l'intégration ("plex", "jellyfin", "sonarr", ...)
        display_name : Nom affiche
        enabled : Intégration active
        config : Configuration brute (url, token, api_key, user_id, library_sync_enabled)
    """

    id: str
    type: str
    display_name: str = ""
    enabled: bool = True
    config: dict[str, Any] = field(default_factory=dict)

    @property
    def media_server_type(self) -> Optional[IntegrationType]:
        """Type de serveur média, ou None si l'intégration n'est pas synchronisable."""
        try:
            return IntegrationType(self.type)
        except ValueError:
            return None

    @property
    def library_sync_enabled(self) -> bool:
        """Synchronisation de bibliothèque activée (booléen ou chaîne "true")."""
        value = self.config.get("library_sync_enabled")
        return value is True or value == "true"

    @property
    def url(self) -> str:
        """URL de base du serveur, sans slash final."""
        return str(self.config.get("url") or "").rstrip("/")
