"""
Stratégie de synchronisation Emby.

Emby partage l'API de Jellyfin ; seule l'authentification diffère : la clé
passe en paramètre api_key (y compris dans l'URL des images).
"""

from typing import Optional

from libsync.adapters.providers.jellyfin import JellyfinSyncStrategy
from libsync.core.entities.media import CanonicalMediaItem
from libsync.core.ports.providers import ImageRequest


class EmbySyncStrategy(JellyfinSyncStrategy):
    """Synchronisation d'un serveur Emby (clé API en paramètre de requête)."""

    def _default_headers(self) -> dict[str, str]:
        return {"Accept": "application/json"}

    def _default_params(self) -> dict[str, str]:
        return {"api_key": self._api_key}

    def _image_request(
        self, item: CanonicalMediaItem, width: int, height: int
    ) -> Optional[ImageRequest]:
        if not item.thumb_path:
            return None
        return ImageRequest(
            url=(
                f"{self._base_url}{item.thumb_path}"
                f"?width={width}&height={height}&api_key={self._api_key}"
            )
        )
