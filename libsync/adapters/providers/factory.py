"""
Fabrique des stratégies de synchronisation.

Associe chaque type d'intégration à sa stratégie. Une stratégie (et son client
HTTP) est créée pour chaque synchronisation puis fermée à la fin.
"""

from typing import Callable, Optional

import httpx

from libsync.adapters.providers.base import PAGE_SIZE, REQUEST_TIMEOUT, HttpProviderStrategy
from libsync.adapters.providers.emby import EmbySyncStrategy
from libsync.adapters.providers.jellyfin import JellyfinSyncStrategy
from libsync.adapters.providers.plex import PlexSyncStrategy
from libsync.core.entities.integration import Integration, IntegrationType
from libsync.core.exceptions import UnsupportedIntegrationError
from libsync.core.ports.providers import IProviderSyncStrategy

_STRATEGIES: dict[IntegrationType, type[HttpProviderStrategy]] = {
    IntegrationType.PLEX: PlexSyncStrategy,
    IntegrationType.JELLYFIN: JellyfinSyncStrategy,
    IntegrationType.EMBY: EmbySyncStrategy,
}

SUPPORTED_TYPES = frozenset(t.value for t in _STRATEGIES)


class ProviderStrategyFactory:
    """
    Crée la stratégie adaptée à une intégration.

    Args:
        page_size: Taille des pages de listing
        timeout: Timeout par appel en secondes
        client_factory: Fabrique optionnelle de client httpx (tests)
    """

    def __init__(
        self,
        page_size: int = PAGE_SIZE,
        timeout: float = REQUEST_TIMEOUT,
        client_factory: Optional[Callable[[Integration], httpx.AsyncClient]] = None,
    ) -> None:
        self._page_size = page_size
        self._timeout = timeout
        self._client_factory = client_factory

    def supports(self, integration: Integration) -> bool:
        return integration.type in SUPPORTED_TYPES

    def create(self, integration: Integration) -> IProviderSyncStrategy:
        """
        Instancie la stratégie de l'intégration.

        Raises:
            UnsupportedIntegrationError: Si le type n'a pas de stratégie
        """
        integration_type = integration.media_server_type
        if integration_type is None:
            raise UnsupportedIntegrationError(integration.type)
        client = self._client_factory(integration) if self._client_factory else None
        return _STRATEGIES[integration_type](
            integration,
            page_size=self._page_size,
            timeout=self._timeout,
            client=client,
        )
