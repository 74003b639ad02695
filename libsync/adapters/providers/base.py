"""
Base commune des stratégies fournisseur (client httpx et conversion des erreurs).

Les erreurs réseau sont converties en FetchResult à la frontière de la stratégie :
- httpx.TimeoutException -> "Timeout", relançable
- httpx.TransportError (connexion refusée, réinitialisée) -> relançable
- HTTP >= 500 -> relançable
- HTTP 4xx et JSON invalide -> définitif
"""

from typing import Any, Optional

import httpx
from loguru import logger

from libsync.core.entities.integration import Integration
from libsync.core.ports.providers import FetchResult, IProviderSyncStrategy

# Taille de page des listings d'éléments
PAGE_SIZE = 500

# Timeout par appel (les grosses pages peuvent être lentes à générer)
REQUEST_TIMEOUT = 60.0

# Dimensions des images mises en cache
THUMB_WIDTH, THUMB_HEIGHT = 120, 180
LARGE_WIDTH, LARGE_HEIGHT = 480, 720


def safe_int(value: Any) -> Optional[int]:
    """Convertit en int, ou None si la valeur est absente ou invalide."""
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def safe_float(value: Any) -> Optional[float]:
    """Convertit en float, ou None si la valeur est absente ou invalide."""
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class HttpProviderStrategy(IProviderSyncStrategy):
    """
    Stratégie adossée à un client httpx.AsyncClient.

    Le client est créé à la demande (lazy init) et fermé par close().
    Un client peut être injecté pour les tests.
    """

    def __init__(
        self,
        integration: Integration,
        page_size: int = PAGE_SIZE,
        timeout: float = REQUEST_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._integration = integration
        self._base_url = integration.url
        self._page_size = page_size
        self._timeout = timeout
        self._client = client

    @property
    def integration_id(self) -> str:
        return self._integration.id

    def _default_headers(self) -> dict[str, str]:
        """En-têtes ajoutés à chaque requête (authentification)."""
        return {"Accept": "application/json"}

    def _default_params(self) -> dict[str, str]:
        """Paramètres ajoutés à chaque requête."""
        return {}

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=self._default_headers(),
                params=self._default_params(),
                timeout=self._timeout,
            )
        return self._client

    async def _get_json(
        self, path: str, params: Optional[dict[str, Any]] = None
    ) -> FetchResult[Any]:
        """
        Exécute un GET et décode la réponse JSON.

        Args:
            path: Chemin relatif à l'URL du serveur
            params: Paramètres de requête

        Returns:
            FetchResult avec le JSON décodé, ou l'erreur classée relançable/définitive
        """
        client = self._get_client()
        try:
            response = await client.get(path, params=params)
        except httpx.TimeoutException:
            logger.debug(f"Timeout sur {path} ({self.integration_id})")
            return FetchResult.failure("Timeout", retryable=True)
        except httpx.TransportError as e:
            logger.debug(f"Erreur de connexion sur {path} ({self.integration_id}): {e}")
            return FetchResult.failure(f"Erreur de connexion: {e}", retryable=True)

        status = response.status_code
        if status >= 500:
            return FetchResult.failure(f"HTTP {status}", status=status, retryable=True)
        if status >= 400:
            return FetchResult.failure(f"HTTP {status}", status=status)

        try:
            data = response.json()
        except ValueError:
            return FetchResult.failure("Réponse JSON invalide", status=status)
        return FetchResult.ok(data, status=status)

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
