"""
Indexation des éléments dans le catalogue local.

Partagé par la synchronisation complète et le rafraîchissement ciblé :
conversion via la stratégie, upsert, puis mise en cache de la vignette en
tâche de fond (un échec d'image n'interrompt jamais l'indexation).
"""

import asyncio
from functools import partial
from typing import Any, Optional

from loguru import logger

from libsync.adapters.cache.image_cache import ImageCacheManager
from libsync.core.entities.media import CanonicalMediaItem
from libsync.core.ports.providers import IProviderSyncStrategy, LibrarySection
from libsync.core.ports.repositories import IMediaLibraryRepository


class LibraryIndexer:
    """
    Écrit les éléments normalisés dans le catalogue.

    Attributs injectés:
        media_repo: Repository du catalogue
        image_cache: Cache des vignettes (optionnel, aucune image si None)
    """

    def __init__(
        self,
        media_repo: IMediaLibraryRepository,
        image_cache: Optional[ImageCacheManager] = None,
    ) -> None:
        self._media_repo = media_repo
        self._image_cache = image_cache
        # Téléchargements de vignettes en cours, par intégration
        self._pending: dict[str, set[asyncio.Task]] = {}

    @property
    def pending_images(self) -> int:
        return sum(len(tasks) for tasks in self._pending.values())

    def index_item(
        self,
        integration_id: str,
        section: LibrarySection,
        raw: dict[str, Any],
        strategy: IProviderSyncStrategy,
    ) -> CanonicalMediaItem:
        """
        Indexe un élément brut.

        Args:
            integration_id: ID de l'intégration
            section: Section d'origine
            raw: Élément brut du fournisseur
            strategy: Stratégie ayant produit l'élément

        Returns:
            L'élément tel qu'enregistré
        """
        return self.index_mapped(strategy.map_item(integration_id, section, raw), strategy)

    def index_mapped(
        self, item: CanonicalMediaItem, strategy: IProviderSyncStrategy
    ) -> CanonicalMediaItem:
        """Enregistre un élément déjà converti et planifie sa vignette."""
        stored = self._media_repo.upsert(item) or item
        self._schedule_thumbnail(stored, strategy)
        return stored

    def _schedule_thumbnail(
        self, item: CanonicalMediaItem, strategy: IProviderSyncStrategy
    ) -> None:
        if self._image_cache is None:
            return
        request = strategy.thumbnail_request(item)
        if request is None or self._image_cache.is_cached(item.integration_id, item.item_key):
            return

        task = asyncio.create_task(
            self._image_cache.cache_image(
                item.integration_id, item.item_key, request.url, request.headers
            )
        )
        self._pending.setdefault(item.integration_id, set()).add(task)
        task.add_done_callback(partial(self._on_thumbnail_done, item.integration_id))

    def _on_thumbnail_done(self, integration_id: str, task: asyncio.Task) -> None:
        tasks = self._pending.get(integration_id)
        if tasks is not None:
            tasks.discard(task)
            if not tasks:
                del self._pending[integration_id]
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.debug(f"Échec du cache de vignette: {error!r}")

    async def cancel_pending(self, integration_id: str) -> int:
        """
        Annule les téléchargements de vignettes en cours d'une intégration.

        Attend la fin effective des tâches : aucune image de cette intégration
        n'est plus écrite une fois la méthode terminée.

        Returns:
            Nombre de téléchargements annulés
        """
        tasks = list(self._pending.pop(integration_id, ()))
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.debug(f"{len(tasks)} vignettes abandonnées pour {integration_id}")
        return len(tasks)

    async def drain(self) -> None:
        """Attend la fin des téléchargements de vignettes en cours."""
        while self._pending:
            tasks = [task for scope in self._pending.values() for task in scope]
            await asyncio.gather(*tasks, return_exceptions=True)
