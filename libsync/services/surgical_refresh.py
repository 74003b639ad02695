"""
Rafraîchissement ciblé du catalogue.

Indexe quelques éléments précis (identifiés par leur ID TMDB) parmi les
derniers ajouts de chaque serveur, sans lancer de synchronisation complète.
Les éléments existants ne sont jamais supprimés, seulement mis à jour.
"""

from typing import Iterable

from loguru import logger

from libsync.adapters.providers.factory import ProviderStrategyFactory
from libsync.core.entities.integration import Integration
from libsync.core.ports.providers import IProviderSyncStrategy
from libsync.core.ports.repositories import IMediaLibraryRepository
from libsync.services.library_indexer import LibraryIndexer

# Nombre de derniers ajouts examinés par section
RECENTLY_ADDED_LIMIT = 20


class SurgicalRefresher:
    """
    Indexation des derniers ajouts correspondant à des IDs TMDB.

    Pas de retry : un serveur en échec est journalisé puis ignoré.
    """

    def __init__(
        self,
        strategy_factory: ProviderStrategyFactory,
        indexer: LibraryIndexer,
        media_repo: IMediaLibraryRepository,
        recently_added_limit: int = RECENTLY_ADDED_LIMIT,
    ) -> None:
        self._strategy_factory = strategy_factory
        self._indexer = indexer
        self._media_repo = media_repo
        self._limit = recently_added_limit

    def is_tmdb_id_in_library(self, tmdb_id: int) -> bool:
        """True si un élément portant cet ID TMDB est déjà dans le catalogue."""
        return self._media_repo.has_tmdb_id(tmdb_id)

    async def index_matching(
        self, target_tmdb_ids: set[int], integrations: Iterable[Integration]
    ) -> set[int]:
        """
        Indexe les derniers ajouts dont l'ID TMDB est recherche.

        Args:
            target_tmdb_ids: IDs TMDB à trouver
            integrations: Serveurs à interroger, dans l'ordre

        Returns:
            Les IDs TMDB effectivement indexés (arrêt des que tous sont trouvés)
        """
        indexed: set[int] = set()
        if not target_tmdb_ids:
            return indexed

        for integration in integrations:
            if not self._strategy_factory.supports(integration):
                continue
            strategy = self._strategy_factory.create(integration)
            try:
                await self._index_from(integration, strategy, target_tmdb_ids, indexed)
            except Exception as e:
                logger.warning(f"Rafraîchissement ciblé en échec sur {integration.id}: {e}")
            finally:
                await strategy.close()

            if indexed >= target_tmdb_ids:
                break
        return indexed

    index_matching_recent = index_matching

    async def _index_from(
        self,
        integration: Integration,
        strategy: IProviderSyncStrategy,
        targets: set[int],
        indexed: set[int],
    ) -> None:
        sections = await strategy.list_sections()
        if not sections.success:
            logger.debug(f"Sections indisponibles sur {integration.id}: {sections.error}")
            return

        for section in sections.data or []:
            recent = await strategy.fetch_recently_added(section, self._limit)
            if not recent.success:
                logger.debug(
                    f"Derniers ajouts indisponibles ({integration.id}, {section.title}): "
                    f"{recent.error}"
                )
                continue

            for raw in recent.data or []:
                try:
                    item = strategy.map_item(integration.id, section, raw)
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning(f"Élément ignoré dans \"{section.title}\": {e!r}")
                    continue
                tmdb_id = item.tmdb_id
                if tmdb_id is None or tmdb_id not in targets or tmdb_id in indexed:
                    continue
                self._indexer.index_mapped(item, strategy)
                indexed.add(tmdb_id)
                logger.info(
                    f"Indexation ciblée: \"{item.title}\" (tmdb {tmdb_id}) sur {integration.id}"
                )

            if indexed >= targets:
                break
