"""
Service de synchronisation des bibliothèques média.

Orchestre une synchronisation complète en tâche de fond :
1. Énumération des sections (films / séries)
2. Comptage des éléments de chaque section (avec retry)
3. Suppression des éléments existants de l'intégration
4. Pagination et indexation section par section, élément par élément
5. Finalisation du statut (terminé, partiel, annulé ou erreur)

Au plus une synchronisation active par intégration (ActiveSyncRegistry).
L'annulation est coopérative : vérifiée avant chaque page et chaque élément.
"""

import asyncio
import time
from dataclasses import asdict
from functools import partial
from typing import Any, Callable, Optional

from loguru import logger

from libsync.adapters.api.retry import RetryPolicy
from libsync.adapters.cache.image_cache import ImageCacheManager
from libsync.adapters.providers.factory import ProviderStrategyFactory
from libsync.core.entities.integration import Integration
from libsync.core.entities.sync import (
    FailedSection,
    PurgeResult,
    SyncOutcome,
    SyncStartResult,
    SyncState,
    SyncStatus,
)
from libsync.core.exceptions import SectionListingError
from libsync.core.ports.broadcast import (
    EVENT_COMPLETE,
    EVENT_ERROR,
    EVENT_PROGRESS,
    IBroadcastSink,
)
from libsync.core.ports.integrations import IIntegrationRegistry
from libsync.core.ports.providers import IProviderSyncStrategy, LibrarySection
from libsync.core.ports.repositories import IMediaLibraryRepository, ISyncStatusRepository
from libsync.logging_config import sync_context
from libsync.services.library_indexer import LibraryIndexer
from libsync.services.sync_registry import ActiveSyncRegistry, CancellationToken
from libsync.utils.helpers import utc_now

STALE_SYNC_MESSAGE = "Synchronisation interrompue par un redémarrage du serveur"
ALREADY_RUNNING_MESSAGE = "Synchronisation déjà en cours"
NOT_FOUND_MESSAGE = "Intégration introuvable"

PHASE_FETCHING = "fetching"
PHASE_INDEXING = "indexing"

# Intervalle minimum entre deux événements de progression (~6 par seconde)
DEFAULT_PROGRESS_INTERVAL = 0.150


def format_partial_sync_message(failed: list[FailedSection]) -> str:
    """Message d'erreur d'une synchronisation partielle."""
    details = ", ".join(f'"{f.name}" ({f.error})' for f in failed)
    return f"Synchronisation partielle : {details} en échec"


class ProgressThrottle:
    """
    Limiteur temporel des événements de progression.

    Le premier élément est toujours émis, puis au plus un événement par
    intervalle.
    """

    def __init__(
        self,
        min_interval: float = DEFAULT_PROGRESS_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._min_interval = min_interval
        self._clock = clock
        self._last: Optional[float] = None

    def should_emit(self, count: int) -> bool:
        now = self._clock()
        if count == 1 or self._last is None or now - self._last >= self._min_interval:
            self._last = now
            return True
        return False


class LibrarySyncService:
    """
    Orchestrateur des synchronisations.

    Attributs injectés:
        integrations: Lecture des intégrations configurées
        strategy_factory: Crée la stratégie de chaque synchronisation
        retry_policy: Politique de retry des appels fournisseur
        indexer: Écriture des éléments dans le catalogue
        media_repo: Repository du catalogue
        status_repo: Repository des statuts
        registry: Registre des synchronisations actives
        broadcast: Destination des événements de progression
        image_cache: Cache des vignettes (purge)
    """

    def __init__(
        self,
        integrations: IIntegrationRegistry,
        strategy_factory: ProviderStrategyFactory,
        retry_policy: RetryPolicy,
        indexer: LibraryIndexer,
        media_repo: IMediaLibraryRepository,
        status_repo: ISyncStatusRepository,
        registry: ActiveSyncRegistry,
        broadcast: IBroadcastSink,
        image_cache: Optional[ImageCacheManager] = None,
        progress_interval: float = DEFAULT_PROGRESS_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._integrations = integrations
        self._strategy_factory = strategy_factory
        self._retry = retry_policy
        self._indexer = indexer
        self._media_repo = media_repo
        self._status_repo = status_repo
        self._registry = registry
        self._broadcast = broadcast
        self._image_cache = image_cache
        self._progress_interval = progress_interval
        self._clock = clock
        self._tasks: dict[str, asyncio.Task] = {}

    # ------------------------------------------------------------------
    # API publique
    # ------------------------------------------------------------------

    async def start_sync(self, integration_id: str) -> SyncStartResult:
        """
        Démarre une synchronisation complète en tâche de fond.

        Retourne immédiatement ; la tâche est attendue par wait_for_sync().

        Returns:
            SyncStartResult(accepted=False, reason=...) si une synchronisation
            est déjà en cours, si l'intégration est inconnue ou si son type
            n'est pas supporte
        """
        if self._registry.is_active(integration_id):
            return SyncStartResult(False, ALREADY_RUNNING_MESSAGE)

        integration = self._integrations.get(integration_id)
        if integration is None:
            return SyncStartResult(False, NOT_FOUND_MESSAGE)
        if not self._strategy_factory.supports(integration):
            return SyncStartResult(False, f"Type d'intégration non supporté: {integration.type}")

        token = self._registry.try_register(integration_id)
        if token is None:
            return SyncStartResult(False, ALREADY_RUNNING_MESSAGE)

        try:
            self._status_repo.update(
                integration_id,
                state=SyncState.SYNCING,
                last_sync_started=utc_now(),
                error_message=None,
            )
        except Exception:
            self._registry.remove(token)
            raise

        task = asyncio.create_task(
            self._run_sync(integration, token), name=f"library-sync-{integration_id}"
        )
        self._tasks[integration_id] = task
        task.add_done_callback(partial(self._forget_task, integration_id))
        logger.info(f"Synchronisation démarrée: {integration_id} ({integration.type})")
        return SyncStartResult(True)

    start_full_sync = start_sync

    def _forget_task(self, integration_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(integration_id) is task:
            del self._tasks[integration_id]

    async def wait_for_sync(self, integration_id: str) -> Optional[SyncOutcome]:
        """Attend la fin de la synchronisation en cours. None si aucune."""
        task = self._tasks.get(integration_id)
        if task is None:
            return None
        return await task

    def cancel_sync(self, integration_id: str) -> bool:
        """
        Annule la synchronisation en cours.

        Le statut passe à idle immédiatement ; la tâche s'arrête à la prochaine
        page ou au prochain élément.
        """
        if not self._registry.cancel(integration_id):
            return False
        self._status_repo.update(integration_id, state=SyncState.IDLE)
        logger.info(f"Synchronisation annulée: {integration_id}")
        return True

    def get_status(self, integration_id: str) -> Optional[SyncStatus]:
        return self._status_repo.get(integration_id)

    get_sync_status = get_status

    def is_syncing(self, integration_id: str) -> bool:
        return self._registry.is_active(integration_id)

    async def purge_integration_data(self, integration_id: str) -> PurgeResult:
        """
        Supprime toutes les données d'une intégration.

        Annule la synchronisation en cours (sa finalisation est ignorée) et les
        téléchargements de vignettes encore actifs, puis supprime les éléments,
        le statut et les images en cache.
        """
        token = self._registry.get(integration_id)
        if token is not None:
            token.cancel()
            self._registry.remove(token)

        result = PurgeResult(deleted_items=self._media_repo.delete_by_integration(integration_id))
        self._status_repo.delete(integration_id)
        await self._indexer.cancel_pending(integration_id)
        if self._image_cache is not None:
            images = self._image_cache.purge_scope(integration_id)
            result.deleted_images = images.deleted
            result.freed_bytes = images.freed_bytes

        logger.info(
            f"Données purgées pour {integration_id}: {result.deleted_items} éléments, "
            f"{result.deleted_images} images"
        )
        return result

    def reset_stale_statuses(self) -> int:
        """
        Passe en erreur les statuts 'syncing' sans synchronisation vivante.

        À appeler au démarrage : un statut 'syncing' persisté par un processus
        précédent ne sera jamais finalisé.
        """
        reset_ids = self._status_repo.reset_stale(
            STALE_SYNC_MESSAGE, exclude_ids=self._registry.active_ids()
        )
        if reset_ids:
            logger.info(f"{len(reset_ids)} statut(s) de synchronisation réinitialisé(s): {reset_ids}")
        return len(reset_ids)

    def sync_enabled_integrations(self) -> list[Integration]:
        """Intégrations actives de type supporté avec la synchronisation activée."""
        return [
            i
            for i in self._integrations.list_all()
            if i.enabled and i.library_sync_enabled and self._strategy_factory.supports(i)
        ]

    async def sync_all_enabled(self) -> dict[str, SyncStartResult]:
        """Démarre la synchronisation de chaque intégration éligible (déclencheur périodique)."""
        integrations = self.sync_enabled_integrations()
        if not integrations:
            logger.debug("Synchronisation périodique: aucune intégration éligible")
            return {}

        logger.info(f"Synchronisation périodique: {len(integrations)} serveur(s)")
        results = {}
        for integration in integrations:
            results[integration.id] = await self.start_sync(integration.id)
        return results

    # ------------------------------------------------------------------
    # Tâche de fond
    # ------------------------------------------------------------------

    def _emit(self, event: str, payload: dict[str, Any]) -> None:
        try:
            self._broadcast.emit(event, payload)
        except Exception as e:
            logger.warning(f"Diffusion de {event} impossible: {e}")

    def _emit_progress(
        self,
        integration_id: str,
        indexed: int,
        total: int,
        phase: str,
        status_message: Optional[str] = None,
    ) -> None:
        payload: dict[str, Any] = {
            "integration_id": integration_id,
            "indexed": indexed,
            "total": total,
            "percent": min(100, round(indexed / total * 100)) if total else 0,
            "phase": phase,
        }
        if status_message:
            payload["status_message"] = status_message
        self._emit(EVENT_PROGRESS, payload)

    async def _run_sync(self, integration: Integration, token: CancellationToken) -> SyncOutcome:
        """Exécute la synchronisation ; aucune exception ne sort de la tâche."""
        started = time.monotonic()
        strategy: Optional[IProviderSyncStrategy] = None
        outcome = SyncOutcome()
        with sync_context(integration.id):
            try:
                strategy = self._strategy_factory.create(integration)
                outcome = await self._execute(integration, strategy, token)
            except Exception as e:
                message = str(e) or type(e).__name__
                outcome.error = message
                logger.error(f"Échec de la synchronisation {integration.id}: {message}")
                self._finalize_error(integration.id, token, message)
            finally:
                if strategy is not None:
                    await strategy.close()
                self._registry.remove(token)

            elapsed = time.monotonic() - started
            logger.info(
                f"Synchronisation terminée: {integration.id}, "
                f"{outcome.indexed_items} éléments en {elapsed:.1f}s"
            )
        return outcome

    def _finalize_error(self, integration_id: str, token: CancellationToken, message: str) -> None:
        # Annulée : le statut idle posé par cancel_sync est conservé
        if token.cancelled or not self._registry.is_current(token):
            return
        try:
            self._status_repo.update(integration_id, state=SyncState.ERROR, error_message=message)
        except Exception as e:
            logger.error(f"Statut d'erreur non enregistré pour {integration_id}: {e}")
        self._emit(EVENT_ERROR, {"integration_id": integration_id, "error": message})

    async def _list_sections(
        self, integration_id: str, strategy: IProviderSyncStrategy
    ) -> list[LibrarySection]:
        result = await self._retry.run(strategy.list_sections)
        if not result.success:
            raise SectionListingError(integration_id, result.error or "erreur inconnue")
        return result.data or []

    async def _count_sections(
        self,
        integration_id: str,
        strategy: IProviderSyncStrategy,
        sections: list[LibrarySection],
        failed: list[FailedSection],
    ) -> dict[str, int]:
        counts: dict[str, int] = {}
        total = 0
        for position, section in enumerate(sections, start=1):
            self._emit_progress(
                integration_id, 0, 0, PHASE_FETCHING,
                f"Lecture de la bibliothèque '{section.title}'...",
            )
            result = await self._retry.run(partial(strategy.count_items, section))
            if not result.success:
                logger.warning(
                    f"Comptage de la section \"{section.title}\" impossible "
                    f"({integration_id}): {result.error}"
                )
                failed.append(FailedSection(section.title, result.error or "erreur inconnue"))
                continue

            counts[section.key] = result.data or 0
            total += counts[section.key]
            if counts[section.key]:
                self._emit_progress(
                    integration_id, 0, total, PHASE_FETCHING,
                    f"{total} éléments trouvés ({position}/{len(sections)} bibliothèques)",
                )
        return counts

    async def _execute(
        self,
        integration: Integration,
        strategy: IProviderSyncStrategy,
        token: CancellationToken,
    ) -> SyncOutcome:
        integration_id = integration.id
        outcome = SyncOutcome()

        sections = await self._list_sections(integration_id, strategy)
        if not sections:
            logger.warning(f"Aucune bibliothèque film/série pour {integration_id}")
            self._status_repo.update(
                integration_id,
                state=SyncState.COMPLETED,
                last_sync_completed=utc_now(),
                total_items=0,
                indexed_items=0,
                error_message=None,
            )
            self._emit(
                EVENT_COMPLETE,
                {"integration_id": integration_id, "indexed": 0, "failed_sections": []},
            )
            return outcome

        failed = outcome.failed_sections
        counts = await self._count_sections(integration_id, strategy, sections, failed)
        total = sum(counts.values())
        outcome.total_items = total

        if token.cancelled:
            self._finalize(integration_id, token, outcome)
            return outcome

        self._status_repo.update(integration_id, total_items=total, indexed_items=0)
        self._emit_progress(
            integration_id, 0, total, PHASE_INDEXING, f"Synchronisation de {total} éléments..."
        )

        # Une synchronisation complète remplace tout le catalogue de l'intégration
        self._media_repo.delete_by_integration(integration_id)

        throttle = ProgressThrottle(self._progress_interval, self._clock)
        indexed = 0
        for section in sections:
            if token.cancelled:
                break
            if section.key not in counts:
                continue

            page_token: Optional[int] = None
            page_number = 0
            while not token.cancelled:
                result = await self._retry.run(partial(strategy.fetch_page, section, page_token))
                if not result.success:
                    logger.warning(
                        f"Section \"{section.title}\" abandonnée page {page_number} "
                        f"({integration_id}): {result.error}"
                    )
                    if all(f.name != section.title for f in failed):
                        failed.append(FailedSection(section.title, result.error or "erreur inconnue"))
                    break

                page = result.data
                for raw in page.items:
                    if token.cancelled:
                        break
                    try:
                        self._indexer.index_item(integration_id, section, raw, strategy)
                    except (KeyError, TypeError, ValueError) as e:
                        logger.warning(f"Élément ignoré dans \"{section.title}\": {e!r}")
                        continue
                    indexed += 1
                    if throttle.should_emit(indexed):
                        self._status_repo.update(integration_id, indexed_items=indexed)
                        self._emit_progress(integration_id, indexed, total, PHASE_INDEXING)

                page_number += 1
                if page.next_page_token is None or not page.items:
                    break
                page_token = page.next_page_token
                logger.debug(f"Section {section.title}: page {page_number}, {page_token}/{counts[section.key]}")

        outcome.indexed_items = indexed
        self._finalize(integration_id, token, outcome)
        return outcome

    def _finalize(self, integration_id: str, token: CancellationToken, outcome: SyncOutcome) -> None:
        if token.cancelled:
            outcome.cancelled = True
            # Une synchronisation plus récente a pris la main : ne pas écraser son statut
            if not self._registry.is_current(token):
                return
            self._status_repo.update(
                integration_id,
                state=SyncState.IDLE,
                indexed_items=outcome.indexed_items,
                error_message=None,
            )
            return

        failed = outcome.failed_sections
        self._status_repo.update(
            integration_id,
            state=SyncState.COMPLETED,
            last_sync_completed=utc_now(),
            indexed_items=outcome.indexed_items,
            error_message=format_partial_sync_message(failed) if failed else None,
        )
        if failed:
            logger.warning(
                f"Synchronisation {integration_id} terminée avec erreurs: "
                f"{[f.name for f in failed]}"
            )
        self._emit(
            EVENT_COMPLETE,
            {
                "integration_id": integration_id,
                "indexed": outcome.indexed_items,
                "failed_sections": [asdict(f) for f in failed],
            },
        )
