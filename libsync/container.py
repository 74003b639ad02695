"""
Container d'injection de dépendances via dependency-injector.

Fournit une gestion centralisée des dépendances pour les interfaces CLI et Web :
engine SQLite, repositories, stratégies fournisseur, cache d'images et
services de synchronisation.
"""

from dependency_injector import containers, providers

from .adapters.api.retry import RetryPolicy
from .adapters.broadcast.sinks import CompositeBroadcastSink, EventBroadcaster, LoggingBroadcastSink
from .adapters.cache.image_cache import ImageCacheManager
from .adapters.integrations.json_registry import JsonIntegrationRegistry
from .adapters.providers.factory import ProviderStrategyFactory
from .config import Settings
from .infrastructure.persistence.database import create_db_engine, init_db
from .infrastructure.persistence.repositories import (
    SQLModelMediaLibraryRepository,
    SQLModelSyncStatusRepository,
)
from .services.library_indexer import LibraryIndexer
from .services.library_sync import LibrarySyncService
from .services.surgical_refresh import SurgicalRefresher
from .services.sync_registry import ActiveSyncRegistry


def _seconds(milliseconds: int) -> float:
    return milliseconds / 1000


class Container(containers.DeclarativeContainer):
    """Container DI de l'application.

    Utilisation :
        container = Container()
        container.database.init()  # Initialise la DB une fois
        sync_service = container.library_sync_service()
        await sync_service.start_sync("plex-abc1")

    Les objets porteurs d'état partagé (registre des synchronisations actives,
    cache d'images et son sémaphore, diffuseur d'événements) sont des
    singletons : une seule instance par processus.
    """

    # Configuration - singleton charge une seule fois
    config = providers.Singleton(Settings)

    # Database - engine partagé, Resource pour l'initialisation unique
    engine = providers.Singleton(create_db_engine, database_url=config.provided.database_url)
    database = providers.Resource(init_db, engine=engine)

    # Repositories - sessions ouvertes par opération sur l'engine partagé
    media_library_repository = providers.Factory(SQLModelMediaLibraryRepository, engine=engine)
    sync_status_repository = providers.Factory(SQLModelSyncStatusRepository, engine=engine)

    # Intégrations configurées
    integration_registry = providers.Singleton(
        JsonIntegrationRegistry,
        path=config.provided.integrations_file,
    )

    # Cache d'images - Singleton (sémaphore de téléchargement partagé)
    image_cache = providers.Singleton(
        ImageCacheManager,
        cache_dir=config.provided.library_cache_dir,
        concurrency=config.provided.image_download_concurrency,
        timeout=config.provided.image_download_timeout_seconds,
        max_large_per_scope=config.provided.large_image_max_per_scope,
    )

    # Appels fournisseur
    retry_policy = providers.Singleton(
        RetryPolicy,
        max_retries=config.provided.sync_max_retries,
    )
    strategy_factory = providers.Singleton(
        ProviderStrategyFactory,
        page_size=config.provided.sync_page_size,
        timeout=config.provided.sync_timeout_seconds,
    )

    # Diffusion des événements (flux SSE + journal)
    event_broadcaster = providers.Singleton(EventBroadcaster)
    broadcast_sink = providers.Singleton(
        CompositeBroadcastSink,
        sinks=providers.List(event_broadcaster, providers.Singleton(LoggingBroadcastSink)),
    )

    # Services
    sync_registry = providers.Singleton(ActiveSyncRegistry)
    library_indexer = providers.Singleton(
        LibraryIndexer,
        media_repo=media_library_repository,
        image_cache=image_cache,
    )
    library_sync_service = providers.Singleton(
        LibrarySyncService,
        integrations=integration_registry,
        strategy_factory=strategy_factory,
        retry_policy=retry_policy,
        indexer=library_indexer,
        media_repo=media_library_repository,
        status_repo=sync_status_repository,
        registry=sync_registry,
        broadcast=broadcast_sink,
        image_cache=image_cache,
        progress_interval=providers.Factory(_seconds, config.provided.progress_min_interval_ms),
    )
    surgical_refresher = providers.Factory(
        SurgicalRefresher,
        strategy_factory=strategy_factory,
        indexer=library_indexer,
        media_repo=media_library_repository,
        recently_added_limit=config.provided.recently_added_limit,
    )
