"""
Ports (interfaces abstraites) du domaine.

Les adaptateurs concrets implémentent ces interfaces :
- IProviderSyncStrategy : stratégies Plex / Jellyfin / Emby
- IMediaLibraryRepository, ISyncStatusRepository : persistance SQLModel
- IBroadcastSink : diffusion des événements de progression
- IIntegrationRegistry : lecture des intégrations configurées
"""

from libsync.core.ports.broadcast import (
    EVENT_COMPLETE,
    EVENT_ERROR,
    EVENT_PROGRESS,
    IBroadcastSink,
)
from libsync.core.ports.integrations import IIntegrationRegistry
from libsync.core.ports.providers import (
    FetchResult,
    ImageRequest,
    IProviderSyncStrategy,
    ItemPage,
    LibrarySection,
)
from libsync.core.ports.repositories import (
    IMediaLibraryRepository,
    ISyncStatusRepository,
)

__all__ = [
    "EVENT_COMPLETE",
    "EVENT_ERROR",
    "EVENT_PROGRESS",
    "IBroadcastSink",
    "IIntegrationRegistry",
    "FetchResult",
    "ImageRequest",
    "IProviderSyncStrategy",
    "ItemPage",
    "LibrarySection",
    "IMediaLibraryRepository",
    "ISyncStatusRepository",
]
