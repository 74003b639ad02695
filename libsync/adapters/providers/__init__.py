"""Stratégies de synchronisation par type de serveur média."""

from libsync.adapters.providers.emby import EmbySyncStrategy
from libsync.adapters.providers.factory import SUPPORTED_TYPES, ProviderStrategyFactory
from libsync.adapters.providers.jellyfin import JellyfinSyncStrategy
from libsync.adapters.providers.plex import PlexSyncStrategy

__all__ = [
    "EmbySyncStrategy",
    "JellyfinSyncStrategy",
    "PlexSyncStrategy",
    "ProviderStrategyFactory",
    "SUPPORTED_TYPES",
]
