"""
Services applicatifs.

- LibrarySyncService : orchestration des synchronisations complètes
- LibraryIndexer : écriture des éléments et mise en cache des vignettes
- SurgicalRefresher : indexation ciblée des derniers ajouts
- ActiveSyncRegistry : registre des synchronisations actives
"""

from libsync.services.library_indexer import LibraryIndexer
from libsync.services.library_sync import LibrarySyncService, ProgressThrottle
from libsync.services.surgical_refresh import SurgicalRefresher
from libsync.services.sync_registry import ActiveSyncRegistry, CancellationToken

__all__ = [
    "ActiveSyncRegistry",
    "CancellationToken",
    "LibraryIndexer",
    "LibrarySyncService",
    "ProgressThrottle",
    "SurgicalRefresher",
]
