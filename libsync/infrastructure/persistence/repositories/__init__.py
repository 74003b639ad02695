"""
Implémentations SQLModel des repositories.

Exports:
- SQLModelMediaLibraryRepository: catalogue normalisé et recherche
- SQLModelSyncStatusRepository: statuts de synchronisation
"""

from libsync.infrastructure.persistence.repositories.media_library_repository import (
    SQLModelMediaLibraryRepository,
)
from libsync.infrastructure.persistence.repositories.sync_status_repository import (
    SQLModelSyncStatusRepository,
)

__all__ = ["SQLModelMediaLibraryRepository", "SQLModelSyncStatusRepository"]
