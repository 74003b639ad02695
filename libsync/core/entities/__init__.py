"""
Entités métier du domaine de synchronisation.

Exports:
- CanonicalMediaItem, ExternalIds, MediaType: catalogue normalisé
- SyncStatus, SyncState, SyncStartResult, FailedSection, PurgeResult, SyncOutcome
- Integration, IntegrationType: instances de serveurs média
"""

from libsync.core.entities.integration import Integration, IntegrationType
from libsync.core.entities.media import (
    MAX_ACTORS,
    CanonicalMediaItem,
    ExternalIds,
    MediaType,
)
from libsync.core.entities.sync import (
    FailedSection,
    PurgeResult,
    SyncOutcome,
    SyncStartResult,
    SyncState,
    SyncStatus,
)

__all__ = [
    "MAX_ACTORS",
    "CanonicalMediaItem",
    "ExternalIds",
    "MediaType",
    "Integration",
    "IntegrationType",
    "FailedSection",
    "PurgeResult",
    "SyncOutcome",
    "SyncStartResult",
    "SyncState",
    "SyncStatus",
]
