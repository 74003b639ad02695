"""
Entités de suivi des synchronisations.

SyncStatus est le miroir persisté de l'état d'une synchronisation, une ligne
par intégration. Il sert à l'observation : le contrôle de concurrence repose
uniquement sur le registre en mémoire des synchronisations actives.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class SyncState(Enum):
    """État persisté d'une synchronisation.

    Transitions: idle -> syncing -> {completed, error}; syncing -> idle
    uniquement via une annulation explicite.
    """

    IDLE = "idle"
    SYNCING = "syncing"
    ERROR = "error"
    COMPLETED = "completed"


@dataclass
class SyncStatus:
    """
    Statut de synchronisation d'une intégration.

    Attributs :
        integration_id : ID de l'intégration
        total_items : Nombre d'éléments annoncés par le fournisseur
        indexed_items : Nombre d'éléments indexés pendant la dernière synchronisation
        last_sync_started : Début de la dernière synchronisation
        last_sync_completed : Fin de la dernière synchronisation réussie (même partielle)
        state : État courant
        error_message : Détail de l'erreur ou des sections en échec (synchro partielle)
    """

    integration_id: str
    total_items: int = 0
    indexed_items: int = 0
    last_sync_started: Optional[datetime] = None
    last_sync_completed: Optional[datetime] = None
    state: SyncState = SyncState.IDLE
    error_message: Optional[str] = None


@dataclass(frozen=True)
class SyncStartResult:
    """Réponse à une demande de synchronisation (acceptée ou refusée avec motif)."""

    accepted: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class FailedSection:
    """Section abandonnée après épuisement des tentatives."""

    name: str
    error: str


@dataclass
class PurgeResult:
    """Bilan de la purge des données d'une intégration."""

    deleted_items: int = 0
    deleted_images: int = 0
    freed_bytes: int = 0


@dataclass
class SyncOutcome:
    """Bilan interne d'une exécution de synchronisation (pour les logs et la CLI)."""

    indexed_items: int = 0
    total_items: int = 0
    cancelled: bool = False
    failed_sections: list[FailedSection] = field(default_factory=list)
    error: Optional[str] = None
