"""
Implémentation SQLModel du repository des statuts de synchronisation.

update() crée la ligne si elle n'existe pas : un statut peut être mis à jour
avant qu'aucune synchronisation n'ait jamais été enregistrée.
"""

from typing import Any, Optional

from sqlalchemy import Engine
from sqlmodel import Session, col, select

from libsync.core.entities.sync import SyncState, SyncStatus
from libsync.core.ports.repositories import ISyncStatusRepository
from libsync.infrastructure.persistence.models import LibrarySyncStatusModel
from libsync.utils.helpers import as_utc

_UPDATABLE_FIELDS = frozenset(
    {
        "total_items",
        "indexed_items",
        "last_sync_started",
        "last_sync_completed",
        "state",
        "error_message",
    }
)


class SQLModelSyncStatusRepository(ISyncStatusRepository):
    """Repository SQLModel des statuts (une ligne par intégration)."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def _to_entity(self, model: LibrarySyncStatusModel) -> SyncStatus:
        return SyncStatus(
            integration_id=model.integration_id,
            total_items=model.total_items,
            indexed_items=model.indexed_items,
            last_sync_started=as_utc(model.last_sync_started),
            last_sync_completed=as_utc(model.last_sync_completed),
            state=SyncState(model.sync_status),
            error_message=model.error_message,
        )

    def get(self, integration_id: str) -> Optional[SyncStatus]:
        with Session(self._engine) as session:
            model = session.get(LibrarySyncStatusModel, integration_id)
            if model:
                return self._to_entity(model)
        return None

    def update(self, integration_id: str, **fields: Any) -> SyncStatus:
        """
        Met à jour les champs donnés du statut.

        Args :
            integration_id : ID de l'intégration
            **fields : total_items, indexed_items, last_sync_started,
                last_sync_completed, state (SyncState ou str), error_message

        Retourne :
            Le statut après mise à jour

        Raises :
            ValueError : Si un champ inconnu est fourni
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Champs de statut inconnus: {sorted(unknown)}")

        with Session(self._engine) as session:
            model = session.get(LibrarySyncStatusModel, integration_id)
            if model is None:
                model = LibrarySyncStatusModel(integration_id=integration_id)
            for name, value in fields.items():
                if name == "state":
                    model.sync_status = SyncState(value).value
                else:
                    setattr(model, name, value)
            session.add(model)
            session.commit()
            session.refresh(model)
            return self._to_entity(model)

    def delete(self, integration_id: str) -> bool:
        with Session(self._engine) as session:
            model = session.get(LibrarySyncStatusModel, integration_id)
            if model is None:
                return False
            session.delete(model)
            session.commit()
            return True

    def list_all(self) -> list[SyncStatus]:
        with Session(self._engine) as session:
            statement = select(LibrarySyncStatusModel).order_by(
                LibrarySyncStatusModel.integration_id
            )
            return [self._to_entity(m) for m in session.exec(statement).all()]

    def reset_stale(
        self, message: str, exclude_ids: frozenset[str] = frozenset()
    ) -> list[str]:
        """
        Passe en erreur les statuts restes 'syncing' (processus interrompu).

        Args :
            message : Message d'erreur enregistré
            exclude_ids : Intégrations ayant une synchronisation vivante

        Retourne :
            Les IDs réinitialisés
        """
        with Session(self._engine) as session:
            statement = select(LibrarySyncStatusModel).where(
                LibrarySyncStatusModel.sync_status == SyncState.SYNCING.value
            )
            if exclude_ids:
                statement = statement.where(
                    col(LibrarySyncStatusModel.integration_id).not_in(exclude_ids)
                )
            models = session.exec(statement).all()
            reset_ids = [m.integration_id for m in models]
            for model in models:
                model.sync_status = SyncState.ERROR.value
                model.error_message = message
                session.add(model)
            session.commit()
            return reset_ids
