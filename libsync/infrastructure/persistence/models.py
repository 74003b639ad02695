"""
Modèles SQLModel pour la base de données libsync.

Ces modèles représentent les tables de la base SQLite. Ils sont distincts des
entités de domaine (dataclass dans core/entities/) selon l'architecture
hexagonale.

Tables:
- media_library: Catalogue normalisé, une ligne par (integration_id, item_key)
- library_sync_status: Statut de synchronisation, une ligne par intégration
- media_library_fts: Index plein texte FTS5 (créé par init_db, hors SQLModel)

Les champs JSON (*_json) stockent des listes (genres, acteurs) sérialisées.
"""

from __future__ import annotations

import json
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, UniqueConstraint
from sqlmodel import Field, Index, SQLModel

from libsync.utils.helpers import utc_now


class MediaLibraryModel(SQLModel, table=True):
    """
    Élément indexé depuis un serveur média.

    title, original_title, summary, actors_json et director sont repris par
    l'index FTS5 media_library_fts.
    """

    __tablename__ = "media_library"
    __table_args__ = (
        UniqueConstraint("integration_id", "item_key", name="uq_media_library_item"),
        CheckConstraint(
            "media_type IN ('movie', 'show', 'season', 'episode', 'music', 'photo')",
            name="ck_media_library_type",
        ),
        Index("ix_media_library_integration", "integration_id"),
        Index("ix_media_library_type", "media_type"),
        Index("ix_media_library_title", "title"),
        Index("ix_media_library_year", "year"),
        Index("ix_media_library_tmdb", "tmdb_id"),
    )

    id: int | None = Field(default=None, primary_key=True)
    integration_id: str
    media_type: str
    library_key: str | None = None
    item_key: str
    title: str
    original_title: str | None = None
    sort_title: str | None = None
    year: int | None = None
    thumb: str | None = None
    art: str | None = None
    summary: str | None = None
    genres_json: str | None = None  # JSON: ["Action", "Drame"]
    studio: str | None = None
    director: str | None = None
    actors_json: str | None = None  # JSON: ["Acteur 1", "Acteur 2", ...]
    rating: float | None = None
    content_rating: str | None = None
    duration_ms: int | None = None
    added_at: int | None = None
    updated_at: int | None = None
    tmdb_id: int | None = None
    imdb_id: str | None = None
    indexed_at: datetime | None = Field(
        default_factory=utc_now, sa_type=DateTime(timezone=True)
    )

    @property
    def genres(self) -> list[str]:
        """Retourne les genres désérialisés."""
        if self.genres_json:
            return json.loads(self.genres_json)
        return []

    @genres.setter
    def genres(self, value: list[str]) -> None:
        """Sérialise les genres en JSON."""
        self.genres_json = json.dumps(value) if value else None

    @property
    def actors(self) -> list[str]:
        """Retourne les acteurs désérialisés."""
        if self.actors_json:
            return json.loads(self.actors_json)
        return []

    @actors.setter
    def actors(self, value: list[str]) -> None:
        """Sérialise les acteurs en JSON."""
        self.actors_json = json.dumps(value) if value else None


class LibrarySyncStatusModel(SQLModel, table=True):
    """Statut de synchronisation d'une intégration."""

    __tablename__ = "library_sync_status"
    __table_args__ = (
        CheckConstraint(
            "sync_status IN ('idle', 'syncing', 'error', 'completed')",
            name="ck_library_sync_status",
        ),
    )

    integration_id: str = Field(primary_key=True)
    total_items: int = Field(default=0)
    indexed_items: int = Field(default=0)
    last_sync_started: datetime | None = Field(default=None, sa_type=DateTime(timezone=True))
    last_sync_completed: datetime | None = Field(
        default=None, sa_type=DateTime(timezone=True)
    )
    sync_status: str = Field(default="idle", index=True)
    error_message: str | None = None
