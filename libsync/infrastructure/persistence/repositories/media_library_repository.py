"""
Implémentation SQLModel du repository du catalogue.

Écritures : upsert SQLite (INSERT ... ON CONFLICT DO UPDATE) sur l'identité
(integration_id, item_key). Les triggers FTS5 maintiennent l'index plein
texte dans la même transaction.

Recherche : correspondance de préfixe FTS5 sur title/original_title, puis
repli approximatif (rapidfuzz) quand le plein texte trouve peu de résultats.
"""

import json
from typing import Any, Optional

from loguru import logger
from rapidfuzz import fuzz, utils
from sqlalchemy import Engine, delete, func, text
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, col, select

from libsync.core.entities.media import CanonicalMediaItem, ExternalIds, MediaType
from libsync.core.ports.repositories import IMediaLibraryRepository
from libsync.infrastructure.persistence.models import MediaLibraryModel
from libsync.utils.helpers import (
    as_utc,
    fts_prefix_query,
    fts_token_prefixes_query,
    utc_now,
)

# Repli approximatif : moins de FUZZY_TRIGGER_COUNT résultats FTS et une
# requête d'au moins FUZZY_MIN_QUERY_LENGTH caractères
FUZZY_TRIGGER_COUNT = 5
FUZZY_MIN_QUERY_LENGTH = 5
FUZZY_CANDIDATES_LIMIT = 1000
# Colonnes de la présélection des candidats
FUZZY_FTS_COLUMNS = ("title", "original_title", "actors_json", "director")
FUZZY_MIN_SCORE = 85.0
# Un nom d'acteur ou de réalisateur compte moins qu'un titre
PEOPLE_WEIGHT = 0.9

# Colonnes mises à jour quand l'élément existe déjà
_UPDATE_COLUMNS = (
    "media_type",
    "library_key",
    "title",
    "original_title",
    "sort_title",
    "year",
    "thumb",
    "art",
    "summary",
    "genres_json",
    "studio",
    "director",
    "actors_json",
    "rating",
    "content_rating",
    "duration_ms",
    "added_at",
    "updated_at",
    "tmdb_id",
    "imdb_id",
    "indexed_at",
)


class SQLModelMediaLibraryRepository(IMediaLibraryRepository):
    """
    Repository SQLModel du catalogue normalisé.

    Chaque opération ouvre sa propre session ou connexion sur l'engine : les
    tâches de synchronisation concurrentes ne partagent aucune session.
    """

    def __init__(self, engine: Engine) -> None:
        """
        Initialise le repository.

        Args :
            engine : Engine SQLAlchemy de la base libsync
        """
        self._engine = engine

    def _to_entity(self, model: MediaLibraryModel) -> CanonicalMediaItem:
        """
        Convertit un modèle DB en entité domaine.

        Retourne :
            L'entité CanonicalMediaItem correspondante
        """
        return CanonicalMediaItem(
            id=model.id,
            integration_id=model.integration_id,
            item_key=model.item_key,
            media_type=MediaType(model.media_type),
            library_key=model.library_key,
            title=model.title,
            original_title=model.original_title,
            sort_title=model.sort_title,
            year=model.year,
            thumb_path=model.thumb,
            art_path=model.art,
            summary=model.summary,
            genres=tuple(model.genres),
            studio=model.studio,
            director=model.director,
            actors=tuple(model.actors),
            rating=model.rating,
            content_rating=model.content_rating,
            duration_ms=model.duration_ms,
            added_at=model.added_at,
            updated_at=model.updated_at,
            external_ids=ExternalIds(tmdb_id=model.tmdb_id, imdb_id=model.imdb_id),
            indexed_at=as_utc(model.indexed_at),
        )

    def _to_values(self, entity: CanonicalMediaItem) -> dict[str, Any]:
        """
        Convertit une entité domaine en valeurs de colonnes.

        Retourne :
            Dictionnaire colonne -> valeur pour l'INSERT
        """
        return {
            "integration_id": entity.integration_id,
            "item_key": entity.item_key,
            "media_type": entity.media_type.value,
            "library_key": entity.library_key,
            "title": entity.title,
            "original_title": entity.original_title,
            "sort_title": entity.sort_title,
            "year": entity.year,
            "thumb": entity.thumb_path,
            "art": entity.art_path,
            "summary": entity.summary,
            "genres_json": json.dumps(list(entity.genres)) if entity.genres else None,
            "studio": entity.studio,
            "director": entity.director,
            "actors_json": json.dumps(list(entity.actors)) if entity.actors else None,
            "rating": entity.rating,
            "content_rating": entity.content_rating,
            "duration_ms": entity.duration_ms,
            "added_at": entity.added_at,
            "updated_at": entity.updated_at,
            "tmdb_id": entity.tmdb_id,
            "imdb_id": entity.imdb_id,
            "indexed_at": utc_now(),
        }

    def upsert(self, item: CanonicalMediaItem) -> CanonicalMediaItem:
        """Insère ou met à jour un élément ; retourne l'entité relue."""
        table = MediaLibraryModel.__table__
        values = self._to_values(item)
        statement = sqlite_insert(table).values(**values)
        statement = statement.on_conflict_do_update(
            index_elements=["integration_id", "item_key"],
            set_={name: statement.excluded[name] for name in _UPDATE_COLUMNS},
        )
        with self._engine.begin() as conn:
            conn.execute(statement)
        return self.get_by_key(item.integration_id, item.item_key)

    def delete_by_integration(self, integration_id: str) -> int:
        table = MediaLibraryModel.__table__
        with self._engine.begin() as conn:
            result = conn.execute(delete(table).where(table.c.integration_id == integration_id))
        return result.rowcount or 0

    def count_by_integration(self, integration_id: str) -> int:
        with Session(self._engine) as session:
            statement = select(func.count()).select_from(MediaLibraryModel).where(
                MediaLibraryModel.integration_id == integration_id
            )
            return session.exec(statement).one()

    def get_by_key(self, integration_id: str, item_key: str) -> Optional[CanonicalMediaItem]:
        with Session(self._engine) as session:
            statement = select(MediaLibraryModel).where(
                MediaLibraryModel.integration_id == integration_id,
                MediaLibraryModel.item_key == item_key,
            )
            model = session.exec(statement).first()
            if model:
                return self._to_entity(model)
        return None

    def list_by_integration(self, integration_id: str) -> list[CanonicalMediaItem]:
        with Session(self._engine) as session:
            statement = (
                select(MediaLibraryModel)
                .where(MediaLibraryModel.integration_id == integration_id)
                .order_by(MediaLibraryModel.title)
            )
            return [self._to_entity(m) for m in session.exec(statement).all()]

    def has_tmdb_id(self, tmdb_id: int) -> bool:
        with Session(self._engine) as session:
            statement = select(MediaLibraryModel.id).where(MediaLibraryModel.tmdb_id == tmdb_id)
            return session.exec(statement).first() is not None

    def count_fts_matches(self, fts_query: str) -> int:
        """Nombre de lignes de l'index plein texte correspondant à une requête FTS5 brute."""
        with self._engine.connect() as conn:
            return conn.execute(
                text("SELECT count(*) FROM media_library_fts WHERE media_library_fts MATCH :q"),
                {"q": fts_query},
            ).scalar_one()

    # ------------------------------------------------------------------
    # Recherche
    # ------------------------------------------------------------------

    def search(
        self, query: str, integration_id: Optional[str] = None, limit: int = 20
    ) -> list[CanonicalMediaItem]:
        """
        Recherche par titre.

        Args :
            query : Texte saisi (traité comme un préfixe de phrase)
            integration_id : Limite la recherche à une intégration
            limit : Nombre maximum de résultats

        Retourne :
            Les éléments triés par pertinence
        """
        query = query.strip()
        if not query:
            return []

        with Session(self._engine) as session:
            models = self._fts_search(session, query, integration_id, limit)
            if len(models) < FUZZY_TRIGGER_COUNT and len(query) >= FUZZY_MIN_QUERY_LENGTH:
                fuzzy = self._fuzzy_search(session, query, integration_id, limit)
                if len(fuzzy) > len(models):
                    models = fuzzy
            return [self._to_entity(m) for m in models]

    def _fts_search(
        self,
        session: Session,
        query: str,
        integration_id: Optional[str],
        limit: int,
    ) -> list[MediaLibraryModel]:
        sql = (
            "SELECT m.id FROM media_library m "
            "JOIN media_library_fts fts ON m.id = fts.rowid "
            "WHERE media_library_fts MATCH :q"
        )
        params: dict[str, Any] = {"q": fts_prefix_query(query), "limit": limit}
        if integration_id is not None:
            sql += " AND m.integration_id = :integration_id"
            params["integration_id"] = integration_id
        sql += " ORDER BY rank LIMIT :limit"

        try:
            ids = [row[0] for row in session.connection().execute(text(sql), params)]
        except OperationalError as e:
            logger.debug(f"Requête FTS invalide pour {query!r}: {e}")
            return []
        if not ids:
            return []

        models = session.exec(select(MediaLibraryModel).where(col(MediaLibraryModel.id).in_(ids)))
        by_id = {m.id: m for m in models.all()}
        return [by_id[i] for i in ids if i in by_id]

    def _fuzzy_search(
        self,
        session: Session,
        query: str,
        integration_id: Optional[str],
        limit: int,
    ) -> list[MediaLibraryModel]:
        candidates = self._fuzzy_candidates(session, query, integration_id)

        scored = []
        for model in candidates:
            score = _fuzzy_score(query, model)
            if score >= FUZZY_MIN_SCORE:
                scored.append((score, model))
        scored.sort(key=lambda entry: entry[0], reverse=True)
        return [model for _, model in scored[:limit]]

    def _fuzzy_candidates(
        self, session: Session, query: str, integration_id: Optional[str]
    ) -> list[MediaLibraryModel]:
        """
        Candidats de la recherche approximative, au plus FUZZY_CANDIDATES_LIMIT.

        D'abord les lignes dont un mot commence comme un mot de la requête
        (index FTS5, par pertinence), puis les ajouts les plus récents.
        """
        ids: list[int] = []
        fts_query = fts_token_prefixes_query(query, FUZZY_FTS_COLUMNS)
        if fts_query is not None:
            sql = (
                "SELECT m.id FROM media_library m "
                "JOIN media_library_fts fts ON m.id = fts.rowid "
                "WHERE media_library_fts MATCH :q"
            )
            params: dict[str, Any] = {"q": fts_query, "limit": FUZZY_CANDIDATES_LIMIT}
            if integration_id is not None:
                sql += " AND m.integration_id = :integration_id"
                params["integration_id"] = integration_id
            sql += " ORDER BY rank LIMIT :limit"
            try:
                ids = [row[0] for row in session.connection().execute(text(sql), params)]
            except OperationalError as e:
                logger.debug(f"Présélection FTS invalide pour {query!r}: {e}")

        candidates: list[MediaLibraryModel] = []
        if ids:
            models = session.exec(
                select(MediaLibraryModel).where(col(MediaLibraryModel.id).in_(ids))
            )
            by_id = {m.id: m for m in models.all()}
            candidates = [by_id[i] for i in ids if i in by_id]

        remaining = FUZZY_CANDIDATES_LIMIT - len(candidates)
        if remaining > 0:
            statement = select(MediaLibraryModel)
            if integration_id is not None:
                statement = statement.where(MediaLibraryModel.integration_id == integration_id)
            if ids:
                statement = statement.where(col(MediaLibraryModel.id).not_in(ids))
            statement = statement.order_by(
                col(MediaLibraryModel.added_at).desc(), col(MediaLibraryModel.id).desc()
            )
            candidates.extend(session.exec(statement.limit(remaining)).all())
        return candidates


def _fuzzy_score(query: str, model: MediaLibraryModel) -> float:
    """Score 0-100 : meilleur titre, ou meilleur nom de personne pondéré."""
    titles = [t for t in (model.title, model.original_title) if t]
    title_score = max(
        (fuzz.WRatio(query, t, processor=utils.default_process) for t in titles),
        default=0.0,
    )
    people = list(model.actors)
    if model.director:
        people.extend(n.strip() for n in model.director.split(","))
    people_score = max(
        (fuzz.token_sort_ratio(query, p, processor=utils.default_process) for p in people if p),
        default=0.0,
    )
    return max(title_score, people_score * PEOPLE_WEIGHT)
