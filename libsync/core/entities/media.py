"""
Entités du catalogue média normalisé.

Un CanonicalMediaItem est l'enregistrement local, indépendant du fournisseur,
d'un élément connu d'un serveur média (Plex, Jellyfin, Emby).
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

# Nombre maximum d'acteurs conservés par élément
MAX_ACTORS = 10


class MediaType(Enum):
    """Type d'élément du catalogue.

    Valeurs:
        MOVIE: Film
        SHOW: Série TV
        SEASON, EPISODE, MUSIC, PHOTO: types acceptés par le schéma mais
            non synchronisés par les stratégies actuelles
    """

    MOVIE = "movie"
    SHOW = "show"
    SEASON = "season"
    EPISODE = "episode"
    MUSIC = "music"
    PHOTO = "photo"


@dataclass(frozen=True)
class ExternalIds:
    """
    Identifiants externes d'un élément (bases de métadonnées publiques).

    Attributs:
        tmdb_id: ID The Movie Database
        imdb_id: ID IMDb (ex: "tt1375666")
    """

    tmdb_id: Optional[int] = None
    imdb_id: Optional[str] = None


@dataclass
class CanonicalMediaItem:
    """
    Élément normalisé du catalogue d'une intégration.

    L'identité est le couple (integration_id, item_key) : re-indexer le même
    couple met à jour la ligne existante, sans jamais la dupliquer.

    Attributs:
        integration_id: ID de l'intégration propriétaire
        item_key: Clé native du fournisseur (ratingKey Plex, Id Jellyfin/Emby)
        media_type: Type d'élément
        title: Titre affiche
        library_key: Clé de la section d'origine
        genres: Genres dans l'ordre du fournisseur
        director: Réalisateur(s) joints par ", "
        actors: Au plus MAX_ACTORS acteurs
        rating: Note communautaire (0-10)
        duration_ms: Durée en millisecondes
        added_at / updated_at: Epoch secondes fournies par le serveur
        external_ids: IDs TMDB / IMDb
        indexed_at: Date d'écriture locale (renseignée par le repository)
    """

    integration_id: str
    item_key: str
    media_type: MediaType
    title: str
    library_key: Optional[str] = None
    original_title: Optional[str] = None
    sort_title: Optional[str] = None
    year: Optional[int] = None
    thumb_path: Optional[str] = None
    art_path: Optional[str] = None
    summary: Optional[str] = None
    genres: tuple[str, ...] = ()
    studio: Optional[str] = None
    director: Optional[str] = None
    actors: tuple[str, ...] = ()
    rating: Optional[float] = None
    content_rating: Optional[str] = None
    duration_ms: Optional[int] = None
    added_at: Optional[int] = None
    updated_at: Optional[int] = None
    external_ids: ExternalIds = ExternalIds()
    indexed_at: Optional[datetime] = None
    id: Optional[int] = None

    def __post_init__(self) -> None:
        if len(self.actors) > MAX_ACTORS:
            self.actors = tuple(self.actors[:MAX_ACTORS])

    @property
    def tmdb_id(self) -> Optional[int]:
        """Raccourci vers l'ID TMDB."""
        return self.external_ids.tmdb_id

    @property
    def imdb_id(self) -> Optional[str]:
        """Raccourci vers l'ID IMDb."""
        return self.external_ids.imdb_id
