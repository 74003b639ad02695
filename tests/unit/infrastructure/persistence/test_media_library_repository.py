"""
Tests pour SQLModelMediaLibraryRepository.

Base SQLite réelle sur tmp_path (tables + index FTS5 + triggers) :
- upsert idempotent sur (integration_id, item_key)
- index plein texte maintenu par les triggers
- recherche par préfixe puis repli approximatif
- suppression par intégration
"""

from datetime import timedelta

from libsync.core.entities.media import ExternalIds, MediaType
from libsync.infrastructure.persistence.repositories import (
    SQLModelMediaLibraryRepository,
    media_library_repository,
)
from tests.fixtures.fakes import make_item


class TestUpsert:
    """Tests pour upsert et get_by_key."""

    def test_insert_and_read_back(self, media_repo: SQLModelMediaLibraryRepository):
        item = make_item(
            year=2010,
            genres=("Science-Fiction", "Action"),
            actors=("Leonardo DiCaprio",),
            director="Christopher Nolan",
            external_ids=ExternalIds(tmdb_id=27205, imdb_id="tt1375666"),
        )

        stored = media_repo.upsert(item)

        assert stored.id is not None
        assert stored.indexed_at is not None
        assert stored.indexed_at.utcoffset() == timedelta(0)
        assert stored.genres == ("Science-Fiction", "Action")
        assert stored.actors == ("Leonardo DiCaprio",)
        assert stored.tmdb_id == 27205
        assert stored.media_type == MediaType.MOVIE

    def test_upsert_is_idempotent(self, media_repo: SQLModelMediaLibraryRepository):
        """Re-indexer le même couple met à jour la ligne sans doublon."""
        first = media_repo.upsert(make_item(title="Inception", year=2010))
        second = media_repo.upsert(make_item(title="Inception (2010)", year=2010))

        assert media_repo.count_by_integration("plex-abc1") == 1
        assert second.id == first.id
        assert second.title == "Inception (2010)"

    def test_same_key_other_integration_is_distinct(
        self, media_repo: SQLModelMediaLibraryRepository
    ):
        media_repo.upsert(make_item(integration_id="plex-abc1", item_key="1"))
        media_repo.upsert(make_item(integration_id="jf-1", item_key="1"))

        assert media_repo.count_by_integration("plex-abc1") == 1
        assert media_repo.count_by_integration("jf-1") == 1

    def test_actors_truncated_to_ten(self, media_repo: SQLModelMediaLibraryRepository):
        actors = tuple(f"Acteur {i}" for i in range(15))

        stored = media_repo.upsert(make_item(actors=actors))

        assert len(stored.actors) == 10

    def test_get_missing_returns_none(self, media_repo: SQLModelMediaLibraryRepository):
        assert media_repo.get_by_key("plex-abc1", "absent") is None


class TestFullTextIndex:
    """L'index FTS5 suit chaque écriture de media_library."""

    def test_index_follows_upsert(self, media_repo: SQLModelMediaLibraryRepository):
        media_repo.upsert(make_item(title="Inception"))
        media_repo.upsert(make_item(title="Inception"))

        assert media_repo.count_fts_matches("inception") == 1

    def test_index_follows_title_change(self, media_repo: SQLModelMediaLibraryRepository):
        media_repo.upsert(make_item(title="Inception"))
        media_repo.upsert(make_item(title="Origine"))

        assert media_repo.count_fts_matches("inception") == 0
        assert media_repo.count_fts_matches("origine") == 1

    def test_index_follows_delete(self, media_repo: SQLModelMediaLibraryRepository):
        media_repo.upsert(make_item(item_key="1", title="Inception"))
        media_repo.upsert(make_item(item_key="2", title="Interstellar"))

        deleted = media_repo.delete_by_integration("plex-abc1")

        assert deleted == 2
        assert media_repo.count_by_integration("plex-abc1") == 0
        assert media_repo.count_fts_matches("inception OR interstellar") == 0


class TestSearch:
    """Tests pour search."""

    def _populate(self, repo: SQLModelMediaLibraryRepository) -> None:
        repo.upsert(
            make_item(
                item_key="1",
                title="Inception",
                actors=("Leonardo DiCaprio", "Marion Cotillard"),
                director="Christopher Nolan",
            )
        )
        repo.upsert(make_item(item_key="2", title="Interstellar", original_title="Interstellar"))
        repo.upsert(make_item(integration_id="jf-1", item_key="a", title="Premier Contact",
                              original_title="Arrival"))
        repo.upsert(make_item(integration_id="jf-1", item_key="b", title="Inception"))

    def test_prefix_match(self, media_repo: SQLModelMediaLibraryRepository):
        self._populate(media_repo)

        results = media_repo.search("Incep")

        assert {(r.integration_id, r.item_key) for r in results} == {
            ("plex-abc1", "1"),
            ("jf-1", "b"),
        }

    def test_matches_original_title(self, media_repo: SQLModelMediaLibraryRepository):
        self._populate(media_repo)

        results = media_repo.search("arriv")

        assert [r.title for r in results] == ["Premier Contact"]

    def test_filter_by_integration(self, media_repo: SQLModelMediaLibraryRepository):
        self._populate(media_repo)

        results = media_repo.search("Inception", integration_id="jf-1")

        assert [r.item_key for r in results] == ["b"]

    def test_quotes_in_query_are_safe(self, media_repo: SQLModelMediaLibraryRepository):
        self._populate(media_repo)

        results = media_repo.search('"Incep')

        assert {r.title for r in results} == {"Inception"}
        assert media_repo.search("   ") == []

    def test_fuzzy_fallback_on_typo(self, media_repo: SQLModelMediaLibraryRepository):
        """Une faute de frappe est rattrapée par la recherche approximative."""
        self._populate(media_repo)

        results = media_repo.search("Interstelar")

        assert [r.title for r in results] == ["Interstellar"]

    def test_fuzzy_matches_actor_name(self, media_repo: SQLModelMediaLibraryRepository):
        self._populate(media_repo)

        results = media_repo.search("Leonardo DiCaprio")

        assert [r.item_key for r in results] == ["1"]

    def test_fuzzy_candidates_preselected_by_word_prefix(
        self, media_repo: SQLModelMediaLibraryRepository, monkeypatch
    ):
        """Le titre visé reste candidat même au-delà de la limite de candidats."""
        monkeypatch.setattr(media_library_repository, "FUZZY_CANDIDATES_LIMIT", 5)
        media_repo.upsert(make_item(item_key="target", title="Interstellar", added_at=1))
        for i in range(20):
            media_repo.upsert(make_item(item_key=f"f{i}", title=f"Film {i}", added_at=100 + i))

        results = media_repo.search("Interstelar")

        assert [r.item_key for r in results] == ["target"]

    def test_fuzzy_candidates_fill_with_recent_items(
        self, media_repo: SQLModelMediaLibraryRepository, monkeypatch
    ):
        """Sans mot commun, les ajouts les plus récents sont examinés en premier."""
        monkeypatch.setattr(media_library_repository, "FUZZY_CANDIDATES_LIMIT", 5)
        media_repo.upsert(make_item(item_key="old", title="Nterstellar", added_at=1))
        media_repo.upsert(make_item(item_key="new", title="Nterstellar", added_at=500))
        for i in range(20):
            media_repo.upsert(make_item(item_key=f"f{i}", title=f"Film {i}", added_at=100 + i))

        results = media_repo.search("Xnterstellar")

        assert [r.item_key for r in results] == ["new"]

    def test_short_query_has_no_fuzzy_fallback(self, media_repo: SQLModelMediaLibraryRepository):
        self._populate(media_repo)

        assert media_repo.search("Intx") == []

    def test_limit(self, media_repo: SQLModelMediaLibraryRepository):
        for i in range(10):
            media_repo.upsert(make_item(item_key=str(i), title=f"Star Wars {i}"))

        assert len(media_repo.search("star", limit=3)) == 3


class TestLookups:
    """Tests pour has_tmdb_id et list_by_integration."""

    def test_has_tmdb_id(self, media_repo: SQLModelMediaLibraryRepository):
        media_repo.upsert(make_item(external_ids=ExternalIds(tmdb_id=27205)))

        assert media_repo.has_tmdb_id(27205) is True
        assert media_repo.has_tmdb_id(1) is False

    def test_list_by_integration_sorted_by_title(
        self, media_repo: SQLModelMediaLibraryRepository
    ):
        media_repo.upsert(make_item(item_key="1", title="Tenet"))
        media_repo.upsert(make_item(item_key="2", title="Memento"))

        assert [i.title for i in media_repo.list_by_integration("plex-abc1")] == [
            "Memento",
            "Tenet",
        ]
