"""
Tests pour PlexSyncStrategy.

Utilise respx pour simuler httpx et vérifie:
- L'énumération des sections (films et séries uniquement)
- Le comptage via totalSize et la pagination par offset
- La conversion vers CanonicalMediaItem (GUIDs TMDB/IMDb, tags)
- La classification des erreurs HTTP (5xx relançable, 4xx définitif)
- Les URLs du transcodeur photo pour les vignettes
"""

from urllib.parse import parse_qs, urlparse

import httpx
import pytest
import respx

from libsync.adapters.providers.plex import PlexSyncStrategy, parse_plex_guids
from libsync.core.entities.media import MediaType
from libsync.core.ports.providers import LibrarySection
from tests.fixtures.fakes import make_item
from tests.fixtures.plex_responses import (
    PLEX_COUNT_RESPONSE,
    PLEX_LAST_PAGE_RESPONSE,
    PLEX_MOVIE_INCEPTION,
    PLEX_MOVIE_MINIMAL,
    PLEX_PAGE_RESPONSE,
    PLEX_SECTIONS_RESPONSE,
)

BASE_URL = "http://plex.local:32400"
MOVIES = LibrarySection(key="1", title="Films", media_type=MediaType.MOVIE)
SHOWS = LibrarySection(key="2", title="Series", media_type=MediaType.SHOW)


@pytest.fixture
def strategy(plex_integration) -> PlexSyncStrategy:
    return PlexSyncStrategy(plex_integration, page_size=2)


class TestPlexSections:
    """Tests pour list_sections."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_lists_movie_and_show_sections(self, strategy: PlexSyncStrategy):
        """Seules les sections movie et show sont retournées."""
        route = respx.get(f"{BASE_URL}/library/sections").mock(
            return_value=httpx.Response(200, json=PLEX_SECTIONS_RESPONSE)
        )

        result = await strategy.list_sections()
        await strategy.close()

        assert result.success is True
        assert result.data == [MOVIES, SHOWS]
        assert route.calls.last.request.headers["X-Plex-Token"] == "plex-token"

    @pytest.mark.asyncio
    @respx.mock
    async def test_unauthorized_is_terminal(self, strategy: PlexSyncStrategy):
        """401 : échec définitif."""
        respx.get(f"{BASE_URL}/library/sections").mock(return_value=httpx.Response(401))

        result = await strategy.list_sections()
        await strategy.close()

        assert result.success is False
        assert result.status == 401
        assert result.retryable is False

    @pytest.mark.asyncio
    @respx.mock
    async def test_server_error_is_retryable(self, strategy: PlexSyncStrategy):
        """503 : échec relançable."""
        respx.get(f"{BASE_URL}/library/sections").mock(return_value=httpx.Response(503))

        result = await strategy.list_sections()
        await strategy.close()

        assert result.success is False
        assert result.error == "HTTP 503"
        assert result.retryable is True

    @pytest.mark.asyncio
    @respx.mock
    async def test_timeout_is_retryable(self, strategy: PlexSyncStrategy):
        """Timeout réseau : échec relançable."""
        respx.get(f"{BASE_URL}/library/sections").mock(
            side_effect=httpx.ConnectTimeout("timeout")
        )

        result = await strategy.list_sections()
        await strategy.close()

        assert result.success is False
        assert result.error == "Timeout"
        assert result.retryable is True

    @pytest.mark.asyncio
    @respx.mock
    async def test_invalid_json_is_terminal(self, strategy: PlexSyncStrategy):
        """Corps non JSON : échec définitif."""
        respx.get(f"{BASE_URL}/library/sections").mock(
            return_value=httpx.Response(200, text="<html>oops</html>")
        )

        result = await strategy.list_sections()
        await strategy.close()

        assert result.success is False
        assert result.retryable is False


class TestPlexPagination:
    """Tests pour count_items et fetch_page."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_count_uses_total_size(self, strategy: PlexSyncStrategy):
        """count_items lit MediaContainer.totalSize avec une page vide."""
        route = respx.get(f"{BASE_URL}/library/sections/1/all").mock(
            return_value=httpx.Response(200, json=PLEX_COUNT_RESPONSE)
        )

        result = await strategy.count_items(MOVIES)
        await strategy.close()

        assert result.data == 3
        params = route.calls.last.request.url.params
        assert params["X-Plex-Container-Size"] == "0"

    @pytest.mark.asyncio
    @respx.mock
    async def test_first_page_has_next_token(self, strategy: PlexSyncStrategy):
        """Page pleine avec totalSize supérieur : jeton de page suivante."""
        route = respx.get(f"{BASE_URL}/library/sections/1/all").mock(
            return_value=httpx.Response(200, json=PLEX_PAGE_RESPONSE)
        )

        result = await strategy.fetch_page(MOVIES)
        await strategy.close()

        assert len(result.data.items) == 2
        assert result.data.next_page_token == 2
        params = route.calls.last.request.url.params
        assert params["includeGuids"] == "1"
        assert params["X-Plex-Container-Start"] == "0"
        assert params["X-Plex-Container-Size"] == "2"

    @pytest.mark.asyncio
    @respx.mock
    async def test_last_page_has_no_next_token(self, strategy: PlexSyncStrategy):
        """Dernière page : pas de jeton suivant."""
        route = respx.get(f"{BASE_URL}/library/sections/1/all").mock(
            return_value=httpx.Response(200, json=PLEX_LAST_PAGE_RESPONSE)
        )

        result = await strategy.fetch_page(MOVIES, page_token=2)
        await strategy.close()

        assert result.data.next_page_token is None
        assert route.calls.last.request.url.params["X-Plex-Container-Start"] == "2"

    @pytest.mark.asyncio
    @respx.mock
    async def test_recently_added_sorted_by_added_at(self, strategy: PlexSyncStrategy):
        """fetch_recently_added trie par addedAt décroissant avec le bon type."""
        route = respx.get(f"{BASE_URL}/library/sections/2/all").mock(
            return_value=httpx.Response(200, json=PLEX_PAGE_RESPONSE)
        )

        result = await strategy.fetch_recently_added(SHOWS, 20)
        await strategy.close()

        assert len(result.data) == 2
        params = route.calls.last.request.url.params
        assert params["sort"] == "addedAt:desc"
        assert params["type"] == "2"
        assert params["X-Plex-Container-Size"] == "20"


class TestPlexMapping:
    """Tests pour map_item et les requêtes d'image."""

    def test_maps_full_movie(self, strategy: PlexSyncStrategy):
        """Tous les champs Plex sont convertis."""
        item = strategy.map_item("plex-abc1", MOVIES, PLEX_MOVIE_INCEPTION)

        assert item.integration_id == "plex-abc1"
        assert item.item_key == "12345"
        assert item.media_type == MediaType.MOVIE
        assert item.library_key == "1"
        assert item.title == "Inception"
        assert item.year == 2010
        assert item.genres == ("Science-Fiction", "Action")
        assert item.director == "Christopher Nolan"
        assert item.actors == ("Leonardo DiCaprio", "Marion Cotillard")
        assert item.rating == 8.8
        assert item.duration_ms == 8880000
        assert item.added_at == 1700000000
        assert item.tmdb_id == 27205
        assert item.imdb_id == "tt1375666"

    def test_maps_minimal_movie(self, strategy: PlexSyncStrategy):
        """Un élément sans métadonnées reste indexable."""
        item = strategy.map_item("plex-abc1", MOVIES, PLEX_MOVIE_MINIMAL)

        assert item.title == "Film sans métadonnées"
        assert item.year is None
        assert item.genres == ()
        assert item.tmdb_id is None
        assert item.thumb_path is None

    def test_missing_rating_key_raises(self, strategy: PlexSyncStrategy):
        """Un élément sans ratingKey est invalide."""
        with pytest.raises(KeyError):
            strategy.map_item("plex-abc1", MOVIES, {"title": "Sans clé"})

    def test_thumbnail_uses_photo_transcoder(self, strategy: PlexSyncStrategy):
        """La vignette passe par /photo/:/transcode en 120x180."""
        item = make_item(thumb_path="/library/metadata/12345/thumb/1700000000")

        request = strategy.thumbnail_request(item)

        parsed = urlparse(request.url)
        query = parse_qs(parsed.query)
        assert parsed.path == "/photo/:/transcode"
        assert query["width"] == ["120"]
        assert query["height"] == ["180"]
        assert query["url"] == ["/library/metadata/12345/thumb/1700000000"]
        assert query["X-Plex-Token"] == ["plex-token"]

    def test_large_image_dimensions(self, strategy: PlexSyncStrategy):
        """L'image détail est demandée en 480x720."""
        item = make_item(thumb_path="/library/metadata/1/thumb/2")

        query = parse_qs(urlparse(strategy.large_image_request(item).url).query)

        assert query["width"] == ["480"]
        assert query["height"] == ["720"]

    def test_no_thumbnail_without_thumb(self, strategy: PlexSyncStrategy):
        """Pas de requête d'image sans chemin de vignette."""
        assert strategy.thumbnail_request(make_item()) is None


class TestParsePlexGuids:
    """Tests pour parse_plex_guids."""

    def test_extracts_tmdb_and_imdb(self):
        ids = parse_plex_guids([{"id": "tmdb://603"}, {"id": "imdb://tt0133093"}])
        assert ids.tmdb_id == 603
        assert ids.imdb_id == "tt0133093"

    def test_invalid_tmdb_ignored(self):
        ids = parse_plex_guids([{"id": "tmdb://abc"}])
        assert ids.tmdb_id is None

    def test_none_guids(self):
        ids = parse_plex_guids(None)
        assert ids.tmdb_id is None
        assert ids.imdb_id is None
