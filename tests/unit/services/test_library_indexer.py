"""Tests pour LibraryIndexer (upsert + vignettes en tâche de fond)."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from libsync.adapters.cache.image_cache import ImageCacheManager
from libsync.core.entities.media import MediaType
from libsync.core.ports.providers import LibrarySection
from libsync.services.library_indexer import LibraryIndexer
from tests.fixtures.fakes import FakeStrategy

MOVIES = LibrarySection(key="1", title="Films", media_type=MediaType.MOVIE)


@pytest.fixture
def image_cache() -> MagicMock:
    cache = MagicMock(spec=ImageCacheManager)
    cache.is_cached.return_value = False
    cache.cache_image = AsyncMock(return_value="12345.jpg")
    return cache


class TestLibraryIndexer:
    """Tests pour index_item et drain."""

    @pytest.mark.asyncio
    async def test_index_item_upserts_and_caches_thumbnail(self, media_repo, image_cache):
        indexer = LibraryIndexer(media_repo, image_cache)
        strategy = FakeStrategy()

        stored = indexer.index_item(
            "plex-abc1", MOVIES, {"key": "12345", "title": "Inception", "thumb": "/t/1"}, strategy
        )
        await indexer.drain()

        assert stored.id is not None
        assert media_repo.get_by_key("plex-abc1", "12345").title == "Inception"
        image_cache.cache_image.assert_awaited_once_with(
            "plex-abc1", "12345", "http://images.local/t/1", None
        )
        assert indexer.pending_images == 0

    @pytest.mark.asyncio
    async def test_already_cached_thumbnail_not_downloaded(self, media_repo, image_cache):
        image_cache.is_cached.return_value = True
        indexer = LibraryIndexer(media_repo, image_cache)

        indexer.index_item("plex-abc1", MOVIES, {"key": "1", "thumb": "/t/1"}, FakeStrategy())
        await indexer.drain()

        image_cache.cache_image.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_item_without_thumbnail(self, media_repo, image_cache):
        indexer = LibraryIndexer(media_repo, image_cache)

        indexer.index_item("plex-abc1", MOVIES, {"key": "1"}, FakeStrategy())
        await indexer.drain()

        image_cache.cache_image.assert_not_awaited()
        assert media_repo.count_by_integration("plex-abc1") == 1

    @pytest.mark.asyncio
    async def test_image_failure_does_not_propagate(self, media_repo, image_cache):
        """Une exception du cache d'images n'interrompt pas l'indexation."""
        image_cache.cache_image.side_effect = RuntimeError("disque plein")
        indexer = LibraryIndexer(media_repo, image_cache)

        indexer.index_item("plex-abc1", MOVIES, {"key": "1", "thumb": "/t/1"}, FakeStrategy())
        await indexer.drain()

        assert indexer.pending_images == 0
        assert media_repo.count_by_integration("plex-abc1") == 1

    @pytest.mark.asyncio
    async def test_without_image_cache(self, media_repo):
        indexer = LibraryIndexer(media_repo)

        indexer.index_item("plex-abc1", MOVIES, {"key": "1", "thumb": "/t/1"}, FakeStrategy())

        assert indexer.pending_images == 0

    @pytest.mark.asyncio
    async def test_cancel_pending_only_targets_integration(self, media_repo, image_cache):
        """Seuls les téléchargements de l'intégration visée sont annulés."""
        release = asyncio.Event()

        async def blocked_download(*args, **kwargs):
            await release.wait()
            return "1.jpg"

        image_cache.cache_image.side_effect = blocked_download
        indexer = LibraryIndexer(media_repo, image_cache)
        strategy = FakeStrategy()
        for key in ("1", "2", "3"):
            indexer.index_item("plex-abc1", MOVIES, {"key": key, "thumb": f"/t/{key}"}, strategy)
        indexer.index_item("jf-1", MOVIES, {"key": "1", "thumb": "/t/1"}, strategy)
        await asyncio.sleep(0)

        cancelled = await indexer.cancel_pending("plex-abc1")

        assert cancelled == 3
        assert indexer.pending_images == 1
        assert await indexer.cancel_pending("plex-abc1") == 0

        release.set()
        await indexer.drain()
        assert indexer.pending_images == 0
