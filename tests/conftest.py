"""
Fixtures pytest partagées pour les tests libsync.

Ce module contient les fixtures communes utilisées dans les tests:
- Base SQLite temporaire (engine + tables + index FTS5)
- Repositories SQLModel branches sur cette base
- Intégrations de test (Plex, Jellyfin, Emby)
"""

import pytest

from libsync.adapters.api.retry import RetryPolicy
from libsync.core.entities.integration import Integration
from libsync.infrastructure.persistence.database import create_db_engine, init_db
from libsync.infrastructure.persistence.repositories import (
    SQLModelMediaLibraryRepository,
    SQLModelSyncStatusRepository,
)
from tests.fixtures.fakes import no_sleep


@pytest.fixture
def engine(tmp_path):
    """Engine SQLite sur un fichier temporaire, tables et index FTS créés."""
    db_engine = create_db_engine(f"sqlite:///{tmp_path / 'libsync.db'}")
    init_db(db_engine)
    yield db_engine
    db_engine.dispose()


@pytest.fixture
def media_repo(engine) -> SQLModelMediaLibraryRepository:
    return SQLModelMediaLibraryRepository(engine)


@pytest.fixture
def status_repo(engine) -> SQLModelSyncStatusRepository:
    return SQLModelSyncStatusRepository(engine)


@pytest.fixture
def fast_retry() -> RetryPolicy:
    """Politique de retry sans attente réelle."""
    return RetryPolicy(max_retries=2, sleep=no_sleep)


@pytest.fixture
def plex_integration() -> Integration:
    return Integration(
        id="plex-abc1",
        type="plex",
        display_name="Plex salon",
        config={
            "url": "http://plex.local:32400/",
            "token": "plex-token",
            "library_sync_enabled": True,
        },
    )


@pytest.fixture
def jellyfin_integration() -> Integration:
    return Integration(
        id="jf-1",
        type="jellyfin",
        display_name="Jellyfin",
        config={
            "url": "http://jellyfin.local:8096",
            "api_key": "jf-key",
            "user_id": "user1",
            "library_sync_enabled": "true",
        },
    )


@pytest.fixture
def emby_integration() -> Integration:
    return Integration(
        id="emby-1",
        type="emby",
        config={
            "url": "http://emby.local:8096",
            "api_key": "emby-key",
            "user_id": "user9",
            "library_sync_enabled": True,
        },
    )

