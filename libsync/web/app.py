"""
Application FastAPI de libsync.

Initialise l'application avec le Container DI, réinitialisé les statuts
orphelins au démarrage, lance la synchronisation périodique et monte les routes.
"""

import asyncio
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI
from loguru import logger

from ..container import Container
from ..services.library_sync import LibrarySyncService
from .routes.sync import router as sync_router


async def periodic_sync_loop(service: LibrarySyncService, interval_seconds: float) -> None:
    """Démarre la synchronisation des intégrations éligibles à intervalle fixe."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await service.sync_all_enabled()
        except Exception as e:
            logger.error(f"Synchronisation périodique en échec: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialise le Container DI au démarrage et le ferme à l'arrêt."""
    container = Container()
    container.database.init()
    app.state.container = container

    service = container.library_sync_service()
    service.reset_stale_statuses()

    settings = container.config()
    periodic_task = None
    if settings.periodic_sync_hours > 0:
        periodic_task = asyncio.create_task(
            periodic_sync_loop(service, settings.periodic_sync_hours * 3600),
            name="library-sync-periodic",
        )
        logger.info(f"Synchronisation périodique toutes les {settings.periodic_sync_hours}h")

    yield

    if periodic_task is not None:
        periodic_task.cancel()
        with suppress(asyncio.CancelledError):
            await periodic_task
    await container.image_cache().close()


app = FastAPI(title="libsync", lifespan=lifespan)

app.include_router(sync_router)
