"""
Routes de synchronisation et de consultation du catalogue.

La synchronisation tourne en tâche de fond : POST répond immédiatement (202)
et la progression est suivie via le flux SSE /api/library-sync/events.
"""

import asyncio
import json
from dataclasses import asdict
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import FileResponse, StreamingResponse
from pydantic import BaseModel, Field

from ...core.entities.media import CanonicalMediaItem
from ...core.entities.sync import SyncStatus
from ...services.library_sync import ALREADY_RUNNING_MESSAGE, NOT_FOUND_MESSAGE

router = APIRouter(prefix="/api")

# Commentaire SSE envoyé sans événement pour garder la connexion ouverte
_KEEPALIVE_SECONDS = 15.0


class RefreshRecentRequest(BaseModel):
    """Corps de POST /api/library/refresh-recent."""

    tmdb_ids: list[int] = Field(min_length=1)


def _status_payload(integration_id: str, status: Optional[SyncStatus], syncing: bool) -> dict:
    if status is None:
        return {"integration_id": integration_id, "state": "idle", "syncing": syncing}
    return {
        "integration_id": integration_id,
        "state": status.state.value,
        "syncing": syncing,
        "total_items": status.total_items,
        "indexed_items": status.indexed_items,
        "last_sync_started": _iso(status.last_sync_started),
        "last_sync_completed": _iso(status.last_sync_completed),
        "error_message": status.error_message,
    }


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def _item_payload(item: CanonicalMediaItem, thumb_url: Optional[str]) -> dict[str, Any]:
    return {
        "integration_id": item.integration_id,
        "item_key": item.item_key,
        "media_type": item.media_type.value,
        "title": item.title,
        "original_title": item.original_title,
        "year": item.year,
        "summary": item.summary,
        "genres": list(item.genres),
        "director": item.director,
        "actors": list(item.actors),
        "rating": item.rating,
        "duration_ms": item.duration_ms,
        "tmdb_id": item.tmdb_id,
        "imdb_id": item.imdb_id,
        "thumb_url": thumb_url,
    }


def _sse_event(event: str, payload: dict) -> str:
    """Construit un événement SSE."""
    return f"event: {event}\ndata: {json.dumps(payload, ensure_ascii=False)}\n\n"


# ---------------------------------------------------------------------------
# Synchronisation
# ---------------------------------------------------------------------------


@router.post("/library-sync/{integration_id}", status_code=202)
async def start_library_sync(request: Request, integration_id: str):
    """Démarre une synchronisation complète en tâche de fond."""
    service = request.app.state.container.library_sync_service()
    result = await service.start_sync(integration_id)
    if not result.accepted:
        if result.reason == ALREADY_RUNNING_MESSAGE:
            raise HTTPException(status_code=409, detail=result.reason)
        if result.reason == NOT_FOUND_MESSAGE:
            raise HTTPException(status_code=404, detail=result.reason)
        raise HTTPException(status_code=400, detail=result.reason)
    return {"integration_id": integration_id, "started": True}


@router.delete("/library-sync/{integration_id}")
async def cancel_library_sync(request: Request, integration_id: str):
    """Annule la synchronisation en cours."""
    service = request.app.state.container.library_sync_service()
    if not service.cancel_sync(integration_id):
        raise HTTPException(status_code=404, detail="Aucune synchronisation en cours")
    return {"integration_id": integration_id, "cancelled": True}


# Déclare avant /library-sync/{integration_id} pour ne pas être capture
@router.get("/library-sync/events")
async def library_sync_events(request: Request):
    """SSE endpoint : progression, fin et erreurs de toutes les synchronisations."""
    broadcaster = request.app.state.container.event_broadcaster()
    queue = broadcaster.subscribe()

    async def event_stream():
        try:
            while True:
                if await request.is_disconnected():
                    break
                try:
                    event, payload = await asyncio.wait_for(
                        queue.get(), timeout=_KEEPALIVE_SECONDS
                    )
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
                    continue
                yield _sse_event(event, payload)
        finally:
            broadcaster.unsubscribe(queue)

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.get("/library-sync/{integration_id}")
async def get_library_sync_status(request: Request, integration_id: str):
    """Statut de synchronisation d'une intégration."""
    service = request.app.state.container.library_sync_service()
    return _status_payload(
        integration_id,
        service.get_status(integration_id),
        service.is_syncing(integration_id),
    )


@router.delete("/integrations/{integration_id}/library")
async def purge_integration_library(request: Request, integration_id: str):
    """Supprime le catalogue, le statut et les images d'une intégration."""
    service = request.app.state.container.library_sync_service()
    result = await service.purge_integration_data(integration_id)
    return {"integration_id": integration_id, **asdict(result)}


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------


@router.get("/library/search")
async def search_library(
    request: Request,
    q: str = Query(min_length=1),
    integration_id: Optional[str] = None,
    limit: int = Query(default=20, ge=1, le=100),
):
    """Recherche plein texte dans le catalogue local."""
    container = request.app.state.container
    items = container.media_library_repository().search(q, integration_id, limit)
    cache = container.image_cache()
    return {
        "query": q,
        "results": [
            _item_payload(item, cache.local_url(item.integration_id, item.item_key))
            for item in items
        ],
    }


@router.post("/library/refresh-recent")
async def refresh_recent(request: Request, body: RefreshRecentRequest):
    """Indexe les derniers ajouts correspondant aux IDs TMDB demandés."""
    container = request.app.state.container
    service = container.library_sync_service()
    refresher = container.surgical_refresher()
    targets = set(body.tmdb_ids)
    found = await refresher.index_matching(targets, service.sync_enabled_integrations())
    return {"indexed": sorted(found), "missing": sorted(targets - found)}


@router.get("/library/{integration_id}/items/{item_key}/image")
async def item_large_image(request: Request, integration_id: str, item_key: str):
    """Image détail d'un élément, téléchargée à la demande puis servie depuis le cache."""
    container = request.app.state.container
    item = container.media_library_repository().get_by_key(integration_id, item_key)
    if item is None:
        raise HTTPException(status_code=404, detail="Élément introuvable")

    cache = container.image_cache()
    image_request = None
    integration = container.integration_registry().get(integration_id)
    factory = container.strategy_factory()
    if integration is not None and factory.supports(integration):
        strategy = factory.create(integration)
        try:
            image_request = strategy.large_image_request(item)
        finally:
            await strategy.close()

    path = await cache.get_or_fetch_large(
        integration_id,
        item_key,
        image_request.url if image_request else None,
        image_request.headers if image_request else None,
    )
    if path is None:
        raise HTTPException(status_code=404, detail="Image indisponible")
    return FileResponse(path, media_type="image/jpeg")


@router.get("/cache/library/{scope}/{filename}")
async def cached_library_image(request: Request, scope: str, filename: str):
    """Sert une vignette en cache et met à jour sa date d'accès."""
    cache = request.app.state.container.image_cache()
    path = cache.serve_file(scope, filename)
    if path is None:
        raise HTTPException(status_code=404, detail="Image introuvable")
    return FileResponse(path, media_type="image/jpeg")
