"""
Stratégie de synchronisation Plex.

Sections : GET /library/sections (MediaContainer.Directory), types movie/show.
Comptage : GET /library/sections/{key}/all avec X-Plex-Container-Size=0
(MediaContainer.totalSize).
Pages : même endpoint avec includeGuids=1 et X-Plex-Container-Start/Size.
Les vignettes passent par le transcodeur photo de Plex (quelques Ko au lieu de
l'affiche pleine résolution).
"""

from typing import Any, Optional
from urllib.parse import quote

from libsync.adapters.providers.base import (
    LARGE_HEIGHT,
    LARGE_WIDTH,
    THUMB_HEIGHT,
    THUMB_WIDTH,
    HttpProviderStrategy,
    safe_float,
    safe_int,
)
from libsync.core.entities.media import CanonicalMediaItem, ExternalIds, MediaType
from libsync.core.ports.providers import FetchResult, ImageRequest, ItemPage, LibrarySection

_SECTION_TYPES = {"movie": MediaType.MOVIE, "show": MediaType.SHOW}


def parse_plex_guids(guids: Optional[list[dict[str, Any]]]) -> ExternalIds:
    """
    Extrait les IDs TMDB/IMDb de la liste Guid d'un élément Plex.

    Args:
        guids: Liste de {"id": "tmdb://27205"}, {"id": "imdb://tt1375666"}, ...

    Returns:
        ExternalIds (champs None si absents)
    """
    tmdb_id: Optional[int] = None
    imdb_id: Optional[str] = None
    for guid in guids or []:
        value = str(guid.get("id", ""))
        if value.startswith("tmdb://"):
            tmdb_id = safe_int(value[len("tmdb://"):])
        elif value.startswith("imdb://"):
            imdb_id = value[len("imdb://"):] or None
    return ExternalIds(tmdb_id=tmdb_id, imdb_id=imdb_id)


def _tags(raw: dict[str, Any], key: str) -> list[str]:
    return [t["tag"] for t in raw.get(key) or [] if t.get("tag")]


class PlexSyncStrategy(HttpProviderStrategy):
    """Synchronisation d'un serveur Plex (authentification par X-Plex-Token)."""

    @property
    def _token(self) -> str:
        return str(self._integration.config.get("token") or "")

    def _default_headers(self) -> dict[str, str]:
        return {"Accept": "application/json", "X-Plex-Token": self._token}

    async def list_sections(self) -> FetchResult[list[LibrarySection]]:
        result = await self._get_json("/library/sections")
        if not result.success:
            return result
        directories = (result.data or {}).get("MediaContainer", {}).get("Directory") or []
        sections = [
            LibrarySection(
                key=str(d["key"]),
                title=d.get("title") or str(d["key"]),
                media_type=_SECTION_TYPES[d.get("type")],
            )
            for d in directories
            if d.get("type") in _SECTION_TYPES
        ]
        return FetchResult.ok(sections, status=result.status)

    async def count_items(self, section: LibrarySection) -> FetchResult[int]:
        result = await self._get_json(
            f"/library/sections/{section.key}/all",
            params={"X-Plex-Container-Start": "0", "X-Plex-Container-Size": "0"},
        )
        if not result.success:
            return result
        container = (result.data or {}).get("MediaContainer", {})
        return FetchResult.ok(safe_int(container.get("totalSize")) or 0, status=result.status)

    async def fetch_page(
        self, section: LibrarySection, page_token: Optional[int] = None
    ) -> FetchResult[ItemPage]:
        start = page_token or 0
        result = await self._get_json(
            f"/library/sections/{section.key}/all",
            params={
                "includeGuids": "1",
                "X-Plex-Container-Start": str(start),
                "X-Plex-Container-Size": str(self._page_size),
            },
        )
        if not result.success:
            return result
        container = (result.data or {}).get("MediaContainer", {})
        items = container.get("Metadata") or []
        total = safe_int(container.get("totalSize"))
        next_start = start + len(items)
        has_more = bool(items) and (
            next_start < total if total is not None else len(items) >= self._page_size
        )
        return FetchResult.ok(
            ItemPage(items=items, next_page_token=next_start if has_more else None),
            status=result.status,
        )

    async def fetch_recently_added(
        self, section: LibrarySection, limit: int
    ) -> FetchResult[list[dict[str, Any]]]:
        plex_type = "1" if section.media_type == MediaType.MOVIE else "2"
        result = await self._get_json(
            f"/library/sections/{section.key}/all",
            params={
                "type": plex_type,
                "sort": "addedAt:desc",
                "includeGuids": "1",
                "X-Plex-Container-Start": "0",
                "X-Plex-Container-Size": str(limit),
            },
        )
        if not result.success:
            return result
        items = (result.data or {}).get("MediaContainer", {}).get("Metadata") or []
        return FetchResult.ok(items, status=result.status)

    def map_item(
        self, integration_id: str, section: LibrarySection, raw: dict[str, Any]
    ) -> CanonicalMediaItem:
        return CanonicalMediaItem(
            integration_id=integration_id,
            item_key=str(raw["ratingKey"]),
            media_type=MediaType.SHOW if section.media_type == MediaType.SHOW else MediaType.MOVIE,
            library_key=section.key,
            title=raw.get("title") or "",
            original_title=raw.get("originalTitle") or None,
            sort_title=raw.get("titleSort") or None,
            year=safe_int(raw.get("year")),
            thumb_path=raw.get("thumb") or None,
            art_path=raw.get("art") or None,
            summary=raw.get("summary") or None,
            genres=tuple(_tags(raw, "Genre")),
            studio=raw.get("studio") or None,
            director=", ".join(_tags(raw, "Director")) or None,
            actors=tuple(_tags(raw, "Role")),
            rating=safe_float(raw.get("rating")),
            content_rating=raw.get("contentRating") or None,
            duration_ms=safe_int(raw.get("duration")),
            added_at=safe_int(raw.get("addedAt")),
            updated_at=safe_int(raw.get("updatedAt")),
            external_ids=parse_plex_guids(raw.get("Guid")),
        )

    def _transcode_request(
        self, item: CanonicalMediaItem, width: int, height: int
    ) -> Optional[ImageRequest]:
        if not item.thumb_path:
            return None
        url = (
            f"{self._base_url}/photo/:/transcode?width={width}&height={height}"
            f"&minSize=1&upscale=1&url={quote(item.thumb_path, safe='')}"
            f"&X-Plex-Token={self._token}"
        )
        return ImageRequest(url=url)

    def thumbnail_request(self, item: CanonicalMediaItem) -> Optional[ImageRequest]:
        return self._transcode_request(item, THUMB_WIDTH, THUMB_HEIGHT)

    def large_image_request(self, item: CanonicalMediaItem) -> Optional[ImageRequest]:
        return self._transcode_request(item, LARGE_WIDTH, LARGE_HEIGHT)
