"""
Stratégie de synchronisation Jellyfin.

Sections : GET /Users/{userId}/Views (Items), conservées si CollectionType vaut
movies, tvshows ou est absent (dossiers mixtes).
Elements : GET /Users/{userId}/Items avec parentId, recursive, includeItemTypes
et pagination startIndex/limit (TotalRecordCount pour le comptage).
"""

from datetime import datetime
from typing import Any, Optional

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

# Une durée Jellyfin/Emby est exprimée en ticks de 100 ns
TICKS_PER_MS = 10_000

_ITEM_FIELDS = "Overview,Genres,Studios,People,ProviderIds"
_COLLECTION_TYPES = {"movies": MediaType.MOVIE, "tvshows": MediaType.SHOW}


def parse_iso_timestamp(value: Optional[str]) -> Optional[int]:
    """Convertit une date ISO 8601 (DateCreated) en epoch secondes."""
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    # Jellyfin renvoie jusqu'à 7 décimales, fromisoformat en accepte 6
    if "." in text:
        head, _, tail = text.partition(".")
        digits = "".join(c for c in tail if c.isdigit())
        offset = tail[len(digits):]
        text = f"{head}.{digits[:6]}{offset}" if digits else f"{head}{offset}"
    try:
        return int(datetime.fromisoformat(text).timestamp())
    except ValueError:
        return None


class JellyfinSyncStrategy(HttpProviderStrategy):
    """Synchronisation d'un serveur Jellyfin (en-tete MediaBrowser Token)."""

    @property
    def _api_key(self) -> str:
        return str(self._integration.config.get("api_key") or "")

    @property
    def _user_id(self) -> str:
        return str(self._integration.config.get("user_id") or "")

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f'MediaBrowser Token="{self._api_key}"'}

    def _default_headers(self) -> dict[str, str]:
        return {"Accept": "application/json", **self._auth_headers()}

    async def list_sections(self) -> FetchResult[list[LibrarySection]]:
        result = await self._get_json(f"/Users/{self._user_id}/Views")
        if not result.success:
            return result
        sections = []
        for view in (result.data or {}).get("Items") or []:
            collection_type = view.get("CollectionType")
            if collection_type and collection_type not in _COLLECTION_TYPES:
                continue
            sections.append(
                LibrarySection(
                    key=str(view["Id"]),
                    title=view.get("Name") or str(view["Id"]),
                    # Dossier mixte : le type réel est lu sur chaque élément
                    media_type=_COLLECTION_TYPES.get(collection_type, MediaType.MOVIE),
                )
            )
        return FetchResult.ok(sections, status=result.status)

    def _items_params(self, section: LibrarySection, start: int, limit: int) -> dict[str, str]:
        return {
            "parentId": section.key,
            "recursive": "true",
            "includeItemTypes": "Movie,Series",
            "fields": _ITEM_FIELDS,
            "startIndex": str(start),
            "limit": str(limit),
            "enableTotalRecordCount": "true",
        }

    async def count_items(self, section: LibrarySection) -> FetchResult[int]:
        result = await self._get_json(
            f"/Users/{self._user_id}/Items", params=self._items_params(section, 0, 0)
        )
        if not result.success:
            return result
        return FetchResult.ok(
            safe_int((result.data or {}).get("TotalRecordCount")) or 0, status=result.status
        )

    async def fetch_page(
        self, section: LibrarySection, page_token: Optional[int] = None
    ) -> FetchResult[ItemPage]:
        start = page_token or 0
        result = await self._get_json(
            f"/Users/{self._user_id}/Items",
            params=self._items_params(section, start, self._page_size),
        )
        if not result.success:
            return result
        data = result.data or {}
        items = data.get("Items") or []
        total = safe_int(data.get("TotalRecordCount"))
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
        params = self._items_params(section, 0, limit)
        params.update({"sortBy": "DateCreated", "sortOrder": "Descending"})
        result = await self._get_json(f"/Users/{self._user_id}/Items", params=params)
        if not result.success:
            return result
        return FetchResult.ok((result.data or {}).get("Items") or [], status=result.status)

    def map_item(
        self, integration_id: str, section: LibrarySection, raw: dict[str, Any]
    ) -> CanonicalMediaItem:
        item_id = str(raw["Id"])
        people = raw.get("People") or []
        directors = [p["Name"] for p in people if p.get("Type") == "Director" and p.get("Name")]
        actors = [p["Name"] for p in people if p.get("Type") == "Actor" and p.get("Name")]
        provider_ids = raw.get("ProviderIds") or {}
        studios = raw.get("Studios") or []
        ticks = safe_int(raw.get("RunTimeTicks"))

        return CanonicalMediaItem(
            integration_id=integration_id,
            item_key=item_id,
            media_type=MediaType.SHOW if raw.get("Type") == "Series" else MediaType.MOVIE,
            library_key=section.key,
            title=raw.get("Name") or "",
            original_title=raw.get("OriginalTitle") or None,
            sort_title=raw.get("SortName") or None,
            year=safe_int(raw.get("ProductionYear")),
            thumb_path=(
                f"/Items/{item_id}/Images/Primary"
                if (raw.get("ImageTags") or {}).get("Primary")
                else None
            ),
            art_path=(
                f"/Items/{item_id}/Images/Backdrop" if raw.get("BackdropImageTags") else None
            ),
            summary=raw.get("Overview") or None,
            genres=tuple(raw.get("Genres") or ()),
            studio=(studios[0].get("Name") or None) if studios else None,
            director=", ".join(directors) or None,
            actors=tuple(actors),
            rating=safe_float(raw.get("CommunityRating")),
            content_rating=raw.get("OfficialRating") or None,
            duration_ms=round(ticks / TICKS_PER_MS) if ticks else None,
            added_at=parse_iso_timestamp(raw.get("DateCreated")),
            updated_at=None,
            external_ids=ExternalIds(
                tmdb_id=safe_int(provider_ids.get("Tmdb")),
                imdb_id=provider_ids.get("Imdb") or None,
            ),
        )

    def _image_request(
        self, item: CanonicalMediaItem, width: int, height: int
    ) -> Optional[ImageRequest]:
        if not item.thumb_path:
            return None
        return ImageRequest(
            url=f"{self._base_url}{item.thumb_path}?fillWidth={width}&fillHeight={height}",
            headers=self._auth_headers(),
        )

    def thumbnail_request(self, item: CanonicalMediaItem) -> Optional[ImageRequest]:
        return self._image_request(item, THUMB_WIDTH, THUMB_HEIGHT)

    def large_image_request(self, item: CanonicalMediaItem) -> Optional[ImageRequest]:
        return self._image_request(item, LARGE_WIDTH, LARGE_HEIGHT)
