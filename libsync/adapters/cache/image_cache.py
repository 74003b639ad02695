"""
Cache disque des vignettes de bibliothèque.

Les images sont rangées par scope (l'ID de l'intégration) :
    <cache_dir>/<scope>/<item_key>.jpg      vignette 120x180
    <cache_dir>/<scope>/<item_key>_lg.jpg   image détail 480x720 (LRU par scope)

Les seules métadonnées sont celles du fichier (atime, mtime). Les téléchargements
passent par un sémaphore partagé pour ne pas saturer le réseau pendant les
synchronisations massives. Un échec de téléchargement est journalisé et
n'est jamais propagé.
"""

import asyncio
import os
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import httpx
from loguru import logger

THUMB_SUFFIX = ".jpg"
LARGE_SUFFIX = "_lg.jpg"

DEFAULT_CONCURRENCY = 5
DEFAULT_TIMEOUT = 10.0
DEFAULT_LARGE_TIMEOUT = 15.0
DEFAULT_MAX_LARGE_PER_SCOPE = 100

# Préfixe des URLs locales servies par l'API web
LOCAL_URL_PREFIX = "/api/cache/library"

_UNSAFE_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f\x7f]')
_LEADING_DOTS = re.compile(r"^\.+")


def sanitize_component(value: str) -> str:
    """
    Rend une clé utilisable comme nom de fichier.

    Remplace les caractères interdits, les caractères de contrôle et les points
    initiaux par "_" (empêche toute sortie du répertoire de cache).
    """
    cleaned = _LEADING_DOTS.sub("_", _UNSAFE_CHARS.sub("_", str(value)))
    return cleaned or "_"


@dataclass
class CacheCleanupStats:
    """Bilan d'une suppression (nombre de fichiers et octets libérés)."""

    deleted: int = 0
    freed_bytes: int = 0


@dataclass
class ScopeStats:
    """Occupation du cache pour un scope."""

    scope: str
    image_count: int = 0
    size_bytes: int = 0


@dataclass
class CacheStats:
    """Occupation globale du cache."""

    scopes: int = 0
    total_images: int = 0
    size_bytes: int = 0


def _last_access(stat: os.stat_result) -> float:
    return stat.st_atime or stat.st_mtime


class ImageCacheManager:
    """
    Gestionnaire du cache de vignettes.

    Une instance par processus (singleton du container) : le sémaphore borne
    le nombre de téléchargements simultanés pour toutes les synchronisations.

    Example:
        cache = ImageCacheManager(Path("~/.cache/libsync/library").expanduser())
        await cache.cache_image("plex-abc1", "12345", url)
        cache.local_url("plex-abc1", "12345")
        # -> "/api/cache/library/plex-abc1/12345.jpg"
    """

    def __init__(
        self,
        cache_dir: Path,
        concurrency: int = DEFAULT_CONCURRENCY,
        timeout: float = DEFAULT_TIMEOUT,
        large_timeout: float = DEFAULT_LARGE_TIMEOUT,
        max_large_per_scope: int = DEFAULT_MAX_LARGE_PER_SCOPE,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._cache_dir = Path(cache_dir)
        self._semaphore = asyncio.Semaphore(concurrency)
        self._timeout = timeout
        self._large_timeout = large_timeout
        self._max_large = max_large_per_scope
        self._client = client

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout, follow_redirects=True)
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Chemins
    # ------------------------------------------------------------------

    def scope_dir(self, scope: str) -> Path:
        return self._cache_dir / sanitize_component(scope)

    def image_path(self, scope: str, item_key: str, large: bool = False) -> Path:
        """Chemin local de l'image (qu'elle existe ou non)."""
        suffix = LARGE_SUFFIX if large else THUMB_SUFFIX
        return self.scope_dir(scope) / f"{sanitize_component(item_key)}{suffix}"

    def is_cached(self, scope: str, item_key: str, large: bool = False) -> bool:
        return self.image_path(scope, item_key, large).is_file()

    def local_url(self, scope: str, item_key: str) -> Optional[str]:
        """URL locale de la vignette, ou None si elle n'est pas en cache."""
        path = self.image_path(scope, item_key)
        if not path.is_file():
            return None
        return f"{LOCAL_URL_PREFIX}/{path.parent.name}/{path.name}"

    def resolve_file(self, scope: str, filename: str) -> Optional[Path]:
        """Chemin d'un fichier demandé par l'API web, ou None s'il n'existe pas."""
        path = self.scope_dir(scope) / sanitize_component(filename)
        return path if path.is_file() else None

    def serve_file(self, scope: str, filename: str) -> Optional[Path]:
        """Comme resolve_file, en marquant le fichier comme utilisé (LRU)."""
        path = self.resolve_file(scope, filename)
        if path is not None:
            _touch(path)
        return path

    # ------------------------------------------------------------------
    # Téléchargement
    # ------------------------------------------------------------------

    async def _download(
        self,
        path: Path,
        url: str,
        headers: Optional[dict[str, str]],
        timeout: float,
    ) -> bool:
        client = self._get_client()
        try:
            response = await client.get(url, headers=headers or {}, timeout=timeout)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning(f"Échec du cache de {path.name}: HTTP {e.response.status_code}")
            return False
        except httpx.HTTPError as e:
            logger.warning(f"Échec du cache de {path.name}: {e!r}")
            return False

        loop = asyncio.get_running_loop()
        write = loop.run_in_executor(None, _write_atomic, path, response.content)
        try:
            await asyncio.shield(write)
        except asyncio.CancelledError:
            # Le thread d'écriture ne s'interrompt pas : la tâche annulée se termine avec lui
            await asyncio.wait([write])
            raise
        except OSError as e:
            logger.warning(f"Écriture impossible de {path}: {e}")
            return False
        return True

    async def cache_image(
        self,
        scope: str,
        item_key: str,
        url: str,
        auth_headers: Optional[dict[str, str]] = None,
    ) -> Optional[str]:
        """
        Télécharge et met en cache une vignette.

        Args:
            scope: Scope du cache (ID de l'intégration)
            item_key: Clé native de l'élément
            url: URL complète de l'image
            auth_headers: En-têtes d'authentification optionnels

        Returns:
            Nom du fichier local, ou None en cas d'échec
        """
        if not url:
            return None
        path = self.image_path(scope, item_key)
        async with self._semaphore:
            # Fichier déjà présent : pas de nouveau téléchargement
            if path.is_file():
                return path.name
            if not await self._download(path, url, auth_headers, self._timeout):
                return None
        logger.debug(f"Vignette en cache: {scope}/{path.name}")
        return path.name

    async def get_or_fetch_large(
        self,
        scope: str,
        item_key: str,
        url: Optional[str],
        auth_headers: Optional[dict[str, str]] = None,
    ) -> Optional[Path]:
        """
        Retourne l'image détail, en la téléchargeant si nécessaire.

        Un accès en cache met à jour l'atime (LRU). Après un nouveau
        téléchargement, les images détail les moins récemment utilisées du
        scope sont supprimées au-delà de la limite.
        """
        path = self.image_path(scope, item_key, large=True)
        if path.is_file():
            _touch(path)
            return path
        if not url:
            return None

        async with self._semaphore:
            if not await self._download(path, url, auth_headers, self._large_timeout):
                return None
        logger.debug(f"Image détail en cache: {scope}/{path.name}")
        self._enforce_large_limit(path.parent)
        return path

    def touch(self, scope: str, item_key: str, large: bool = False) -> bool:
        """Marque une image comme utilisée. Retourne False si elle n'existe pas."""
        path = self.image_path(scope, item_key, large)
        if not path.is_file():
            return False
        _touch(path)
        return True

    def _enforce_large_limit(self, directory: Path) -> int:
        large_files = []
        for file in directory.glob(f"*{LARGE_SUFFIX}"):
            try:
                large_files.append((_last_access(file.stat()), file))
            except FileNotFoundError:
                continue
        excess = len(large_files) - self._max_large
        if excess <= 0:
            return 0

        large_files.sort(key=lambda entry: entry[0])
        evicted = 0
        for _, file in large_files[:excess]:
            try:
                file.unlink()
                evicted += 1
                logger.debug(f"Éviction LRU: {directory.name}/{file.name}")
            except FileNotFoundError:
                continue
        return evicted

    # ------------------------------------------------------------------
    # Suppression et statistiques
    # ------------------------------------------------------------------

    def delete_image(self, scope: str, item_key: str) -> bool:
        """Supprime les deux variantes d'une image. Retourne True si un fichier a été supprimé."""
        deleted = False
        for large in (False, True):
            path = self.image_path(scope, item_key, large)
            if path.is_file():
                path.unlink()
                deleted = True
        return deleted

    def purge_scope(self, scope: str) -> CacheCleanupStats:
        """Supprime toutes les images d'un scope ainsi que son répertoire."""
        stats = CacheCleanupStats()
        directory = self.scope_dir(scope)
        if not directory.is_dir():
            return stats

        for file in directory.iterdir():
            if not file.is_file():
                continue
            stats.freed_bytes += file.stat().st_size
            file.unlink()
            stats.deleted += 1
        try:
            directory.rmdir()
        except OSError as e:
            logger.warning(f"Répertoire de cache non supprimé: {directory} ({e})")

        logger.info(
            f"Cache purgé pour {scope}: {stats.deleted} fichiers, "
            f"{stats.freed_bytes // 1024} Ko libérés"
        )
        return stats

    def cleanup_older_than(self, days: int = 30) -> CacheCleanupStats:
        """
        Supprime les images non consultées depuis `days` jours, tous scopes confondus.

        L'âge est calculé sur l'atime (ou la mtime à défaut). Les répertoires
        vides sont supprimés.
        """
        stats = CacheCleanupStats()
        if not self._cache_dir.is_dir():
            return stats

        max_age = days * 24 * 60 * 60
        now = time.time()
        for directory in self._scope_dirs():
            for file in directory.iterdir():
                if not file.is_file():
                    continue
                file_stat = file.stat()
                if now - _last_access(file_stat) > max_age:
                    stats.freed_bytes += file_stat.st_size
                    file.unlink()
                    stats.deleted += 1
            if not any(directory.iterdir()):
                directory.rmdir()

        if stats.deleted:
            logger.info(
                f"Nettoyage du cache: {stats.deleted} fichiers, "
                f"{stats.freed_bytes // 1024} Ko libérés"
            )
        return stats

    def _scope_dirs(self) -> list[Path]:
        if not self._cache_dir.is_dir():
            return []
        return sorted(p for p in self._cache_dir.iterdir() if p.is_dir())

    def per_scope_stats(self) -> list[ScopeStats]:
        result = []
        for directory in self._scope_dirs():
            files = [f for f in directory.iterdir() if f.is_file()]
            result.append(
                ScopeStats(
                    scope=directory.name,
                    image_count=len(files),
                    size_bytes=sum(f.stat().st_size for f in files),
                )
            )
        return result

    def stats(self) -> CacheStats:
        per_scope = self.per_scope_stats()
        return CacheStats(
            scopes=len(per_scope),
            total_images=sum(s.image_count for s in per_scope),
            size_bytes=sum(s.size_bytes for s in per_scope),
        )


def _touch(path: Path) -> None:
    now = time.time()
    try:
        os.utime(path, (now, now))
    except OSError as e:
        logger.debug(f"Mise à jour de l'atime impossible pour {path}: {e}")


def _write_atomic(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f"{path.name}.part")
    tmp_path.write_bytes(content)
    os.replace(tmp_path, path)
