"""Cache disque des images de bibliothèque."""

from libsync.adapters.cache.image_cache import (
    CacheCleanupStats,
    CacheStats,
    ImageCacheManager,
    ScopeStats,
    sanitize_component,
)

__all__ = [
    "CacheCleanupStats",
    "CacheStats",
    "ImageCacheManager",
    "ScopeStats",
    "sanitize_component",
]
