"""Utilitaires partagés."""

from libsync.utils.helpers import as_utc, format_size, fts_prefix_query, utc_now

__all__ = ["as_utc", "format_size", "fts_prefix_query", "utc_now"]
