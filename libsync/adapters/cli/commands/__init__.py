"""Sous-package CLI commands - re-exporte les commandes publiques."""

from libsync.adapters.cli.commands.library_commands import (
    cache_cleanup,
    cache_stats,
    refresh_recent,
    search,
)
from libsync.adapters.cli.commands.sync_commands import (
    purge,
    reset_stale,
    status,
    sync,
)

__all__ = [
    "cache_cleanup",
    "cache_stats",
    "purge",
    "refresh_recent",
    "reset_stale",
    "search",
    "status",
    "sync",
]
