"""
Outils communs aux commandes CLI.

- console : console Rich partagée
- quiet_sync_logs : coupe les logs libsync tant qu'une barre Rich est affichée
- with_container : exécute une commande async avec un container prêt et
  libère les ressources du cache d'images à la fin
- RichProgressSink : événements de synchronisation -> barres de progression
"""

from contextlib import contextmanager
from functools import wraps
from typing import Any

from loguru import logger
from rich.console import Console
from rich.progress import Progress, TaskID

from libsync.container import Container
from libsync.core.ports.broadcast import (
    EVENT_COMPLETE,
    EVENT_ERROR,
    EVENT_PROGRESS,
    IBroadcastSink,
)

console = Console()


@contextmanager
def quiet_sync_logs():
    """Les logs du package libsync casseraient l'affichage des barres Rich."""
    logger.disable("libsync")
    try:
        yield
    finally:
        logger.enable("libsync")


def with_container(requires_db: bool = True):
    """
    Injecte un Container en premier argument d'une commande async.

    En sortie (même en erreur), les vignettes encore en téléchargement sont
    attendues puis le client HTTP du cache est ferme.

    Args:
        requires_db: Initialiser la base avant la commande (False pour les
            commandes qui ne touchent qu'au cache disque)
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            container = Container()
            if requires_db:
                container.database.init()
            try:
                return await func(container, *args, **kwargs)
            finally:
                if requires_db:
                    await container.library_indexer().drain()
                await container.image_cache().close()
        return wrapper
    return decorator


class RichProgressSink(IBroadcastSink):
    """Une barre de progression Rich par intégration synchronisée."""

    def __init__(self, progress: Progress) -> None:
        self._progress = progress
        self._tasks: dict[str, TaskID] = {}

    def _task(self, integration_id: str) -> TaskID:
        if integration_id not in self._tasks:
            self._tasks[integration_id] = self._progress.add_task(
                f"[cyan]{integration_id}", total=None
            )
        return self._tasks[integration_id]

    def emit(self, event: str, payload: dict[str, Any]) -> None:
        integration_id = payload.get("integration_id", "?")
        task = self._task(integration_id)

        if event == EVENT_PROGRESS:
            message = payload.get("status_message")
            self._progress.update(
                task,
                total=payload.get("total") or None,
                completed=payload.get("indexed", 0),
                description=f"[cyan]{integration_id}[/cyan] {message or ''}".rstrip(),
            )
        elif event == EVENT_COMPLETE:
            indexed = payload.get("indexed", 0)
            failed = payload.get("failed_sections") or []
            color = "yellow" if failed else "green"
            self._progress.update(
                task,
                total=indexed or 1,
                completed=indexed or 1,
                description=f"[{color}]{integration_id}[/{color}] terminé ({indexed} éléments)",
            )
        elif event == EVENT_ERROR:
            self._progress.update(
                task, description=f"[red]{integration_id}[/red] {payload.get('error', '')}"
            )
