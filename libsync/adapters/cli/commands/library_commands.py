"""
Commandes CLI du catalogue (search, refresh-recent) et du cache d'images
(cache-stats, cache-cleanup).
"""

import asyncio
from typing import Annotated, Optional

import typer
from rich.table import Table

from libsync.adapters.cli.helpers import console, quiet_sync_logs, with_container
from libsync.utils.helpers import format_size


def search(
    query: Annotated[str, typer.Argument(help="Titre recherche")],
    integration_id: Annotated[
        Optional[str],
        typer.Option("--integration", "-i", help="Limiter à une intégration"),
    ] = None,
    limit: Annotated[int, typer.Option("--limit", "-n", help="Nombre de résultats")] = 20,
) -> None:
    """Recherche dans le catalogue local."""
    asyncio.run(_search_async(query, integration_id, limit))


@with_container()
async def _search_async(container, query: str, integration_id: Optional[str], limit: int) -> None:
    items = container.media_library_repository().search(query, integration_id, limit)
    if not items:
        console.print(f"[yellow]Aucun résultat pour[/yellow] {query}")
        return

    table = Table(title=f"Résultats pour '{query}'")
    table.add_column("Titre", style="bold")
    table.add_column("Annee", justify="right")
    table.add_column("Type")
    table.add_column("Integration")
    table.add_column("TMDB", justify="right")
    for item in items:
        table.add_row(
            item.title,
            str(item.year or ""),
            item.media_type.value,
            item.integration_id,
            str(item.tmdb_id or ""),
        )
    console.print(table)


def refresh_recent(
    tmdb_ids: Annotated[list[int], typer.Argument(help="IDs TMDB à indexer")],
) -> None:
    """Indexe les derniers ajouts correspondant aux IDs TMDB donnés."""
    asyncio.run(_refresh_recent_async(tmdb_ids))


@with_container()
async def _refresh_recent_async(container, tmdb_ids: list[int]) -> None:
    service = container.library_sync_service()
    refresher = container.surgical_refresher()
    with quiet_sync_logs(), console.status("[cyan]Recherche dans les derniers ajouts..."):
        found = await refresher.index_matching(set(tmdb_ids), service.sync_enabled_integrations())

    missing = sorted(set(tmdb_ids) - found)
    console.print(f"[green]{len(found)}[/green] élément(s) indexé(s): {sorted(found)}")
    if missing:
        console.print(f"[yellow]Introuvables:[/yellow] {missing}")


def cache_stats() -> None:
    """Affiche l'occupation du cache d'images."""
    asyncio.run(_cache_stats_async())


@with_container(requires_db=False)
async def _cache_stats_async(container) -> None:
    cache = container.image_cache()
    table = Table(title=f"Cache d'images ({cache.cache_dir})")
    table.add_column("Integration", style="bold")
    table.add_column("Images", justify="right")
    table.add_column("Taille", justify="right")
    for scope in cache.per_scope_stats():
        table.add_row(scope.scope, str(scope.image_count), format_size(scope.size_bytes))
    total = cache.stats()
    table.add_row("[bold]Total[/bold]", str(total.total_images), format_size(total.size_bytes))
    console.print(table)


def cache_cleanup(
    days: Annotated[
        Optional[int],
        typer.Option("--days", "-d", help="Âge maximum sans accès (jours)"),
    ] = None,
) -> None:
    """Supprime les images non consultées depuis plusieurs jours."""
    asyncio.run(_cache_cleanup_async(days))


@with_container(requires_db=False)
async def _cache_cleanup_async(container, days: Optional[int]) -> None:
    max_age = days if days is not None else container.config().image_max_age_days
    result = container.image_cache().cleanup_older_than(max_age)
    console.print(
        f"[green]{result.deleted}[/green] image(s) supprimée(s), "
        f"{format_size(result.freed_bytes)} libérés"
    )
