"""
Commandes CLI de synchronisation (sync, status, purge, reset-stale).
"""

import asyncio
from typing import Annotated, Optional

import typer
from dependency_injector import providers
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
)
from rich.table import Table

from libsync.adapters.cli.helpers import (
    RichProgressSink,
    console,
    quiet_sync_logs,
    with_container,
)
from libsync.core.entities.sync import SyncState

_STATE_COLORS = {
    SyncState.IDLE: "dim",
    SyncState.SYNCING: "cyan",
    SyncState.COMPLETED: "green",
    SyncState.ERROR: "red",
}


def sync(
    integration_id: Annotated[
        Optional[str],
        typer.Argument(help="ID de l'intégration à synchroniser"),
    ] = None,
    sync_all: Annotated[
        bool,
        typer.Option("--all", help="Synchronise toutes les intégrations activées"),
    ] = False,
) -> None:
    """Synchronise la bibliothèque d'une ou plusieurs intégrations."""
    if not integration_id and not sync_all:
        console.print("[red]Erreur:[/red] indiquer un ID d'intégration ou --all")
        raise typer.Exit(code=1)
    asyncio.run(_sync_async(integration_id, sync_all))


@with_container()
async def _sync_async(container, integration_id: Optional[str], sync_all: bool) -> None:
    """Implémentation async de la commande sync."""
    failures = 0
    with quiet_sync_logs(), Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    ) as progress:
        # Le service est créé après l'override : il émet vers la barre Rich
        container.broadcast_sink.override(providers.Object(RichProgressSink(progress)))
        service = container.library_sync_service()

        if sync_all:
            targets = [i.id for i in service.sync_enabled_integrations()]
        else:
            targets = [integration_id]
        if not targets:
            progress.console.print("[yellow]Aucune intégration à synchroniser.[/yellow]")

        for target in targets:
            started = await service.start_sync(target)
            if not started.accepted:
                progress.console.print(f"[red]{target}[/red]: {started.reason}")
                failures += 1
                continue
            outcome = await service.wait_for_sync(target)
            if outcome is not None and outcome.error:
                failures += 1

    _print_statuses(container, targets)
    if failures:
        raise typer.Exit(code=1)


def status(
    integration_id: Annotated[
        Optional[str],
        typer.Argument(help="ID de l'intégration (toutes par défaut)"),
    ] = None,
) -> None:
    """Affiche le statut de synchronisation."""
    asyncio.run(_status_async(integration_id))


@with_container()
async def _status_async(container, integration_id: Optional[str]) -> None:
    if integration_id:
        _print_statuses(container, [integration_id])
    else:
        statuses = container.sync_status_repository().list_all()
        _print_statuses(container, [s.integration_id for s in statuses])


def _print_statuses(container, integration_ids: list[str]) -> None:
    repo = container.sync_status_repository()
    table = Table(title="Statut de synchronisation")
    table.add_column("Integration", style="bold")
    table.add_column("État")
    table.add_column("Indexes", justify="right")
    table.add_column("Dernière fin")
    table.add_column("Message")

    for integration_id in integration_ids:
        current = repo.get(integration_id)
        if current is None:
            table.add_row(integration_id, "[dim]jamais synchronise[/dim]", "-", "-", "")
            continue
        color = _STATE_COLORS[current.state]
        completed = (
            current.last_sync_completed.strftime("%Y-%m-%d %H:%M")
            if current.last_sync_completed
            else "-"
        )
        table.add_row(
            integration_id,
            f"[{color}]{current.state.value}[/{color}]",
            f"{current.indexed_items}/{current.total_items}",
            completed,
            current.error_message or "",
        )
    console.print(table)


def purge(
    integration_id: Annotated[str, typer.Argument(help="ID de l'intégration à purger")],
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Ne pas demander de confirmation"),
    ] = False,
) -> None:
    """Supprime le catalogue, le statut et les images d'une intégration."""
    if not yes and not typer.confirm(f"Purger toutes les données de {integration_id} ?"):
        raise typer.Abort()
    asyncio.run(_purge_async(integration_id))


@with_container()
async def _purge_async(container, integration_id: str) -> None:
    result = await container.library_sync_service().purge_integration_data(integration_id)
    console.print(f"[bold]Purge de {integration_id}:[/bold]")
    console.print(f"  [green]{result.deleted_items}[/green] élément(s) supprimé(s)")
    console.print(
        f"  [green]{result.deleted_images}[/green] image(s) supprimée(s) "
        f"({result.freed_bytes // 1024} Ko)"
    )


def reset_stale() -> None:
    """Passe en erreur les synchronisations interrompues par un arrêt du processus."""
    asyncio.run(_reset_stale_async())


@with_container()
async def _reset_stale_async(container) -> None:
    count = container.library_sync_service().reset_stale_statuses()
    console.print(f"{count} statut(s) réinitialisé(s)")
