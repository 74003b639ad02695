"""
Point d'entrée CLI de libsync.

Initialise le container DI, configure le logging et fournit les commandes CLI.
"""

from typing import Annotated

import typer
from loguru import logger
from rich.table import Table

from . import __version__
from .adapters.cli.commands import (
    cache_cleanup,
    cache_stats,
    purge,
    refresh_recent,
    reset_stale,
    search,
    status,
    sync,
)
from .adapters.cli.helpers import console
from .config import Settings
from .container import Container
from .logging_config import configure_logging

app = typer.Typer(
    name="libsync",
    help="Synchronisation des bibliothèques Plex, Jellyfin et Emby",
)
container = Container()


@app.callback()
def main_callback(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Affiche les logs de debug"),
    ] = False,
) -> None:
    """libsync - Catalogue local des serveurs multimédia."""
    configure_logging(container.config(), verbose=verbose)


# Synchronisation
app.command()(sync)
app.command()(status)
app.command()(purge)
app.command(name="reset-stale")(reset_stale)

# Catalogue et cache d'images
app.command()(search)
app.command(name="refresh-recent")(refresh_recent)
app.command(name="cache-stats")(cache_stats)
app.command(name="cache-cleanup")(cache_cleanup)


def _settings_table(settings: Settings) -> Table:
    table = Table(title="Configuration", show_header=False)
    table.add_column("Parametre", style="bold")
    table.add_column("Valeur")
    table.add_row("Base de données", settings.database_url)
    table.add_row("Cache d'images", str(settings.library_cache_dir))
    table.add_row("Pagination", f"{settings.sync_page_size} éléments par page")
    table.add_row(
        "Appels serveur",
        f"timeout {settings.sync_timeout_seconds:.0f}s, {settings.sync_max_retries} relances",
    )
    table.add_row(
        "Synchronisation périodique",
        f"toutes les {settings.periodic_sync_hours}h" if settings.periodic_sync_hours else "désactivée",
    )
    table.add_row("Journal", f"{settings.log_file} ({settings.log_level})")
    return table


@app.command()
def info() -> None:
    """Affiche la configuration et les intégrations déclarées."""
    settings = container.config()
    console.print(_settings_table(settings))

    integrations = container.integration_registry().list_all()
    table = Table(title=f"Intégrations ({settings.integrations_file})")
    table.add_column("ID", style="bold")
    table.add_column("Type")
    table.add_column("URL")
    table.add_column("Synchro auto", justify="center")
    for integration in integrations:
        supported = integration.media_server_type is not None
        table.add_row(
            integration.id,
            integration.type if supported else f"[dim]{integration.type}[/dim]",
            integration.url or "-",
            "oui" if supported and integration.enabled and integration.library_sync_enabled else "non",
        )
    console.print(table)


@app.command()
def version() -> None:
    """Affiche les informations de version."""
    typer.echo(f"libsync v{__version__}")


@app.command()
def serve(
    host: Annotated[str, typer.Option(help="Adresse d'écoute")] = "0.0.0.0",
    port: Annotated[int, typer.Option(help="Port d'écoute")] = 8000,
    reload: Annotated[bool, typer.Option(help="Rechargement automatique")] = False,
) -> None:
    """Lance le serveur HTTP libsync."""
    import uvicorn

    typer.echo(f"Démarrage du serveur sur {host}:{port}")
    uvicorn.run("libsync.web.app:app", host=host, port=port, reload=reload)


def main() -> None:
    """Point d'entrée de l'application."""
    logger.debug(f"Démarrage de libsync v{__version__}")
    app()


if __name__ == "__main__":
    main()
