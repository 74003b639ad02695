"""
Configuration du logging via loguru.

Deux destinations :
- stderr : lignes colorées avec l'intégration concernée, pour suivre une synchronisation
- fichier : JSON avec rotation, tout en DEBUG (progression page par page incluse)

Les messages émis pendant une synchronisation portent l'ID de l'intégration
dans extra["integration"] (voir sync_context).
"""

import sys
from contextlib import contextmanager

from loguru import logger

from .config import Settings

# Valeur affichée hors de toute synchronisation
NO_INTEGRATION = "-"

_CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[integration]}</magenta> | "
    "<level>{message}</level>"
)
_CONSOLE_FORMAT_VERBOSE = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[integration]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def configure_logging(settings: Settings, verbose: bool = False) -> None:
    """Installe les handlers console et fichier.

    Args :
        settings : Niveau, fichier, taille de rotation et retention des logs
        verbose : Force le niveau DEBUG en console, avec module et ligne
    """
    logger.remove()
    logger.configure(extra={"integration": NO_INTEGRATION})

    logger.add(
        sys.stderr,
        level="DEBUG" if verbose else settings.log_level,
        format=_CONSOLE_FORMAT_VERBOSE if verbose else _CONSOLE_FORMAT,
        colorize=True,
    )

    settings.log_file.parent.mkdir(parents=True, exist_ok=True)
    logger.add(
        settings.log_file,
        level="DEBUG",
        serialize=True,
        rotation=settings.log_rotation_size,
        retention=settings.log_retention_count,
        compression="zip",
        enqueue=True,
    )

    logger.debug(f"Logs écrits dans {settings.log_file} (rotation {settings.log_rotation_size})")


@contextmanager
def sync_context(integration_id: str):
    """Rattache les logs émis dans le bloc (et les tâches créées) à une intégration."""
    with logger.contextualize(integration=integration_id):
        yield
