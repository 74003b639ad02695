"""
Registre des intégrations lu depuis un fichier JSON.

Format attendu (liste d'objets) :
    [
        {
            "id": "plex-abc1",
            "type": "plex",
            "display_name": "Plex salon",
            "enabled": true,
            "config": {"url": "http://192.168.1.10:32400", "token": "...",
                       "library_sync_enabled": true}
        }
    ]

Le fichier est relu à chaque appel : les modifications sont prises en compte
sans redémarrage.
"""

import json
from pathlib import Path
from typing import Optional

from loguru import logger

from libsync.core.entities.integration import Integration
from libsync.core.ports.integrations import IIntegrationRegistry


class JsonIntegrationRegistry(IIntegrationRegistry):
    """Lecture des intégrations depuis un fichier JSON."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    def _load(self) -> list[Integration]:
        if not self._path.exists():
            logger.debug(f"Fichier d'intégrations absent: {self._path}")
            return []
        with open(self._path, encoding="utf-8") as f:
            data = json.load(f)
        if isinstance(data, dict):
            data = data.get("integrations", [])

        integrations = []
        for entry in data:
            try:
                integrations.append(
                    Integration(
                        id=str(entry["id"]),
                        type=str(entry["type"]),
                        display_name=entry.get("display_name") or str(entry["id"]),
                        enabled=bool(entry.get("enabled", True)),
                        config=dict(entry.get("config") or {}),
                    )
                )
            except (KeyError, TypeError) as e:
                logger.warning(f"Intégration ignorée (entrée invalide: {e}): {entry!r}")
        return integrations

    def get(self, integration_id: str) -> Optional[Integration]:
        for integration in self._load():
            if integration.id == integration_id:
                return integration
        return None

    def list_all(self) -> list[Integration]:
        return self._load()
