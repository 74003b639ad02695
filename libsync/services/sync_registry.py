"""
Registre en mémoire des synchronisations actives.

Une entrée vivante et non annulée est la seule source de vérité pour
"synchronisation en cours" : le statut persisté n'est qu'un miroir.
Le registre est propre au processus et protege par un verrou, afin que la
vérification et l'enregistrement soient atomiques.
"""

import threading
from dataclasses import dataclass
from typing import Optional


@dataclass(eq=False)
class CancellationToken:
    """
    Jeton d'annulation d'une synchronisation.

    Comparaison par identité : deux jetons ne sont jamais égaux, ce qui permet
    à une tâche de vérifier que le registre contient toujours SON jeton.
    """

    integration_id: str
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class ActiveSyncRegistry:
    """Association integration_id -> CancellationToken des synchronisations en cours."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tokens: dict[str, CancellationToken] = {}

    def try_register(self, integration_id: str) -> Optional[CancellationToken]:
        """
        Enregistre une nouvelle synchronisation.

        Retourne :
            Un nouveau jeton, ou None si une synchronisation non annulée est
            déjà en cours. Un jeton annulé est remplacé.
        """
        with self._lock:
            current = self._tokens.get(integration_id)
            if current is not None and not current.cancelled:
                return None
            token = CancellationToken(integration_id)
            self._tokens[integration_id] = token
            return token

    def get(self, integration_id: str) -> Optional[CancellationToken]:
        with self._lock:
            return self._tokens.get(integration_id)

    def is_active(self, integration_id: str) -> bool:
        """True si une synchronisation non annulée est en cours."""
        token = self.get(integration_id)
        return token is not None and not token.cancelled

    def is_current(self, token: CancellationToken) -> bool:
        """True si ce jeton est toujours celui enregistré pour son intégration."""
        with self._lock:
            return self._tokens.get(token.integration_id) is token

    def cancel(self, integration_id: str) -> bool:
        """Annule la synchronisation. Retourne False s'il n'y en à aucune."""
        with self._lock:
            token = self._tokens.get(integration_id)
            if token is None:
                return False
            token.cancel()
            return True

    def remove(self, token: CancellationToken) -> bool:
        """Retire le jeton, seulement s'il est encore celui enregistré."""
        with self._lock:
            if self._tokens.get(token.integration_id) is not token:
                return False
            del self._tokens[token.integration_id]
            return True

    def active_ids(self) -> frozenset[str]:
        """IDs des intégrations ayant une entrée (annulée ou non)."""
        with self._lock:
            return frozenset(self._tokens)
