"""
Politique de retry avec backoff exponentiel pour les appels fournisseur.

Les stratégies fournisseur ne lèvent pas d'exception : elles retournent un
FetchResult. La politique relance uniquement les échecs marqués `retryable`
(timeout, connexion refusée ou réinitialisée, HTTP 5xx) et jamais les 4xx.

Délais : 2^tentative secondes (2s puis 4s avec 2 retries).

Usage:
    policy = RetryPolicy(max_retries=2)
    result = await policy.run(lambda: strategy.count_items(section))

    # Ou avec la fonction helper
    result = await with_retry(lambda: strategy.fetch_page(section, token))
"""

import asyncio
from typing import Awaitable, Callable, Optional

import httpx
from loguru import logger
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)

from libsync.core.ports.providers import FetchResult

SleepFunc = Callable[[float], Awaitable[None]]
FetchCall = Callable[[], Awaitable[FetchResult]]

DEFAULT_MAX_RETRIES = 2
DEFAULT_BASE_DELAY = 2.0


def _is_retryable(result: FetchResult) -> bool:
    return not result.success and result.retryable


def _last_result(retry_state: RetryCallState) -> FetchResult:
    # Tentatives épuisées : on retourne le dernier résultat au lieu de lever RetryError
    return retry_state.outcome.result()


def _log_before_sleep(retry_state: RetryCallState) -> None:
    result = retry_state.outcome.result()
    delay = retry_state.next_action.sleep if retry_state.next_action else 0
    logger.warning(
        f"Échec transitoire ({result.error}), "
        f"tentative {retry_state.attempt_number}, nouvel essai dans {delay:.0f}s"
    )


async def _safe_call(call: FetchCall) -> FetchResult:
    """Exécute l'appel en convertissant toute exception en FetchResult en échec."""
    try:
        return await call()
    except httpx.TimeoutException:
        return FetchResult.failure("Timeout", retryable=True)
    except httpx.TransportError as e:
        return FetchResult.failure(f"Erreur de connexion: {e}", retryable=True)
    except Exception as e:
        logger.debug(f"Exception non prévue pendant un appel fournisseur: {e!r}")
        return FetchResult.failure(str(e) or type(e).__name__)


class RetryPolicy:
    """
    Politique de retry partagée par toutes les stratégies.

    Attributes:
        max_retries: Nombre de relances après le premier essai (défaut: 2)
        base_delay: Multiplicateur du backoff, délai = base_delay * 2^(n-1)
    """

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay: float = DEFAULT_BASE_DELAY,
        sleep: Optional[SleepFunc] = None,
    ) -> None:
        self.max_retries = max_retries
        self.base_delay = base_delay
        self._sleep = sleep or asyncio.sleep

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            retry=retry_if_result(_is_retryable),
            wait=wait_exponential(multiplier=self.base_delay, exp_base=2),
            stop=stop_after_attempt(self.max_retries + 1),
            retry_error_callback=_last_result,
            before_sleep=_log_before_sleep,
            sleep=self._sleep,
        )

    async def run(self, call: FetchCall) -> FetchResult:
        """
        Exécute un appel fournisseur avec relances.

        Args:
            call: Fonction sans argument retournant une coroutine de FetchResult

        Returns:
            Le premier résultat non relançable, ou le dernier résultat après
            épuisement des tentatives. Ne lève jamais d'exception.
        """
        return await self._retrying()(_safe_call, call)


async def with_retry(
    call: FetchCall,
    max_retries: int = DEFAULT_MAX_RETRIES,
    sleep: Optional[SleepFunc] = None,
) -> FetchResult:
    """Raccourci : exécute `call` avec une RetryPolicy par défaut."""
    return await RetryPolicy(max_retries=max_retries, sleep=sleep).run(call)
