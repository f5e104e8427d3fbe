"""Retry avec backoff exponentiel pour opérations asynchrones.

Utilisé pour les erreurs transitoires: connexion PostgreSQL perdue pendant
un job planifié, Redis indisponible au moment d'une publication.
"""

import logging
from collections.abc import Callable
from typing import Any

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)


def _log_retry_attempt(retry_state: RetryCallState) -> None:
    """Journalise l'échec d'une tentative avant l'attente."""
    exception = retry_state.outcome.exception() if retry_state.outcome else None
    name = retry_state.fn.__name__ if retry_state.fn else "opération"
    logger.warning(
        f"Tentative {retry_state.attempt_number} échouée pour {name} "
        f"({retry_state.seconds_since_start:.2f}s): {exception!r}"
    )


def _backoff_policy(
    max_attempts: int,
    min_wait_seconds: int,
    max_wait_seconds: int,
    exceptions: tuple[type[Exception], ...],
) -> dict[str, Any]:
    return {
        "retry": retry_if_exception_type(exceptions),
        "stop": stop_after_attempt(max_attempts),
        "wait": wait_exponential(min=min_wait_seconds, max=max_wait_seconds),
        "before_sleep": _log_retry_attempt,
        "reraise": True,
    }


def async_retry_with_backoff(
    max_attempts: int = 3,
    min_wait_seconds: int = 1,
    max_wait_seconds: int = 10,
    exceptions: tuple[type[Exception], ...] = (Exception,),
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Décorateur de retry pour coroutine; la dernière exception est relancée.

    Example:
        ```python
        @async_retry_with_backoff(max_attempts=3, exceptions=(OperationalError,))
        async def auto_complete_past_appointments():
            ...
        ```
    """
    return retry(**_backoff_policy(max_attempts, min_wait_seconds, max_wait_seconds, exceptions))


async def retry_async_operation(
    operation: Callable[..., Any],
    *args: Any,
    max_attempts: int = 3,
    min_wait_seconds: int = 1,
    max_wait_seconds: int = 10,
    exceptions: tuple[type[Exception], ...] = (Exception,),
    **kwargs: Any,
) -> Any:
    """
    Exécute `operation(*args, **kwargs)` avec retry, sans décorateur.

    Sert aux boucles de jobs où chaque itération (un cabinet) est retentée
    indépendamment.
    """
    policy = _backoff_policy(max_attempts, min_wait_seconds, max_wait_seconds, exceptions)
    async for attempt in AsyncRetrying(**policy):
        with attempt:
            if attempt.retry_state.attempt_number > 1:
                logger.info(
                    f"Tentative {attempt.retry_state.attempt_number}/{max_attempts} "
                    f"pour {operation.__name__}"
                )
            return await operation(*args, **kwargs)
