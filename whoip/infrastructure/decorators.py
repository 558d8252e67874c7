"""
Infrastructure-specific decorators, providing cross-cutting concerns like
retry logic for network operations.
"""

import logging

import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

logger = logging.getLogger(__name__)

# --- Defaults for Retry Logic, overridden from settings.toml ---
_RETRY_ATTEMPTS = 2
_RETRY_MIN_WAIT_SECONDS = 0.5
_RETRY_MAX_WAIT_SECONDS = 4


def _log_before_retry(retry_state):
    """Log the retry attempt with details about the exception and wait time."""
    exception = retry_state.outcome.exception()
    next_attempt_in = retry_state.next_action.sleep
    logger.warning(
        f"Retrying {retry_state.fn.__name__} in {next_attempt_in:.2f}s due to "
        f"{type(exception).__name__} (attempt {retry_state.attempt_number})..."
    )


def retry_on_network_error(
    attempts: int = _RETRY_ATTEMPTS,
    min_wait: float = _RETRY_MIN_WAIT_SECONDS,
    max_wait: float = _RETRY_MAX_WAIT_SECONDS,
):
    """
    Build a retry decorator for async network operations.

    Only transport failures (DNS, connect, protocol, timeout) are retried.
    A bad status is an answer from the server and is left to the next
    refresh. After the last attempt the original httpx exception propagates.
    """
    return retry(
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(httpx.TransportError),
        before_sleep=_log_before_retry,
        reraise=True,
    )
