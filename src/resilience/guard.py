"""Calls that go through both the circuit breaker and key rotation."""

import logging
from collections.abc import Callable
from typing import TypeVar

from resilience.circuit_breaker import CircuitBreaker
from resilience.errors import CircuitOpenError, RetryExhaustedError
from resilience.key_manager import KeyManager

logger = logging.getLogger(__name__)

T = TypeVar("T")


def guarded_call(
    key_manager: KeyManager,
    breaker: CircuitBreaker,
    provider: str,
    operation: Callable[[str], T],
) -> T:
    """Run ``operation(key)`` unless ``provider``'s breaker is open.

    An exhausted retry loop counts as one breaker failure; a success clears
    the breaker's failure count.

    Raises:
        CircuitOpenError: The breaker is open; nothing was attempted.
        RetryExhaustedError: Every attempt failed.
        NoKeysAvailableError: Every key is cooling down.
    """
    if breaker.is_open(provider):
        logger.info("Skipping %s call, circuit open", provider)
        raise CircuitOpenError(provider)

    try:
        result = key_manager.execute_with_retry(provider, operation)
    except RetryExhaustedError:
        breaker.record_failure(provider)
        raise

    breaker.record_success(provider)
    return result
