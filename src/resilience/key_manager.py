"""Credential rotation with Redis-backed cooldowns."""

import hashlib
import logging
from collections.abc import Callable, Iterable
from typing import TypeVar

from redis.exceptions import RedisError

from common.config import ResilienceConfig
from common.utils import mask_key
from resilience.errors import (
    ConfigurationError,
    NoKeysAvailableError,
    RetryExhaustedError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

RATE_LIMIT_STATUS = 429


def is_rate_limit_error(error: BaseException) -> bool:
    """True when the error carries an HTTP 429 status, directly or on its response."""
    if getattr(error, "status_code", None) == RATE_LIMIT_STATUS:
        return True
    response = getattr(error, "response", None)
    return getattr(response, "status_code", None) == RATE_LIMIT_STATUS


class KeyManager:
    """Hands out API keys per provider, skipping keys that are cooling down.

    A key cools down immediately on a rate limit, or once it has collected
    ``max_key_errors`` other failures within an hour. Cooldown and error
    state is shared through Redis so every worker sees the same picture.
    """

    def __init__(self, redis_client, config: ResilienceConfig | None = None):
        self.redis = redis_client
        self.config = config or ResilienceConfig()
        self._keys: dict[str, list[str]] = {}

    def register_provider_keys(self, provider: str, keys: Iterable[str]) -> None:
        registered = self._keys.setdefault(provider, [])
        added = 0
        for key in keys:
            key = key.strip() if key else ""
            if key and key not in registered:
                registered.append(key)
                added += 1
        if not registered:
            logger.warning("No API keys provided for %s", provider)
        else:
            logger.info("Registered %d keys for %s", added, provider)

    def providers(self) -> list[str]:
        return list(self._keys)

    @staticmethod
    def _fingerprint(key: str) -> str:
        return hashlib.sha256(key.encode()).hexdigest()[:16]

    def _cooldown_key(self, key: str) -> str:
        return f"key_cooldown:{self._fingerprint(key)}"

    def _error_key(self, key: str) -> str:
        return f"key_errors:{self._fingerprint(key)}"

    def _is_cooling_down(self, key: str) -> bool:
        try:
            return bool(self.redis.exists(self._cooldown_key(key)))
        except RedisError as e:
            logger.warning("Key state unavailable, assuming %s is usable: %s", mask_key(key), e)
            return False

    def get_key(self, provider: str, exclude: Iterable[str] = ()) -> str:
        """Return the first key for ``provider`` that is not cooling down.

        Keys in ``exclude`` are passed over while an untried key remains.

        Raises:
            ConfigurationError: No keys were registered for the provider.
            NoKeysAvailableError: Every registered key is cooling down.
        """
        keys = self._keys.get(provider)
        if not keys:
            raise ConfigurationError(f"No API keys configured for {provider}")

        available = [key for key in keys if not self._is_cooling_down(key)]
        if not available:
            raise NoKeysAvailableError(provider)

        excluded = set(exclude)
        for key in available:
            if key not in excluded:
                return key
        return available[0]

    def report_failure(self, key: str, is_rate_limit: bool = False) -> None:
        try:
            if is_rate_limit:
                logger.warning("Rate limit hit on %s, cooling down", mask_key(key))
                self._start_cooldown(key)
                return

            error_key = self._error_key(key)
            errors = self.redis.incr(error_key)
            if errors == 1:
                self.redis.expire(error_key, self.config.key_error_window_seconds)
            if errors >= self.config.max_key_errors:
                logger.warning("Key %s unstable (%d errors), cooling down", mask_key(key), errors)
                self._start_cooldown(key)
        except RedisError as e:
            logger.warning("Could not record failure for %s: %s", mask_key(key), e)

    def _start_cooldown(self, key: str) -> None:
        self.redis.set(self._cooldown_key(key), "1", ex=self.config.key_cooldown_seconds)
        self.redis.delete(self._error_key(key))

    def report_success(self, key: str) -> None:
        try:
            self.redis.delete(self._error_key(key))
        except RedisError as e:
            logger.warning("Could not record success for %s: %s", mask_key(key), e)

    def execute_with_retry(self, provider: str, operation: Callable[[str], T]) -> T:
        """Run ``operation(key)`` with up to ``max_attempts`` keys.

        Raises:
            ConfigurationError: No keys registered; not retried.
            NoKeysAvailableError: Every key is cooling down; not retried.
            RetryExhaustedError: All attempts failed. Carries the last error.
        """
        attempts = self.config.max_attempts
        tried: list[str] = []
        last_error: Exception | None = None

        for attempt in range(1, attempts + 1):
            key = self.get_key(provider, exclude=tried)
            tried.append(key)
            try:
                result = operation(key)
            except Exception as e:
                last_error = e
                self.report_failure(key, is_rate_limit=is_rate_limit_error(e))
                logger.warning(
                    "Attempt %d/%d for %s failed with key %s: %s",
                    attempt,
                    attempts,
                    provider,
                    mask_key(key),
                    e,
                )
                continue
            self.report_success(key)
            return result

        raise RetryExhaustedError(provider, attempts, last_error) from last_error
