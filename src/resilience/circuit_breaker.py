"""Provider-level circuit breaker backed by Redis TTL keys."""

import logging

from redis.exceptions import RedisError

from common.config import ResilienceConfig

logger = logging.getLogger(__name__)


class CircuitBreaker:
    """Opens a provider after repeated failures inside a rolling window.

    State lives in two keys per provider: a failure counter that expires with
    the window, and an ``open`` flag whose TTL is the cooldown. When the flag
    expires the breaker is closed again without anyone resetting it. If Redis
    is unreachable the breaker reports closed.
    """

    def __init__(self, redis_client, config: ResilienceConfig | None = None):
        self.redis = redis_client
        self.config = config or ResilienceConfig()

    @staticmethod
    def _fail_key(provider: str) -> str:
        return f"breaker:fail:{provider}"

    @staticmethod
    def _open_key(provider: str) -> str:
        return f"breaker:open:{provider}"

    def is_open(self, provider: str) -> bool:
        try:
            return bool(self.redis.exists(self._open_key(provider)))
        except RedisError as e:
            logger.warning("Circuit state unavailable for %s, assuming closed: %s", provider, e)
            return False

    def record_failure(self, provider: str) -> None:
        try:
            fail_key = self._fail_key(provider)
            failures = self.redis.incr(fail_key)
            if failures == 1:
                self.redis.expire(fail_key, self.config.breaker_failure_window_seconds)

            if failures >= self.config.breaker_failure_threshold:
                self.redis.set(
                    self._open_key(provider),
                    "1",
                    ex=self.config.breaker_cooldown_seconds,
                )
                self.redis.delete(fail_key)
                logger.error(
                    "Circuit opened for %s after %d failures (cooldown %ds)",
                    provider,
                    failures,
                    self.config.breaker_cooldown_seconds,
                )
            else:
                logger.warning("Recorded failure %d for %s", failures, provider)
        except RedisError as e:
            logger.warning("Could not record failure for %s: %s", provider, e)

    def record_success(self, provider: str) -> None:
        try:
            self.redis.delete(self._fail_key(provider))
        except RedisError as e:
            logger.warning("Could not record success for %s: %s", provider, e)
