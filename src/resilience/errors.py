"""Exception hierarchy shared by the pipeline stages."""


class PipelineError(Exception):
    """Base class for pipeline errors."""


class ConfigurationError(PipelineError):
    """Missing or invalid configuration. Never retried."""


class ProviderError(PipelineError):
    """A single provider call failed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(ProviderError):
    """The provider signalled a rate limit (HTTP 429)."""

    def __init__(self, message: str = "rate limited"):
        super().__init__(message, status_code=429)


class MalformedResponseError(PipelineError):
    """A provider response failed schema validation."""


class ProviderUnavailableError(PipelineError):
    """The provider cannot be used right now; callers should degrade."""

    def __init__(self, provider: str, message: str):
        super().__init__(message)
        self.provider = provider


class NoKeysAvailableError(ProviderUnavailableError):
    def __init__(self, provider: str):
        super().__init__(provider, f"No available keys for {provider}; all keys are cooling down")


class CircuitOpenError(ProviderUnavailableError):
    def __init__(self, provider: str):
        super().__init__(provider, f"Circuit breaker open for {provider}")


class RetryExhaustedError(ProviderUnavailableError):
    def __init__(self, provider: str, attempts: int, last_error: BaseException | None):
        super().__init__(provider, f"{provider} failed after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error
