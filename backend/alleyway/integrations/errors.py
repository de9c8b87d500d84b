from typing import Optional


class ProviderError(RuntimeError):
    """Raised when an upstream provider call fails unexpectedly."""

    def __init__(
        self,
        provider: str,
        message: str,
        cause: Optional[BaseException] = None,
        retryable: bool = True,
    ):
        super().__init__(f"[{provider}] {message}")
        self.provider = provider
        self.message = message
        self.cause = cause
        self.retryable = retryable
        # Set by the orchestrator when the error leaves the pipeline
        self.stage: Optional[str] = None


class ProviderNotAvailableError(ProviderError):
    """Raised when a provider is misconfigured (no API key)."""

    def __init__(self, provider: str):
        super().__init__(provider, "Provider is not available or not configured", retryable=False)


class RateLimitError(ProviderError):
    """Raised when the provider rejects a call for quota reasons."""

    def __init__(self, provider: str, retry_after_s: Optional[float] = None, cause: Optional[BaseException] = None):
        super().__init__(provider, "Rate limit exceeded", cause=cause, retryable=True)
        self.retry_after_s = retry_after_s


class JSONParseError(ProviderError):
    """Raised when a JSON response cannot be parsed. Keeps the raw text for diagnostics."""

    def __init__(self, provider: str, raw_content: str, cause: Optional[BaseException] = None):
        super().__init__(provider, "Failed to parse JSON response", cause=cause, retryable=True)
        self.raw_content = raw_content


class ItineraryStructureError(ProviderError):
    """Raised when a drafted itinerary breaks a structural rule (empty day, placeholder name)."""

    def __init__(self, provider: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(provider, message, cause=cause, retryable=False)
