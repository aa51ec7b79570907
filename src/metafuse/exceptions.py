"""Exception hierarchy for MetaFuse.

Provider errors are raised inside adapters and converted to ``None`` at the
adapter boundary, so callers of the aggregator never see them. Only
configuration errors surface, and only at startup.
"""

from typing import Optional


class MetaFuseError(Exception):
    """Base exception for all MetaFuse errors."""

    def __init__(self, message: str = "An unexpected error occurred", provider_name: Optional[str] = None):
        self.message = message
        self.provider_name = provider_name
        super().__init__(message)

    def __str__(self) -> str:
        if self.provider_name:
            return f"[{self.provider_name}] {self.message}"
        return self.message


class ProviderError(MetaFuseError):
    """Raised by an adapter when a provider call fails (HTTP error, bad payload)."""

    def __init__(
        self,
        message: str = "Provider request failed",
        provider_name: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message=message, provider_name=provider_name)
        self.status_code = status_code


class OperationCancelled(MetaFuseError):
    """Raised by ``CancellationToken.raise_if_cancelled``."""

    def __init__(self, message: str = "Operation cancelled"):
        super().__init__(message=message)


class ConfigurationError(MetaFuseError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(self, message: str = "Invalid or missing configuration"):
        super().__init__(message=message)
