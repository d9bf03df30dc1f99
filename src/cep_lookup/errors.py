from typing import Any, Optional, Sequence

from pydantic import ValidationError


class CepLookupError(Exception):
    """Base class for every error raised by cep_lookup."""


class CepValidationError(CepLookupError):
    def __init__(self, cep: Any):
        self.cep = cep
        super().__init__("Invalid CEP format. Use either NNNNNNNN or NNNNN-NNN.")


class RateLimitError(CepLookupError):
    def __init__(self, limit: int, window: float):
        self.limit = limit
        self.window = window
        super().__init__(f"Rate limit exceeded: {limit} requests per {window}s.")


class ProviderTimeoutError(CepLookupError):
    def __init__(self, provider: str, timeout: float):
        self.provider = provider
        self.timeout = timeout
        super().__init__(f"Timeout from {provider} after {timeout}s")


class CepNotFoundError(CepLookupError):
    def __init__(self, cep: Optional[str] = None, provider: Optional[str] = None):
        self.cep = cep
        self.provider = provider
        msg = "CEP not found"
        if provider:
            msg += f" by {provider}"
        super().__init__(msg)


class ProviderResponseError(CepLookupError):
    """A provider answered with a payload that does not match its schema."""

    def __init__(self, provider: str, errors: list[dict[str, Any]], original: ValidationError | None = None):
        self.provider = provider
        self.errors = errors
        self.original = original
        super().__init__(f"Unexpected response from {provider} ({len(errors)} validation errors)")

    @classmethod
    def from_validation_error(cls, provider: str, exc: ValidationError) -> "ProviderResponseError":
        return cls(provider, [dict(e) for e in exc.errors()], original=exc)


class AllProvidersFailedError(CepLookupError):
    def __init__(self, errors: Sequence[BaseException]):
        self.errors = list(errors)
        super().__init__("All providers failed to resolve the CEP.")

    def summary(self, limit: int = 5) -> str:
        """Human-readable summary of the first few provider errors."""
        lines = []
        for err in self.errors[:limit]:
            provider = getattr(err, "provider", None) or "?"
            lines.append(f"- {provider}: {err} ({type(err).__name__})")
        if len(self.errors) > limit:
            lines.append(f"... ({len(self.errors) - limit} more)")
        return "\n".join(lines)
