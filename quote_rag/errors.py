"""Error types raised by the quote pipeline.

Every error carries an optional ``stage`` so the API and CLI can say where
a run stopped without retrying blindly.
"""


class QuoteError(Exception):
    """Base class for all pipeline errors."""

    def __init__(self, message: str, stage: str | None = None):
        super().__init__(message)
        self.stage = stage

    def __str__(self) -> str:
        message = super().__str__()
        if self.stage:
            return f"[{self.stage}] {message}"
        return message


class ConfigurationError(QuoteError):
    """Missing or invalid settings."""


class AuthError(QuoteError):
    """Credential exchange with the identity endpoint failed."""


class TransportError(QuoteError):
    """Network failure or non-2xx response from a provider."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
        stage: str | None = None,
    ):
        super().__init__(message, stage=stage)
        self.status_code = status_code
        self.body = body


class ModelOutputError(QuoteError):
    """The model answered, but not with the structured data we asked for."""

    def __init__(self, message: str, raw_text: str | None = None, stage: str | None = None):
        super().__init__(message, stage=stage)
        self.raw_text = raw_text


class EmptyResponseError(ModelOutputError):
    """Provider returned zero choices or empty content."""


class NotFoundError(QuoteError):
    """No catalog product is relevant to the query."""


class CatalogError(QuoteError):
    """The catalog could not be built from its raw source."""


class PersistenceError(QuoteError):
    """Writing the catalog cache or a quote log failed."""


class RenderError(QuoteError):
    """The document template could not be filled."""
