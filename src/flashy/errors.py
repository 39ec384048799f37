"""Error taxonomy for deck generation and export.

Provider and parsing failures derive from GenerationError so callers can
report "generation failed" without caring which layer broke. Package and
archive failures are kept separate: they never involve the network.
"""
from __future__ import annotations


class FlashyError(RuntimeError):
    pass


class GenerationError(FlashyError):
    pass


class ProviderNetworkError(GenerationError):
    """The provider could not be reached at all."""


class UpstreamError(GenerationError):
    """Non-success response from the provider."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class AuthenticationError(UpstreamError):
    pass


class InsufficientBalanceError(UpstreamError):
    pass


class RateLimitError(UpstreamError):
    pass


class UpstreamUnavailableError(UpstreamError):
    pass


class EmptyResponseError(GenerationError):
    pass


class UnparseableOutputError(GenerationError):
    pass


class PackageGenerationError(FlashyError):
    pass


class PackagingError(FlashyError):
    pass


class DocumentError(FlashyError):
    pass


class UnsupportedDocumentError(DocumentError):
    pass


class DocumentReadError(DocumentError):
    pass


class HistoryError(FlashyError):
    """The deck history file exists but cannot be read or safely rewritten."""
