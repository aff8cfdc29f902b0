"""
Error taxonomy for the retrieval pipeline.

Request validation itself is done with pydantic models at the API/CLI boundary;
everything raised from inside the pipeline derives from RetrievalError.
"""

from __future__ import annotations


class RetrievalError(Exception):
    """Base class for all pipeline errors."""


class RetrievalInputError(RetrievalError):
    """A requested source could not be used (blocked or failed to fetch)."""


class BlockedUrlError(RetrievalInputError):
    """URL targets a disallowed scheme or a private/loopback/link-local host."""


class FetchError(RetrievalInputError):
    """Fetching a URL failed (network error, timeout or non-2xx response)."""


class EphemeralModeError(RetrievalInputError):
    """An unscoped question was asked while durable storage is disabled."""


class ProviderError(RetrievalError):
    """Embedding or answer-generation backend failed."""


class DimensionMismatchError(RetrievalError):
    """Vectors of different lengths met; the embedding model has changed."""


class StoreCorruption(RetrievalError):
    """Persisted store could not be read or parsed."""


class StoreTimeoutError(RetrievalError):
    """The store lock could not be acquired in time."""


__all__ = [
    "RetrievalError",
    "RetrievalInputError",
    "BlockedUrlError",
    "FetchError",
    "EphemeralModeError",
    "ProviderError",
    "DimensionMismatchError",
    "StoreCorruption",
    "StoreTimeoutError",
]
