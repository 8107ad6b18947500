"""Error taxonomy for the aggregation pipeline.

None of these escape ``get_categorized_results``: each is caught at the
boundary of the stage that raised it and converted into a skipped item,
an empty adapter result, an empty enhancement result or a cache miss.
"""

from __future__ import annotations


class BriefingError(Exception):
    """Base class for pipeline errors."""


class FetchError(BriefingError):
    """A single HTTP attempt failed.

    Attributes:
        kind: "timeout", "connection", "http_status", "invalid_response" or "unexpected"
        retryable: Whether the fetcher may try the same URL again
        status_code: HTTP status when a response was received
    """

    def __init__(
        self,
        message: str,
        kind: str,
        retryable: bool = False,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.retryable = retryable
        self.status_code = status_code


class ParseError(BriefingError):
    """A page or feed did not have the expected structure."""


class EnhancementError(BriefingError):
    """The text-generation collaborator failed or returned nothing usable."""


class CacheError(BriefingError):
    """A cache entry could not be read or written."""
