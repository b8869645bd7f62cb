"""Error taxonomy for the ingestion job."""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class MemetrackError(Exception):
    """Base class for all memetrack errors."""


class ConfigurationError(MemetrackError):
    """Required configuration (credentials) is missing."""


class BitqueryTransportError(MemetrackError):
    """Network failure or non-2xx response from Bitquery."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None,
        body: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.headers = headers or {}
        self.body = body


class BitqueryAuthenticationError(BitqueryTransportError):
    """HTTP 401 - API key or access token rejected."""


class BitqueryAccessDeniedError(BitqueryTransportError):
    """HTTP 403 - credentials lack permission for the query."""


class BitqueryRateLimitError(BitqueryTransportError):
    """HTTP 429 - rate limit exceeded."""


class BitqueryGraphQLError(MemetrackError):
    """Response carried a GraphQL `errors` array."""

    def __init__(self, errors: List[Any]):
        super().__init__(f"Bitquery API returned errors: {errors}")
        self.errors = errors


class ResponseSchemaError(MemetrackError):
    """An expected field of a response is absent or malformed."""

    def __init__(self, path: str, message: str):
        super().__init__(message)
        self.path = path


class MissingFieldError(ResponseSchemaError):
    def __init__(self, path: str):
        super().__init__(path, f"Bitquery API response missing '{path}' field")


class UnexpectedTypeError(ResponseSchemaError):
    def __init__(self, path: str, expected: str, actual: str):
        super().__init__(path, f"Bitquery API response '{path}' is not {expected} (got {actual})")
        self.expected = expected
        self.actual = actual
