"""Bitquery GraphQL client shared by all feeds."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from memetrack.core.config import settings
from memetrack.core.errors import (
    BitqueryAccessDeniedError,
    BitqueryAuthenticationError,
    BitqueryGraphQLError,
    BitqueryRateLimitError,
    BitqueryTransportError,
    ConfigurationError,
    MissingFieldError,
    UnexpectedTypeError,
)
from memetrack.core.logging import get_logger
from memetrack.schemas.bitquery import BlockInfo

log = get_logger("ingestion.bitquery")

RecordT = TypeVar("RecordT", bound=BaseModel)

_STATUS_ERRORS: Dict[int, tuple[Type[BitqueryTransportError], str]] = {
    401: (BitqueryAuthenticationError, "Bitquery API authentication failed - check API key and access token"),
    403: (BitqueryAccessDeniedError, "Bitquery API access denied - check API permissions"),
    429: (BitqueryRateLimitError, "Bitquery API rate limit exceeded - try again later"),
}


class BitqueryClient:
    """Issues one GraphQL POST per call and returns the decoded body.

    Pass ``http_client`` to reuse a connection pool (or a mock transport in
    tests); otherwise a client is opened per request.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        access_token: Optional[str] = None,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.BITQUERY_API_KEY
        self.access_token = access_token if access_token is not None else settings.ACCESS_TOKEN
        self.url = url or settings.BITQUERY_URL
        self.timeout = timeout or settings.BITQUERY_TIMEOUT_SECONDS
        self._http = http_client

    def _headers(self) -> Dict[str, str]:
        if not self.api_key:
            raise ConfigurationError("BITQUERY_API_KEY environment variable is not set")
        if not self.access_token:
            raise ConfigurationError("ACCESS_TOKEN environment variable is not set")
        return {
            "Content-Type": "application/json",
            "X-API-KEY": self.api_key,
            "Authorization": f"Bearer {self.access_token}",
        }

    async def _post(self, body: Dict[str, Any], headers: Dict[str, str]) -> httpx.Response:
        if self._http is not None:
            return await self._http.post(self.url, json=body, headers=headers)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(self.url, json=body, headers=headers)

    async def execute(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        headers = self._headers()
        body = {"query": query, "variables": variables or {}}

        try:
            resp = await self._post(body, headers)
        except httpx.RequestError as exc:
            log.error(f"Network error calling Bitquery at {self.url}: {exc!r}")
            raise BitqueryTransportError(f"Network error calling Bitquery: {exc}") from exc

        if not resp.is_success:
            self._raise_for_status(resp)

        try:
            data = resp.json()
        except ValueError as exc:
            log.error(f"Bitquery returned a non-JSON body (status={resp.status_code}): {resp.text[:500]}")
            raise BitqueryTransportError(
                "Bitquery API returned a non-JSON body",
                status_code=resp.status_code,
                headers=dict(resp.headers),
                body=resp.text,
            ) from exc

        if not isinstance(data, dict):
            log.error(f"Bitquery returned a {type(data).__name__} body instead of an object")
            raise BitqueryTransportError(
                "No response data received from Bitquery API",
                status_code=resp.status_code,
                headers=dict(resp.headers),
                body=data,
            )

        if data.get("errors"):
            log.error(f"Bitquery API errors: {data['errors']}")
            raise BitqueryGraphQLError(data["errors"])

        return data

    @staticmethod
    def _raise_for_status(resp: httpx.Response) -> None:
        error_cls, message = _STATUS_ERRORS.get(
            resp.status_code,
            (BitqueryTransportError, f"Bitquery API request failed with HTTP {resp.status_code}"),
        )
        log.error(
            f"HTTP response error | status={resp.status_code} reason={resp.reason_phrase} "
            f"headers={dict(resp.headers)} body={resp.text}"
        )
        raise error_cls(
            message,
            status_code=resp.status_code,
            headers=dict(resp.headers),
            body=resp.text,
        )


def extract_feed(payload: Dict[str, Any], field: str) -> List[Any]:
    """Return ``payload.data.Solana.<field>`` or raise a schema error naming the missing level."""
    data = payload.get("data")
    if data is None:
        log.error(f"Unexpected response structure - no 'data' field. Keys: {list(payload)}")
        raise MissingFieldError("data")
    if not isinstance(data, dict):
        raise UnexpectedTypeError("data", "an object", type(data).__name__)

    solana = data.get("Solana")
    if solana is None:
        log.error(f"Unexpected response structure - no 'Solana' field. Available: {list(data)}")
        raise MissingFieldError("data.Solana")
    if not isinstance(solana, dict):
        raise UnexpectedTypeError("data.Solana", "an object", type(solana).__name__)

    path = f"data.Solana.{field}"
    items = solana.get(field)
    if items is None:
        log.error(f"Unexpected response structure - no '{field}' field. Solana fields: {list(solana)}")
        raise MissingFieldError(path)
    if not isinstance(items, list):
        log.error(f"Unexpected response structure - '{field}' is {type(items).__name__}, not an array")
        raise UnexpectedTypeError(path, "an array", type(items).__name__)

    return items


def parse_records(items: List[Any], model: Type[RecordT], feed: str) -> List[RecordT]:
    """Validate each item; malformed items are logged and skipped."""
    records: List[RecordT] = []
    for index, item in enumerate(items):
        try:
            records.append(model.model_validate(item))
        except ValidationError as exc:
            log.warning(f"Skipping malformed {feed} record #{index}: {exc.errors(include_url=False)}")
    return records


def observed_block_times(items: List[Any]) -> List[datetime]:
    """``Block.Time`` of every raw item that carries one, whether or not the rest of it is valid."""
    times: List[datetime] = []
    for item in items:
        block = item.get("Block") if isinstance(item, dict) else None
        try:
            times.append(BlockInfo.model_validate(block).time)
        except ValidationError:
            continue
    return times
