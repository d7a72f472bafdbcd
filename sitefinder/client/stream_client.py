"""An HTTP client for the search stream endpoint."""

import logging
from typing import Any, AsyncIterator

import httpx
import orjson
from pydantic import ValidationError

from sitefinder.configs import settings
from sitefinder.exceptions import StreamRequestError
from sitefinder.probe.models import DomainUpdate, SearchRequest, parse_record
from sitefinder.utils.http_client import create_http_client

logger = logging.getLogger(__name__)

SEARCH_PATH = "/api/v1/search"
RANDOM_WORD_PATH = "/api/v1/random-word"


class SearchStreamClient:
    """Read the NDJSON update stream and yield parsed `DomainUpdate`s."""

    http_client: httpx.AsyncClient

    def __init__(
        self,
        base_url: str = settings.client.base_url,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.http_client = http_client or create_http_client(
            base_url=base_url,
            connect_timeout=settings.client.connect_timeout_sec,
            read_timeout=settings.client.read_timeout_sec,
        )

    def search(self, keyword: str) -> AsyncIterator[DomainUpdate]:
        """Stream the updates of a keyword search across all TLDs."""
        request = SearchRequest(keyword=keyword)
        return self._stream(request.model_dump(by_alias=True, exclude_none=True))

    def recheck(self, domain: str) -> AsyncIterator[DomainUpdate]:
        """Stream the updates of a single-domain recheck."""
        request = SearchRequest.for_recheck(domain)
        return self._stream(request.model_dump(by_alias=True, exclude_none=True))

    async def random_word(self) -> str:
        """Fetch a random keyword.

        Raises:
            - `StreamRequestError` if the request fails.
        """
        try:
            response = await self.http_client.get(RANDOM_WORD_PATH)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise StreamRequestError(f"Failed to get random word: {e}") from e
        return response.json()["word"]

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.http_client.aclose()

    async def _stream(self, payload: dict[str, Any]) -> AsyncIterator[DomainUpdate]:
        """Yield records line by line. Records split across chunks are reassembled by
        `aiter_lines`, malformed lines are logged and skipped.

        Raises:
            - `StreamRequestError` on a non-2xx response or a transport failure.
        """
        try:
            async with self.http_client.stream("POST", SEARCH_PATH, json=payload) as response:
                if response.is_error:
                    await response.aread()
                    raise StreamRequestError(
                        f"Search request failed with HTTP {response.status_code}"
                    )
                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    try:
                        update = parse_record(line)
                    except (orjson.JSONDecodeError, ValidationError) as e:
                        logger.warning("Skipping malformed stream record", extra={"error": str(e)})
                        continue
                    yield update
        except httpx.HTTPError as e:
            raise StreamRequestError(f"Search stream failed: {e}") from e
