"""Link-header pagination over Looker list endpoints."""

from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any, Generic, TypeVar

import httpx

from lookerapi.errors import DecodeError, PaginationError
from lookerapi.http.response import ApiResponse
from lookerapi.logging.structured import get_logger

if TYPE_CHECKING:
    from lookerapi.http.engine import RequestEngine

T = TypeVar("T")

logger = get_logger("pagination")


class PaginatedList(Generic[T]):
    """Async iterator over the entities of a paginated list endpoint.

    Pages are fetched one at a time, following the ``rel="next"`` link of each
    response until there is none. Items are yielded in server order without
    deduplication. A next link that points back at a page already fetched
    raises PaginationError instead of looping.

    Single use: once consumed, iterate again by asking the resource for a new
    list.
    """

    def __init__(
        self,
        engine: "RequestEngine",
        path: str,
        item_type: type[T],
        params: dict[str, Any] | None = None,
    ):
        self._engine = engine
        self._path = path
        self._item_type = item_type
        self._params = params or None
        self._iterator = self._walk()
        self.last_response: ApiResponse[list[T]] | None = None
        self.pages = 0

    def __aiter__(self) -> "PaginatedList[T]":
        return self

    async def __anext__(self) -> T:
        return await self._iterator.__anext__()

    async def collect(self) -> list[T]:
        return [item async for item in self]

    async def _walk(self) -> AsyncIterator[T]:
        visited: set[str] = set()
        origin: tuple | None = None
        target: str | None = self._path
        params = self._params

        while target is not None:
            response = await self._engine.do("GET", target, params=params, decode_into=list[self._item_type])
            params = None  # Next links carry their own query string

            self.last_response = response
            self.pages += 1
            visited.add(_normalize(response.url))
            origin = origin or _origin(response.url)

            if response.data is None:
                raise DecodeError(f"Expected a JSON array page from {response.url}", path=httpx.URL(response.url).path)

            for item in response.data:
                yield item

            target = response.next_url
            if target is None:
                break
            if _normalize(target) in visited:
                raise PaginationError(f"Pagination link revisits an already fetched page: {target}", url=target)
            if _origin(target) != origin:
                raise PaginationError(f"Pagination link leaves the API host: {target}", url=target)

            logger.debug("Following next page", extra={"log_data": {"page": self.pages + 1}})


def _origin(url: str) -> tuple:
    """Scheme, host and port; a next link must not change any of them."""
    parsed = httpx.URL(url)
    return parsed.scheme, parsed.host, parsed.port


def _normalize(url: str) -> str:
    """Canonical form for visited-page comparison (sorted query params)."""
    parsed = httpx.URL(url)
    query = sorted(parsed.params.multi_items())
    return str(parsed.copy_with(query=None, fragment=None)) + "?" + "&".join(f"{k}={v}" for k, v in query)
