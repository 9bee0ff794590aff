"""Generic request engine shared by every resource type.

One call in, one HTTP request out: attach the bearer token and user agent,
encode the body, map non-2xx responses to typed errors, decode the JSON
body into the requested destination type. No automatic retries.
"""

from functools import lru_cache
from typing import Any, Protocol, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from lookerapi.errors import APIError, DecodeError
from lookerapi.http.pagination import PaginatedList
from lookerapi.http.response import ApiResponse, raise_for_status
from lookerapi.http.transport import TransportConfig
from lookerapi.logging.structured import (
    RequestTimer,
    generate_request_id,
    get_logger,
    request_id_var,
)

T = TypeVar("T")

logger = get_logger("http")


class TokenSource(Protocol):
    async def authorization(self) -> str: ...


@lru_cache(maxsize=None)
def _adapter(destination: Any) -> TypeAdapter:
    return TypeAdapter(destination)


def encode_body(body: Any) -> Any:
    """JSON-ready form of a request body.

    Models drop None fields and the fields they mark read-only.
    """
    if isinstance(body, BaseModel):
        read_only = getattr(type(body), "read_only_fields", frozenset())
        return body.model_dump(mode="json", by_alias=True, exclude_none=True, exclude=set(read_only))
    if isinstance(body, (list, tuple)):
        return [encode_body(item) for item in body]
    return body


def decode_body(response: httpx.Response, decode_into: Any, path: str) -> Any:
    if decode_into is None or response.status_code == 204 or not response.content:
        return None

    content_type = response.headers.get("content-type", "")
    if decode_into is str and "json" not in content_type:
        return response.text

    try:
        return _adapter(decode_into).validate_json(response.content)
    except PydanticValidationError as e:
        raise DecodeError(
            f"Unexpected response shape from {path}: {e.error_count()} validation error(s)",
            path=path,
        ) from e


class RequestEngine:
    """Issues authenticated requests against the Looker API."""

    def __init__(self, transport: TransportConfig, auth: TokenSource):
        self._transport = transport
        self._auth = auth

    async def do(
        self,
        method: str,
        path: str,
        *,
        body: Any = None,
        params: dict[str, Any] | None = None,
        decode_into: Any = None,
    ) -> ApiResponse:
        """Make one API call.

        Args:
            method: HTTP method.
            path: Path relative to the base URL (e.g. "4.0/users/1"), or an
                absolute URL on the same host (pagination links).
            body: Model, dict or list sent as JSON.
            params: Query parameters; None values are dropped.
            decode_into: Destination type for the body (model class,
                list[Model], str, ...). None skips decoding.

        Raises:
            AuthError: No valid token.
            TransportError: Network failure.
            NotFoundError / ValidationError / APIError: Non-2xx response.
            DecodeError: Body does not match decode_into.
        """
        rid = generate_request_id()
        ctx_token = request_id_var.set(rid)
        try:
            authorization = await self._auth.authorization()
            request = self._transport.build_request(
                method,
                path,
                headers={"Authorization": authorization},
                params=params,
                json=encode_body(body),
            )

            with RequestTimer() as timer:
                response = await self._transport.send(request)

            log_data = {
                "method": method,
                "path": request.url.path,
                "status": response.status_code,
                "latency_ms": timer.elapsed_ms,
            }
            try:
                raise_for_status(response)
            except APIError as e:
                logger.warning("API request failed", extra={"log_data": {**log_data, "error": e.message}})
                raise
            logger.debug("API request", extra={"log_data": log_data})

            data = decode_body(response, decode_into, request.url.path)
            return ApiResponse.from_httpx(response, data)
        finally:
            request_id_var.reset(ctx_token)

    def paginate(
        self,
        path: str,
        item_type: type[T],
        *,
        params: dict[str, Any] | None = None,
        page_size: int | None = None,
    ) -> PaginatedList[T]:
        """Lazy sequence over every page of a list endpoint."""
        params = dict(params or {})
        if page_size:
            params["limit"] = page_size
        return PaginatedList(self, path, item_type, params=params)

    async def list_all(
        self,
        path: str,
        item_type: type[T],
        *,
        params: dict[str, Any] | None = None,
        page_size: int | None = None,
    ) -> ApiResponse[list[T]]:
        """Drain every page; returns the last page's envelope holding all items."""
        pages = self.paginate(path, item_type, params=params, page_size=page_size)
        items = await pages.collect()
        response = pages.last_response
        response.data = items
        return response
