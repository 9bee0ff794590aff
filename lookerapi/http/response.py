"""Uniform envelope around every API call result."""

from dataclasses import dataclass, field
from typing import Generic, TypeVar

import httpx

from lookerapi.errors import APIError, NotFoundError, ValidationError

T = TypeVar("T")


@dataclass
class ApiResponse(Generic[T]):
    status_code: int
    url: str
    headers: httpx.Headers = field(repr=False)
    raw_body: bytes = field(repr=False)
    next_url: str | None = None  # Absolute URL of the next page, if any
    data: T | None = None

    @property
    def has_next(self) -> bool:
        return self.next_url is not None

    @classmethod
    def from_httpx(cls, response: httpx.Response, data: T | None = None) -> "ApiResponse[T]":
        next_link = response.links.get("next", {}).get("url")
        next_url = str(response.request.url.join(next_link)) if next_link else None
        return cls(
            status_code=response.status_code,
            url=str(response.request.url),
            headers=response.headers,
            raw_body=response.content,
            next_url=next_url,
            data=data,
        )


def raise_for_status(response: httpx.Response) -> None:
    """Map a non-2xx response to APIError / NotFoundError / ValidationError."""
    if response.is_success:
        return

    path = response.request.url.path
    status = response.status_code
    message = response.reason_phrase or f"HTTP {status}"
    documentation_url = None
    errors: list[dict] = []
    body = None

    # Looker errors: {"message": "...", "documentation_url": "...", "errors": [...]}
    try:
        body = response.json()
    except ValueError:
        if response.text:
            message = response.text[:500]

    if isinstance(body, dict):
        message = body.get("message") or message
        documentation_url = body.get("documentation_url")
        if isinstance(body.get("errors"), list):
            errors = [e for e in body["errors"] if isinstance(e, dict)]

    details = body if isinstance(body, dict) else None
    kwargs = {"status": status, "path": path, "documentation_url": documentation_url, "details": details}

    if status == 404:
        raise NotFoundError(message, **kwargs)
    if 400 <= status < 500 and errors:
        raise ValidationError(message, errors=errors, **kwargs)
    raise APIError(message, **kwargs)
