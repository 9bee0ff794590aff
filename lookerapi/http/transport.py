"""Transport configuration: base URL, user agent, HTTP pool and timeouts.

Set up once before the first request. The first send() freezes the config;
after that the setters raise InvalidConfigError.
"""

import re

import httpx

from lookerapi.errors import InvalidConfigError, TransportError

API_VERSION = "4.0"
VERSION = "0.1.0"
DEFAULT_USER_AGENT = f"lookerapi/{VERSION}"
DEFAULT_TIMEOUT = 60.0
DEFAULT_CONNECT_TIMEOUT = 10.0

# A versioned API segment ("/4.0", "/3.1") anywhere in the base path
_VERSION_SEGMENT = re.compile(r"/\d+\.\d+(/|$)")
_AUTH_SUFFIXES = ("/login", "/logout", "/session")


class TransportConfig:
    """Client-wide HTTP settings shared by the auth manager and request engine."""

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    ):
        self._owns_client = http_client is None
        self._http_client = http_client
        self.timeout = httpx.Timeout(timeout, connect=connect_timeout)
        self._base_url: httpx.URL | None = None
        self._user_agent = DEFAULT_USER_AGENT
        self._frozen = False

    @property
    def base_url(self) -> httpx.URL:
        if self._base_url is None:
            raise InvalidConfigError("Base URL not set")
        return self._base_url

    @property
    def user_agent(self) -> str:
        return self._user_agent

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def http_client(self) -> httpx.AsyncClient:
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._http_client

    def _ensure_mutable(self) -> None:
        if self._frozen:
            raise InvalidConfigError("Transport configuration is frozen once requests have started")

    def set_base_url(self, url: str) -> None:
        """Set the API root, e.g. https://example.cloud.looker.com/api/.

        Per-resource paths carry the version segment ("4.0/users"), so a root
        that already includes one would double-prefix every request.
        """
        self._ensure_mutable()
        try:
            parsed = httpx.URL(url)
        except (httpx.InvalidURL, TypeError) as e:
            raise InvalidConfigError(f"Malformed base URL: {url!r}", details={"base_url": url}) from e

        if parsed.scheme not in ("http", "https") or not parsed.host:
            raise InvalidConfigError(
                f"Base URL must be an absolute http(s) URL: {url!r}",
                details={"base_url": url},
            )
        if parsed.query or parsed.fragment:
            raise InvalidConfigError(
                f"Base URL must not carry a query or fragment: {url!r}",
                details={"base_url": url},
            )

        path = parsed.path.rstrip("/")
        if _VERSION_SEGMENT.search(path + "/"):
            raise InvalidConfigError(
                f"Base URL must not include the API version segment: {url!r}",
                details={"base_url": url},
            )
        if path.endswith(_AUTH_SUFFIXES):
            raise InvalidConfigError(
                f"Base URL must not include an auth endpoint: {url!r}",
                details={"base_url": url},
            )

        # Trailing slash so relative joins keep the last path segment
        self._base_url = parsed.copy_with(path=path + "/")

    def set_user_agent(self, user_agent: str) -> None:
        self._ensure_mutable()
        if not user_agent or not user_agent.strip():
            raise InvalidConfigError("User agent must not be empty")
        self._user_agent = user_agent.strip()

    def freeze(self) -> None:
        self._frozen = True

    def url_for(self, path: str) -> httpx.URL:
        """Resolve a relative API path (or absolute pagination link)."""
        return self.base_url.join(path)

    def build_request(
        self,
        method: str,
        path: str,
        *,
        headers: dict | None = None,
        params: dict | None = None,
        json: object = None,
        data: dict | None = None,
    ) -> httpx.Request:
        request_headers = {
            "User-Agent": self._user_agent,
            "Accept": "application/json",
        }
        if headers:
            request_headers.update(headers)
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        return self.http_client.build_request(
            method,
            self.url_for(path),
            headers=request_headers,
            params=params or None,
            json=json,
            data=data,
        )

    async def send(self, request: httpx.Request) -> httpx.Response:
        """Send one request. Network failures become TransportError."""
        self.freeze()
        path = request.url.path
        try:
            return await self.http_client.send(request)
        except httpx.TimeoutException as e:
            raise TransportError(f"Request timed out: {request.method} {path}", path=path) from e
        except httpx.TransportError as e:
            raise TransportError(f"Connection error: {e}", path=path) from e

    async def aclose(self) -> None:
        if self._owns_client and self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()
            self._http_client = None
