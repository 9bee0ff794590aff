"""OAuth2 client-credential exchange and workspace-aware session state.

The manager is the only component that sees the access token. Everything
else asks for an Authorization header value via authorization(), which
re-exchanges credentials when the token is close to expiry.

Looker issues no refresh token for API3 credentials, so refreshing means
logging in again with the same client id/secret. Concurrent callers that
find an expiring token share a single exchange: the first one holds the
lock and the others re-check the token once they acquire it.

State machine:

    UNAUTHENTICATED -> AUTHENTICATING -> AUTHENTICATED <-> REFRESHING
    AUTHENTICATING / REFRESHING -> FAILED   (credentials rejected)

FAILED is terminal until authenticate() is called again.
"""

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from pydantic import SecretStr

from lookerapi.errors import (
    APIError,
    AuthError,
    LookerError,
    SessionError,
    TransportError,
    UnknownWorkspaceError,
)
from lookerapi.http.response import raise_for_status
from lookerapi.http.transport import API_VERSION, TransportConfig
from lookerapi.logging.structured import get_logger

LOGIN_PATH = f"{API_VERSION}/login"
LOGOUT_PATH = f"{API_VERSION}/logout"
SESSION_PATH = f"{API_VERSION}/session"

DEFAULT_REFRESH_MARGIN = 60.0

logger = get_logger("auth")


class Workspace(str, Enum):
    PRODUCTION = "production"
    DEV = "dev"

    @classmethod
    def parse(cls, value: object) -> "Workspace":
        try:
            return cls(value)
        except ValueError:
            raise UnknownWorkspaceError(value) from None


class AuthState(Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    REFRESHING = "refreshing"
    FAILED = "failed"


@dataclass(frozen=True)  # Token is immutable
class AccessToken:
    access_token: str = field(repr=False)
    token_type: str
    expires_in: int
    expires_at: float

    def expiring(self, margin: float = 0.0, now: float | None = None) -> bool:
        now = time.time() if now is None else now
        return now + margin >= self.expires_at


@dataclass(frozen=True)
class Session:
    """Read-only view of the authenticated context."""

    workspace: Workspace
    sudo_user_id: str | None = None
    expires_at: float | None = None

    @property
    def is_dev(self) -> bool:
        return self.workspace is Workspace.DEV


@dataclass(frozen=True)
class _Credentials:
    client_id: str
    client_secret: SecretStr = field(repr=False)


class AuthSessionManager:
    """Owns the access token and the cached session for one client."""

    def __init__(
        self,
        transport: TransportConfig,
        refresh_margin: float = DEFAULT_REFRESH_MARGIN,
        clock: Callable[[], float] = time.time,
    ):
        self._transport = transport
        self._refresh_margin = refresh_margin
        self._clock = clock
        self._lock = asyncio.Lock()
        self._state = AuthState.UNAUTHENTICATED
        self._credentials: _Credentials | None = None
        self._token: AccessToken | None = None
        self._session: Session | None = None

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self._state in (AuthState.AUTHENTICATED, AuthState.REFRESHING) and self._token is not None

    @property
    def token_expires_at(self) -> float | None:
        return self._token.expires_at if self._token else None

    # =========================================================================
    # Credential exchange
    # =========================================================================

    async def authenticate(self, client_id: str, client_secret: str | SecretStr) -> None:
        """Log in with API3 credentials and cache the resulting token.

        Raises:
            AuthError: Login rejected or token payload malformed.
            TransportError: Login endpoint unreachable.
        """
        if not isinstance(client_secret, SecretStr):
            client_secret = SecretStr(client_secret)
        credentials = _Credentials(client_id=client_id, client_secret=client_secret)

        async with self._lock:
            self._state = AuthState.AUTHENTICATING
            self._token = None
            self._session = None
            self._credentials = None
            try:
                token = await self._exchange(credentials)
            except asyncio.CancelledError:
                self._state = AuthState.UNAUTHENTICATED
                raise
            except AuthError:
                self._state = AuthState.FAILED
                raise
            except LookerError:
                self._state = AuthState.UNAUTHENTICATED
                raise

            self._credentials = credentials
            self._token = token
            self._state = AuthState.AUTHENTICATED

        logger.info(
            "Authenticated to Looker API",
            extra={"log_data": {"client_id": client_id, "expires_in": token.expires_in}},
        )

    async def _exchange(self, credentials: _Credentials) -> AccessToken:
        """POST /login. Must not go through authorization() (it holds the lock)."""
        request = self._transport.build_request(
            "POST",
            LOGIN_PATH,
            data={
                "client_id": credentials.client_id,
                "client_secret": credentials.client_secret.get_secret_value(),
            },
        )
        logger.debug("Exchanging client credentials", extra={"log_data": {"client_id": credentials.client_id}})
        response = await self._transport.send(request)

        if not response.is_success:
            raise AuthError(
                f"Unable to authenticate with client ID '{credentials.client_id}'. "
                "Check that your credentials are correct and try again.",
                details={"status": response.status_code, "client_id": credentials.client_id},
            )

        try:
            payload = response.json()
            expires_in = int(payload["expires_in"])
            token = AccessToken(
                access_token=payload["access_token"],
                token_type=str(payload.get("token_type") or "Bearer"),
                expires_in=expires_in,
                expires_at=self._clock() + expires_in,
            )
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise AuthError("Malformed token payload from login endpoint") from e

        if not isinstance(token.access_token, str) or not token.access_token:
            raise AuthError("Login endpoint returned an empty access token")
        return token

    # =========================================================================
    # Token access and refresh
    # =========================================================================

    async def authorization(self) -> str:
        """Authorization header value for the next outgoing request."""
        token = await self._valid_token()
        return f"Bearer {token.access_token}"

    async def _valid_token(self) -> AccessToken:
        token = self._token
        if self._state is AuthState.AUTHENTICATED and token is not None and not self._expiring(token):
            return token

        async with self._lock:
            if self._state is AuthState.FAILED:
                raise AuthError("Client authentication failed; call authenticate() again")
            if self._state is AuthState.UNAUTHENTICATED or self._token is None:
                raise AuthError("Client is not authenticated")
            # Another caller may have refreshed while we waited
            if self._expiring(self._token):
                await self._refresh()
            return self._token

    def _expiring(self, token: AccessToken) -> bool:
        return token.expiring(self._refresh_margin, self._clock())

    async def _refresh(self) -> None:
        """Re-exchange credentials. Caller must hold the lock."""
        if self._credentials is None:
            self._fail()
            raise AuthError("No credentials cached for refresh; call authenticate() again")
        self._state = AuthState.REFRESHING
        logger.info("Access token expiring, re-authenticating")

        try:
            token = await self._exchange(self._credentials)
            session = self._session
            # A fresh token starts in production; keep a dev session in dev
            if session is not None and session.is_dev:
                session = await self._session_request("PATCH", token, {"workspace_id": Workspace.DEV.value})
        except (AuthError, UnknownWorkspaceError):
            self._fail()
            raise
        except BaseException:
            # Cancellation or transient failure: keep the old token, retry next call
            self._state = AuthState.AUTHENTICATED
            raise

        self._token = token
        self._session = session
        self._state = AuthState.AUTHENTICATED

    def _fail(self) -> None:
        self._state = AuthState.FAILED
        self._token = None
        self._session = None
        self._credentials = None

    # =========================================================================
    # Session
    # =========================================================================

    async def current_session(self, refresh: bool = False) -> Session:
        """Return the cached session, fetching GET /session if needed.

        Raises:
            SessionError: The session call failed.
            UnknownWorkspaceError: Workspace is neither production nor dev.
                The manager is marked FAILED; no further calls proceed.
        """
        if self._session is not None and not refresh:
            return self._session

        token = await self._valid_token()
        try:
            session = await self._session_request("GET", token)
        except UnknownWorkspaceError:
            self._fail()
            logger.error("Session workspace unrecognized; client disabled")
            raise

        self._session = session
        logger.info("Session established", extra={"log_data": {"workspace": session.workspace.value}})
        return session

    async def switch_workspace(self, workspace: Workspace) -> Session:
        """PATCH /session to move this token into another workspace."""
        token = await self._valid_token()
        session = await self._session_request("PATCH", token, {"workspace_id": workspace.value})
        self._session = session
        logger.info("Switched workspace", extra={"log_data": {"workspace": session.workspace.value}})
        return session

    async def _session_request(self, method: str, token: AccessToken, body: dict | None = None) -> Session:
        request = self._transport.build_request(
            method,
            SESSION_PATH,
            headers={"Authorization": f"Bearer {token.access_token}"},
            json=body,
        )
        try:
            response = await self._transport.send(request)
            raise_for_status(response)
            payload = response.json()
        except (APIError, TransportError) as e:
            raise SessionError(
                f"Unable to {'get' if method == 'GET' else 'update'} the session: {e.message}",
                details=e.to_dict(),
            ) from e
        except ValueError as e:
            raise SessionError("Malformed session payload") from e

        if not isinstance(payload, dict):
            raise SessionError("Malformed session payload")

        return Session(
            workspace=Workspace.parse(payload.get("workspace_id")),
            sudo_user_id=payload.get("sudo_user_id"),
            expires_at=token.expires_at,
        )

    # =========================================================================
    # Logout
    # =========================================================================

    async def logout(self) -> None:
        """DELETE /logout and forget the token. Already-invalid tokens are fine."""
        async with self._lock:
            token = self._token
            try:
                if token is not None:
                    request = self._transport.build_request(
                        "DELETE",
                        LOGOUT_PATH,
                        headers={"Authorization": f"Bearer {token.access_token}"},
                    )
                    response = await self._transport.send(request)
                    if response.status_code not in (401, 404):
                        raise_for_status(response)
            finally:
                self._token = None
                self._session = None
                self._credentials = None
                self._state = AuthState.UNAUTHENTICATED
