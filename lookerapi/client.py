"""Looker API client facade.

Bundles the transport config, the auth session manager and one operation
set per resource type behind a single object:

    settings = Settings(base_url="https://acme.cloud.looker.com/api/",
                        client_id="...", client_secret="...")
    async with LookerClient(settings) as looker:
        users = await looker.users.list()
        dev, session = await looker.create_dev_connection()
        await dev.projects.create(Project(name="analytics"))

Settings are passed in explicitly; the client keeps no module-level state.
"""

import time
from collections.abc import Callable

import httpx

from lookerapi.auth.session import AuthSessionManager, Session, Workspace
from lookerapi.config.settings import Settings, get_settings
from lookerapi.errors import DevSessionError, LookerError, SessionError
from lookerapi.http.engine import RequestEngine
from lookerapi.http.transport import DEFAULT_USER_AGENT, TransportConfig
from lookerapi.logging.structured import get_logger
from lookerapi.resources.connections import Connections
from lookerapi.resources.groups import GroupMembers, Groups
from lookerapi.resources.lookml_models import LookmlModels
from lookerapi.resources.model_sets import ModelSets
from lookerapi.resources.permission_sets import PermissionSets
from lookerapi.resources.projects import Projects
from lookerapi.resources.roles import RoleMembers, Roles
from lookerapi.resources.users import Users
from lookerapi.resources.workspaces import Workspaces

logger = get_logger("client")


def _dev_session_error(cause: LookerError) -> DevSessionError:
    return DevSessionError(
        f"Unable to create dev workspace connection: {cause.message}",
        details=cause.to_dict(),
    )


class LookerClient:
    """Single entry point for the Looker 4.0 API."""

    def __init__(
        self,
        settings: Settings,
        *,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the client. No network I/O happens until connect().

        Args:
            settings: Base URL, credentials and tuning knobs.
            http_client: Shared httpx pool (created and owned here if omitted).
            clock: Time source for token expiry.

        Raises:
            InvalidConfigError: Base URL or user agent rejected.

        """
        self.settings = settings
        self._clock = clock

        self.transport = TransportConfig(
            http_client=http_client,
            timeout=settings.timeout,
            connect_timeout=settings.connect_timeout,
        )
        self.transport.set_base_url(settings.base_url)
        self.transport.set_user_agent(settings.user_agent or DEFAULT_USER_AGENT)

        self.auth = AuthSessionManager(
            self.transport,
            refresh_margin=settings.token_refresh_margin,
            clock=clock,
        )
        self.engine = RequestEngine(self.transport, self.auth)

        page_size = settings.page_size
        self.users = Users(self.engine, page_size)
        self.groups = Groups(self.engine, page_size)
        self.group_members = GroupMembers(self.engine, page_size)
        self.roles = Roles(self.engine, page_size)
        self.role_members = RoleMembers(self.engine)
        self.permission_sets = PermissionSets(self.engine, page_size)
        self.model_sets = ModelSets(self.engine, page_size)
        self.connections = Connections(self.engine, page_size)
        self.projects = Projects(self.engine, page_size)
        self.lookml_models = LookmlModels(self.engine, page_size)
        self.workspaces = Workspaces(self.engine, page_size)

        # Populated by connect() when settings.create_dev_connection is set
        self.dev: LookerClient | None = None
        self.dev_error: DevSessionError | None = None

    @classmethod
    def from_env(cls, **kwargs) -> "LookerClient":
        """Build from LOOKER_* environment variables (and .env)."""
        return cls(get_settings(), **kwargs)

    @property
    def session(self) -> Session | None:
        return self.auth.session

    async def connect(self) -> Session:
        """Authenticate and fetch the active session.

        A failed dev connection (when requested via settings) is logged and
        kept on ``dev_error``; it does not fail the primary connection.

        Raises:
            InvalidConfigError: Missing base URL or credentials.
            AuthError: Credentials rejected.
            SessionError / UnknownWorkspaceError: Session unusable.
        """
        self.settings.validate_for_connect()
        await self.auth.authenticate(self.settings.client_id, self.settings.client_secret)
        session = await self.auth.current_session()

        if self.settings.create_dev_connection:
            try:
                self.dev, _ = await self.create_dev_connection()
                self.dev_error = None
            except DevSessionError as e:
                self.dev_error = e
                logger.warning("Dev workspace connection unavailable", extra={"log_data": e.to_dict()})

        return session

    async def create_dev_connection(self) -> tuple["LookerClient", Session]:
        """Open a second, independently authenticated client in the dev workspace.

        The new client shares this client's HTTP pool but has its own token
        and session. Failure leaves this client untouched.

        Raises:
            DevSessionError: Login or workspace switch failed, or the server
                left the session outside the dev workspace.
        """
        try:
            self.settings.validate_for_connect()
            dev = LookerClient(self.settings, http_client=self.transport.http_client, clock=self._clock)
            await dev.auth.authenticate(self.settings.client_id, self.settings.client_secret)
        except LookerError as e:
            raise _dev_session_error(e) from e

        try:
            session = await dev.auth.switch_workspace(Workspace.DEV)
            if not session.is_dev:
                raise SessionError(
                    f"Session is in the {session.workspace.value} workspace after switching to dev",
                    details={"workspace_id": session.workspace.value},
                )
        except LookerError as e:
            await dev._discard()
            raise _dev_session_error(e) from e

        logger.info("Dev workspace connection established")
        return dev, session

    async def _discard(self) -> None:
        """Best-effort logout of a half-built client; its pool is borrowed."""
        try:
            await self.auth.logout()
        except LookerError as e:
            logger.warning("Logout of discarded dev client failed", extra={"log_data": e.to_dict()})

    async def logout(self) -> None:
        await self.auth.logout()

    async def aclose(self) -> None:
        if self.dev is not None:
            await self.dev.aclose()
            self.dev = None
        await self.transport.aclose()

    async def __aenter__(self) -> "LookerClient":
        try:
            await self.connect()
        except BaseException:
            await self.aclose()
            raise
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()
