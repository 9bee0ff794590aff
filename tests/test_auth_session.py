"""Tests for lookerapi/auth/session.py — credential exchange, refresh, session."""

import asyncio
import logging

import httpx
import pytest

from tests.conftest import BASE_URL, CLIENT_ID, CLIENT_SECRET
from lookerapi.auth.session import AccessToken, AuthSessionManager, AuthState, Workspace
from lookerapi.errors import AuthError, SessionError, TransportError, UnknownWorkspaceError
from lookerapi.http.transport import TransportConfig


@pytest.fixture
def transport(http_client) -> TransportConfig:
    transport = TransportConfig(http_client=http_client)
    transport.set_base_url(BASE_URL)
    return transport


@pytest.fixture
def manager(transport, clock) -> AuthSessionManager:
    return AuthSessionManager(transport, refresh_margin=60.0, clock=clock)


class TestAuthenticate:

    async def test_success_caches_token(self, manager, fake_looker, clock):
        await manager.authenticate(CLIENT_ID, CLIENT_SECRET)
        assert manager.state is AuthState.AUTHENTICATED
        assert manager.is_authenticated
        assert manager.token_expires_at == clock.now + 3600
        assert await manager.authorization() == "Bearer token-1"

    async def test_login_is_form_encoded(self, manager, fake_looker):
        await manager.authenticate(CLIENT_ID, CLIENT_SECRET)
        (login,) = fake_looker.calls("POST", "4.0/login")
        assert login.headers["content-type"] == "application/x-www-form-urlencoded"
        assert b"client_id=api-client-1" in login.content

    async def test_rejected_credentials(self, manager, fake_looker):
        with pytest.raises(AuthError, match=CLIENT_ID):
            await manager.authenticate(CLIENT_ID, "wrong-secret")
        assert manager.state is AuthState.FAILED
        assert manager.token_expires_at is None
        assert not manager.is_authenticated

    async def test_failed_state_makes_no_further_calls(self, manager, fake_looker):
        with pytest.raises(AuthError):
            await manager.authenticate(CLIENT_ID, "wrong-secret")
        sent = len(fake_looker.requests)
        with pytest.raises(AuthError, match="authenticate"):
            await manager.authorization()
        assert len(fake_looker.requests) == sent

    async def test_reauthenticate_recovers_from_failed(self, manager):
        with pytest.raises(AuthError):
            await manager.authenticate(CLIENT_ID, "wrong-secret")
        await manager.authenticate(CLIENT_ID, CLIENT_SECRET)
        assert manager.state is AuthState.AUTHENTICATED

    @pytest.mark.parametrize("payload", [
        {"token_type": "Bearer", "expires_in": 3600},
        {"access_token": "t", "token_type": "Bearer"},
        {"access_token": "t", "expires_in": "soon"},
        {"access_token": None, "expires_in": 3600},
        {"access_token": "", "expires_in": 3600},
        ["not", "an", "object"],
    ])
    async def test_malformed_token_payload(self, manager, fake_looker, payload):
        fake_looker.respond("POST", "4.0/login", payload)
        with pytest.raises(AuthError):
            await manager.authenticate(CLIENT_ID, CLIENT_SECRET)
        assert manager.state is AuthState.FAILED
        assert manager.token_expires_at is None

    async def test_non_json_token_payload(self, manager, fake_looker):
        fake_looker.route("POST", "4.0/login", lambda r: httpx.Response(200, text="<html>"))
        with pytest.raises(AuthError, match="Malformed"):
            await manager.authenticate(CLIENT_ID, CLIENT_SECRET)

    async def test_network_failure_is_transport_error(self, manager, fake_looker):
        def handler(request):
            raise httpx.ConnectError("Connection refused", request=request)
        fake_looker.route("POST", "4.0/login", handler)
        with pytest.raises(TransportError):
            await manager.authenticate(CLIENT_ID, CLIENT_SECRET)
        assert manager.state is AuthState.UNAUTHENTICATED

    async def test_cancelled_mid_exchange(self, manager, fake_looker):
        fake_looker.login_delay = 10
        task = asyncio.create_task(manager.authenticate(CLIENT_ID, CLIENT_SECRET))
        while fake_looker.login_count == 0:
            await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert manager.state is AuthState.UNAUTHENTICATED
        assert manager.token_expires_at is None

    async def test_unauthenticated_authorization(self, manager, fake_looker):
        with pytest.raises(AuthError, match="not authenticated"):
            await manager.authorization()
        assert fake_looker.requests == []

    async def test_secret_never_logged(self, manager, caplog):
        caplog.set_level(logging.DEBUG, logger="lookerapi")
        await manager.authenticate(CLIENT_ID, CLIENT_SECRET)
        with pytest.raises(AuthError):
            await manager.authenticate(CLIENT_ID, "another-secret")
        assert caplog.records
        for record in caplog.records:
            rendered = record.getMessage() + repr(getattr(record, "log_data", {}))
            assert CLIENT_SECRET not in rendered
            assert "another-secret" not in rendered
            assert "token-1" not in rendered


class TestAccessToken:

    def test_repr_hides_token(self):
        token = AccessToken(access_token="abc123", token_type="Bearer", expires_in=60, expires_at=100.0)
        assert "abc123" not in repr(token)

    def test_expiring_with_margin(self):
        token = AccessToken(access_token="t", token_type="Bearer", expires_in=60, expires_at=100.0)
        assert not token.expiring(margin=10, now=80)
        assert token.expiring(margin=10, now=90)
        assert token.expiring(now=100)


class TestRefresh:

    async def test_valid_token_is_reused(self, manager, fake_looker, clock):
        await manager.authenticate(CLIENT_ID, CLIENT_SECRET)
        clock.advance(3000)
        assert await manager.authorization() == "Bearer token-1"
        assert fake_looker.login_count == 1

    async def test_refresh_inside_margin(self, manager, fake_looker, clock):
        await manager.authenticate(CLIENT_ID, CLIENT_SECRET)
        clock.advance(3600 - 30)
        assert await manager.authorization() == "Bearer token-2"
        assert fake_looker.login_count == 2
        assert manager.state is AuthState.AUTHENTICATED

    async def test_concurrent_refresh_is_single_flight(self, manager, fake_looker, clock):
        await manager.authenticate(CLIENT_ID, CLIENT_SECRET)
        clock.advance(7200)

        headers = await asyncio.gather(*(manager.authorization() for _ in range(10)))

        assert fake_looker.login_count == 2
        assert set(headers) == {"Bearer token-2"}

    async def test_rejected_refresh_fails_client(self, manager, fake_looker, clock):
        await manager.authenticate(CLIENT_ID, CLIENT_SECRET)
        fake_looker.valid_secret = "rotated"
        clock.advance(7200)
        with pytest.raises(AuthError):
            await manager.authorization()
        assert manager.state is AuthState.FAILED
        # Terminal: no retry until authenticate() is called again
        with pytest.raises(AuthError):
            await manager.authorization()
        assert fake_looker.login_count == 2

    async def test_transient_refresh_failure_keeps_client_usable(self, manager, fake_looker, clock):
        await manager.authenticate(CLIENT_ID, CLIENT_SECRET)
        clock.advance(7200)

        def down(request):
            raise httpx.ConnectError("Connection refused", request=request)
        fake_looker.route("POST", "4.0/login", down)
        with pytest.raises(TransportError):
            await manager.authorization()
        assert manager.state is AuthState.AUTHENTICATED

        fake_looker.route("POST", "4.0/login", fake_looker._login)
        assert (await manager.authorization()).startswith("Bearer token-")

    async def test_refresh_without_credentials_fails_client(self, manager, fake_looker, clock):
        await manager.authenticate(CLIENT_ID, CLIENT_SECRET)
        manager._credentials = None
        clock.advance(7200)
        with pytest.raises(AuthError, match="authenticate"):
            await manager.authorization()
        assert manager.state is AuthState.FAILED
        assert fake_looker.login_count == 1

    async def test_dev_workspace_reapplied_after_refresh(self, manager, fake_looker, clock):
        await manager.authenticate(CLIENT_ID, CLIENT_SECRET)
        await manager.switch_workspace(Workspace.DEV)
        clock.advance(7200)

        header = await manager.authorization()

        new_token = header.removeprefix("Bearer ")
        assert fake_looker.workspaces[new_token] == "dev"
        assert manager.session.workspace is Workspace.DEV


class TestCurrentSession:

    async def test_production(self, manager):
        await manager.authenticate(CLIENT_ID, CLIENT_SECRET)
        session = await manager.current_session()
        assert session.workspace is Workspace.PRODUCTION
        assert not session.is_dev

    async def test_cached_until_refresh(self, manager, fake_looker):
        await manager.authenticate(CLIENT_ID, CLIENT_SECRET)
        await manager.current_session()
        await manager.current_session()
        assert len(fake_looker.calls("GET", "4.0/session")) == 1
        await manager.current_session(refresh=True)
        assert len(fake_looker.calls("GET", "4.0/session")) == 2

    async def test_dev(self, manager, fake_looker):
        await manager.authenticate(CLIENT_ID, CLIENT_SECRET)
        fake_looker.forced_workspace = "dev"
        assert (await manager.current_session()).workspace is Workspace.DEV

    @pytest.mark.parametrize("workspace", ["staging", "", None, "Production"])
    async def test_unknown_workspace_is_fatal(self, manager, fake_looker, workspace):
        await manager.authenticate(CLIENT_ID, CLIENT_SECRET)
        fake_looker.forced_workspace = workspace
        if workspace is None:
            fake_looker.respond("GET", "4.0/session", {"sudo_user_id": None})
        elif workspace == "":
            fake_looker.respond("GET", "4.0/session", {"workspace_id": ""})

        with pytest.raises(UnknownWorkspaceError):
            await manager.current_session()
        assert manager.state is AuthState.FAILED
        with pytest.raises(AuthError):
            await manager.authorization()

    async def test_session_call_failure(self, manager, fake_looker):
        await manager.authenticate(CLIENT_ID, CLIENT_SECRET)
        fake_looker.respond("GET", "4.0/session", {"message": "Internal error"}, status=500)
        with pytest.raises(SessionError, match="Internal error") as exc_info:
            await manager.current_session()
        assert exc_info.value.details["status"] == 500
        assert manager.state is AuthState.AUTHENTICATED

    async def test_session_requires_authentication(self, manager):
        with pytest.raises(AuthError):
            await manager.current_session()

    async def test_switch_workspace(self, manager, fake_looker):
        await manager.authenticate(CLIENT_ID, CLIENT_SECRET)
        session = await manager.switch_workspace(Workspace.DEV)
        assert session.is_dev
        assert fake_looker.workspaces["token-1"] == "dev"


class TestLogout:

    async def test_logout_forgets_token(self, manager, fake_looker):
        await manager.authenticate(CLIENT_ID, CLIENT_SECRET)
        await manager.logout()
        assert manager.state is AuthState.UNAUTHENTICATED
        assert "token-1" not in fake_looker.workspaces
        with pytest.raises(AuthError):
            await manager.authorization()

    async def test_logout_with_stale_token(self, manager, fake_looker):
        await manager.authenticate(CLIENT_ID, CLIENT_SECRET)
        fake_looker.workspaces.clear()
        await manager.logout()
        assert manager.state is AuthState.UNAUTHENTICATED

    async def test_logout_when_never_authenticated(self, manager, fake_looker):
        await manager.logout()
        assert fake_looker.requests == []
