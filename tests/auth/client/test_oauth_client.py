"""Tests for the complete native-app flow: user authorization, then token exchange."""

from unittest.mock import AsyncMock, MagicMock
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from revauth.auth.client.models.config import AuthorizationServerConfig, ClientConfig
from revauth.auth.client.models.errors import (
    AuthorizationOutcomeError,
    HttpStatusFailureError,
)
from revauth.auth.client.models.flow import AuthorizationResult
from revauth.auth.client.models.tokens import TokenPair
from revauth.auth.client.oauth_client import NativeAppOAuth2Client
from revauth.auth.client.services.tokens import OAuth2TokenManager
from revauth.auth.client.user_agent import QueuedUserAgentHost

TOKEN_BODY = {
    "access_token": "access-token-xyz",
    "refresh_token": "refresh-token-abc",
    "expires_in": 3600,
    "scope": "RevolutionWebApi",
    "token_type": "Bearer",
    "user_id": "user-42",
    "user_name": "Jane Doe",
}


def make_host(server_config, title_for_state, path="/OAuth2/AuthCodeRequestSuccess"):
    """Host whose authorization server answers with title_for_state(state)."""
    sent_states = []

    async def navigator(uri: str) -> None:
        if not uri.startswith(server_config.authorization_endpoint):
            return
        state = parse_qs(urlparse(uri).query)["state"][0]
        sent_states.append(state)
        host.notify_navigation_completed("/OAuth2/Login", "Sign in")
        title = title_for_state(state)
        if title is None:
            host.notify_closed()
        else:
            host.notify_navigation_completed(path, title)

    host = QueuedUserAgentHost(navigator=navigator)
    host.sent_states = sent_states
    return host


class TestPromptUserForAccess:
    def setup_method(self):
        # Arrange
        self.server_config = AuthorizationServerConfig(
            authorization_endpoint="https://auth.example.com/OAuth2/Authorization",
            token_endpoint="https://auth.example.com/OAuth2/Token",
            response_timeout=5.0,
        )
        self.http_client = AsyncMock()
        self.client = NativeAppOAuth2Client(
            ClientConfig(client_id="client-123", client_secret="secret-456"),
            self.server_config,
            token_manager=OAuth2TokenManager(http_client=self.http_client),
        )

    async def test_granted_access_returns_token_pair(self):
        # Arrange
        self.http_client.post.return_value = httpx.Response(200, json=TOKEN_BODY)
        host = make_host(self.server_config, lambda s: f"Success code=ABC123 state={s}")

        # Act
        tokens = await self.client.prompt_user_for_access(host)

        # Assert
        assert tokens == TokenPair("access-token-xyz", "refresh-token-abc")
        self.http_client.post.assert_awaited_once()
        call_args = self.http_client.post.call_args
        assert call_args[0][0] == "https://auth.example.com/OAuth2/Token"
        assert call_args[1]["data"]["code"] == "ABC123"
        assert call_args[1]["data"]["redirect_uri"] == "urn:ietf:wg:oauth:2.0:oob"
        assert host.is_closed

    async def test_denied_access_raises_with_outcome(self):
        # Arrange
        host = make_host(
            self.server_config,
            lambda s: f'Failed error=access_denied error_description="No" state={s}',
            path="/OAuth2/AuthCodeRequestFailed",
        )

        # Act
        with pytest.raises(AuthorizationOutcomeError) as exc_info:
            await self.client.prompt_user_for_access(host)

        # Assert
        outcome = exc_info.value.outcome
        assert outcome.result is AuthorizationResult.FAILED
        assert outcome.error_code == "access_denied"
        assert "access_denied" in str(exc_info.value)
        self.http_client.post.assert_not_awaited()

    async def test_forged_response_is_not_exchanged(self):
        # Arrange
        host = make_host(self.server_config, lambda s: "Success code=EVIL state=1")

        # Act
        with pytest.raises(AuthorizationOutcomeError) as exc_info:
            await self.client.prompt_user_for_access(host)

        # Assert
        assert exc_info.value.outcome.result is AuthorizationResult.XSRF_DETECTED
        self.http_client.post.assert_not_awaited()

    async def test_closed_window_is_cancelled(self):
        # Arrange
        host = make_host(self.server_config, lambda s: None)

        # Act
        with pytest.raises(AuthorizationOutcomeError) as exc_info:
            await self.client.prompt_user_for_access(host)

        # Assert
        assert exc_info.value.outcome.result is AuthorizationResult.CANCELLED
        self.http_client.post.assert_not_awaited()

    async def test_exchange_errors_propagate(self):
        # Arrange
        self.http_client.post.return_value = httpx.Response(
            400, json={"error": "invalid_grant"}
        )
        host = make_host(self.server_config, lambda s: f"Success code=ABC123 state={s}")

        # Act & Assert
        with pytest.raises(HttpStatusFailureError):
            await self.client.prompt_user_for_access(host)

    async def test_each_attempt_uses_a_fresh_state(self):
        # Arrange
        self.http_client.post.return_value = httpx.Response(200, json=TOKEN_BODY)
        first = make_host(self.server_config, lambda s: f"Success code=A state={s}")
        second = make_host(self.server_config, lambda s: f"Success code=B state={s}")

        # Act
        await self.client.prompt_user_for_access(first)
        await self.client.prompt_user_for_access(second)

        # Assert
        assert first.sent_states != second.sent_states


class TestAuthorizeAndExchange:
    async def test_authorize_returns_outcome_without_raising(self):
        # Arrange
        server_config = AuthorizationServerConfig()
        client = NativeAppOAuth2Client(
            ClientConfig(client_id="client-123", client_secret="secret-456"),
            token_manager=MagicMock(),
        )
        host = make_host(server_config, lambda s: "Success code= state=" + s)

        # Act
        outcome = await client.authorize(host)

        # Assert
        assert outcome.result is AuthorizationResult.INVALID_RESPONSE

    async def test_exchange_code_uses_client_credentials(self):
        # Arrange
        token_manager = MagicMock()
        token_manager.exchange_code_for_token = AsyncMock()
        client = NativeAppOAuth2Client(
            ClientConfig(client_id="client-123", client_secret="secret-456"),
            token_manager=token_manager,
        )

        # Act
        await client.exchange_code("ABC123")

        # Assert
        token_request = token_manager.exchange_code_for_token.call_args[0][0]
        assert token_request.token_endpoint == "https://revapiaccess.statpro.com/OAuth2/Token"
        assert token_request.code == "ABC123"
        assert token_request.client_id == "client-123"
        assert token_request.client_secret == "secret-456"
        assert token_request.redirect_uri == "urn:ietf:wg:oauth:2.0:oob"

    async def test_context_manager_closes_token_manager(self):
        # Arrange
        token_manager = MagicMock()
        token_manager.close = AsyncMock()

        # Act
        async with NativeAppOAuth2Client(
            ClientConfig(client_id="client-123", client_secret="secret-456"),
            token_manager=token_manager,
        ):
            pass

        # Assert
        token_manager.close.assert_awaited_once()
