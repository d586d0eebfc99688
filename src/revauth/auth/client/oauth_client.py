"""OAuth2 client orchestration for native applications.

Coordinates user authorization and token exchange to take a native
application from "no access" to an access token and refresh token.
"""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Self

from revauth.auth.client.models.config import AuthorizationServerConfig, ClientConfig
from revauth.auth.client.models.errors import AuthorizationOutcomeError
from revauth.auth.client.models.flow import AuthorizationOutcome
from revauth.auth.client.models.tokens import TokenPair, TokenRequest, TokenResponse
from revauth.auth.client.services.flow import AuthorizationFlow
from revauth.auth.client.services.redirect import RedirectResponseParser
from revauth.auth.client.services.security import StateGenerator
from revauth.auth.client.services.tokens import OAuth2TokenManager
from revauth.auth.client.user_agent import UserAgentHost

logger = logging.getLogger(__name__)


class NativeAppOAuth2Client:
    """OAuth2 authorization code client for a native application.

    Runs one authorization flow per call, each with a fresh state, and
    exchanges the resulting code for tokens. Only the access token and the
    refresh token are handed back by prompt_user_for_access(); native
    applications should keep refresh tokens out of the user's view and
    should not persist them.
    """

    def __init__(
        self,
        client_config: ClientConfig,
        server_config: AuthorizationServerConfig | None = None,
        timeout: float = 30.0,
        token_manager: OAuth2TokenManager | None = None,
        state_generator: StateGenerator | None = None,
    ):
        """Initialize the client.

        Args:
            client_config: The application's registration
            server_config: Authorization server settings; Revolution defaults
                when omitted
            timeout: HTTP request timeout for the token endpoint
            token_manager: Token manager to use instead of a new one
            state_generator: State generator shared by this client's flows
        """
        self.client_config = client_config
        self.server_config = server_config or AuthorizationServerConfig()
        self.token_manager = token_manager or OAuth2TokenManager(timeout=timeout)
        self._state_generator = state_generator or StateGenerator()
        self._parser = RedirectResponseParser(
            self.server_config.success_path, self.server_config.failed_path
        )

    async def authorize(self, host: UserAgentHost) -> AuthorizationOutcome:
        """Ask the user for access through the given user agent host.

        Returns:
            AuthorizationOutcome: Terminal outcome of the attempt
        """
        flow = AuthorizationFlow(
            host,
            self.server_config,
            self.client_config,
            state_generator=self._state_generator,
            parser=self._parser,
        )
        return await flow.run()

    async def exchange_code(self, code: str) -> TokenResponse:
        """Exchange an authorization code for tokens.

        Raises:
            ExchangeError: If the exchange fails
        """
        token_request = TokenRequest(
            token_endpoint=self.server_config.token_endpoint,
            code=code,
            redirect_uri=self.client_config.redirect_uri,
            client_id=self.client_config.client_id,
            client_secret=self.client_config.client_secret.get_secret_value(),
        )
        return await self.token_manager.exchange_code_for_token(token_request)

    async def prompt_user_for_access(self, host: UserAgentHost) -> TokenPair:
        """Ask the user for access and exchange the granted code for tokens.

        Returns:
            TokenPair: Access token and refresh token

        Raises:
            AuthorizationOutcomeError: If the user did not grant access, the
                response was forged or invalid, or the window was closed
            ExchangeError: If the token exchange fails
        """
        outcome = await self.authorize(host)
        if not outcome.is_success():
            raise AuthorizationOutcomeError(outcome)

        logger.debug("Exchanging authorization code for tokens")
        token_response = await self.exchange_code(outcome.code)

        logger.info(f"Obtained access for user {token_response.user_id}")
        return token_response.to_token_pair()

    async def close(self) -> None:
        """Close service connections."""
        await self.token_manager.close()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()
