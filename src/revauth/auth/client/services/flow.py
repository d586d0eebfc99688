"""Authorization code flow orchestration.

Drives a user agent through one authorization attempt: builds the
authorization URL with a fresh state, sends the user agent there, waits for
the authorization server's terminal page and turns it into an outcome.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum

from revauth.auth.client.models.config import AuthorizationServerConfig, ClientConfig
from revauth.auth.client.models.flow import (
    AuthorizationOutcome,
    AuthorizationRequest,
    AuthorizationResult,
)
from revauth.auth.client.services.redirect import RedirectResponseParser
from revauth.auth.client.services.security import StateGenerator
from revauth.auth.client.user_agent import UserAgentHost

logger = logging.getLogger(__name__)


class FlowState(Enum):
    IDLE = "idle"
    AWAITING_USER_AGENT = "awaiting_user_agent"
    TERMINAL = "terminal"


class AuthorizationFlow:
    """A single authorization attempt.

    IDLE -> AWAITING_USER_AGENT -> TERMINAL. Every attempt owns its own state
    value and outcome; start a new flow to try again.
    """

    def __init__(
        self,
        host: UserAgentHost,
        server_config: AuthorizationServerConfig,
        client_config: ClientConfig,
        state_generator: StateGenerator | None = None,
        parser: RedirectResponseParser | None = None,
    ):
        """Initialize the flow.

        Args:
            host: User agent host that shows the authorization pages
            server_config: Authorization server endpoints and page paths
            client_config: Client registration
            state_generator: Source of the XSRF state; a new OS-entropy
                generator when omitted
            parser: Terminal page parser; built from server_config when omitted
        """
        self._host = host
        self._server_config = server_config
        self._client_config = client_config
        self._state_generator = state_generator or StateGenerator()
        self._parser = parser or RedirectResponseParser(
            server_config.success_path, server_config.failed_path
        )

        self._flow_state = FlowState.IDLE
        self._state: int | None = None
        self._outcome = AuthorizationOutcome.no_response()

    @property
    def flow_state(self) -> FlowState:
        return self._flow_state

    @property
    def state(self) -> int | None:
        """State value sent with the authorization request, None until started."""
        return self._state

    @property
    def outcome(self) -> AuthorizationOutcome:
        """Outcome so far; NO_RESPONSE until a terminal page is reached."""
        return self._outcome

    async def start(self) -> str:
        """Send the user agent to the authorization endpoint.

        Returns:
            The authorization URL the user agent was sent to

        Raises:
            RuntimeError: If the flow has already been started
        """
        if self._flow_state is not FlowState.IDLE:
            raise RuntimeError(
                f"Cannot start an authorization flow in state {self._flow_state.value}"
            )

        state = self._state_generator.next()
        auth_request = AuthorizationRequest(
            authorization_endpoint=self._server_config.authorization_endpoint,
            client_id=self._client_config.client_id,
            redirect_uri=self._client_config.redirect_uri,
            scope=self._client_config.scope,
            state=state,
        )
        authorization_url = auth_request.build_authorization_url()

        logger.info(
            f"Starting authorization flow for client {self._client_config.client_id}"
        )
        await self._host.navigate(authorization_url)

        self._state = state
        self._flow_state = FlowState.AWAITING_USER_AGENT
        return authorization_url

    async def wait_for_outcome(self) -> AuthorizationOutcome:
        """Wait for the authorization server's answer.

        Pages other than the two terminal pages are ignored. The user agent
        is sent to a blank page once a terminal page has been read, and the
        host is closed whatever the outcome.

        Returns:
            AuthorizationOutcome: The terminal outcome of the attempt

        Raises:
            RuntimeError: If the flow is not waiting for the user agent
        """
        if self._flow_state is not FlowState.AWAITING_USER_AGENT or self._state is None:
            raise RuntimeError(
                f"Cannot wait for an outcome in state {self._flow_state.value}"
            )

        try:
            outcome = await self._wait_with_timeout(self._state)
            self._set_outcome(outcome)

            if outcome.result not in (
                AuthorizationResult.CANCELLED,
                AuthorizationResult.TIMEOUT,
            ):
                # Don't leave the answer on screen
                await self._host.navigate(self._server_config.blank_uri)
        finally:
            await self._host.close()

        self._log_outcome(outcome)
        return outcome

    async def run(self) -> AuthorizationOutcome:
        """Start the flow and wait for its outcome."""
        await self.start()
        return await self.wait_for_outcome()

    async def _wait_with_timeout(self, state: int) -> AuthorizationOutcome:
        timeout = self._server_config.response_timeout
        try:
            async with asyncio.timeout(timeout) as deadline:
                return await self._wait_for_terminal_page(state)
        except TimeoutError:
            # A TimeoutError raised by the host itself is not ours to report
            if not deadline.expired():
                raise
            logger.warning(f"No answer from the authorization server after {timeout}s")
            return AuthorizationOutcome.timeout()

    async def _wait_for_terminal_page(self, state: int) -> AuthorizationOutcome:
        async for event in self._host.navigations():
            kind = self._parser.classify(event.path)
            if not kind.is_terminal:
                logger.debug(f"Ignoring navigation to {event.path}")
                continue

            logger.debug(f"Reached terminal page {event.path}")
            return self._parser.parse(event.title, state, kind)

        # The window was closed before the server answered
        return AuthorizationOutcome.cancelled()

    def _set_outcome(self, outcome: AuthorizationOutcome) -> None:
        if self._outcome.is_terminal():
            raise RuntimeError("Authorization outcome is already set")
        self._outcome = outcome
        self._flow_state = FlowState.TERMINAL

    def _log_outcome(self, outcome: AuthorizationOutcome) -> None:
        if outcome.is_success():
            logger.info("Authorization successful - received authorization code")
        elif outcome.result is AuthorizationResult.XSRF_DETECTED:
            logger.warning("Authorization response state mismatch - possible XSRF attack")
        else:
            logger.warning(f"Authorization did not succeed: {outcome.describe()}")
