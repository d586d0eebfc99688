"""OAuth2 token exchange service.

Implements the RFC 6749 Section 4.1.3 access token request for a client
that authenticates to the token endpoint with HTTP Basic.
"""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from revauth.auth.client.models.errors import (
    HttpStatusFailureError,
    MalformedTokenResponseError,
    TransportFailureError,
)
from revauth.auth.client.models.tokens import TokenRequest, TokenResponse

logger = logging.getLogger(__name__)


class OAuth2TokenManager:
    """Exchanges authorization codes for access and refresh tokens.

    Each exchange is a single POST; nothing is retried. Uses
    application/x-www-form-urlencoded encoding as required by RFC 6749.
    """

    def __init__(
        self, timeout: float = 30.0, http_client: httpx.AsyncClient | None = None
    ):
        """Initialize the token manager.

        Args:
            timeout: HTTP request timeout in seconds
            http_client: Client to send requests with. One is created (and
                owned) when omitted.
        """
        self.timeout = timeout
        self._owns_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout)

    async def exchange_code_for_token(
        self, token_request: TokenRequest
    ) -> TokenResponse:
        """Exchange an authorization code for tokens.

        Args:
            token_request: Token exchange request parameters

        Returns:
            TokenResponse: All fields of the server's token response

        Raises:
            TransportFailureError: If the token endpoint cannot be reached
            HttpStatusFailureError: If the token endpoint answers with a
                non-success status
            MalformedTokenResponseError: If the response lacks a required field
        """
        logger.debug(f"Exchanging authorization code at {token_request.token_endpoint}")

        headers = {
            "Authorization": token_request.authorization_header(),
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }
        form_data = token_request.to_form_data()

        logger.debug(
            f"Token request: grant_type={form_data['grant_type']}, "
            f"client_id={token_request.client_id}, "
            f"redirect_uri={form_data['redirect_uri']}"
        )

        try:
            response = await self._http_client.post(
                token_request.token_endpoint,
                data=form_data,
                headers=headers,
            )
        except httpx.HTTPError as e:
            raise TransportFailureError(
                f"HTTP error during token exchange: {e}"
            ) from e

        return self._parse_token_response(response)

    def _parse_token_response(self, response: httpx.Response) -> TokenResponse:
        """Parse a token endpoint response.

        Raises:
            HttpStatusFailureError: For any non-2xx status
            MalformedTokenResponseError: If a 2xx body isn't a complete token response
        """
        if not 200 <= response.status_code < 300:
            error, error_description = self._extract_error(response)
            logger.warning(
                f"Token exchange failed with {response.status_code}: "
                f"{error or 'no error code'} - {error_description or 'no description'}"
            )
            raise HttpStatusFailureError(response.status_code, error, error_description)

        try:
            response_data = response.json()
        except ValueError as e:
            raise MalformedTokenResponseError(
                f"Token response is not valid JSON: {e}"
            ) from e

        if not isinstance(response_data, dict):
            raise MalformedTokenResponseError("Token response is not a JSON object")

        try:
            token_response = TokenResponse.model_validate(response_data)
        except ValidationError as e:
            fields = sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]})
            raise MalformedTokenResponseError(
                f"Invalid token response, bad or missing fields: {', '.join(fields)}"
            ) from e

        logger.info("Token exchange successful")
        return token_response

    def _extract_error(self, response: httpx.Response) -> tuple[str | None, str | None]:
        # RFC 6749 Section 5.2 error bodies are JSON, but proxies send HTML
        try:
            body = response.json()
        except ValueError:
            return None, None
        if not isinstance(body, dict):
            return None, None

        error = body.get("error")
        error_description = body.get("error_description")
        return (
            error if isinstance(error, str) else None,
            error_description if isinstance(error_description, str) else None,
        )

    async def close(self) -> None:
        """Close the HTTP client if this manager created it."""
        if self._owns_client:
            await self._http_client.aclose()
