"""Exception hierarchy for native-app OAuth2 authentication errors.

Protocol failures reported by the authorization server (or forged by an
attacker) are not exceptions; they are ``AuthorizationOutcome`` values.
The exceptions here cover the token exchange and the few places where a
caller explicitly asks for an outcome to be turned into an error.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from revauth.auth.client.models.flow import AuthorizationOutcome


class OAuth2Error(Exception):
    """Base exception for all OAuth2 related errors."""

    pass


class AuthorizationError(OAuth2Error):
    """Raised when user authorization fails."""

    pass


class AuthorizationOutcomeError(AuthorizationError):
    """Raised when an authorization attempt ends without an authorization code.

    Carries the outcome so callers can tell a declared server error apart
    from a forged response, a cancelled window or a timeout.
    """

    def __init__(self, outcome: AuthorizationOutcome):
        self.outcome = outcome
        super().__init__(f"Authorization did not succeed: {outcome.describe()}")


class TokenError(OAuth2Error):
    """Raised when token operations fail."""

    pass


class ExchangeError(TokenError):
    """Raised when authorization code to token exchange fails."""

    pass


class TransportFailureError(ExchangeError):
    """Raised when the token endpoint could not be reached."""

    pass


class HttpStatusFailureError(ExchangeError):
    """Raised when the token endpoint answers with a non-success status.

    ``error`` and ``error_description`` hold the RFC 6749 Section 5.2 fields
    when the server sent a JSON error body.
    """

    def __init__(
        self,
        status_code: int,
        error: str | None = None,
        error_description: str | None = None,
    ):
        self.status_code = status_code
        self.error = error
        self.error_description = error_description

        message = f"Token endpoint returned HTTP {status_code}"
        if error:
            message += f": {error}"
            if error_description:
                message += f" ({error_description})"
        super().__init__(message)


class MalformedTokenResponseError(ExchangeError):
    """Raised when a successful token response is missing required fields.

    A partial token response is never returned to the caller.
    """

    pass
