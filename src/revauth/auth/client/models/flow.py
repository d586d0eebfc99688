"""Authorization flow models for the OAuth2 authorization code grant.

Contains the authorization request, the terminal page contract of the
authorization server, and the outcome of an authorization attempt.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from urllib.parse import quote

OUT_OF_BAND_REDIRECT_URI = "urn:ietf:wg:oauth:2.0:oob"

# RFC 6749 Section 4.1.2.1
REGISTERED_AUTHORIZATION_ERRORS = frozenset(
    {
        "invalid_request",
        "unauthorized_client",
        "access_denied",
        "unsupported_response_type",
        "invalid_scope",
        "server_error",
        "temporarily_unavailable",
    }
)


def _escape_data(value: str) -> str:
    # Everything outside the RFC 3986 unreserved set is escaped, "/" included.
    return quote(value, safe="")


@dataclass(frozen=True)
class AuthorizationRequest:
    """Authorization request parameters for a single authorization attempt.

    The state is generated fresh for every request and never reused.
    """

    authorization_endpoint: str
    client_id: str
    redirect_uri: str
    scope: str
    state: int

    def build_authorization_url(self) -> str:
        """Build the complete authorization URL.

        The state is sent as plain decimal digits, the other values are
        percent-encoded as query data.
        """
        return (
            f"{self.authorization_endpoint}"
            f"?response_type=code"
            f"&client_id={_escape_data(self.client_id)}"
            f"&redirect_uri={_escape_data(self.redirect_uri)}"
            f"&scope={_escape_data(self.scope)}"
            f"&state={self.state:d}"
        )


class NavigationKind(Enum):
    """Classification of a page the user agent finished loading."""

    NOT_TERMINAL = "not_terminal"
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not NavigationKind.NOT_TERMINAL


@dataclass(frozen=True)
class TerminalPage:
    """A terminal page of the authorization server.

    The server encodes its answer in the page title rather than in the
    redirect query, so the title is all we need to keep.
    """

    kind: NavigationKind
    title: str

    def __post_init__(self) -> None:
        if not self.kind.is_terminal:
            raise ValueError("TerminalPage requires a SUCCESS or FAILED kind")


@dataclass(frozen=True)
class NavigationEvent:
    """Notification that the user agent finished loading a page."""

    path: str
    title: str | None = None


class AuthorizationResult(Enum):
    """Identifies the result of an authorization request."""

    # The server responded with an authorization code and our state.
    SUCCESS = "success"
    # The server responded with an error code, a description and our state.
    FAILED = "failed"
    # The server did not respond with the state value we sent.
    XSRF_DETECTED = "xsrf_detected"
    # A terminal page was reached but its content could not be understood.
    INVALID_RESPONSE = "invalid_response"
    # No terminal page has been reached yet.
    NO_RESPONSE = "no_response"
    # The user closed the window before a terminal page was reached.
    CANCELLED = "cancelled"
    # No terminal page was reached within the configured time.
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class AuthorizationOutcome:
    """Outcome of an authorization attempt.

    Exactly one result is active. ``code`` is set only for SUCCESS,
    ``error_code`` and ``error_description`` only for FAILED. Use the
    classmethod constructors rather than building instances directly.
    """

    result: AuthorizationResult = AuthorizationResult.NO_RESPONSE
    code: str | None = None
    error_code: str | None = None
    error_description: str | None = None

    def __post_init__(self) -> None:
        if self.result is AuthorizationResult.SUCCESS:
            if not self.code:
                raise ValueError("Success outcome requires a non-empty code")
        elif self.code is not None:
            raise ValueError(f"{self.result.name} outcome cannot carry a code")

        if self.result is AuthorizationResult.FAILED:
            if not self.error_code:
                raise ValueError("Failed outcome requires a non-empty error code")
            if self.error_description is None:
                raise ValueError("Failed outcome requires an error description")
        elif self.error_code is not None or self.error_description is not None:
            raise ValueError(f"{self.result.name} outcome cannot carry error details")

    @classmethod
    def success(cls, code: str) -> AuthorizationOutcome:
        return cls(AuthorizationResult.SUCCESS, code=code)

    @classmethod
    def failed(cls, error_code: str, error_description: str) -> AuthorizationOutcome:
        return cls(
            AuthorizationResult.FAILED,
            error_code=error_code,
            error_description=error_description,
        )

    @classmethod
    def xsrf_detected(cls) -> AuthorizationOutcome:
        return cls(AuthorizationResult.XSRF_DETECTED)

    @classmethod
    def invalid_response(cls) -> AuthorizationOutcome:
        return cls(AuthorizationResult.INVALID_RESPONSE)

    @classmethod
    def no_response(cls) -> AuthorizationOutcome:
        return cls(AuthorizationResult.NO_RESPONSE)

    @classmethod
    def cancelled(cls) -> AuthorizationOutcome:
        return cls(AuthorizationResult.CANCELLED)

    @classmethod
    def timeout(cls) -> AuthorizationOutcome:
        return cls(AuthorizationResult.TIMEOUT)

    def is_success(self) -> bool:
        return self.result is AuthorizationResult.SUCCESS

    def is_terminal(self) -> bool:
        """Check if the outcome is final, i.e. anything but NO_RESPONSE."""
        return self.result is not AuthorizationResult.NO_RESPONSE

    def is_registered_error(self) -> bool:
        """Check if a FAILED outcome carries an RFC 6749 registered error code.

        The parser passes any non-empty error code through unchecked.
        """
        return (
            self.result is AuthorizationResult.FAILED
            and self.error_code in REGISTERED_AUTHORIZATION_ERRORS
        )

    def describe(self) -> str:
        """Short human readable description, never containing the code."""
        if self.result is AuthorizationResult.FAILED:
            if self.error_description:
                return f"{self.error_code} - {self.error_description}"
            return f"{self.error_code}"
        return self.result.value.replace("_", " ")
