"""Token exchange models for the OAuth2 authorization code grant.

Contains the token request sent to the token endpoint and the token
response returned by it.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


@dataclass(frozen=True)
class TokenRequest:
    """OAuth2 token exchange request parameters (RFC 6749 Section 4.1.3).

    The client authenticates with HTTP Basic (RFC 6749 Section 2.3.1), so the
    client id and secret travel in the Authorization header, not the body.
    """

    # Required fields first
    token_endpoint: str
    code: str
    redirect_uri: str
    client_id: str
    client_secret: str = field(repr=False)

    # Optional fields with defaults last
    grant_type: str = "authorization_code"

    def to_form_data(self) -> dict[str, str]:
        """Convert to form data for application/x-www-form-urlencoded request.

        Returns:
            Dictionary suitable for httpx data parameter
        """
        return {
            "grant_type": self.grant_type,
            "code": self.code,
            "redirect_uri": self.redirect_uri,
        }

    def authorization_header(self) -> str:
        """Build the HTTP Basic Authorization header value."""
        credentials = f"{self.client_id}:{self.client_secret}".encode("utf-8")
        return "Basic " + base64.b64encode(credentials).decode("ascii")


class TokenResponse(BaseModel):
    """Successful token endpoint response.

    The server returns all of these fields, so all of them are required. A
    response missing any of them is rejected as a whole.
    """

    model_config = ConfigDict(frozen=True)

    access_token: str = Field(repr=False)
    refresh_token: str = Field(repr=False)
    expires_in: str  # Seconds, kept as the server's text
    scope: str
    token_type: str
    user_id: str
    user_name: str

    @field_validator("*", mode="before")
    @classmethod
    def render_numbers_as_text(cls, v: Any) -> Any:
        # expires_in and user_id may arrive as JSON numbers
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    def to_token_pair(self) -> TokenPair:
        """Keep only the access token and the refresh token."""
        return TokenPair(
            access_token=self.access_token, refresh_token=self.refresh_token
        )


@dataclass(frozen=True)
class TokenPair:
    """The tokens a native application retains after a successful exchange."""

    access_token: str = field(repr=False)
    refresh_token: str = field(repr=False)
