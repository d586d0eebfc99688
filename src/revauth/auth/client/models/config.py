"""Configuration models for the native-app authorization flow.

Describes the authorization server the application talks to and the
application's own registration with it. Defaults target the StatPro
Revolution OAuth2 server.
"""

from __future__ import annotations

from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from revauth.auth.client.models.flow import OUT_OF_BAND_REDIRECT_URI

DEFAULT_AUTHORIZATION_ENDPOINT = "https://revapiaccess.statpro.com/OAuth2/Authorization"
DEFAULT_TOKEN_ENDPOINT = "https://revapiaccess.statpro.com/OAuth2/Token"
DEFAULT_SUCCESS_PATH = "/OAuth2/AuthCodeRequestSuccess"
DEFAULT_FAILED_PATH = "/OAuth2/AuthCodeRequestFailed"
DEFAULT_SCOPE = "RevolutionWebApi"


class AuthorizationServerConfig(BaseModel):
    """Endpoints and page contract of the authorization server."""

    model_config = ConfigDict(frozen=True)

    authorization_endpoint: str = DEFAULT_AUTHORIZATION_ENDPOINT
    token_endpoint: str = DEFAULT_TOKEN_ENDPOINT

    # Pages the server redirects to once the user has answered
    success_path: str = DEFAULT_SUCCESS_PATH
    failed_path: str = DEFAULT_FAILED_PATH

    # Where the user agent is sent once a terminal page has been read
    blank_uri: str = "about:blank"

    # Seconds to wait for a terminal page; None waits forever
    response_timeout: float | None = 300.0

    @field_validator("authorization_endpoint", "token_endpoint")
    @classmethod
    def validate_endpoint(cls, v: str) -> str:
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"Endpoint must be an absolute http(s) URL: {v}")
        return v

    @field_validator("success_path", "failed_path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError(f"Terminal page path must start with '/': {v}")
        return v

    @field_validator("response_timeout")
    @classmethod
    def validate_timeout(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError("response_timeout must be positive")
        return v


class ClientConfig(BaseModel):
    """The native application's registration with the authorization server.

    A native application cannot keep its secret confidential; SecretStr
    only keeps it out of logs and reprs.
    """

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(min_length=1)
    client_secret: SecretStr
    redirect_uri: str = OUT_OF_BAND_REDIRECT_URI
    scope: str = DEFAULT_SCOPE
