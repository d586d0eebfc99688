from urllib.parse import parse_qs, urlparse

import pytest

from revauth.auth.client.models.flow import (
    OUT_OF_BAND_REDIRECT_URI,
    AuthorizationOutcome,
    AuthorizationRequest,
    AuthorizationResult,
)


class TestAuthorizationRequest:
    """Test authorization URL construction."""

    def test_builds_url_with_parameters_in_order(self):
        # Arrange
        request = AuthorizationRequest(
            authorization_endpoint="https://auth.example.com/OAuth2/Authorization",
            client_id="client-123",
            redirect_uri=OUT_OF_BAND_REDIRECT_URI,
            scope="RevolutionWebApi",
            state=123,
        )

        # Act
        url = request.build_authorization_url()

        # Assert
        assert url == (
            "https://auth.example.com/OAuth2/Authorization"
            "?response_type=code"
            "&client_id=client-123"
            "&redirect_uri=urn%3Aietf%3Awg%3Aoauth%3A2.0%3Aoob"
            "&scope=RevolutionWebApi"
            "&state=123"
        )

    def test_reserved_characters_are_escaped_as_data(self):
        # Arrange
        request = AuthorizationRequest(
            authorization_endpoint="https://auth.example.com/authorize",
            client_id="a/b?c&d=e+f #g",
            redirect_uri="http://localhost:8080/callback",
            scope="read write",
            state=7,
        )

        # Act
        url = request.build_authorization_url()

        # Assert
        assert "client_id=a%2Fb%3Fc%26d%3De%2Bf%20%23g&" in url
        assert "redirect_uri=http%3A%2F%2Flocalhost%3A8080%2Fcallback&" in url
        assert "scope=read%20write&" in url

    def test_unreserved_characters_are_not_escaped(self):
        request = AuthorizationRequest(
            authorization_endpoint="https://auth.example.com/authorize",
            client_id="Az09-._~",
            redirect_uri=OUT_OF_BAND_REDIRECT_URI,
            scope="s",
            state=1,
        )

        assert "client_id=Az09-._~&" in request.build_authorization_url()

    def test_url_parses_back_to_the_same_values(self):
        # Arrange
        request = AuthorizationRequest(
            authorization_endpoint="https://auth.example.com/authorize",
            client_id="my client/1",
            redirect_uri=OUT_OF_BAND_REDIRECT_URI,
            scope="RevolutionWebApi",
            state=2147483646,
        )

        # Act
        parsed = urlparse(request.build_authorization_url())
        query_params = parse_qs(parsed.query)

        # Assert
        assert parsed.path == "/authorize"
        assert query_params == {
            "response_type": ["code"],
            "client_id": ["my client/1"],
            "redirect_uri": [OUT_OF_BAND_REDIRECT_URI],
            "scope": ["RevolutionWebApi"],
            "state": ["2147483646"],
        }


class TestAuthorizationOutcome:
    def test_default_is_no_response(self):
        outcome = AuthorizationOutcome()

        assert outcome.result is AuthorizationResult.NO_RESPONSE
        assert not outcome.is_terminal()
        assert not outcome.is_success()

    def test_success_requires_code(self):
        with pytest.raises(ValueError):
            AuthorizationOutcome.success("")

    def test_failed_requires_error_code(self):
        with pytest.raises(ValueError):
            AuthorizationOutcome.failed("", "description")

    def test_other_results_cannot_carry_payload(self):
        with pytest.raises(ValueError):
            AuthorizationOutcome(AuthorizationResult.XSRF_DETECTED, code="ABC")
        with pytest.raises(ValueError):
            AuthorizationOutcome(AuthorizationResult.CANCELLED, error_code="x")

    def test_describe_never_contains_the_code(self):
        outcome = AuthorizationOutcome.success("secret-code")

        assert "secret-code" not in outcome.describe()

    def test_describe_failed(self):
        assert (
            AuthorizationOutcome.failed("access_denied", "User said no").describe()
            == "access_denied - User said no"
        )
        assert AuthorizationOutcome.failed("server_error", "").describe() == "server_error"

    @pytest.mark.parametrize(
        "outcome",
        [
            AuthorizationOutcome.xsrf_detected(),
            AuthorizationOutcome.invalid_response(),
            AuthorizationOutcome.cancelled(),
            AuthorizationOutcome.timeout(),
            AuthorizationOutcome.failed("access_denied", ""),
        ],
    )
    def test_terminal_non_success_outcomes(self, outcome):
        assert outcome.is_terminal()
        assert not outcome.is_success()
