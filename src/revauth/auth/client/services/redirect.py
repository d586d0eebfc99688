"""Authorization server redirect parsing.

The authorization server does not redirect back to the application. It
redirects the user agent to one of two of its own pages and reports the
result in the page title:

    Success code=<authorization code> state=<state>
    Failed error=<error code> error_description="<description>" state=<state>

Neither the authorization code, the error code nor the state may contain
whitespace. The error description may.
"""

from __future__ import annotations

import logging
import re

from revauth.auth.client.models.flow import (
    AuthorizationOutcome,
    NavigationKind,
    TerminalPage,
)
from revauth.auth.client.services.security import state_matches

logger = logging.getLogger(__name__)

CODE_PREFIX = "code="
STATE_PREFIX = "state="
ERROR_PREFIX = "error="
ERROR_DESCRIPTION_PREFIX = 'error_description="'

# Split on every single whitespace character; runs of whitespace yield
# empty tokens, so "a  b" is three tokens.
_WHITESPACE = re.compile(r"\s")


def _tokens(title: str) -> list[str]:
    return _WHITESPACE.split(title)


class RedirectResponseParser:
    """Recognizes the server's terminal pages and parses their titles.

    Parsing never raises on page content: every title resolves to one of the
    outcome variants.
    """

    def __init__(self, success_path: str, failed_path: str):
        """Initialize the parser.

        Args:
            success_path: Path of the page reporting a granted authorization
            failed_path: Path of the page reporting an authorization error
        """
        self._success_path = success_path.casefold()
        self._failed_path = failed_path.casefold()

    def classify(self, path: str) -> NavigationKind:
        """Classify a path the user agent navigated to.

        Any path other than the two terminal pages (the login page, for
        example) is NOT_TERMINAL.
        """
        folded = path.casefold()
        if folded == self._success_path:
            return NavigationKind.SUCCESS
        if folded == self._failed_path:
            return NavigationKind.FAILED
        return NavigationKind.NOT_TERMINAL

    def parse(
        self, title: str | None, expected_state: int, kind: NavigationKind
    ) -> AuthorizationOutcome:
        """Parse the title of a terminal page.

        Args:
            title: Title of the page the user agent loaded
            expected_state: State sent in the authorization request
            kind: Classification of the page, SUCCESS or FAILED

        Returns:
            AuthorizationOutcome for the page
        """
        if not kind.is_terminal:
            raise ValueError("Only terminal pages can be parsed")

        if title is None or not title.strip():
            logger.warning("Terminal page has an empty title")
            return AuthorizationOutcome.invalid_response()

        if kind is NavigationKind.SUCCESS:
            outcome = self._parse_success(title, expected_state)
        else:
            outcome = self._parse_failed(title, expected_state)

        logger.debug(f"Parsed {kind.value} page as {outcome.result.value}")
        return outcome

    def parse_page(
        self, page: TerminalPage, expected_state: int
    ) -> AuthorizationOutcome:
        return self.parse(page.title, expected_state, page.kind)

    def _parse_success(self, title: str, expected_state: int) -> AuthorizationOutcome:
        parts = _tokens(title)
        if len(parts) != 3:
            return AuthorizationOutcome.invalid_response()

        if parts[0] != "Success":
            return AuthorizationOutcome.invalid_response()

        if not parts[1].startswith(CODE_PREFIX):
            return AuthorizationOutcome.invalid_response()
        code = parts[1][len(CODE_PREFIX) :]
        if not code:
            return AuthorizationOutcome.invalid_response()

        if not parts[2].startswith(STATE_PREFIX):
            return AuthorizationOutcome.invalid_response()

        # A missing or different state means the response wasn't ours
        if not state_matches(expected_state, parts[2][len(STATE_PREFIX) :]):
            return AuthorizationOutcome.xsrf_detected()

        return AuthorizationOutcome.success(code)

    def _parse_failed(self, title: str, expected_state: int) -> AuthorizationOutcome:
        parts = _tokens(title)
        if len(parts) < 4:
            return AuthorizationOutcome.invalid_response()

        if parts[0] != "Failed":
            return AuthorizationOutcome.invalid_response()

        if not parts[1].startswith(ERROR_PREFIX):
            return AuthorizationOutcome.invalid_response()
        error_code = parts[1][len(ERROR_PREFIX) :]
        if not error_code:
            return AuthorizationOutcome.invalid_response()

        if not parts[2].startswith(ERROR_DESCRIPTION_PREFIX):
            return AuthorizationOutcome.invalid_response()

        # The description runs up to the last quote in the title, so quotes
        # inside it survive.
        # TODO: track escaped quotes instead once the server escapes them.
        start = title.index(ERROR_DESCRIPTION_PREFIX) + len(ERROR_DESCRIPTION_PREFIX)
        end = title.rfind('"')
        if end < start:
            return AuthorizationOutcome.invalid_response()
        error_description = title[start:end]

        if not parts[-1].startswith(STATE_PREFIX):
            return AuthorizationOutcome.invalid_response()

        if not state_matches(expected_state, parts[-1][len(STATE_PREFIX) :]):
            return AuthorizationOutcome.xsrf_detected()

        return AuthorizationOutcome.failed(error_code, error_description)
