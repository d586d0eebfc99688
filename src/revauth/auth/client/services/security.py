"""Security utilities for the authorization code flow.

Provides state value generation and comparison for XSRF protection.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable

logger = logging.getLogger(__name__)

# States are non-negative 32-bit integers
STATE_UPPER_BOUND = 2**31 - 1


class StateGenerator:
    """Generates unpredictable state values for XSRF protection.

    Each generator owns its entropy source. By default values come from the
    operating system's CSPRNG; a different ``randbelow`` callable may be
    injected, e.g. a seeded ``random.Random().randrange`` in tests.
    """

    def __init__(self, randbelow: Callable[[int], int] | None = None):
        """Initialize the state generator.

        Args:
            randbelow: Callable returning a random int in [0, n) for a given n.
                Defaults to secrets.randbelow.
        """
        self._randbelow = randbelow or secrets.randbelow
        self._last: int | None = None
        self._needs_warning = randbelow is not None

    def next(self) -> int:
        """Return a new state value in [0, 2**31 - 1).

        Returns:
            Random non-negative 32-bit integer
        """
        if self._needs_warning:
            logger.warning(
                "State values come from an injected entropy source; XSRF "
                "protection is only as strong as that source"
            )
            self._needs_warning = False

        state = self._randbelow(STATE_UPPER_BOUND)

        if state == self._last:
            logger.warning(
                "State generator returned the same value twice in a row; "
                "its entropy source may be degenerate"
            )
        self._last = state

        return state


def state_matches(expected: int, actual: str) -> bool:
    """Compare a returned state with the expected one.

    The comparison is done on the decimal text of the expected state, in
    constant time. Any difference, an empty value included, is a mismatch.

    Args:
        expected: State sent in the authorization request
        actual: State text taken from the server's response
    """
    return secrets.compare_digest(
        str(expected).encode("utf-8"), actual.encode("utf-8", "surrogatepass")
    )
