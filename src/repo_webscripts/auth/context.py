"""
Authentication Context

Request-scoped holder for the identity a web script runs as. One instance is
created per inbound request and passed by reference to the container, the
authenticator and the authority/permission services, so there is no
process-wide or thread-local identity state.
"""

from __future__ import annotations

import contextlib
import logging
from typing import Iterable, Iterator, Optional

from .models import Principal

logger = logging.getLogger("webscripts.auth")


class AuthenticationContext:
    """
    Mutable slot for the current principal.

    An empty slot means the request is unauthenticated.
    """

    def __init__(self, principal: Optional[Principal] = None) -> None:
        self._principal = principal

    def get_current_user(self) -> Optional[str]:
        """Return the current user name, or None when unauthenticated."""
        if self._principal is None:
            return None
        return self._principal.username

    def get_current_principal(self) -> Optional[Principal]:
        return self._principal

    def set_current_user(self, username: str, authorities: Iterable[str] = ()) -> Principal:
        principal = Principal(username=username, authorities=list(authorities))
        self._principal = principal
        return principal

    def set_current_principal(self, principal: Principal) -> None:
        self._principal = principal

    def clear(self) -> None:
        self._principal = None

    def is_authenticated(self) -> bool:
        return self._principal is not None

    def __repr__(self) -> str:
        return f"AuthenticationContext(user={self.get_current_user()!r})"


@contextlib.contextmanager
def preserved_authentication(context: AuthenticationContext) -> Iterator[Optional[Principal]]:
    """
    Capture the current principal and reinstate it on every exit path.

    On exit (normal or exceptional) the context is cleared and, if a
    principal was present on entry, that exact principal is set again.

    Yields
    ------
    Optional[Principal]
        The principal captured on entry.
    """
    captured = context.get_current_principal()
    try:
        yield captured
    finally:
        context.clear()
        if captured is not None:
            context.set_current_principal(captured)

        logger.debug(
            "Authentication reset: %s",
            "unauthenticated" if captured is None else f"authenticated as {captured.username}",
        )
