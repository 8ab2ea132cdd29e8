"""
Bearer Token Authentication

This module is responsible for:

1. Verifying bearer JWTs presented to the web script service.
2. Installing the verified identity into the request's `AuthenticationContext`.
3. Challenging the caller (401 + WWW-Authenticate) when no valid token is
   presented, so the container skips the script.

Security Model
--------------
- Tokens are signed with `settings.jwt_secret` and must carry issuer,
  audience, expiry and subject claims.
- Guest access never needs a token; it installs the configured guest user.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Protocol

import jwt

from ..config import settings
from ..core.errors import WebScriptError
from ..webscripts.description import RequiredAuthentication
from ..webscripts.runtime import WebScriptResponse
from .context import AuthenticationContext

logger = logging.getLogger("webscripts.auth")


# ---------------------------------------------------------------------
# Authenticator Contract
# ---------------------------------------------------------------------

class Authenticator(Protocol):
    def authenticate(self, required: RequiredAuthentication, is_guest: bool) -> bool:
        """Return True if the caller may proceed at the `required` level."""
        ...


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

class JWTVerificationError(RuntimeError):
    """Raised when a token cannot be checked at all due to configuration."""


# ---------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------

def _validate_jwt_config() -> None:
    if not settings.jwt_secret.get_secret_value():
        raise JWTVerificationError("Missing jwt_secret in configuration.")
    if not settings.jwt_algo:
        raise JWTVerificationError("Missing jwt_algo in configuration.")


def _decode_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a bearer token.

    Raises
    ------
    Various PyJWT exceptions, which the authenticator maps to a challenge.
    """
    _validate_jwt_config()

    return jwt.decode(
        token,
        settings.jwt_secret.get_secret_value(),
        algorithms=[settings.jwt_algo],
        audience=settings.jwt_audience,
        issuer=settings.jwt_issuer,
        options={
            "require": ["iss", "aud", "iat", "exp", "sub"],
        },
    )


def _extract_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() != "bearer" or not credentials.strip():
        return None
    return credentials.strip()


# ---------------------------------------------------------------------
# Public Authenticator
# ---------------------------------------------------------------------

class BearerTokenAuthenticator:
    """
    Authenticator for one HTTP request.

    Parameters
    ----------
    authorization : Optional[str]
        Raw `Authorization` header value, if any.
    response : WebScriptResponse
        Response to write a challenge into when authentication fails.
    context : AuthenticationContext
        Identity slot to install the authenticated principal into.
    """

    def __init__(
        self,
        authorization: Optional[str],
        response: WebScriptResponse,
        context: AuthenticationContext,
    ) -> None:
        self._authorization = authorization
        self._response = response
        self._context = context

    def authenticate(self, required: RequiredAuthentication, is_guest: bool) -> bool:
        if is_guest and required == RequiredAuthentication.guest:
            self._context.set_current_user(settings.guest_username)
            logger.debug("Authenticated as guest")
            return True

        token = _extract_bearer(self._authorization)
        if token is None:
            self._challenge("Authentication required.")
            return False

        try:
            payload = _decode_token(token)
        except JWTVerificationError as exc:
            raise WebScriptError(500, "Token verification configuration error.") from exc
        except jwt.ExpiredSignatureError:
            self._challenge("Token has expired.")
            return False
        except jwt.InvalidAudienceError:
            self._challenge("Invalid token audience.")
            return False
        except jwt.InvalidIssuerError:
            self._challenge("Invalid token issuer.")
            return False
        except jwt.InvalidTokenError:
            self._challenge("Invalid or malformed token.")
            return False

        username = payload.get("sub")
        authorities = payload.get("authorities", [])

        if not isinstance(authorities, list):
            self._challenge("'authorities' claim must be a list.")
            return False

        principal = self._context.set_current_user(username, _as_strings(authorities))
        logger.debug("Authenticated as %s", principal.username)
        return True

    def _challenge(self, detail: str) -> None:
        logger.info("Authentication challenge issued: %s", detail)
        self._response.reset()
        self._response.set_status(401)
        self._response.set_header("WWW-Authenticate", 'Bearer realm="Repository"')
        self._response.set_content_type("application/json")
        self._response.write(json.dumps({"error": "unauthorized", "detail": detail}))


def _as_strings(values: List[Any]) -> List[str]:
    return [str(v) for v in values]
