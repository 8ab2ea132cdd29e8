"""
Global Error Handling

This module defines the web script error type and the application-wide
exception handlers for the web script service.

Design Goals
------------
- Script-level failures carry an explicit HTTP status
- Never leak internal exception details to clients
- Always return deterministic, machine-readable error responses
- Log full stack traces internally for debugging
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Dict, Any

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("webscripts.errors")


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

class WebScriptError(Exception):
    """
    Raised when a web script cannot be served.

    Carries the HTTP status the caller should see (401 for authentication
    failures, 404 when no script matches, and so on) and a message that
    names the offending script where one is known.
    """

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    def __repr__(self) -> str:
        return f"WebScriptError(status_code={self.status_code}, message={self.message!r})"


def _error_slug(status_code: int) -> str:
    try:
        phrase = HTTPStatus(status_code).phrase
    except ValueError:
        return "error"
    return phrase.lower().replace(" ", "_").replace("-", "_")


# ---------------------------------------------------------------------
# Public Exception Handlers
# ---------------------------------------------------------------------

async def web_script_exception_handler(
    request: Request,
    exc: WebScriptError,
) -> JSONResponse:
    """
    Render a WebScriptError with the status it carries.

    Parameters
    ----------
    request : Request
        The incoming HTTP request that triggered the exception.

    exc : WebScriptError
        The raised web script error.

    Returns
    -------
    JSONResponse
        A JSON response with `error` (status slug) and `detail` (message).
    """
    logger.info(
        "Web script error %d during request %s %s: %s",
        exc.status_code,
        request.method,
        request.url.path,
        exc.message,
    )

    payload: Dict[str, Any] = {
        "error": _error_slug(exc.status_code),
        "detail": exc.message,
    }

    headers = None
    if exc.status_code == 401:
        headers = {"WWW-Authenticate": "Bearer"}

    return JSONResponse(
        status_code=exc.status_code,
        content=payload,
        headers=headers,
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """
    Catch-all handler for uncaught exceptions.

    Registered with FastAPI as the final safety net for any exception not
    otherwise handled. Logs the full stack trace and returns a generic 500
    with no internal details.
    """

    # Log full traceback internally (never returned to client)
    logger.exception(
        "Unhandled exception during request: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )

    payload: Dict[str, Any] = {
        "error": "internal_server_error",
        "detail": "Internal server error",
    }

    return JSONResponse(
        status_code=500,
        content=payload,
    )
