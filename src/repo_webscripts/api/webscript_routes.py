"""
Web Script Routes

Single catch-all endpoint that dispatches `/service/...` requests to the
registered web scripts through the repository container.

Request Handling
----------------
- The path (without the `/service` prefix) and HTTP method are matched
  against the registry; no match is a 404.
- `?guest=true` marks the request as a guest request.
- Each request gets its own `AuthenticationContext`, response buffer and
  bearer-token authenticator.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response

from ..auth.context import AuthenticationContext
from ..auth.security import BearerTokenAuthenticator
from ..core.errors import WebScriptError
from ..webscripts.container import RepositoryContainer
from ..webscripts.runtime import WebScriptRequest, WebScriptResponse
from .dependencies import get_container

logger = logging.getLogger("webscripts.api")

router = APIRouter(prefix="/service", tags=["webscripts"])


def _is_guest(request: Request) -> bool:
    return request.query_params.get("guest", "").lower() == "true"


@router.api_route(
    "/{script_path:path}",
    methods=["GET", "POST", "PUT", "DELETE"],
    summary="Execute a web script",
)
async def execute_web_script(
    script_path: str,
    request: Request,
    container: Annotated[RepositoryContainer, Depends(get_container)],
) -> Response:
    """
    Match and execute a web script.

    Returns
    -------
    Response
        The script's buffered output, or the authenticator's challenge.

    Raises
    ------
    WebScriptError
        404 when no script matches; anything the container raises.
    """
    path = "/" + script_path
    match = container.registry.find(request.method, path)
    if match is None:
        raise WebScriptError(
            404,
            f"Script url {path} does not support the method {request.method}",
        )

    script_req = WebScriptRequest(
        service_match=match,
        authentication=AuthenticationContext(),
        is_guest=_is_guest(request),
        parameters=dict(request.query_params),
        headers=dict(request.headers),
        body=await request.body(),
    )
    script_res = WebScriptResponse()
    authenticator = BearerTokenAuthenticator(
        request.headers.get("authorization"),
        script_res,
        script_req.authentication,
    )

    logger.debug(
        "Executing web script %s for %s %s",
        match.web_script.description.id,
        request.method,
        path,
    )

    await container.execute_script(script_req, script_res, authenticator)
    return script_res.to_response()
