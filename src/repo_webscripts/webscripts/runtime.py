"""
Web Script Runtime Types

Request and response abstractions a web script executes against, plus the
`WebScript` contract itself. These types are HTTP-framework neutral; the API
layer converts to and from FastAPI objects.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol, TYPE_CHECKING

from fastapi import Response

from ..auth.context import AuthenticationContext
from .description import Description

if TYPE_CHECKING:
    from .container import RepositoryContainer


# ---------------------------------------------------------------------
# Script Contract
# ---------------------------------------------------------------------

class WebScript(Protocol):
    description: Description

    async def execute(self, req: "WebScriptRequest", res: "WebScriptResponse") -> None:
        ...


@dataclass(frozen=True)
class ServiceMatch:
    """Result of matching a request path against the registry."""

    web_script: WebScript
    template_vars: Dict[str, str] = field(default_factory=dict)
    uri_template: str = ""


# ---------------------------------------------------------------------
# Request / Response
# ---------------------------------------------------------------------

@dataclass
class WebScriptRequest:
    """
    A single inbound script invocation.

    `authentication` is the request-scoped identity context; the container
    installs, clears and restores the principal on it.
    """

    service_match: ServiceMatch
    authentication: AuthenticationContext = field(default_factory=AuthenticationContext)
    is_guest: bool = False
    parameters: Dict[str, str] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    def get_parameter(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.parameters.get(name, default)

    def get_template_var(self, name: str) -> Optional[str]:
        return self.service_match.template_vars.get(name)

    def get_header(self, name: str) -> Optional[str]:
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None

    def json(self) -> Any:
        if not self.body:
            return None
        return json.loads(self.body)


class WebScriptResponse:
    """
    Buffered script output.

    Scripts write into the buffer; the API layer turns the finished response
    into a FastAPI `Response`.
    """

    def __init__(self) -> None:
        self.status: int = 200
        self.headers: Dict[str, str] = {}
        self.content_type: str = "application/json"
        self._chunks: List[str] = []

    def set_status(self, status: int) -> None:
        self.status = status

    def set_header(self, name: str, value: str) -> None:
        self.headers[name] = value

    def set_content_type(self, content_type: str) -> None:
        self.content_type = content_type

    def write(self, text: str) -> None:
        self._chunks.append(text)

    def reset(self) -> None:
        """Discard status, headers and output, e.g. before a transaction retry."""
        self.status = 200
        self.headers.clear()
        self.content_type = "application/json"
        self._chunks.clear()

    def get_content(self) -> str:
        return "".join(self._chunks)

    def to_response(self) -> Response:
        return Response(
            content=self.get_content(),
            status_code=self.status,
            headers=dict(self.headers),
            media_type=self.content_type,
        )


# ---------------------------------------------------------------------
# Base Script
# ---------------------------------------------------------------------

class AbstractWebScript:
    """
    Convenience base for scripts served by a `RepositoryContainer`.

    Subclasses set `description` and implement `execute`.
    """

    description: Description

    def __init__(self, container: "RepositoryContainer") -> None:
        self.container = container

    def create_script_parameters(self, req: WebScriptRequest) -> Dict[str, Any]:
        params = self.container.get_script_parameters(req.authentication)
        params["args"] = dict(req.parameters)
        params["url"] = dict(req.service_match.template_vars)
        return params

    def create_template_parameters(self, req: WebScriptRequest) -> Dict[str, Any]:
        params = self.container.get_template_parameters(req.authentication)
        params["args"] = dict(req.parameters)
        return params

    @staticmethod
    def render_json(res: WebScriptResponse, payload: Mapping[str, Any] | List[Any], status: int = 200) -> None:
        res.reset()
        res.set_status(status)
        res.set_content_type("application/json")
        res.write(json.dumps(payload, default=str))

    async def execute(self, req: WebScriptRequest, res: WebScriptResponse) -> None:
        raise NotImplementedError
