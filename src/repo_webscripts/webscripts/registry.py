"""
Web Script Registry

Holds every registered web script and matches inbound (method, path) pairs
against their URI templates. Template segments of the form `{name}` match a
single path segment and are returned as template variables.
"""

from __future__ import annotations

import logging
import re
from threading import RLock
from typing import Dict, List, Optional, Pattern, Tuple

from .description import Description
from .runtime import ServiceMatch, WebScript

logger = logging.getLogger("webscripts.registry")

_VAR_PATTERN = re.compile(r"\{([a-zA-Z_][a-zA-Z0-9_]*)\}")


class DuplicateWebScriptError(ValueError):
    """Raised when a script id or (method, uri) pair is registered twice."""


def compile_uri_template(template: str) -> Pattern[str]:
    """
    Compile a URI template into an anchored regular expression.

    Literal text is escaped; `{var}` becomes a named group matching one
    path segment. A trailing slash on the request path is tolerated.
    """
    parts: List[str] = []
    pos = 0
    for m in _VAR_PATTERN.finditer(template):
        parts.append(re.escape(template[pos:m.start()]))
        parts.append(f"(?P<{m.group(1)}>[^/]+)")
        pos = m.end()
    parts.append(re.escape(template[pos:].rstrip("/")))
    return re.compile("^" + "".join(parts) + "/?$")


class Registry:
    """
    Registry of web scripts keyed by id.

    Matching prefers templates with more literal characters, so
    `/api/servers/new` wins over `/api/servers/{id}`.
    """

    def __init__(self) -> None:
        self._scripts: Dict[str, WebScript] = {}
        self._routes: List[Tuple[str, str, Pattern[str], WebScript]] = []
        self._lock = RLock()

    def register(self, script: WebScript) -> None:
        desc = script.description
        method = desc.method.upper()

        with self._lock:
            if desc.id in self._scripts:
                raise DuplicateWebScriptError(f"Web script '{desc.id}' is already registered.")

            for uri in desc.uris:
                for existing_method, existing_uri, _, _ in self._routes:
                    if existing_method == method and existing_uri == uri:
                        raise DuplicateWebScriptError(
                            f"{method} {uri} is already served by another web script."
                        )

            self._scripts[desc.id] = script
            for uri in desc.uris:
                self._routes.append((method, uri, compile_uri_template(uri), script))

            self._routes.sort(key=lambda r: len(_VAR_PATTERN.sub("", r[1])), reverse=True)

        logger.debug("Registered web script %s (%s %s)", desc.id, method, ", ".join(desc.uris))

    def find(self, method: str, path: str) -> Optional[ServiceMatch]:
        """
        Find the script serving `method` at `path`.

        Returns
        -------
        Optional[ServiceMatch]
            The matched script with its template variables, or None.
        """
        method = method.upper()
        with self._lock:
            routes = list(self._routes)

        for route_method, uri, pattern, script in routes:
            if route_method != method:
                continue
            m = pattern.match(path)
            if m:
                return ServiceMatch(
                    web_script=script,
                    template_vars=m.groupdict(),
                    uri_template=uri,
                )
        return None

    def get_web_script(self, script_id: str) -> Optional[WebScript]:
        with self._lock:
            return self._scripts.get(script_id)

    def get_descriptions(self) -> List[Description]:
        with self._lock:
            return sorted(
                (s.description for s in self._scripts.values()),
                key=lambda d: d.id,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._scripts)
