"""
Built-in Web Scripts

- `index`: lists every registered web script. Anonymous, no transaction.
- `server`: describes the server and the repository anchors visible to the
  caller.
"""

from __future__ import annotations

from .container import RepositoryContainer
from .description import Description, RequiredAuthentication, RequiredTransaction
from .runtime import AbstractWebScript, WebScriptRequest, WebScriptResponse


class IndexWebScript(AbstractWebScript):
    description = Description(
        id="index",
        short_name="Web script index",
        method="GET",
        uris=["/index"],
        required_authentication=RequiredAuthentication.none,
        required_transaction=RequiredTransaction.none,
    )

    async def execute(self, req: WebScriptRequest, res: WebScriptResponse) -> None:
        scripts = [
            {
                "id": d.id,
                "shortName": d.short_name,
                "method": d.method,
                "uris": d.uris,
                "authentication": d.required_authentication.value,
                "transaction": d.required_transaction.value,
            }
            for d in self.container.registry.get_descriptions()
        ]
        self.render_json(res, {"webscripts": scripts})


class ServerWebScript(AbstractWebScript):
    description = Description(
        id="server",
        short_name="Server and repository anchors",
        method="GET",
        uris=["/api/server"],
        required_authentication=RequiredAuthentication.user,
        required_transaction=RequiredTransaction.required,
    )

    async def execute(self, req: WebScriptRequest, res: WebScriptResponse) -> None:
        params = self.create_script_parameters(req)
        server = params["server"]

        payload = {
            "server": server.model_dump(),
            "user": req.authentication.get_current_user(),
        }
        for key in ("roothome", "companyhome", "person", "userhome"):
            if key in params:
                payload[key] = str(params[key])

        self.render_json(res, payload)


def register_builtin_scripts(container: RepositoryContainer) -> None:
    container.registry.register(IndexWebScript(container))
    container.registry.register(ServerWebScript(container))
