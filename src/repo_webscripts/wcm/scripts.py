"""
Deployment Server Web Scripts

Web scripts for listing, reading and creating the deployment servers of a
web project. Passwords are never rendered.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List

from pydantic import ValidationError

from ..core.errors import WebScriptError
from ..db.transaction import get_current_session
from ..webscripts.container import RepositoryContainer
from ..webscripts.description import Description, RequiredAuthentication, RequiredTransaction
from ..webscripts.runtime import AbstractWebScript, WebScriptRequest, WebScriptResponse
from .deployment import PROP_PASSWORD, DeploymentServerConfig
from .model import DEPLOY_TYPES
from .store import DeploymentServerStore

logger = logging.getLogger("webscripts.wcm")

_SERVERS_URI = "/api/wcm/webprojects/{webproject}/deploymentservers"


def server_to_json(config: DeploymentServerConfig) -> Dict[str, Any]:
    props = config.get_properties()
    props.pop(PROP_PASSWORD, None)
    return {
        "id": config.id,
        "nodeRef": str(config.server_ref) if config.server_ref is not None else None,
        "deployType": config.deploy_type,
        "properties": props,
    }


class _DeploymentServerScript(AbstractWebScript):

    def _store(self) -> DeploymentServerStore:
        session = get_current_session()
        if session is None:
            raise RuntimeError(f"{self.description.id} must run inside a transaction")
        return DeploymentServerStore(session, self.container.repository)


class ListDeploymentServers(_DeploymentServerScript):
    description = Description(
        id="wcm.deploymentservers.get",
        short_name="List deployment servers",
        method="GET",
        uris=[_SERVERS_URI],
        required_authentication=RequiredAuthentication.user,
        required_transaction=RequiredTransaction.required,
    )

    async def execute(self, req: WebScriptRequest, res: WebScriptResponse) -> None:
        web_project = req.get_template_var("webproject")
        server_type = req.get_parameter("type")

        configs = await self._store().list_for_project(web_project, server_type)
        data: List[Dict[str, Any]] = [server_to_json(c) for c in configs]

        self.render_json(res, {"webproject": web_project, "data": data})


class GetDeploymentServer(_DeploymentServerScript):
    description = Description(
        id="wcm.deploymentserver.get",
        short_name="Get deployment server",
        method="GET",
        uris=[_SERVERS_URI + "/{serverid}"],
        required_authentication=RequiredAuthentication.user,
        required_transaction=RequiredTransaction.required,
    )

    async def execute(self, req: WebScriptRequest, res: WebScriptResponse) -> None:
        web_project = req.get_template_var("webproject")
        server_id = req.get_template_var("serverid")

        config = await self._store().get(web_project, server_id)
        if config is None:
            raise WebScriptError(
                404,
                f"Deployment server {server_id} not found in web project {web_project}.",
            )

        self.render_json(res, {"data": server_to_json(config)})


class CreateDeploymentServer(_DeploymentServerScript):
    """
    Create a deployment server from a JSON body of the form
    `{"deployType": "file", "properties": {"host": ..., "targetName": ...}}`.
    """

    description = Description(
        id="wcm.deploymentservers.post",
        short_name="Create deployment server",
        method="POST",
        uris=[_SERVERS_URI],
        required_authentication=RequiredAuthentication.admin,
        required_transaction=RequiredTransaction.requiresnew,
    )

    async def execute(self, req: WebScriptRequest, res: WebScriptResponse) -> None:
        web_project = req.get_template_var("webproject")

        try:
            body = req.json()
        except json.JSONDecodeError as exc:
            raise WebScriptError(400, f"Request body is not valid JSON: {exc.msg}") from exc

        if not isinstance(body, dict):
            raise WebScriptError(400, "Request body must be a JSON object.")

        deploy_type = body.get("deployType")
        if deploy_type not in DEPLOY_TYPES:
            raise WebScriptError(
                400,
                f"deployType must be one of {', '.join(sorted(DEPLOY_TYPES))}; got {deploy_type!r}.",
            )

        properties = body.get("properties") or {}
        if not isinstance(properties, dict):
            raise WebScriptError(400, "properties must be a JSON object.")

        config = DeploymentServerConfig(deploy_type)
        try:
            config.set_properties(properties)
        except ValidationError as exc:
            raise WebScriptError(400, f"Invalid deployment server properties: {exc.errors()}") from exc

        node_ref = await self._store().save(web_project, config)
        saved = DeploymentServerConfig.from_repo(node_ref, config.get_repo_props())

        logger.info(
            "Created %s deployment server %s in web project %s",
            deploy_type,
            node_ref,
            web_project,
        )

        self.render_json(res, {"data": server_to_json(saved)}, status=201)


def register_deployment_scripts(container: RepositoryContainer) -> None:
    for script_cls in (ListDeploymentServers, GetDeploymentServer, CreateDeploymentServer):
        container.registry.register(script_cls(container))
