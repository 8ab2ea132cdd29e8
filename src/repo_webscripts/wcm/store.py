"""
Deployment Server Store

Persists deployment server configurations as property maps on
`DeploymentServer` rows.
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.models import DeploymentServer
from ..repository import NodeRef, Repository
from .deployment import DeploymentServerConfig


class DeploymentServerStore:
    """
    Reads and writes deployment servers through an async database session.
    """

    def __init__(self, session: AsyncSession, repository: Repository) -> None:
        """
        Parameters
        ----------
        session : AsyncSession
            Session of the active transaction.
        repository : Repository
            Supplies the store the node references belong to.
        """
        self._session = session
        self._store_ref = repository.get_company_home().store_ref

    def _node_ref(self, node_id: str) -> NodeRef:
        return NodeRef(store_ref=self._store_ref, id=node_id)

    def _to_config(self, row: DeploymentServer) -> DeploymentServerConfig:
        return DeploymentServerConfig.from_repo(self._node_ref(row.node_id), row.properties)

    async def save(self, web_project: str, config: DeploymentServerConfig) -> NodeRef:
        """
        Persist `config` under `web_project`.

        A config without a server reference is stored as a new node;
        otherwise the existing node's properties are replaced.

        Returns
        -------
        NodeRef
            Reference to the persisted node.
        """
        repo_props = config.get_repo_props()

        if config.server_ref is None:
            row = DeploymentServer(
                node_id=str(uuid.uuid4()),
                web_project=web_project,
                properties=repo_props,
            )
            self._session.add(row)
        else:
            row = await self._session.get(DeploymentServer, config.server_ref.id)
            if row is None:
                raise LookupError(f"Deployment server {config.server_ref} does not exist")
            row.properties = repo_props

        await self._session.flush()
        return self._node_ref(row.node_id)

    async def get(self, web_project: str, node_id: str) -> Optional[DeploymentServerConfig]:
        """Return the server `node_id` if it belongs to `web_project`."""
        row = await self._session.get(DeploymentServer, node_id)
        if row is None or row.web_project != web_project:
            return None
        return self._to_config(row)

    async def list_for_project(
        self,
        web_project: str,
        server_type: Optional[str] = None,
    ) -> List[DeploymentServerConfig]:
        """
        List the deployment servers of a web project, optionally only
        those of one server type (`live` or `test`).
        """
        result = await self._session.execute(
            select(DeploymentServer)
            .where(DeploymentServer.web_project == web_project)
            .order_by(DeploymentServer.created_at)
        )

        configs = [self._to_config(row) for row in result.scalars().all()]
        if server_type is not None:
            configs = [c for c in configs if c.properties.type == server_type]
        return configs
