"""
Repository Container

Executes matched web scripts under the authentication and transaction
levels their descriptions require, and publishes the repository anchors
(root home, company home, person, user home) to script and template
parameters.

Execution Policy
----------------
- `none` authentication: the identity is cleared and the script runs
  anonymously.
- `user`/`admin` authentication requested by a guest: rejected with 401
  before anything runs.
- Otherwise: the authenticator (if any) establishes the identity, `admin`
  scripts additionally require admin authority, and on every exit path the
  identity is reset to exactly what it was on entry.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict

from ..auth.authority import READ, AccessStatus, AuthorityService, PermissionService
from ..auth.context import AuthenticationContext, preserved_authentication
from ..auth.security import Authenticator
from ..config import settings
from ..core.errors import WebScriptError
from ..db.transaction import RetryingTransactionHelper, get_transaction_id
from ..repository import Repository, resolve_image
from .description import RequiredAuthentication, RequiredTransaction
from .registry import Registry
from .runtime import WebScript, WebScriptRequest, WebScriptResponse

logger = logging.getLogger("webscripts.container")


class ServerModel(BaseModel):
    """Descriptor of the running server, published as `server`."""

    name: str
    edition: str
    version: str

    model_config = ConfigDict(frozen=True)


class RepositoryContainer:
    """
    Runtime container for repository-backed web scripts.

    All collaborators are injected; the container keeps no identity or
    transaction state of its own.
    """

    def __init__(
        self,
        registry: Registry,
        repository: Repository,
        transaction_helper: RetryingTransactionHelper,
        authority_service: AuthorityService,
        permission_service: PermissionService,
        server_model: Optional[ServerModel] = None,
    ) -> None:
        self.registry = registry
        self.repository = repository
        self.transaction_helper = transaction_helper
        self.authority_service = authority_service
        self.permission_service = permission_service
        self._server_model = server_model or ServerModel(
            name=settings.server_name,
            edition=settings.server_edition,
            version=settings.server_version,
        )

    # ------------------------------------------------------------------
    # Description / parameters
    # ------------------------------------------------------------------

    def get_description(self) -> ServerModel:
        return self._server_model

    def get_script_parameters(self, context: AuthenticationContext) -> Dict[str, Any]:
        params: Dict[str, Any] = {"server": self._server_model}
        self._add_repo_parameters(context, params)
        return params

    def get_template_parameters(self, context: AuthenticationContext) -> Dict[str, Any]:
        params: Dict[str, Any] = {"server": self._server_model}
        params["imageresolver"] = resolve_image
        self._add_repo_parameters(context, params)
        return params

    def _add_repo_parameters(self, context: AuthenticationContext, params: Dict[str, Any]) -> None:
        """
        Publish repository anchors readable by the current user.

        Only populated inside an active transaction.
        """
        if get_transaction_id() is None:
            return

        root_home = self.repository.get_root_home()
        if root_home is not None and self._can_read(context, root_home):
            params["roothome"] = root_home

        company_home = self.repository.get_company_home()
        if company_home is not None and self._can_read(context, company_home):
            params["companyhome"] = company_home

        person = self.repository.get_person(context)
        # Read access is checked on company home, not on the person node.
        if person is not None and self._can_read(context, company_home):
            params["person"] = person
            params["userhome"] = self.repository.get_user_home(person)

    def _can_read(self, context: AuthenticationContext, node) -> bool:
        return self.permission_service.has_permission(context, node, READ) == AccessStatus.ALLOWED

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute_script(
        self,
        req: WebScriptRequest,
        res: WebScriptResponse,
        auth: Optional[Authenticator],
    ) -> None:
        """
        Execute the script matched by `req` under its required policies.

        Raises
        ------
        WebScriptError
            401 when a guest calls a user/admin script, or a non-admin calls
            an admin script.
        """
        script = req.service_match.web_script
        desc = script.description
        required = desc.required_authentication
        is_guest = req.is_guest
        context = req.authentication

        if required == RequiredAuthentication.none:
            context.clear()
            await self.transactioned_execute(script, req, res)
            return

        if required in (RequiredAuthentication.user, RequiredAuthentication.admin) and is_guest:
            raise WebScriptError(
                401,
                f"Web Script {desc.id} requires user authentication; "
                f"however, a guest has attempted access.",
            )

        with preserved_authentication(context) as current:
            logger.debug(
                "Current authentication: %s",
                "unauthenticated" if current is None else f"authenticated as {current.username}",
            )
            logger.debug("Authentication required: %s", required.value)
            logger.debug("Guest login: %s", is_guest)

            if auth is None or auth.authenticate(required, is_guest):
                if (
                    required == RequiredAuthentication.admin
                    and not self.authority_service.has_admin_authority(context)
                ):
                    raise WebScriptError(
                        401,
                        f"Web Script {desc.id} requires admin authentication; "
                        f"however, a non-admin has attempted access.",
                    )

                await self.transactioned_execute(script, req, res)

    async def transactioned_execute(
        self,
        script: WebScript,
        req: WebScriptRequest,
        res: WebScriptResponse,
    ) -> None:
        """
        Execute `script` within its required level of transaction.
        """
        required_tx = script.description.required_transaction

        if required_tx == RequiredTransaction.none:
            await script.execute(req, res)
            return

        async def work() -> None:
            logger.debug("Begin transaction: %s", required_tx.value)
            res.reset()
            await script.execute(req, res)
            logger.debug("End transaction: %s", required_tx.value)

        if required_tx == RequiredTransaction.required:
            await self.transaction_helper.do_in_transaction(work)
        else:
            await self.transaction_helper.do_in_transaction(
                work, read_only=False, requires_new=True
            )
