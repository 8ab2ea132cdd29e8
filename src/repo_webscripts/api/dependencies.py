from functools import lru_cache
from typing import Optional

from ..auth.authority import AuthorityPermissionService, ContextAuthorityService
from ..db.session import AsyncSessionLocal
from ..db.transaction import RetryingTransactionHelper
from ..repository import Repository
from ..wcm.scripts import register_deployment_scripts
from ..webscripts.builtin import register_builtin_scripts
from ..webscripts.container import RepositoryContainer
from ..webscripts.registry import Registry


def build_container(
    transaction_helper: Optional[RetryingTransactionHelper] = None,
    repository: Optional[Repository] = None,
) -> RepositoryContainer:
    """Wire a container with every built-in and WCM web script registered."""
    repository = repository or Repository()
    authority_service = ContextAuthorityService()

    container = RepositoryContainer(
        registry=Registry(),
        repository=repository,
        transaction_helper=transaction_helper or RetryingTransactionHelper(AsyncSessionLocal),
        authority_service=authority_service,
        permission_service=AuthorityPermissionService(repository, authority_service),
    )

    register_builtin_scripts(container)
    register_deployment_scripts(container)
    return container


@lru_cache
def get_container() -> RepositoryContainer:
    return build_container()
