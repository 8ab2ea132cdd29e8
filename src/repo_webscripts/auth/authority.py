"""
Authority and Permission Services

Narrow capabilities the container consults after authentication:

- `AuthorityService.has_admin_authority` decides the `admin` level.
- `PermissionService.has_permission` gates which repository anchors are
  published to scripts and templates.

Both read the identity from the `AuthenticationContext` they are given.
"""

from __future__ import annotations

from enum import Enum
from typing import FrozenSet, Optional, Protocol

from ..config import settings
from ..repository import NodeRef, Repository
from .context import AuthenticationContext


READ = "Read"
WRITE = "Write"


class AccessStatus(str, Enum):
    ALLOWED = "ALLOWED"
    DENIED = "DENIED"
    UNDETERMINED = "UNDETERMINED"


# ---------------------------------------------------------------------
# Contracts
# ---------------------------------------------------------------------

class AuthorityService(Protocol):
    def has_admin_authority(self, context: AuthenticationContext) -> bool:
        ...


class PermissionService(Protocol):
    def has_permission(
        self,
        context: AuthenticationContext,
        node: NodeRef,
        permission: str,
    ) -> AccessStatus:
        ...


# ---------------------------------------------------------------------
# Implementations
# ---------------------------------------------------------------------

class ContextAuthorityService:
    """
    Grants admin authority to principals holding any configured admin
    authority (group or role name).
    """

    def __init__(self, admin_authorities: Optional[FrozenSet[str]] = None) -> None:
        if admin_authorities is None:
            admin_authorities = settings.admin_authority_set()
        self._admin_authorities = frozenset(admin_authorities)

    def has_admin_authority(self, context: AuthenticationContext) -> bool:
        principal = context.get_current_principal()
        if principal is None:
            return False
        return bool(self._admin_authorities.intersection(principal.authorities))


class AuthorityPermissionService:
    """
    Coarse permission model over the repository anchors.

    Unauthenticated callers are denied everything, administrators are
    allowed everything, the root home is reserved to administrators, and
    any other node is readable but not writable.
    """

    def __init__(self, repository: Repository, authority_service: AuthorityService) -> None:
        self._repository = repository
        self._authority_service = authority_service

    def has_permission(
        self,
        context: AuthenticationContext,
        node: NodeRef,
        permission: str,
    ) -> AccessStatus:
        if not context.is_authenticated():
            return AccessStatus.DENIED

        if self._authority_service.has_admin_authority(context):
            return AccessStatus.ALLOWED

        if node == self._repository.get_root_home():
            return AccessStatus.DENIED

        if permission == READ:
            return AccessStatus.ALLOWED

        return AccessStatus.DENIED
