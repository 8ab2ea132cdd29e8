"""
Repository Anchors

Well-known nodes published to web scripts: the store root, company home,
and the current user's person node and home space.

Node identities are references only; node storage lives in the content
repository and is not modelled here. Person and user-home references are
derived deterministically from the user name so that the same user always
resolves to the same nodes.
"""

from __future__ import annotations

import uuid
from pathlib import PurePosixPath
from typing import Optional

from pydantic import BaseModel, Field, ConfigDict

from .config import settings
from .auth.context import AuthenticationContext


# ---------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------

_PERSON_NAMESPACE = uuid.UUID("6ba7b811-9dad-11d1-80b4-00c04fd430c8")
_USERHOME_NAMESPACE = uuid.UUID("6ba7b812-9dad-11d1-80b4-00c04fd430c8")

IMAGE_SIZES = (16, 32)


# ---------------------------------------------------------------------
# Node Reference
# ---------------------------------------------------------------------

class NodeRef(BaseModel):
    """
    Reference to a repository node, rendered as `protocol://store/id`.
    """

    store_ref: str = Field(..., min_length=1)
    id: str = Field(..., min_length=1)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @classmethod
    def parse(cls, value: str) -> "NodeRef":
        store_ref, sep, node_id = value.rpartition("/")
        if not sep or "://" not in store_ref or not node_id:
            raise ValueError(f"Invalid node reference '{value}'")
        return cls(store_ref=store_ref, id=node_id)

    def __str__(self) -> str:
        return f"{self.store_ref}/{self.id}"


# ---------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------

class Repository:
    """
    Resolves the well-known repository anchors.

    Parameters
    ----------
    store_ref : Optional[str]
        Store the anchors live in. Defaults to `settings.store_ref`.
    root_home_id, company_home_id : Optional[str]
        Node ids of the store root and company home.
    """

    def __init__(
        self,
        store_ref: Optional[str] = None,
        root_home_id: Optional[str] = None,
        company_home_id: Optional[str] = None,
    ) -> None:
        self._store_ref = store_ref or settings.store_ref
        self._root_home = NodeRef(
            store_ref=self._store_ref,
            id=root_home_id or settings.root_home_id,
        )
        self._company_home = NodeRef(
            store_ref=self._store_ref,
            id=company_home_id or settings.company_home_id,
        )

    def get_root_home(self) -> NodeRef:
        return self._root_home

    def get_company_home(self) -> NodeRef:
        return self._company_home

    def get_person(self, context: AuthenticationContext) -> Optional[NodeRef]:
        """Person node of the current user, or None when unauthenticated."""
        username = context.get_current_user()
        if username is None:
            return None
        return NodeRef(
            store_ref=self._store_ref,
            id=str(uuid.uuid5(_PERSON_NAMESPACE, username)),
        )

    def get_user_home(self, person: NodeRef) -> NodeRef:
        return NodeRef(
            store_ref=self._store_ref,
            id=str(uuid.uuid5(_USERHOME_NAMESPACE, person.id)),
        )


# ---------------------------------------------------------------------
# Image Resolver
# ---------------------------------------------------------------------

def resolve_image(filename: str, size: int = 16) -> str:
    """
    Return the file-type icon path for `filename`.

    Files without an extension get the `_default` icon. Sizes other than
    16 and 32 fall back to 16.
    """
    if size not in IMAGE_SIZES:
        size = 16
    ext = PurePosixPath(filename).suffix.lstrip(".").lower() or "_default"
    prefix = "" if size == 16 else "-32"
    return f"/images/filetypes{prefix}/{ext}.gif"
