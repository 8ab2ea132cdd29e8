"""
Authentication Models

This module defines the strongly-typed principal installed into a request's
authentication context once a caller has been authenticated.
"""

from typing import List
from pydantic import BaseModel, Field, ConfigDict


class Principal(BaseModel):
    """
    An authenticated identity.

    Held by `AuthenticationContext` for the lifetime of one script
    invocation. Immutable, so a captured principal can be reinstated
    exactly as it was.
    """

    username: str = Field(
        ...,
        min_length=1,
        description="Name of the authenticated user.",
    )

    authorities: List[str] = Field(
        default_factory=list,
        description="Groups and roles held by the user.",
    )

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )
