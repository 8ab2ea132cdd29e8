"""
Web Script Descriptions

A description is the immutable, declarative part of a web script: its
identity, the URIs it serves, and the authentication and transaction levels
it must run under.
"""

from __future__ import annotations

from enum import Enum
from typing import List

from pydantic import BaseModel, Field, ConfigDict


class RequiredAuthentication(str, Enum):
    """Minimum identity a caller must hold for a script to run."""

    none = "none"
    guest = "guest"
    user = "user"
    admin = "admin"


class RequiredTransaction(str, Enum):
    """Transaction boundary a script must run inside."""

    none = "none"
    required = "required"
    requiresnew = "requiresnew"


class Description(BaseModel):
    """
    Declarative description of a web script.
    """

    id: str = Field(..., min_length=1, description="Unique script identifier.")
    short_name: str = Field(default="", description="Human-readable name.")
    method: str = Field(default="GET", description="HTTP method served.")
    uris: List[str] = Field(
        ...,
        min_length=1,
        description="URI templates, e.g. /api/wcm/webprojects/{webproject}/deploymentservers",
    )
    required_authentication: RequiredAuthentication = RequiredAuthentication.user
    required_transaction: RequiredTransaction = RequiredTransaction.required
    format: str = "json"

    model_config = ConfigDict(frozen=True, extra="forbid")
