"""
Deployment Server Configuration

In-memory record of one deployment target, with two-way conversion to and
from the persisted property map.

Conditional Properties
----------------------
- `targetName` is only persisted (and only read back) for file system
  receiver targets (deploy type `file`).
- `onApproval` is only persisted for `live` servers. When reading a live
  server with no stored value it defaults to False.

Empty or absent values are never written to the persisted map.
"""

from __future__ import annotations

import uuid
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, Field, ConfigDict, field_validator

from ..repository import NodeRef
from .model import (
    CONSTRAINT_FILEDEPLOY,
    CONSTRAINT_LIVESERVER,
    PROP_DEPLOYONAPPROVAL,
    PROP_DEPLOYSERVERALLOCATEDTO,
    PROP_DEPLOYSERVERHOST,
    PROP_DEPLOYSERVERNAME,
    PROP_DEPLOYSERVERPASSWORD,
    PROP_DEPLOYSERVERPORT,
    PROP_DEPLOYSERVERTARGET,
    PROP_DEPLOYSERVERTYPE,
    PROP_DEPLOYSERVERURL,
    PROP_DEPLOYSERVERUSERNAME,
    PROP_DEPLOYSOURCEPATH,
    PROP_DEPLOYTYPE,
)


# ---------------------------------------------------------------------
# Property Names
# ---------------------------------------------------------------------

PROP_TYPE = "type"
PROP_NAME = "name"
PROP_HOST = "host"
PROP_PORT = "port"
PROP_USER = "username"
PROP_PASSWORD = "password"
PROP_URL = "url"
PROP_SOURCE_PATH = "sourcePath"
PROP_TARGET_NAME = "targetName"
PROP_ALLOCATED_TO = "allocatedTo"
PROP_ON_APPROVAL = "onApproval"


# ---------------------------------------------------------------------
# Property Record
# ---------------------------------------------------------------------

class DeploymentServerProperties(BaseModel):
    """
    Named properties of a deployment server.

    Accepts both the external property names (`sourcePath`, `targetName`,
    ...) and the Python field names. The port is held as a string, the
    way it arrives from forms, and persisted as an integer.
    """

    type: Optional[str] = None
    name: Optional[str] = None
    host: Optional[str] = None
    port: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    url: Optional[str] = None
    source_path: Optional[str] = Field(default=None, alias=PROP_SOURCE_PATH)
    target_name: Optional[str] = Field(default=None, alias=PROP_TARGET_NAME)
    allocated_to: Optional[str] = Field(default=None, alias=PROP_ALLOCATED_TO)
    on_approval: Optional[bool] = Field(default=None, alias=PROP_ON_APPROVAL)

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra="forbid",
    )

    @field_validator("port", mode="before")
    @classmethod
    def validate_port(cls, v: Any) -> Any:
        if v is None or isinstance(v, bool):
            return v
        if isinstance(v, int):
            return str(v)
        if isinstance(v, str):
            v = v.strip()
            if v and not (v.isascii() and v.isdigit()):
                raise ValueError(f"port must be numeric; got '{v}'")
        return v

    def to_mapping(self) -> Dict[str, Any]:
        """Return the set properties keyed by their external names."""
        return self.model_dump(by_alias=True, exclude_none=True)


def _present(value: Optional[str]) -> bool:
    return value is not None and len(value) > 0


# ---------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------

def includes_target_name(deploy_type: Optional[str]) -> bool:
    """Target names only apply to file system receivers."""
    return deploy_type == CONSTRAINT_FILEDEPLOY


def includes_on_approval(server_type: Optional[str]) -> bool:
    """The approval flag only applies to live servers."""
    return server_type == CONSTRAINT_LIVESERVER


def to_repo_props(
    deploy_type: Optional[str],
    props: DeploymentServerProperties,
) -> Dict[str, Any]:
    """
    Project named properties onto the persisted property map.

    Parameters
    ----------
    deploy_type : Optional[str]
        Deploy type tag; always written.
    props : DeploymentServerProperties
        Properties to persist.

    Returns
    -------
    Dict[str, Any]
        Persisted properties keyed by qualified name.
    """
    repo_props: Dict[str, Any] = {PROP_DEPLOYTYPE: deploy_type}

    if _present(props.type):
        repo_props[PROP_DEPLOYSERVERTYPE] = props.type

    if _present(props.host):
        repo_props[PROP_DEPLOYSERVERHOST] = props.host

    if _present(props.port):
        repo_props[PROP_DEPLOYSERVERPORT] = int(props.port)

    if _present(props.name):
        repo_props[PROP_DEPLOYSERVERNAME] = props.name

    if _present(props.username):
        repo_props[PROP_DEPLOYSERVERUSERNAME] = props.username

    if _present(props.password):
        repo_props[PROP_DEPLOYSERVERPASSWORD] = props.password

    if _present(props.url):
        repo_props[PROP_DEPLOYSERVERURL] = props.url

    if _present(props.source_path):
        repo_props[PROP_DEPLOYSOURCEPATH] = props.source_path

    if _present(props.allocated_to):
        repo_props[PROP_DEPLOYSERVERALLOCATEDTO] = props.allocated_to

    if includes_target_name(deploy_type) and _present(props.target_name):
        repo_props[PROP_DEPLOYSERVERTARGET] = props.target_name

    if includes_on_approval(props.type) and props.on_approval is not None:
        repo_props[PROP_DEPLOYONAPPROVAL] = props.on_approval

    return repo_props


def from_repo_props(
    repo_props: Mapping[str, Any],
    deploy_type: Optional[str] = None,
) -> DeploymentServerProperties:
    """
    Read named properties back from a persisted property map.

    `deploy_type` decides whether the target name is read; it defaults to
    the deploy type stored in the map.
    """
    if deploy_type is None:
        deploy_type = repo_props.get(PROP_DEPLOYTYPE)
    server_type = repo_props.get(PROP_DEPLOYSERVERTYPE)

    values: Dict[str, Any] = {
        "type": server_type,
        "host": repo_props.get(PROP_DEPLOYSERVERHOST),
        "name": repo_props.get(PROP_DEPLOYSERVERNAME),
        "username": repo_props.get(PROP_DEPLOYSERVERUSERNAME),
        "password": repo_props.get(PROP_DEPLOYSERVERPASSWORD),
        "url": repo_props.get(PROP_DEPLOYSERVERURL),
        "source_path": repo_props.get(PROP_DEPLOYSOURCEPATH),
        "allocated_to": repo_props.get(PROP_DEPLOYSERVERALLOCATEDTO),
    }

    port = repo_props.get(PROP_DEPLOYSERVERPORT)
    if port is not None:
        values["port"] = str(port)

    if includes_target_name(deploy_type):
        values["target_name"] = repo_props.get(PROP_DEPLOYSERVERTARGET)

    if includes_on_approval(server_type):
        on_approval = repo_props.get(PROP_DEPLOYONAPPROVAL)
        values["on_approval"] = on_approval if on_approval is not None else False

    return DeploymentServerProperties(**values)


# ---------------------------------------------------------------------
# Configuration Record
# ---------------------------------------------------------------------

class DeploymentServerConfig:
    """
    Configuration for one deployment server.

    Create a fresh record with `DeploymentServerConfig(deploy_type)` or
    hydrate one from storage with `DeploymentServerConfig.from_repo(...)`.
    Either way the record gets a newly generated id.
    """

    def __init__(self, deploy_type: Optional[str]) -> None:
        self._id = str(uuid.uuid4())
        self._server_ref: Optional[NodeRef] = None
        self._deploy_type = deploy_type
        self._props = DeploymentServerProperties()

    @classmethod
    def from_repo(
        cls,
        server_ref: NodeRef,
        repo_props: Mapping[str, Any],
    ) -> "DeploymentServerConfig":
        config = cls(repo_props.get(PROP_DEPLOYTYPE))
        config._server_ref = server_ref
        config.populate_from_repo_props(repo_props)
        return config

    def __repr__(self) -> str:
        return (
            f"DeploymentServerConfig(id={self._id!r}, server_ref={self._server_ref}, "
            f"deploy_type={self._deploy_type!r}, props={self._props.to_mapping()!r})"
        )

    @property
    def id(self) -> str:
        return self._id

    @property
    def server_ref(self) -> Optional[NodeRef]:
        return self._server_ref

    @property
    def deploy_type(self) -> Optional[str]:
        return self._deploy_type

    @property
    def properties(self) -> DeploymentServerProperties:
        return self._props

    def get_properties(self) -> Dict[str, Any]:
        """Set properties keyed by external name. The dict is a copy."""
        return self._props.to_mapping()

    def set_properties(
        self,
        props: Union[DeploymentServerProperties, Mapping[str, Any]],
    ) -> None:
        """
        Replace all properties.

        Mappings are validated and copied; later changes to the caller's
        mapping do not affect this record.
        """
        if isinstance(props, DeploymentServerProperties):
            self._props = props
        else:
            self._props = DeploymentServerProperties.model_validate(dict(props))

    def get_repo_props(self) -> Dict[str, Any]:
        return to_repo_props(self._deploy_type, self._props)

    def populate_from_repo_props(self, repo_props: Mapping[str, Any]) -> None:
        self._props = from_repo_props(repo_props, self._deploy_type)
