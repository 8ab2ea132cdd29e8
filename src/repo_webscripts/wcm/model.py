"""
WCM Application Model

Qualified names of the persisted deployment server properties and the
constraint values for deploy types and server types.
"""

from typing import Final

WCM_APP_MODEL_URI: Final = "http://www.alfresco.org/model/wcmappmodel/1.0"


def qname(local_name: str) -> str:
    """Render a WCM app model property as `{namespace}localName`."""
    return f"{{{WCM_APP_MODEL_URI}}}{local_name}"


# ---------------------------------------------------------------------
# Persisted Properties
# ---------------------------------------------------------------------

PROP_DEPLOYTYPE: Final = qname("deploytype")
PROP_DEPLOYSERVERTYPE: Final = qname("deployservertype")
PROP_DEPLOYSERVERHOST: Final = qname("deployserverhost")
PROP_DEPLOYSERVERPORT: Final = qname("deployserverport")
PROP_DEPLOYSERVERNAME: Final = qname("deployservername")
PROP_DEPLOYSERVERUSERNAME: Final = qname("deployserverusername")
PROP_DEPLOYSERVERPASSWORD: Final = qname("deployserverpassword")
PROP_DEPLOYSERVERURL: Final = qname("deployserverurl")
PROP_DEPLOYSOURCEPATH: Final = qname("deploysourcepath")
PROP_DEPLOYSERVERTARGET: Final = qname("deployservertarget")
PROP_DEPLOYSERVERALLOCATEDTO: Final = qname("deployserverallocatedto")
PROP_DEPLOYONAPPROVAL: Final = qname("deployonapproval")


# ---------------------------------------------------------------------
# Constraints
# ---------------------------------------------------------------------

# Deploy types
CONSTRAINT_ALFDEPLOY: Final = "alfresco"
CONSTRAINT_FILEDEPLOY: Final = "file"

DEPLOY_TYPES: Final = frozenset({CONSTRAINT_ALFDEPLOY, CONSTRAINT_FILEDEPLOY})

# Server types
CONSTRAINT_LIVESERVER: Final = "live"
CONSTRAINT_TESTSERVER: Final = "test"
