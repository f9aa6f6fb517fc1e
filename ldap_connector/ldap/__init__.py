"""Directory side of the connector.

    - ConnectionFactory / DirectoryConnection: one ldap3 session per attempt
    - expand: bind DN / search filter templates
    - Authenticator: direct-bind and search-then-bind
"""

from .models import DirectoryEntry, Identity, SearchScope, SecurityMode
from .dn_template import expand
from .connection import ConnectionFactory, DirectoryConnection
from .authenticator import Authenticator

__all__ = [
    "Authenticator",
    "ConnectionFactory",
    "DirectoryConnection",
    "DirectoryEntry",
    "Identity",
    "SearchScope",
    "SecurityMode",
    "expand",
]
