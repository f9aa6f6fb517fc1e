"""LDAP authentication connector for an OpenID-Connect identity broker."""

from .exceptions import (
    AuthRejectedError,
    ConfigError,
    ConnectorError,
    DirectoryConnectionError,
    NoMatchError,
)
from .config import LDAPConnectorConfig, RawLDAPConfig, resolve_config
from .ldap import Authenticator, Identity
from .connector import LDAPConnector, build_ldap_connector
from .registry import CONNECTOR_TYPES, build_connectors

__all__ = [
    "AuthRejectedError",
    "ConfigError",
    "ConnectorError",
    "DirectoryConnectionError",
    "NoMatchError",
    "LDAPConnectorConfig",
    "RawLDAPConfig",
    "resolve_config",
    "Authenticator",
    "Identity",
    "LDAPConnector",
    "build_ldap_connector",
    "CONNECTOR_TYPES",
    "build_connectors",
]
