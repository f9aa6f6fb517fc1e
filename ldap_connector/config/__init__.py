"""Connector configuration: raw records (schema), resolved config (resolver), JSON loading (loader)."""

from .schema import RawLDAPConfig
from .resolver import LDAPConnectorConfig, resolve_config
from .loader import load_connector_records

__all__ = [
    "RawLDAPConfig",
    "LDAPConnectorConfig",
    "resolve_config",
    "load_connector_records",
]
