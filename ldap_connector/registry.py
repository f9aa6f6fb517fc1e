"""Connector type table.

The host passes the table it wants to `build_connectors`; nothing registers itself at
import time. Adding a connector type means adding an entry to the mapping handed in.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping

from fastapi.templating import Jinja2Templates

from .connector import LDAP_CONNECTOR_TYPE, LDAPConnector, build_ldap_connector
from .exceptions import ConfigError
from .routers import LoginFunc

ConnectorBuilder = Callable[[Mapping[str, Any], str, LoginFunc, Jinja2Templates], LDAPConnector]

CONNECTOR_TYPES: Mapping[str, ConnectorBuilder] = MappingProxyType(
    {
        LDAP_CONNECTOR_TYPE: build_ldap_connector,
    }
)


def connector_namespace(prefix: str, connector_id: str) -> str:
    return f"{(prefix or '').rstrip('/')}/{connector_id}"


def build_connectors(
    records: Iterable[Mapping[str, Any]],
    connector_types: Mapping[str, ConnectorBuilder],
    *,
    namespace_prefix: str,
    login_func: LoginFunc,
    templates: Jinja2Templates,
) -> dict[str, LDAPConnector]:
    """Build one connector per record, keyed by connector id (in record order)."""

    out: dict[str, LDAPConnector] = {}
    for i, rec in enumerate(records):
        ctype = str(rec.get("type") or "").strip()
        cid = str(rec.get("id") or "").strip()
        if not cid:
            raise ConfigError(f"Connector record #{i}: missing id")
        if not ctype:
            raise ConfigError(f"Connector '{cid}': missing type")
        builder = connector_types.get(ctype)
        if builder is None:
            raise ConfigError(f"Connector '{cid}': unknown connector type '{ctype}'")
        if cid in out:
            raise ConfigError(f"Connector '{cid}': duplicate connector id")

        out[cid] = builder(rec, connector_namespace(namespace_prefix, cid), login_func, templates)
    return out
