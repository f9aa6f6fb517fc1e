from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from pydantic import ValidationError

from ..exceptions import ConfigError
from ..ldap.models import SearchScope, SecurityMode
from .schema import RawLDAPConfig

logger = logging.getLogger(__name__)

DEFAULT_NAME_ATTRIBUTE = "cn"
DEFAULT_EMAIL_ATTRIBUTE = "mail"
DEFAULT_BIND_TEMPLATE = "uid=%u,%b"
DEFAULT_SEARCH_SCOPE = SearchScope.SUB
DEFAULT_TIMEOUT_MS = 60_000

LDAP_PORT = 389
LDAPS_PORT = 636


@dataclass(frozen=True)
class LDAPConnectorConfig:
    """Validated connector configuration with every default applied."""

    id: str
    server_host: str
    server_port: int
    timeout_s: float
    security_mode: SecurityMode
    base_dn: str
    name_attribute: str = DEFAULT_NAME_ATTRIBUTE
    email_attribute: str = DEFAULT_EMAIL_ATTRIBUTE
    cert_file: str = ""
    key_file: str = ""
    ca_file: str = ""
    skip_cert_verification: bool = False
    search_before_auth: bool = False
    search_filter: str = ""
    search_scope: SearchScope = DEFAULT_SEARCH_SCOPE
    search_bind_dn: str = field(default="", repr=False)
    search_bind_pw: str = field(default="", repr=False)
    bind_template: str = DEFAULT_BIND_TEMPLATE
    attributes: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    ldap_attrs: tuple[str, ...] = ()
    trusted_email_provider: bool = False

    @property
    def uses_tls(self) -> bool:
        return self.security_mode is not SecurityMode.NONE


def _parse_raw(raw: RawLDAPConfig | Mapping[str, Any]) -> RawLDAPConfig:
    if isinstance(raw, RawLDAPConfig):
        return raw
    try:
        return RawLDAPConfig.model_validate(dict(raw))
    except ValidationError as e:
        raise ConfigError(f"Invalid LDAP connector configuration: {e}") from e
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid LDAP connector configuration: {e}") from e


def resolve_config(raw: RawLDAPConfig | Mapping[str, Any]) -> LDAPConnectorConfig:
    """Validate a raw connector record and return the resolved configuration.

    Pure: no network access and no file reads (certificate files are read at connect time).
    """

    cfg = _parse_raw(raw)

    if cfg.use_tls and cfg.use_ssl:
        raise ConfigError("Invalid configuration. useTLS and useSSL are mutually exclusive.")

    if bool(cfg.cert_file) != bool(cfg.key_file):
        raise ConfigError("Invalid configuration. Both certFile and keyFile must be specified.")

    search_scope = DEFAULT_SEARCH_SCOPE
    if cfg.search_scope:
        try:
            search_scope = SearchScope.parse(cfg.search_scope)
        except ValueError:
            raise ConfigError(
                f"Invalid value for searchScope: '{cfg.search_scope}'. Must be one of 'base', 'one' or 'sub'."
            ) from None

    bind_template = DEFAULT_BIND_TEMPLATE
    if cfg.bind_template:
        if cfg.search_before_auth:
            logger.warning("[%s] bindTemplate not used when searchBeforeAuth specified.", cfg.id)
        bind_template = cfg.bind_template

    if cfg.search_before_auth and not cfg.search_filter:
        raise ConfigError("Invalid configuration. searchFilter is required when searchBeforeAuth is set.")

    if cfg.use_ssl:
        mode = SecurityMode.IMPLICIT
    elif cfg.use_tls:
        mode = SecurityMode.UPGRADE
    else:
        mode = SecurityMode.NONE

    port = cfg.server_port or (LDAPS_PORT if mode is SecurityMode.IMPLICIT else LDAP_PORT)
    timeout_ms = cfg.timeout or DEFAULT_TIMEOUT_MS

    attributes = dict(cfg.attributes)

    return LDAPConnectorConfig(
        id=cfg.id,
        server_host=cfg.server_host,
        server_port=port,
        timeout_s=timeout_ms / 1000.0,
        security_mode=mode,
        base_dn=cfg.base_dn,
        name_attribute=cfg.name_attribute or DEFAULT_NAME_ATTRIBUTE,
        email_attribute=cfg.email_attribute or DEFAULT_EMAIL_ATTRIBUTE,
        cert_file=cfg.cert_file,
        key_file=cfg.key_file,
        ca_file=cfg.ca_file,
        skip_cert_verification=cfg.skip_cert_verification,
        search_before_auth=cfg.search_before_auth,
        search_filter=cfg.search_filter,
        search_scope=search_scope,
        search_bind_dn=cfg.search_bind_dn,
        search_bind_pw=cfg.search_bind_pw,
        bind_template=bind_template,
        attributes=MappingProxyType(attributes),
        ldap_attrs=tuple(attributes),
        trusted_email_provider=cfg.trusted_email_provider,
    )
