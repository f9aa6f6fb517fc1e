from __future__ import annotations

import logging
import posixpath
import threading
from typing import Any, Mapping
from urllib.parse import urlencode, urlsplit

from fastapi import APIRouter
from fastapi.templating import Jinja2Templates
from jinja2 import Template

from .config import LDAPConnectorConfig, RawLDAPConfig, resolve_config
from .ldap import Authenticator, ConnectionFactory, Identity
from .ldap.authenticator import Connect
from .routers import LoginFunc, add_login_route
from .webui import LOGIN_PAGE_TEMPLATE, find_template

logger = logging.getLogger(__name__)

LDAP_CONNECTOR_TYPE = "ldap"


def namespace_path(namespace: str) -> str:
    """Path part of the connector namespace, without a trailing slash."""
    path = urlsplit(namespace or "").path or "/"
    if not path.startswith("/"):
        path = "/" + path
    return path.rstrip("/")


class LDAPConnector:
    """What the host broker holds for one configured LDAP connector."""

    def __init__(
        self,
        cfg: LDAPConnectorConfig,
        namespace: str,
        login_func: LoginFunc,
        login_template: Template,
        *,
        connect: Connect | None = None,
    ) -> None:
        self.cfg = cfg
        self.namespace = namespace_path(namespace)
        self._login_func = login_func
        self._login_template = login_template
        self._connect: Connect = connect or ConnectionFactory(cfg).connect
        self.authenticator = Authenticator(cfg, self._connect)

    @property
    def id(self) -> str:
        return self.cfg.id

    @property
    def login_path(self) -> str:
        return posixpath.join(self.namespace or "/", "login")

    def healthy(self) -> None:
        """Open and close one connection; raises the connection (or config) error if that fails."""
        with self._connect():
            pass

    def authenticate(self, username: str, password: str) -> Identity:
        return self.authenticator.authenticate(username, password)

    def login_url(self, session_key: str, prompt: str) -> str:
        q = urlencode(sorted({"session_key": session_key, "prompt": prompt}.items()))
        return f"{self.login_path}?{q}"

    def register_routes(self, router: APIRouter, error_url: str) -> None:
        add_login_route(
            router,
            self.login_path,
            authenticator=self.authenticator,
            login_func=self._login_func,
            template=self._login_template,
            error_url=error_url,
        )
        logger.info("[%s] Login route mounted at %s", self.id, self.login_path)

    def sync(self) -> threading.Event:
        # No background directory sync for LDAP: the event is never set.
        return threading.Event()

    def is_trusted_email_provider(self) -> bool:
        return self.cfg.trusted_email_provider


def build_ldap_connector(
    record: RawLDAPConfig | Mapping[str, Any],
    namespace: str,
    login_func: LoginFunc,
    templates: Jinja2Templates,
    *,
    connect: Connect | None = None,
) -> LDAPConnector:
    """Build a connector from a raw record; raises ConfigError if anything is unusable."""
    tpl = find_template(templates, LOGIN_PAGE_TEMPLATE)
    cfg = resolve_config(record)
    return LDAPConnector(cfg, namespace, login_func, tpl, connect=connect)
