from __future__ import annotations

import logging
from contextlib import ExitStack
from typing import TYPE_CHECKING, Callable

from ..exceptions import AuthRejectedError, DirectoryConnectionError, NoMatchError
from .connection import ConnectionFactory, DirectoryConnection
from .dn_template import expand
from .models import DirectoryEntry, Identity

if TYPE_CHECKING:
    from ..config.resolver import LDAPConnectorConfig

logger = logging.getLogger(__name__)

Connect = Callable[[], DirectoryConnection]


class Authenticator:
    """Verifies a username/password pair against the directory.

    Holds nothing but the read-only config and the connect callable, so one instance
    can serve concurrent login requests. Each call opens its own connection(s) and
    closes them before returning.
    """

    def __init__(self, cfg: LDAPConnectorConfig, connect: Connect | None = None) -> None:
        self.cfg = cfg
        self._connect: Connect = connect or ConnectionFactory(cfg).connect

    def search_attributes(self) -> list[str]:
        attrs = [self.cfg.name_attribute, self.cfg.email_attribute]
        attrs.extend(self.cfg.ldap_attrs)
        return attrs

    def _find_user(self, conn: DirectoryConnection, username: str) -> DirectoryEntry:
        cfg = self.cfg
        if not conn.bind(cfg.search_bind_dn, cfg.search_bind_pw):
            raise DirectoryConnectionError("LDAP search bind rejected by the directory")

        search_filter = expand(cfg.search_filter, username, cfg.base_dn)
        entries = conn.search(cfg.base_dn, cfg.search_scope, search_filter, self.search_attributes())
        if not entries:
            raise NoMatchError(f"Search returned no match. filter='{search_filter}' base='{cfg.base_dn}'")
        if len(entries) > 1:
            # Ambiguous directory data: keep the first entry.
            logger.warning(
                "[%s] Search returned %d entries for filter '%s'; using %s",
                cfg.id,
                len(entries),
                search_filter,
                entries[0].dn,
            )
        return entries[0]

    def map_claims(self, entry: DirectoryEntry) -> dict[str, list[str]]:
        claims: dict[str, list[str]] = {}
        for src, dst in self.cfg.attributes.items():
            values = entry.values(src)
            if values:
                claims.setdefault(dst, []).extend(values)
        return claims

    def authenticate(self, username: str, password: str) -> Identity:
        cfg = self.cfg
        if not password:
            # Most servers accept a DN with an empty password as an unauthenticated bind.
            raise AuthRejectedError()

        name = email = ""
        claims: dict[str, list[str]] = {}

        with ExitStack() as stack:
            conn = stack.enter_context(self._connect())

            if cfg.search_before_auth:
                entry = self._find_user(conn, username)
                bind_dn = entry.dn
                name = entry.first(cfg.name_attribute)
                email = entry.first(cfg.email_attribute)
                claims = self.map_claims(entry)

                # Drop to anonymous before the user bind; some servers refuse that on a
                # bound session, in which case the user bind gets a fresh connection.
                if not conn.bind("", ""):
                    logger.warning("[%s] Re-connecting to LDAP server after failure to bind anonymously", cfg.id)
                    stack.close()
                    conn = stack.enter_context(self._connect())
            else:
                bind_dn = expand(cfg.bind_template, username, cfg.base_dn)

            if not conn.bind(bind_dn, password):
                raise AuthRejectedError()

        return Identity(id=bind_dn, name=name, email=email, claims=claims)
