from __future__ import annotations

import logging
import ssl
from typing import TYPE_CHECKING, Any, Iterable

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from ldap3 import ANONYMOUS, DEREF_NEVER, NONE, SIMPLE, Connection, Server, Tls
from ldap3.core.exceptions import LDAPException, LDAPInvalidFilterError
from ldap3.core.results import RESULT_NO_SUCH_OBJECT, RESULT_SIZE_LIMIT_EXCEEDED, RESULT_SUCCESS

from ..exceptions import ConfigError, DirectoryConnectionError, NoMatchError
from .models import DirectoryEntry, SearchScope, SecurityMode

if TYPE_CHECKING:
    from ..config.resolver import LDAPConnectorConfig

logger = logging.getLogger(__name__)

_SEARCH_OK = (RESULT_SUCCESS, RESULT_SIZE_LIMIT_EXCEEDED)


def _result_text(conn: Connection) -> str:
    res = dict(conn.result or {})
    desc = str(res.get("description") or "")
    msg = str(res.get("message") or "")
    if desc and msg:
        return f"{desc}: {msg}"
    return desc or msg or "unknown error"


class DirectoryConnection:
    """One session with the directory, owned by a single authentication attempt."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn
        self._closed = False

    def __enter__(self) -> "DirectoryConnection":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def bind(self, dn: str, password: str | None) -> bool:
        """Bind as `dn`; an empty DN means an anonymous bind.

        Returns False when the server rejects the credentials. Transport failures raise
        DirectoryConnectionError.
        """
        conn = self._conn
        if dn:
            conn.authentication = SIMPLE
            conn.user = dn
            conn.password = password
        else:
            conn.authentication = ANONYMOUS
            conn.user = None
            conn.password = None
        try:
            return bool(conn.bind())
        except LDAPException as e:
            raise DirectoryConnectionError(f"LDAP bind failed: {e}") from e

    def search(
        self,
        base_dn: str,
        scope: SearchScope,
        search_filter: str,
        attributes: Iterable[str],
    ) -> list[DirectoryEntry]:
        conn = self._conn
        try:
            conn.search(
                search_base=base_dn,
                search_filter=search_filter,
                search_scope=scope.value,
                dereference_aliases=DEREF_NEVER,
                attributes=list(attributes),
            )
        except LDAPInvalidFilterError as e:
            raise NoMatchError(f"Search returned no match. filter='{search_filter}' base='{base_dn}'") from e
        except LDAPException as e:
            raise DirectoryConnectionError(f"LDAP search failed: {e}") from e

        code = (conn.result or {}).get("result", RESULT_SUCCESS)
        if code == RESULT_NO_SUCH_OBJECT:
            return []
        if code not in _SEARCH_OK:
            raise DirectoryConnectionError(f"LDAP search failed: {_result_text(conn)}")

        entries: list[DirectoryEntry] = []
        for item in conn.response or []:
            if item.get("type") != "searchResEntry":
                continue
            entries.append(DirectoryEntry.from_response(str(item.get("dn") or ""), item.get("attributes")))
        return entries

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._conn.unbind()
        except LDAPException as e:
            logger.debug("LDAP unbind failed: %s", e)


def _read_file(path: str, what: str) -> bytes:
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise ConfigError(f"{path}: unable to read {what}: {e}") from e


class ConnectionFactory:
    """Opens directory connections according to the configured security mode."""

    def __init__(self, cfg: LDAPConnectorConfig) -> None:
        self.cfg = cfg

    def _load_ca_file(self) -> str:
        path = self.cfg.ca_file
        data = _read_file(path, "CA bundle")
        try:
            certs = x509.load_pem_x509_certificates(data)
        except ValueError as e:
            raise ConfigError(f"{path}: Unable to parse certificate data.") from e
        if not certs:
            raise ConfigError(f"{path}: Unable to parse certificate data.")
        return path

    def _load_client_cert(self) -> tuple[str, str]:
        cert_path, key_path = self.cfg.cert_file, self.cfg.key_file
        try:
            x509.load_pem_x509_certificate(_read_file(cert_path, "client certificate"))
        except ValueError as e:
            raise ConfigError(f"{cert_path}: Unable to parse client certificate.") from e
        try:
            serialization.load_pem_private_key(_read_file(key_path, "client key"), password=None)
        except (ValueError, TypeError) as e:
            raise ConfigError(f"{key_path}: Unable to parse client key.") from e
        return cert_path, key_path

    def tls(self) -> Tls | None:
        """TLS parameters for the connection, or None in plaintext mode."""
        cfg = self.cfg
        if not cfg.uses_tls:
            return None

        tls_kwargs: dict[str, Any] = {
            "validate": ssl.CERT_NONE if cfg.skip_cert_verification else ssl.CERT_REQUIRED,
            "valid_names": [cfg.server_host],
            "sni": cfg.server_host,
        }
        if cfg.ca_file:
            tls_kwargs["ca_certs_file"] = self._load_ca_file()
        if cfg.cert_file and cfg.key_file:
            cert_path, key_path = self._load_client_cert()
            tls_kwargs["local_certificate_file"] = cert_path
            tls_kwargs["local_private_key_file"] = key_path
        try:
            return Tls(**tls_kwargs)
        except LDAPException as e:
            raise ConfigError(f"Invalid TLS configuration: {e}") from e

    def connect(self) -> DirectoryConnection:
        cfg = self.cfg
        tls = self.tls()
        logger.debug("Connecting to %s:%d (%s)", cfg.server_host, cfg.server_port, cfg.security_mode.value)

        try:
            server = Server(
                host=cfg.server_host,
                port=cfg.server_port,
                use_ssl=cfg.security_mode is SecurityMode.IMPLICIT,
                tls=tls,
                get_info=NONE,
                connect_timeout=cfg.timeout_s,
            )
            conn = Connection(
                server,
                auto_bind=False,
                read_only=True,
                raise_exceptions=False,
                receive_timeout=cfg.timeout_s,
            )
        except LDAPException as e:
            raise DirectoryConnectionError(f"Invalid LDAP server definition: {e}") from e

        dconn = DirectoryConnection(conn)
        try:
            conn.open()
            if cfg.security_mode is SecurityMode.UPGRADE and not conn.start_tls():
                raise DirectoryConnectionError(f"StartTLS failed: {_result_text(conn)}")
        except LDAPException as e:
            dconn.close()
            raise DirectoryConnectionError(
                f"Unable to connect to {cfg.server_host}:{cfg.server_port}: {e}"
            ) from e
        except DirectoryConnectionError:
            dconn.close()
            raise
        return dconn
