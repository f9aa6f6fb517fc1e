from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, field
from typing import Any

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from ldap_connector import log_config
from ldap_connector.config import resolve_config
from ldap_connector.exceptions import DirectoryConnectionError
from ldap_connector.ldap import DirectoryEntry

BASE_DN = "dc=example,dc=com"
ALICE_DN = f"uid=alice,{BASE_DN}"
SEARCH_BIND_DN = f"cn=search,{BASE_DN}"
SEARCH_BIND_PW = "search-secret"


class FakeConnection:
    """Stand-in for DirectoryConnection that records what the authenticator did."""

    def __init__(self, directory: "FakeDirectory", index: int) -> None:
        self.directory = directory
        self.index = index
        self.close_calls = 0
        self.binds: list[str] = []

    def __enter__(self) -> "FakeConnection":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def bind(self, dn: str, password: str | None) -> bool:
        self.binds.append(dn)
        if self.directory.bind_error is not None:
            raise self.directory.bind_error
        if not dn:
            return self.directory.allow_anonymous
        return dn in self.directory.passwords and self.directory.passwords[dn] == password

    def search(self, base_dn, scope, search_filter, attributes):
        self.directory.searches.append(
            {"base": base_dn, "scope": scope, "filter": search_filter, "attributes": list(attributes)}
        )
        if self.directory.search_error is not None:
            raise self.directory.search_error
        return list(self.directory.search_results.get(search_filter, []))

    def close(self) -> None:
        self.close_calls += 1


@dataclass
class FakeDirectory:
    passwords: dict[str, str] = field(default_factory=dict)
    search_results: dict[str, list[DirectoryEntry]] = field(default_factory=dict)
    allow_anonymous: bool = True
    # 1-based connect attempts that fail
    failing_connects: set[int] = field(default_factory=set)
    bind_error: Exception | None = None
    search_error: Exception | None = None
    connect_attempts: int = 0
    connections: list[FakeConnection] = field(default_factory=list)
    searches: list[dict] = field(default_factory=list)

    def connect(self) -> FakeConnection:
        self.connect_attempts += 1
        if self.connect_attempts in self.failing_connects:
            raise DirectoryConnectionError("Unable to connect to ldap.example.com:389: connection refused")
        conn = FakeConnection(self, self.connect_attempts)
        self.connections.append(conn)
        return conn

    def assert_each_closed_once(self) -> None:
        assert [c.close_calls for c in self.connections] == [1] * len(self.connections)


@pytest.fixture
def f_directory() -> FakeDirectory:
    return FakeDirectory(passwords={ALICE_DN: "secret", SEARCH_BIND_DN: SEARCH_BIND_PW})


@pytest.fixture
def f_record() -> dict[str, Any]:
    return {
        "type": "ldap",
        "id": "ldap",
        "serverHost": "ldap.example.com",
        "serverPort": 389,
        "baseDN": BASE_DN,
    }


@pytest.fixture
def f_search_record(f_record: dict[str, Any]) -> dict[str, Any]:
    return {
        **f_record,
        "searchBeforeAuth": True,
        "searchFilter": "(uid=%u)",
        "searchBindDN": SEARCH_BIND_DN,
        "searchBindPw": SEARCH_BIND_PW,
        "attributes": {"memberOf": "groups"},
    }


@pytest.fixture
def f_config(f_record):
    return resolve_config(f_record)


@pytest.fixture
def f_search_config(f_search_record):
    return resolve_config(f_search_record)


@pytest.fixture
def f_alice_entry() -> DirectoryEntry:
    dn = f"cn=Alice,ou=People,{BASE_DN}"
    return DirectoryEntry.from_response(
        dn,
        {
            "cn": ["Alice"],
            "mail": ["alice@example.com"],
            "memberOf": [f"cn=admins,{BASE_DN}", f"cn=staff,{BASE_DN}"],
        },
    )


@dataclass
class CertFiles:
    cert: str
    key: str


@pytest.fixture
def f_cert_files(tmp_path) -> CertFiles:
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "ldap.example.com")])
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + datetime.timedelta(days=1))
        .sign(key, hashes.SHA256())
    )
    cert_path = tmp_path / "cert.pem"
    key_path = tmp_path / "key.pem"
    cert_path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    key_path.write_bytes(
        key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
    )
    return CertFiles(cert=str(cert_path), key=str(key_path))


@pytest.fixture
def restore_logging():
    """Drop the handlers setup_logging installed and put the root level back."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in (log_config._console_handler, log_config._file_handler):
        if handler is not None:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
