from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from ldap3 import BASE, LEVEL, SUBTREE


class SecurityMode(str, Enum):
    NONE = "none"
    IMPLICIT = "implicit"  # LDAPS, TLS from the first byte
    UPGRADE = "upgrade"  # plaintext, then StartTLS


class SearchScope(str, Enum):
    # Values are the ldap3 scope constants so they can be passed straight through.
    BASE = BASE
    ONE = LEVEL
    SUB = SUBTREE

    @classmethod
    def parse(cls, value: str) -> "SearchScope":
        key = (value or "").strip().upper()
        if key not in cls.__members__:
            raise ValueError(value)
        return cls[key]


@dataclass(frozen=True)
class Identity:
    """Normalized identity handed back to the broker.

    Claims are copied on construction into a read-only mapping of tuples.
    """

    id: str
    name: str = ""
    email: str = ""
    claims: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        frozen = MappingProxyType({str(k): tuple(v) for k, v in (self.claims or {}).items()})
        object.__setattr__(self, "claims", frozen)

    def as_dict(self) -> dict[str, Any]:
        """Plain JSON-ready form (claims as lists)."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "claims": {k: list(v) for k, v in self.claims.items()},
        }


def _as_str(v: Any) -> str:
    if isinstance(v, bytes):
        return v.decode("utf-8", errors="replace")
    return str(v)


@dataclass(frozen=True)
class DirectoryEntry:
    dn: str
    attributes: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    @classmethod
    def from_response(cls, dn: str, attributes: Mapping[str, Any] | None) -> "DirectoryEntry":
        """Build an entry from an ldap3 response item.

        Attribute names are folded to lower case; values always become a tuple of str,
        whether ldap3 returned a scalar (schema-aware) or a list.
        """
        attrs: dict[str, tuple[str, ...]] = {}
        for name, raw in (attributes or {}).items():
            if raw is None:
                continue
            if isinstance(raw, (list, tuple, set)):
                values = tuple(_as_str(v) for v in raw)
            else:
                values = (_as_str(raw),)
            attrs[str(name).lower()] = values
        return cls(dn=dn, attributes=attrs)

    def values(self, name: str) -> tuple[str, ...]:
        return tuple(self.attributes.get((name or "").lower(), ()))

    def first(self, name: str) -> str:
        vals = self.values(name)
        return vals[0] if vals else ""
