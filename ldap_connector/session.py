from __future__ import annotations

from typing import Any, Dict

from itsdangerous import BadData, URLSafeTimedSerializer

from .exceptions import ConfigError
from .ldap import Identity
from .routers import LoginFunc
from .webui import with_query

_SALT = "ldap-connector-login"


def _serializer(secret_key: str) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(secret_key, salt=_SALT)


def create_login_code(secret_key: str, identity: Identity) -> str:
    return _serializer(secret_key).dumps(identity.as_dict())


def read_login_code(secret_key: str, code: str, max_age_seconds: int) -> Identity | None:
    try:
        data: Dict[str, Any] = _serializer(secret_key).loads(code, max_age=max_age_seconds)
    except BadData:
        return None
    if not isinstance(data, dict) or not data.get("id"):
        return None
    claims = data.get("claims") or {}
    return Identity(
        id=str(data["id"]),
        name=str(data.get("name") or ""),
        email=str(data.get("email") or ""),
        claims={str(k): [str(x) for x in v] for k, v in claims.items()},
    )


def signed_code_login_func(secret_key: str, callback_url: str) -> LoginFunc:
    """Default hand-off to the host: a signed, short-lived code on the callback URL."""
    if not secret_key:
        raise ConfigError("LDAP_CONNECTOR_SECRET_KEY is required to sign login codes")

    def login(identity: Identity, session_key: str) -> str:
        code = create_login_code(secret_key, identity)
        return with_query(callback_url, {"code": code, "session_key": session_key})

    return login
