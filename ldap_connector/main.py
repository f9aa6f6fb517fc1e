"""FastAPI host for the connectors.

Run with `python -m ldap_connector` or `uvicorn --factory ldap_connector.main:create_app`.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from fastapi import APIRouter, FastAPI, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.templating import Jinja2Templates

from .config import load_connector_records
from .env_settings import EnvSettings, get_env
from .exceptions import ConnectorError
from .log_config import setup_logging
from .registry import CONNECTOR_TYPES, ConnectorBuilder, build_connectors
from .routers import LoginFunc
from .session import read_login_code, signed_code_login_func
from .webui import default_templates

logger = logging.getLogger(__name__)


def create_app(
    records: Iterable[Mapping[str, Any]] | None = None,
    *,
    login_func: LoginFunc | None = None,
    templates: Jinja2Templates | None = None,
    settings: EnvSettings | None = None,
    connector_types: Mapping[str, ConnectorBuilder] = CONNECTOR_TYPES,
) -> FastAPI:
    env = settings or get_env()
    setup_logging(level=env.log_level, log_dir=env.log_dir, retention_days=env.log_retention_days)

    if records is None:
        records = load_connector_records(env.connectors_file)

    own_login_func = login_func is None
    if login_func is None:
        login_func = signed_code_login_func(env.secret_key, env.callback_url)

    connectors = build_connectors(
        records,
        connector_types,
        namespace_prefix=env.namespace_prefix,
        login_func=login_func,
        templates=templates or default_templates(),
    )
    logger.info("Loaded %d connector(s): %s", len(connectors), ", ".join(connectors) or "-")

    app = FastAPI(title="LDAP Connector")
    app.state.connectors = connectors
    router = APIRouter()

    @router.get("/health")
    def health():
        results: dict[str, dict] = {}
        for cid, c in connectors.items():
            try:
                c.healthy()
                results[cid] = {"ok": True, "message": "OK"}
            except ConnectorError as e:
                logger.warning("[%s] Health check failed: %s", cid, e)
                results[cid] = {"ok": False, "message": str(e)}
        ok = all(r["ok"] for r in results.values())
        return JSONResponse(
            {"ok": ok, "connectors": results},
            status_code=status.HTTP_200_OK if ok else status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    @router.get("/connectors")
    def list_connectors():
        return [
            {
                "id": c.id,
                "login_url": c.login_url("", ""),
                "trusted_email_provider": c.is_trusted_email_provider(),
            }
            for c in connectors.values()
        ]

    if own_login_func and env.callback_url.startswith("/"):
        # Our own signed-code hand-off: let the host side of this process decode it.
        @router.get(env.callback_url)
        def callback(code: str = "", session_key: str = ""):
            identity = read_login_code(env.secret_key, code, env.code_max_age_seconds)
            if identity is None:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid or expired code")
            return {"session_key": session_key, "identity": identity.as_dict()}

    for c in connectors.values():
        c.register_routes(router, env.error_url)

    app.include_router(router)
    return app
