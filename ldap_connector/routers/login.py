from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from jinja2 import Template
from starlette.concurrency import run_in_threadpool

from ..exceptions import AuthRejectedError, ConfigError, DirectoryConnectionError, NoMatchError
from ..webui import redirect_error, render_page

if TYPE_CHECKING:
    from ..ldap import Authenticator, Identity

logger = logging.getLogger(__name__)

LoginFunc = Callable[["Identity", str], str]

MSG_MISSING_USERID = "missing user id"
MSG_MISSING_PASSWORD = "missing password"
MSG_INVALID_LOGIN = "invalid login"
MSG_UNAVAILABLE = "service unavailable"


def _post_url(request: Request) -> str:
    url = request.url.path
    if request.url.query:
        url += "?" + request.url.query
    return url


def add_login_route(
    router: APIRouter,
    route: str,
    *,
    authenticator: "Authenticator",
    login_func: LoginFunc,
    template: Template,
    error_url: str,
    display_name: str = "LDAP",
) -> None:
    """Mount GET (form) and POST (credential check) handlers on `route`."""

    def page(request: Request, *, session_key: str, userid: str = "", message: str = "", status_code: int = 200) -> HTMLResponse:
        return render_page(
            template,
            {
                "post_url": _post_url(request),
                "name": display_name,
                "session_key": session_key,
                "userid": userid,
                "error": bool(message),
                "message": message,
            },
            status_code=status_code,
        )

    async def login_page(request: Request) -> Response:
        return page(request, session_key=request.query_params.get("session_key", ""))

    async def login_submit(request: Request) -> Response:
        form = await request.form()
        userid = str(form.get("userid") or "").strip()
        password = str(form.get("password") or "")
        session_key = str(form.get("session_key") or request.query_params.get("session_key") or "")

        if not userid:
            return page(request, session_key=session_key, message=MSG_MISSING_USERID)
        if not password:
            return page(request, session_key=session_key, userid=userid, message=MSG_MISSING_PASSWORD)
        if not session_key:
            return redirect_error(error_url, "invalid_request", "missing session_key")

        try:
            identity = await run_in_threadpool(authenticator.authenticate, userid, password)
        except (AuthRejectedError, NoMatchError) as e:
            # Same page for both: callers must not learn whether the user exists.
            logger.info("[%s] Login failed for %r: %s", authenticator.cfg.id, userid, type(e).__name__)
            return page(request, session_key=session_key, userid=userid, message=MSG_INVALID_LOGIN)
        except (DirectoryConnectionError, ConfigError) as e:
            logger.error("[%s] Directory unavailable during login for %r: %s", authenticator.cfg.id, userid, e)
            return page(request, session_key=session_key, userid=userid, message=MSG_UNAVAILABLE, status_code=503)

        try:
            redirect_url = await run_in_threadpool(login_func, identity, session_key)
        except Exception as e:
            logger.error("[%s] Unable to log in %s: %s", authenticator.cfg.id, identity.id, e)
            return redirect_error(error_url, "access_denied", "login failed")

        logger.info("[%s] Login succeeded for %s", authenticator.cfg.id, identity.id)
        return RedirectResponse(url=redirect_url, status_code=302)

    router.add_api_route(route, login_page, methods=["GET"], response_class=HTMLResponse)
    router.add_api_route(route, login_submit, methods=["POST"])
