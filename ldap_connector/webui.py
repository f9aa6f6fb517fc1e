from __future__ import annotations

from pathlib import Path
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from jinja2 import Template, TemplateNotFound

from .exceptions import ConfigError

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
LOGIN_PAGE_TEMPLATE = "ldap-login.html"


def default_templates() -> Jinja2Templates:
    """Template set shipped with the package (resolved against the package, not CWD)."""
    return Jinja2Templates(directory=str(TEMPLATES_DIR))


def find_template(templates: Jinja2Templates, name: str) -> Template:
    try:
        return templates.get_template(name)
    except TemplateNotFound as e:
        raise ConfigError(f"unable to find necessary HTML template: {name}") from e


def render_page(template: Template, context: dict, *, status_code: int = 200) -> HTMLResponse:
    return HTMLResponse(template.render(**context), status_code=status_code)


def with_query(url: str, params: dict[str, str]) -> str:
    """Merge `params` into the query string of `url`."""
    parts = urlsplit(url)
    q = dict(parse_qsl(parts.query, keep_blank_values=True))
    q.update(params)
    return urlunsplit(parts._replace(query=urlencode(q)))


def redirect_error(error_url: str, error: str, description: str) -> RedirectResponse:
    """Send the browser to the host's error page with OAuth2-style error parameters."""
    url = with_query(error_url, {"error": error, "error_description": description})
    return RedirectResponse(url=url, status_code=302)
