from __future__ import annotations

import logging
from urllib.parse import parse_qs, urlsplit

import pytest
from fastapi import APIRouter, FastAPI
from fastapi.testclient import TestClient

from ldap_connector.connector import build_ldap_connector
from ldap_connector.webui import default_templates

LOGIN = "/auth/ldap/login"


class RecordingLogin:
    def __init__(self, fail: bool = False) -> None:
        self.calls = []
        self.fail = fail

    def __call__(self, identity, session_key):
        self.calls.append((identity, session_key))
        if self.fail:
            raise RuntimeError("session store unavailable")
        return f"https://broker.example.com/approve?session_key={session_key}"


def _client(record, directory, login_func) -> TestClient:
    connector = build_ldap_connector(
        record, "/auth/ldap", login_func, default_templates(), connect=directory.connect
    )
    router = APIRouter()
    connector.register_routes(router, "/error?src=ldap")
    app = FastAPI()
    app.include_router(router)
    return TestClient(app, follow_redirects=False)


@pytest.fixture
def f_login() -> RecordingLogin:
    return RecordingLogin()


@pytest.fixture
def f_client(f_record, f_directory, f_login) -> TestClient:
    return _client(f_record, f_directory, f_login)


def _error_params(response) -> dict:
    parts = urlsplit(response.headers["location"])
    assert parts.path == "/error"
    return {k: v[0] for k, v in parse_qs(parts.query).items()}


def test_get_renders_form(f_client):
    resp = f_client.get(LOGIN, params={"session_key": "k1", "prompt": "login"})
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/html")
    assert "Log in with LDAP" in resp.text
    assert 'name="session_key" value="k1"' in resp.text
    assert 'action="/auth/ldap/login?session_key=k1&amp;prompt=login"' in resp.text
    assert "alert" not in resp.text


def test_get_escapes_session_key(f_client):
    resp = f_client.get(LOGIN, params={"session_key": '"><script>'})
    assert "<script>" not in resp.text


def test_post_success_redirects(f_client, f_login, f_directory):
    resp = f_client.post(LOGIN, data={"session_key": "k1", "userid": "alice", "password": "secret"})

    assert resp.status_code == 302
    assert resp.headers["location"] == "https://broker.example.com/approve?session_key=k1"
    identity, session_key = f_login.calls[0]
    assert identity.id == "uid=alice,dc=example,dc=com"
    assert session_key == "k1"
    f_directory.assert_each_closed_once()


def test_post_session_key_from_query(f_client, f_login):
    resp = f_client.post(LOGIN + "?session_key=q1", data={"userid": "alice", "password": "secret"})
    assert resp.status_code == 302
    assert f_login.calls[0][1] == "q1"


def test_post_userid_trimmed(f_client, f_login):
    resp = f_client.post(LOGIN, data={"session_key": "k1", "userid": "  alice ", "password": "secret"})
    assert resp.status_code == 302


def test_post_wrong_password(f_client, f_login, caplog):
    caplog.set_level(logging.INFO, logger="ldap_connector.routers.login")
    resp = f_client.post(LOGIN, data={"session_key": "k1", "userid": "alice", "password": "hunter2"})

    assert resp.status_code == 200
    assert "invalid login" in resp.text
    assert 'value="alice"' in resp.text
    assert 'name="session_key" value="k1"' in resp.text
    assert f_login.calls == []
    assert "AuthRejectedError" in caplog.text
    assert "hunter2" not in caplog.text


def test_post_no_match_looks_like_wrong_password(f_search_record, f_directory, f_login):
    client = _client(f_search_record, f_directory, f_login)
    resp = client.post(LOGIN, data={"session_key": "k1", "userid": "ghost", "password": "secret"})
    assert resp.status_code == 200
    assert "invalid login" in resp.text


def test_post_search_then_bind(f_search_record, f_directory, f_alice_entry, f_login):
    f_directory.search_results["(uid=alice)"] = [f_alice_entry]
    f_directory.passwords[f_alice_entry.dn] = "secret"
    client = _client(f_search_record, f_directory, f_login)

    resp = client.post(LOGIN, data={"session_key": "k1", "userid": "alice", "password": "secret"})

    assert resp.status_code == 302
    identity = f_login.calls[0][0]
    assert identity.email == "alice@example.com"
    assert identity.claims["groups"] == ("cn=admins,dc=example,dc=com", "cn=staff,dc=example,dc=com")


def test_post_missing_userid(f_client, f_directory):
    resp = f_client.post(LOGIN, data={"session_key": "k1", "userid": " ", "password": "secret"})
    assert resp.status_code == 200
    assert "missing user id" in resp.text
    assert f_directory.connect_attempts == 0


def test_post_missing_password(f_client, f_directory):
    resp = f_client.post(LOGIN, data={"session_key": "k1", "userid": "alice", "password": ""})
    assert resp.status_code == 200
    assert "missing password" in resp.text
    assert 'value="alice"' in resp.text
    assert f_directory.connect_attempts == 0


def test_post_missing_session_key(f_client, f_directory):
    resp = f_client.post(LOGIN, data={"userid": "alice", "password": "secret"})
    assert resp.status_code == 302
    assert _error_params(resp) == {
        "src": "ldap",
        "error": "invalid_request",
        "error_description": "missing session_key",
    }
    assert f_directory.connect_attempts == 0


def test_post_directory_down(f_client, f_directory, f_login):
    f_directory.failing_connects = {1}
    resp = f_client.post(LOGIN, data={"session_key": "k1", "userid": "alice", "password": "secret"})
    assert resp.status_code == 503
    assert "service unavailable" in resp.text
    assert f_login.calls == []


def test_post_login_func_fails(f_record, f_directory):
    client = _client(f_record, f_directory, RecordingLogin(fail=True))
    resp = client.post(LOGIN, data={"session_key": "k1", "userid": "alice", "password": "secret"})
    assert resp.status_code == 302
    assert _error_params(resp) == {"src": "ldap", "error": "access_denied", "error_description": "login failed"}


def test_other_methods_not_allowed(f_client):
    assert f_client.put(LOGIN, data={}).status_code == 405
