# tests/conftest.py
import json
import re
import uuid
from typing import Any
from urllib.parse import parse_qs

import httpx
import pytest

from kc_provision.admin.settings import ProvisionSettings
from kc_provision.domain.entities import RetryPolicy

BASE_URL = "http://kc.test/auth"


class FakeKeycloak:
    """
    In-memory stand-in for the Keycloak admin REST API, served through
    httpx.MockTransport.
    """

    def __init__(self, admin_user: str = "admin", admin_pass: str = "secret") -> None:
        self.admin_user = admin_user
        self.admin_pass = admin_pass
        self.unavailable_for = 0  # number of token calls answered with a connect error
        self.token_calls = 0
        self.realms: dict[str, dict[str, Any]] = {
            "master": {"realm": "master", "enabled": True},
            "horizon": {"realm": "horizon", "enabled": True},
        }
        self.keys = {"keys": [{"kid": "kid-rs256", "algorithm": "RS256", "type": "RSA"}]}
        self.clients: dict[str, list[dict[str, Any]]] = {name: [] for name in self.realms}
        self.users: dict[str, list[dict[str, Any]]] = {name: [] for name in self.realms}
        self.passwords: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, str]] = []

    # ------------------------------------------------------------------ #

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport())

    def add_client(self, realm: str, **attrs: Any) -> dict[str, Any]:
        obj = {"id": str(uuid.uuid4()), "enabled": True, **attrs}
        self.clients[realm].append(obj)
        return obj

    def add_user(self, realm: str, username: str, password: str) -> dict[str, Any]:
        obj = {"id": str(uuid.uuid4()), "username": username, "enabled": True}
        self.users[realm].append(obj)
        self.passwords[obj["id"]] = {"type": "password", "value": password, "temporary": False}
        return obj

    def password_of(self, realm: str, username: str) -> str:
        user = next(u for u in self.users[realm] if u["username"] == username)
        return self.passwords[user["id"]]["value"]

    # ------------------------------------------------------------------ #

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls.append((request.method, path))

        if path == "/auth/realms/master/protocol/openid-connect/token":
            return self._token(request)

        if request.headers.get("Authorization") != "Bearer tok":
            return httpx.Response(401)

        m = re.fullmatch(r"/auth/admin/realms/([^/]+)(/.*)?", path)
        if not m:
            return httpx.Response(404)
        realm, rest = m.group(1), m.group(2) or ""
        if realm not in self.realms:
            return httpx.Response(404, json={"error": "Realm not found."})

        if rest == "":
            return httpx.Response(200, json=self.realms[realm])
        if rest == "/keys":
            return httpx.Response(200, json=self.keys)
        if rest.startswith("/clients"):
            return self._clients(request, realm, rest)
        if rest.startswith("/users"):
            return self._users(request, realm, rest)
        return httpx.Response(404)

    def _token(self, request: httpx.Request) -> httpx.Response:
        self.token_calls += 1
        if self.unavailable_for > 0:
            self.unavailable_for -= 1
            raise httpx.ConnectError("connection refused", request=request)
        form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        if (
            form.get("client_id") != "admin-cli"
            or form.get("grant_type") != "password"
            or form.get("username") != self.admin_user
            or form.get("password") != self.admin_pass
        ):
            return httpx.Response(401, json={"error": "invalid_grant"})
        return httpx.Response(200, json={"access_token": "tok", "expires_in": 60})

    def _clients(self, request: httpx.Request, realm: str, rest: str) -> httpx.Response:
        items = self.clients[realm]
        if rest == "/clients" and request.method == "GET":
            return httpx.Response(200, json=items)
        if rest == "/clients" and request.method == "POST":
            body = json.loads(request.content)
            if any(c["clientId"] == body["clientId"] for c in items):
                return httpx.Response(409)
            obj = {"enabled": True, **body, "id": str(uuid.uuid4()), "secret": uuid.uuid4().hex}
            items.append(obj)
            return httpx.Response(201, headers={"Location": f"{request.url}/{obj['id']}"})
        m = re.fullmatch(r"/clients/([^/]+)", rest)
        if m and request.method == "PUT":
            for i, c in enumerate(items):
                if c["id"] == m.group(1):
                    items[i] = {**json.loads(request.content), "id": c["id"]}
                    return httpx.Response(204)
        return httpx.Response(404)

    def _users(self, request: httpx.Request, realm: str, rest: str) -> httpx.Response:
        items = self.users[realm]
        if rest == "/users" and request.method == "GET":
            username = request.url.params.get("username")
            if username is not None and request.url.params.get("exact") == "true":
                return httpx.Response(200, json=[u for u in items if u["username"] == username])
            # Keycloak pages user listings, first page only by default
            return httpx.Response(200, json=items[:100])
        if rest == "/users" and request.method == "POST":
            body = json.loads(request.content)
            if any(u["username"] == body["username"] for u in items):
                return httpx.Response(409, json={"errorMessage": "User exists with same username"})
            obj = {**body, "id": str(uuid.uuid4())}
            items.append(obj)
            return httpx.Response(201, headers={"Location": f"{request.url}/{obj['id']}"})
        m = re.fullmatch(r"/users/([^/]+)(/reset-password)?", rest)
        if not m:
            return httpx.Response(404)
        user = next((u for u in items if u["id"] == m.group(1)), None)
        if user is None:
            return httpx.Response(404)
        if m.group(2) and request.method == "PUT":
            self.passwords[user["id"]] = json.loads(request.content)
            return httpx.Response(204)
        if not m.group(2) and request.method == "DELETE":
            items.remove(user)
            self.passwords.pop(user["id"], None)
            return httpx.Response(204)
        return httpx.Response(405)


@pytest.fixture
def fake_keycloak():
    return FakeKeycloak()


@pytest.fixture
def settings(tmp_path):
    return ProvisionSettings(
        keycloak_base_url=BASE_URL,
        keycloak_admin_user="admin",
        keycloak_admin_pass="secret",
        domain="https://dev.example.com",
        gerrit_admin_user="gerrit-admin",
        gerrit_admin_pass="p2",
        output_path=str(tmp_path / "client-gerrit.json"),
        retry=RetryPolicy(max_attempts=5, interval=2.0),
    )


@pytest.fixture
def no_sleep():
    slept: list[float] = []

    async def _sleep(seconds: float) -> None:
        slept.append(seconds)

    _sleep.calls = slept
    return _sleep
