from __future__ import annotations

import logging
import time
from typing import Any, Optional, Dict

import httpx

from ..domain.entities import Realm
from ..domain.exceptions import AuthenticationError, RealmNotFoundError
from .settings import ProvisionSettings

logger = logging.getLogger(__name__)

# seconds before expiry at which a cached admin token is renewed
TOKEN_EXPIRY_MARGIN = 20


class KeycloakAdminClient:
    """
    Minimal async Keycloak Admin wrapper.

    - obtains admin tokens from the bootstrap realm (password grant)
    - retries once on 401
    - scopes realm-level calls to the active realm (see `use_realm`)
    - exposes helpers for realms, clients and users
    """

    def __init__(self, settings: ProvisionSettings, client: Optional[httpx.AsyncClient] = None):
        self.s = settings
        self._client = client or httpx.AsyncClient(verify=self.s.verify_ssl, timeout=30.0)
        self._session: Optional[tuple[str, float]] = None  # (access token, expiry timestamp)
        self.realm_name: str = self.s.bootstrap_realm

    async def close(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------ #
    # admin session
    # ------------------------------------------------------------------ #

    async def authenticate(self) -> str:
        """Run the admin password grant and start a new session."""
        resp = await self._client.post(
            f"{self.s.base_url_slash}realms/{self.s.bootstrap_realm}/protocol/openid-connect/token",
            data={
                "grant_type": "password",
                "client_id": self.s.bootstrap_client_id,
                "username": self.s.keycloak_admin_user,
                "password": self.s.keycloak_admin_pass,
            },
        )
        if resp.is_error:
            raise AuthenticationError(
                f"Failed to obtain admin token: {resp.status_code} {resp.text}"
            )

        payload = resp.json()
        expires_at = time.time() + float(payload.get("expires_in", 60))
        self._session = (payload["access_token"], expires_at)
        return payload["access_token"]

    async def _access_token(self) -> str:
        if self._session is not None:
            token, expires_at = self._session
            if time.time() < expires_at - TOKEN_EXPIRY_MARGIN:
                return token
        return await self.authenticate()

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        for renewed in (False, True):
            token = await self._access_token()
            resp = await self._client.request(
                method,
                url,
                headers={"Authorization": f"Bearer {token}"},
                params=params,
                json=json,
            )
            if resp.status_code != 401 or renewed:
                break
            # session revoked or expired server-side: log in again, once
            self._session = None
        resp.raise_for_status()
        return resp

    # ------------------------------------------------------------------ #
    # base helpers
    # ------------------------------------------------------------------ #

    def _admin_realms(self) -> str:
        return f"{self.s.base_url_slash}admin/realms"

    def _realm_admin(self) -> str:
        return f"{self._admin_realms()}/{self.realm_name}"

    def use_realm(self, realm_name: str) -> None:
        """Scope every later client/user call to `realm_name`."""
        logger.debug("switching active realm %s -> %s", self.realm_name, realm_name)
        self.realm_name = realm_name

    # ------------------------------------------------------------------ #
    # realms
    # ------------------------------------------------------------------ #

    async def get_realm(self, realm_name: str) -> Realm:
        url = f"{self._admin_realms()}/{realm_name}"
        try:
            resp = await self._request("GET", url)
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise RealmNotFoundError(realm_name) from e
            raise
        return Realm.from_representation(resp.json())

    async def get_realm_keys(self, realm_name: str) -> dict[str, Any]:
        url = f"{self._admin_realms()}/{realm_name}/keys"
        resp = await self._request("GET", url)
        return resp.json() or {}

    # ------------------------------------------------------------------ #
    # client management
    # ------------------------------------------------------------------ #

    async def list_clients(self) -> list[dict[str, Any]]:
        url = f"{self._realm_admin()}/clients"
        resp = await self._request("GET", url)
        return resp.json() or []

    async def create_client(self, client_repr: dict[str, Any]) -> None:
        url = f"{self._realm_admin()}/clients"
        await self._request("POST", url, json=client_repr)

    async def update_client(self, internal_id: str, client_repr: dict[str, Any]) -> None:
        url = f"{self._realm_admin()}/clients/{internal_id}"
        await self._request("PUT", url, json=client_repr)

    # ------------------------------------------------------------------ #
    # users
    # ------------------------------------------------------------------ #

    async def list_users(self, username: Optional[str] = None) -> list[dict[str, Any]]:
        """List users, narrowed server-side to an exact username when given."""
        url = f"{self._realm_admin()}/users"
        params = {"username": username, "exact": "true"} if username else None
        resp = await self._request("GET", url, params=params)
        return resp.json() or []

    async def create_user(self, user_repr: dict[str, Any]) -> Optional[str]:
        """
        Create a user and return its id.

        Keycloak answers 201 with a Location header ending in the new id;
        returns None when the header is missing.
        """
        url = f"{self._realm_admin()}/users"
        resp = await self._request("POST", url, json=user_repr)
        location = resp.headers.get("Location")
        if location:
            return location.rstrip("/").rsplit("/", 1)[-1]
        return None

    async def delete_user(self, user_id: str) -> None:
        url = f"{self._realm_admin()}/users/{user_id}"
        await self._request("DELETE", url)

    async def reset_password(self, user_id: str, credential: dict[str, Any]) -> None:
        url = f"{self._realm_admin()}/users/{user_id}/reset-password"
        await self._request("PUT", url, json=credential)

    # ------------------------------------------------------------------ #
    # helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def trim_client(obj: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": obj.get("id"),
            "clientId": obj.get("clientId"),
            "adminUrl": obj.get("adminUrl"),
            "publicClient": obj.get("publicClient"),
            "protocol": obj.get("protocol"),
            "redirectUris": obj.get("redirectUris") or [],
            "enabled": obj.get("enabled"),
        }
