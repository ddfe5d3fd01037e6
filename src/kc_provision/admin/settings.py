from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from ..domain.entities import AdminUserSpec, RetryPolicy


@dataclass(frozen=True, slots=True)
class ProvisionSettings:
    """
    Keycloak admin connection + desired realm state for one provisioning run.

    Host code decides how to construct this (env, CLI flags, tests).
    """
    keycloak_base_url: str
    keycloak_admin_user: str
    keycloak_admin_pass: str
    domain: str
    gerrit_admin_user: str
    gerrit_admin_pass: str

    keycloak_realm: str = "horizon"
    client_id: str = "gerrit"
    output_path: str = "client-gerrit.json"
    verify_ssl: bool = True
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    # bootstrap realm/client used for the admin password grant
    bootstrap_realm: str = "master"
    bootstrap_client_id: str = "admin-cli"

    @property
    def base_url_slash(self) -> str:
        b = self.keycloak_base_url.strip()
        return b if b.endswith("/") else b + "/"

    @property
    def client_representation(self) -> dict[str, Any]:
        return {
            "clientId": self.client_id,
            "adminUrl": f"{self.domain}/gerrit",
            "redirectUris": [f"{self.domain}/gerrit/*"],
            "protocol": "openid-connect",
            "publicClient": False,
        }

    @property
    def admin_user(self) -> AdminUserSpec:
        return AdminUserSpec(
            username=self.gerrit_admin_user,
            password=self.gerrit_admin_pass,
            first_name="Gerrit",
            last_name="Gerrit",
            email="gerrit@gerrit",
        )

    def redacted(self) -> dict[str, Optional[str]]:
        """Loggable view with the passwords masked."""
        return {
            "keycloak_base_url": self.keycloak_base_url,
            "keycloak_realm": self.keycloak_realm,
            "keycloak_admin_user": self.keycloak_admin_user,
            "client_id": self.client_id,
            "gerrit_admin_user": self.gerrit_admin_user,
            "output_path": self.output_path,
        }
