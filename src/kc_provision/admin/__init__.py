"""
kc_provision.admin

Async Keycloak admin utilities:

- ProvisionSettings: connection settings + desired realm state.
- KeycloakAdminClient: minimal async admin client (httpx-based).
- wait_for_keycloak: fixed-interval wait until the admin login works.
- provision_realm: high-level async helper to:
    * resolve the target realm and its signing keys
    * create or update the Gerrit OAuth client
    * replace the Gerrit admin user and set its password
    * dump the client representation to a JSON file
- settings_from_env / provision_realm_from_env:
    convenience wrappers for env-driven CLI / initContainers.
"""

from __future__ import annotations

from .client import KeycloakAdminClient
from .env import settings_from_env, provision_realm_from_env
from .helpers import ProvisionContext
from .provision_realm import provision_realm
from .retry import wait_for_keycloak
from .settings import ProvisionSettings

__all__ = [
    "ProvisionSettings",
    "ProvisionContext",
    "KeycloakAdminClient",
    "wait_for_keycloak",
    "settings_from_env",
    "provision_realm_from_env",
    "provision_realm",
]
