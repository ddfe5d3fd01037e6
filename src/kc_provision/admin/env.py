from __future__ import annotations

import asyncio
import logging
import os
from typing import Any

from ..domain.entities import RetryPolicy
from ..domain.exceptions import ProvisioningError
from .settings import ProvisionSettings
from .provision_realm import provision_realm

logger = logging.getLogger(__name__)

REQUIRED_VARS = (
    "PLATFORM_URL",
    "KEYCLOAK_USERNAME",
    "KEYCLOAK_PASSWORD",
    "DOMAIN",
    "GERRIT_ADMIN_USERNAME",
    "GERRIT_ADMIN_PASSWORD",
)


def retry_policy(max_attempts: Any, interval: Any) -> RetryPolicy:
    """Build a RetryPolicy from raw (env or CLI) values; bad input is a config failure."""
    try:
        return RetryPolicy(max_attempts=int(max_attempts), interval=float(interval))
    except ValueError as exc:
        raise ProvisioningError("config", f"invalid retry settings: {exc}") from exc


def settings_from_env() -> ProvisionSettings:
    def _bool(key: str, default: bool = True) -> bool:
        raw = os.getenv(key)
        if raw is None:
            return default
        return str(raw).strip().lower() in {"1", "true", "yes", "on"}

    # Missing values are passed through as empty strings; Keycloak rejects
    # the resulting requests.
    missing = [n for n in REQUIRED_VARS if not os.getenv(n)]
    if missing:
        logger.warning("Missing provisioning settings: %s", ", ".join(missing))

    env = {n: os.getenv(n, "") for n in REQUIRED_VARS}

    return ProvisionSettings(
        keycloak_base_url=env["PLATFORM_URL"] + "/auth",
        keycloak_admin_user=env["KEYCLOAK_USERNAME"],
        keycloak_admin_pass=env["KEYCLOAK_PASSWORD"],
        domain=env["DOMAIN"],
        gerrit_admin_user=env["GERRIT_ADMIN_USERNAME"],
        gerrit_admin_pass=env["GERRIT_ADMIN_PASSWORD"],
        keycloak_realm=os.getenv("KEYCLOAK_REALM", "horizon"),
        client_id=os.getenv("KEYCLOAK_CLIENT_ID", "gerrit"),
        output_path=os.getenv("KEYCLOAK_CLIENT_OUTPUT", "client-gerrit.json"),
        verify_ssl=_bool("VERIFY_SSL", True),
        retry=retry_policy(
            os.getenv("KEYCLOAK_RETRY_ATTEMPTS", "100"),
            os.getenv("KEYCLOAK_RETRY_INTERVAL", "2.0"),
        ),
    )


def provision_realm_from_env() -> dict[str, Any]:
    """Convenience sync wrapper using env-configured settings."""
    settings = settings_from_env()
    return asyncio.run(provision_realm(settings=settings))
