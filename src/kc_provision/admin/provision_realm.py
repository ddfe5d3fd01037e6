from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import httpx

from ..domain.exceptions import ProvisioningError
from .client import KeycloakAdminClient
from .helpers import (
    ProvisionContext,
    _ensure_client,
    _export_client,
    _replace_admin_user,
    _resolve_realm,
)
from .retry import Sleep, wait_for_keycloak
from .settings import ProvisionSettings

logger = logging.getLogger(__name__)


@contextmanager
def _stage(name: str) -> Iterator[None]:
    try:
        yield
    except ProvisioningError as exc:
        if exc.stage == name:
            raise
        raise ProvisioningError(name, exc.message) from exc
    except Exception as exc:  # noqa: BLE001
        raise ProvisioningError(name, str(exc) or exc.__class__.__name__) from exc


async def provision_realm(
        *,
        settings: ProvisionSettings,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: Sleep = asyncio.sleep,
) -> dict[str, Any]:
    """
    Provision the target realm for the code-review service.

    Steps:
      1) Wait until Keycloak accepts the admin credentials.
      2) Resolve the realm (+ signing keys) and switch to it.
      3) Create or update the OAuth client.
      4) Replace the admin user and set its password.
      5) Dump the client representation to `settings.output_path`.

    Any failure aborts the remaining steps and surfaces as a
    ProvisioningError tagged with the failing stage. Nothing is rolled back;
    steps 3 and 4 are safe to re-run.

    Returns a summary dictionary with:
      - realm
      - client
      - client_action
      - user
      - output
    """
    ctx = ProvisionContext(settings=settings)
    kc = KeycloakAdminClient(settings=settings, client=http_client)
    try:
        # 1) Wait for Keycloak / authenticate
        with _stage("availability"):
            await wait_for_keycloak(kc, settings.retry, sleep=sleep)

        # 2) Resolve realm
        with _stage("realm"):
            realm = await _resolve_realm(kc, ctx)

        # 3) Ensure client
        with _stage("client"):
            await _ensure_client(kc, ctx)

        # 4) Replace admin user
        with _stage("user"):
            await _replace_admin_user(kc, ctx)

        # 5) Export client
        with _stage("export"):
            output = await _export_client(kc, ctx)

        return {
            "realm": realm.name,
            "client": kc.trim_client(ctx.client or {}),
            "client_action": ctx.client_action,
            "user": {
                "username": settings.gerrit_admin_user,
                "id": ctx.user_id,
                "replaced": ctx.user_replaced,
            },
            "output": str(output),
        }
    finally:
        await kc.close()
