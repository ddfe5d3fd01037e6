from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from ..domain.entities import Realm, find_by, merge_representation
from ..domain.exceptions import ProvisioningError
from .client import KeycloakAdminClient
from .settings import ProvisionSettings

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ProvisionContext:
    """
    Caller-owned state threaded through the provisioning stages.

    Each stage fills in what it resolved; nothing else holds run state.
    """
    settings: ProvisionSettings
    realm: Optional[Realm] = None
    client: Optional[dict[str, Any]] = None
    client_action: Optional[str] = None
    user_id: Optional[str] = None
    user_replaced: bool = False


async def _find_client(kc: KeycloakAdminClient, client_id: str) -> Optional[dict[str, Any]]:
    return find_by(await kc.list_clients(), "clientId", client_id)


async def _resolve_realm(kc: KeycloakAdminClient, ctx: ProvisionContext) -> Realm:
    realm_name = ctx.settings.keycloak_realm
    realm = await kc.get_realm(realm_name)
    realm.keys = await kc.get_realm_keys(realm.name)
    kc.use_realm(realm.name)
    logger.info("using realm %s (keys: %s)", realm.name, ", ".join(realm.key_ids) or "none")
    ctx.realm = realm
    return realm


async def _ensure_client(kc: KeycloakAdminClient, ctx: ProvisionContext) -> dict[str, Any]:
    """
    Create the client, or merge the desired attributes onto the existing one.

    Re-reads the client afterwards so `ctx.client` carries the server-side id
    and generated fields such as the secret.
    """
    desired = ctx.settings.client_representation
    client_id = desired["clientId"]

    existing = await _find_client(kc, client_id)
    if existing:
        logger.info("updating %s client", client_id)
        await kc.update_client(existing["id"], merge_representation(existing, desired))
        ctx.client_action = "updated"
    else:
        logger.info("creating %s client", client_id)
        await kc.create_client(desired)
        ctx.client_action = "created"

    client = await _find_client(kc, client_id)
    if not client:
        raise ProvisioningError("client", f"client {client_id!r} missing after {ctx.client_action}")
    ctx.client = client
    return client


async def _replace_admin_user(kc: KeycloakAdminClient, ctx: ProvisionContext) -> str:
    user = ctx.settings.admin_user

    old = find_by(await kc.list_users(user.username), "username", user.username)
    if old:
        logger.info("deleting old instance of %s user", user.username)
        await kc.delete_user(old["id"])
        ctx.user_replaced = True

    logger.info("creating %s user", user.username)
    user_id = await kc.create_user(user.representation())
    if not user_id:
        created = find_by(await kc.list_users(user.username), "username", user.username)
        if not created:
            raise ProvisioningError("user", f"user {user.username!r} missing after create")
        user_id = created["id"]

    await kc.reset_password(user_id, user.credential())
    ctx.user_id = user_id
    return user_id


async def _export_client(kc: KeycloakAdminClient, ctx: ProvisionContext) -> Path:
    client_id = ctx.settings.client_id
    client = await _find_client(kc, client_id)
    if not client:
        raise ProvisioningError("export", f"client {client_id!r} not found")

    path = Path(ctx.settings.output_path)
    logger.info("dumping %s client data into %s", client_id, path)
    path.write_text(json.dumps(client), encoding="utf-8")
    ctx.client = client
    return path
