from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from ..domain.entities import RetryPolicy
from .client import KeycloakAdminClient

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


async def wait_for_keycloak(
    kc: KeycloakAdminClient,
    policy: RetryPolicy,
    *,
    sleep: Sleep = asyncio.sleep,
) -> None:
    """
    Authenticate against Keycloak until it answers or the budget runs out.

    Makes at most `policy.max_attempts` attempts with a fixed
    `policy.interval` pause between them. When every attempt fails the last
    exception is re-raised unchanged.
    """
    for attempt in range(1, policy.max_attempts + 1):
        try:
            await kc.authenticate()
            if attempt > 1:
                logger.info("keycloak at %s is up after %d attempts", kc.s.keycloak_base_url, attempt)
            return
        except Exception as exc:  # noqa: BLE001
            if attempt >= policy.max_attempts:
                raise
            logger.info(
                "waiting for %s... (attempt %d/%d) %s",
                kc.s.keycloak_base_url,
                attempt,
                policy.max_attempts,
                exc,
            )
            await sleep(policy.interval)
