# src/kc_provision/admin/cli.py

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
from typing import Any, Sequence

from ..domain.exceptions import ProvisioningError
from .env import retry_policy, settings_from_env
from .provision_realm import provision_realm
from .settings import ProvisionSettings

logger = logging.getLogger("kc_provision")


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Provision the Keycloak realm, client and admin user for Gerrit",
    )

    parser.add_argument(
        "--realm",
        help="Target realm (default: env KEYCLOAK_REALM or 'horizon').",
    )
    parser.add_argument(
        "--client-id",
        help="clientId to create or update (default: env KEYCLOAK_CLIENT_ID or 'gerrit').",
    )
    parser.add_argument(
        "--output",
        "-o",
        help="Where to dump the client JSON (default: client-gerrit.json).",
    )
    parser.add_argument(
        "--max-attempts",
        type=int,
        help="How many times to try authenticating while Keycloak starts up.",
    )
    parser.add_argument(
        "--retry-interval",
        type=float,
        help="Fixed pause in seconds between startup attempts.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Debug logging.",
    )

    return parser.parse_args(args=argv)


def _apply_overrides(settings: ProvisionSettings, args: argparse.Namespace) -> ProvisionSettings:
    changes: dict[str, Any] = {}
    if args.realm:
        changes["keycloak_realm"] = args.realm
    if args.client_id:
        changes["client_id"] = args.client_id
    if args.output:
        changes["output_path"] = args.output
    if args.max_attempts is not None or args.retry_interval is not None:
        changes["retry"] = retry_policy(
            args.max_attempts if args.max_attempts is not None else settings.retry.max_attempts,
            args.retry_interval if args.retry_interval is not None else settings.retry.interval,
        )
    return dataclasses.replace(settings, **changes)


async def _run(args: argparse.Namespace) -> dict[str, Any]:
    settings = _apply_overrides(settings_from_env(), args)
    logger.debug("settings: %s", settings.redacted())
    return await provision_realm(settings=settings)


def main(argv: Sequence[str] | None = None) -> None:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        summary = asyncio.run(_run(args))
    except ProvisioningError as exc:
        logger.error("provisioning failed at %s: %s", exc.stage, exc.message)
        json.dump({"ok": False, "stage": exc.stage, "error": exc.message}, sys.stdout, indent=2)
        sys.stdout.write("\n")
        sys.exit(1)

    json.dump({"ok": True, **summary}, sys.stdout, indent=2)
    sys.stdout.write("\n")


if __name__ == "__main__":
    main()
