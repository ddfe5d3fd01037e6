from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """
    Fixed-interval retry budget used while waiting for Keycloak to come up.

    No exponential growth: every retry waits exactly `interval` seconds.
    """
    max_attempts: int = 100
    interval: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.interval < 0:
            raise ValueError(f"interval must be >= 0, got {self.interval}")


@dataclass(frozen=True, slots=True)
class AdminUserSpec:
    """
    Desired state of the downstream service's admin user.
    """
    username: str
    password: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None

    def representation(self) -> dict[str, Any]:
        return {
            "username": self.username,
            "enabled": True,
            "requiredActions": [],
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
        }

    def credential(self) -> dict[str, Any]:
        return {"type": "password", "value": self.password, "temporary": False}


@dataclass(slots=True)
class Realm:
    """
    Realm representation as returned by Keycloak, plus its signing keys.
    """
    name: str
    representation: dict[str, Any] = field(default_factory=dict)
    keys: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_representation(cls, obj: dict[str, Any]) -> "Realm":
        return cls(name=obj["realm"], representation=obj)

    @property
    def key_ids(self) -> list[str]:
        return [k.get("kid") for k in (self.keys.get("keys") or []) if k.get("kid")]


def merge_representation(existing: dict[str, Any], desired: dict[str, Any]) -> dict[str, Any]:
    """
    Merge `desired` onto `existing` and return a new dict.

    Desired values win on conflicts, existing keys the desired side omits are
    kept. Nested mappings merge recursively; lists and scalars are replaced.
    """
    merged = dict(existing)
    for key, value in desired.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = merge_representation(current, value)
        else:
            merged[key] = value
    return merged


def find_by(items: list[dict[str, Any]], key: str, value: Any) -> Optional[dict[str, Any]]:
    """First item whose `key` equals `value` exactly, or None."""
    for item in items:
        if item.get(key) == value:
            return item
    return None
