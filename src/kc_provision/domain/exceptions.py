from __future__ import annotations


class ProvisioningError(Exception):
    """Raised when a provisioning stage fails. `stage` names the failing step."""

    def __init__(self, stage: str, message: str) -> None:
        super().__init__(f"[{stage}] {message}")
        self.stage = stage
        self.message = message


class AuthenticationError(ProvisioningError):
    """Raised when Keycloak rejects the admin credentials."""

    def __init__(self, message: str) -> None:
        super().__init__("availability", message)


class RealmNotFoundError(ProvisioningError):
    """Raised when the target realm does not exist."""

    def __init__(self, realm: str) -> None:
        super().__init__("realm", f"realm {realm!r} not found")
        self.realm = realm
