"""
kc_provision

One-shot Keycloak realm provisioning for the Gerrit code-review service:
OAuth client registration, admin-user creation and client export.
"""

__version__ = "0.1.0"

from .domain.entities import AdminUserSpec, Realm, RetryPolicy, merge_representation
from .domain.exceptions import (
    ProvisioningError,
    AuthenticationError,
    RealmNotFoundError,
)

__all__ = [
    "__version__",
    # domain
    "AdminUserSpec",
    "Realm",
    "RetryPolicy",
    "merge_representation",
    # exceptions
    "ProvisioningError",
    "AuthenticationError",
    "RealmNotFoundError",
]
