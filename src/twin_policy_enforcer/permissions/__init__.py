"""Permission tokens and set algebra."""
from __future__ import annotations

from twin_policy_enforcer.permissions.permission_set import (
    EXECUTE,
    READ,
    WELL_KNOWN_PERMISSIONS,
    WRITE,
    EffectedPermissions,
    PermissionSet,
    required_permissions,
)

__all__ = [
    "EXECUTE",
    "READ",
    "WELL_KNOWN_PERMISSIONS",
    "WRITE",
    "EffectedPermissions",
    "PermissionSet",
    "required_permissions",
]
