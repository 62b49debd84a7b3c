"""Permission tokens, permission sets and grant/revoke pairs.

Permissions are opaque string tokens compared by equality.  The platform
uses ``READ`` and ``WRITE`` for thing and policy resources and ``EXECUTE``
for message resources, but any non-blank token is accepted.

Example
-------
>>> granted = PermissionSet.of("READ", "WRITE")
>>> granted.subtract(PermissionSet.of("WRITE")) == PermissionSet.of("READ")
True
>>> granted.contains_all(["READ"])
True
"""
from __future__ import annotations

import sys
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from twin_policy_enforcer.errors import InvalidPermissionsError

READ: str = sys.intern("READ")
WRITE: str = sys.intern("WRITE")
EXECUTE: str = sys.intern("EXECUTE")

WELL_KNOWN_PERMISSIONS: frozenset[str] = frozenset({READ, WRITE, EXECUTE})


def _validate_token(token: object) -> str:
    if not isinstance(token, str) or not token or any(c.isspace() for c in token):
        raise InvalidPermissionsError(
            f"Permission must be a non-blank token without whitespace; got {token!r}."
        )
    return sys.intern(token)


class PermissionSet:
    """Immutable, hashable set of permission tokens.

    Duplicates collapse and insertion order is irrelevant.  All operations
    return new instances.
    """

    __slots__ = ("_permissions",)

    def __init__(self, permissions: Iterable[str] = ()) -> None:
        if isinstance(permissions, str):
            permissions = (permissions,)
        self._permissions: frozenset[str] = frozenset(
            _validate_token(p) for p in permissions
        )

    @classmethod
    def of(cls, *permissions: str) -> PermissionSet:
        return cls(permissions)

    @classmethod
    def empty(cls) -> PermissionSet:
        return _EMPTY

    @classmethod
    def coerce(cls, value: PermissionSet | Iterable[str] | str) -> PermissionSet:
        """Return ``value`` as a PermissionSet, accepting tokens or iterables."""
        if isinstance(value, PermissionSet):
            return value
        return cls(value)

    @classmethod
    def _from_frozenset(cls, permissions: frozenset[str]) -> PermissionSet:
        instance = cls.__new__(cls)
        instance._permissions = permissions
        return instance

    # ------------------------------------------------------------------
    # Set algebra
    # ------------------------------------------------------------------

    def union(self, other: PermissionSet | Iterable[str]) -> PermissionSet:
        return PermissionSet._from_frozenset(
            self._permissions | PermissionSet.coerce(other)._permissions
        )

    def subtract(self, other: PermissionSet | Iterable[str]) -> PermissionSet:
        return PermissionSet._from_frozenset(
            self._permissions - PermissionSet.coerce(other)._permissions
        )

    def intersection(self, other: PermissionSet | Iterable[str]) -> PermissionSet:
        return PermissionSet._from_frozenset(
            self._permissions & PermissionSet.coerce(other)._permissions
        )

    def contains_all(self, required: PermissionSet | Iterable[str]) -> bool:
        """Return True if every permission of ``required`` is in this set."""
        return PermissionSet.coerce(required)._permissions <= self._permissions

    def contains_any(self, required: PermissionSet | Iterable[str]) -> bool:
        """Return True if at least one permission of ``required`` is in this set."""
        return not self._permissions.isdisjoint(PermissionSet.coerce(required)._permissions)

    @property
    def is_empty(self) -> bool:
        return not self._permissions

    def to_list(self) -> list[str]:
        """Return the permissions sorted, for stable serialization."""
        return sorted(self._permissions)

    # ------------------------------------------------------------------
    # Dunder protocol
    # ------------------------------------------------------------------

    def __contains__(self, permission: object) -> bool:
        return permission in self._permissions

    def __iter__(self) -> Iterator[str]:
        return iter(self._permissions)

    def __len__(self) -> int:
        return len(self._permissions)

    def __bool__(self) -> bool:
        return bool(self._permissions)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, PermissionSet):
            return self._permissions == other._permissions
        if isinstance(other, (set, frozenset)):
            return self._permissions == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._permissions)

    def __or__(self, other: PermissionSet) -> PermissionSet:
        return self.union(other)

    def __sub__(self, other: PermissionSet) -> PermissionSet:
        return self.subtract(other)

    def __and__(self, other: PermissionSet) -> PermissionSet:
        return self.intersection(other)

    def __repr__(self) -> str:
        return f"PermissionSet({self.to_list()!r})"


_EMPTY = PermissionSet()


# ---------------------------------------------------------------------------
# EffectedPermissions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EffectedPermissions:
    """The permissions a policy resource grants and revokes at one path.

    Attributes
    ----------
    granted:
        Permissions added to the effective set at this path.
    revoked:
        Permissions removed from the effective set at this path.  A revoke
        wins over a grant declared at the same path.
    """

    granted: PermissionSet = _EMPTY
    revoked: PermissionSet = _EMPTY

    @classmethod
    def of(
        cls,
        granted: PermissionSet | Iterable[str] = (),
        revoked: PermissionSet | Iterable[str] = (),
    ) -> EffectedPermissions:
        return cls(PermissionSet.coerce(granted), PermissionSet.coerce(revoked))

    def merge(self, other: EffectedPermissions) -> EffectedPermissions:
        """Union grants with grants and revokes with revokes."""
        return EffectedPermissions(
            self.granted.union(other.granted),
            self.revoked.union(other.revoked),
        )

    def apply_to(self, accumulated: PermissionSet) -> PermissionSet:
        """Add the granted permissions, then remove the revoked ones."""
        return accumulated.union(self.granted).subtract(self.revoked)

    def to_dict(self) -> dict[str, list[str]]:
        return {"grant": self.granted.to_list(), "revoke": self.revoked.to_list()}


def required_permissions(value: PermissionSet | Iterable[str] | str) -> PermissionSet:
    """Coerce a required-permission argument, rejecting the empty set.

    Raises
    ------
    InvalidPermissionsError
        If no permission is given.
    """
    permissions = PermissionSet.coerce(value)
    if permissions.is_empty:
        raise InvalidPermissionsError("At least one permission must be required.")
    return permissions
