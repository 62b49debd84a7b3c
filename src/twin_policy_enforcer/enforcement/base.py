"""Compiled policy interface shared by all compilation strategies.

A compiled policy is an immutable index answering three structural
questions about a policy:

- which (subject -> grant/revoke) declarations sit exactly at a resource key,
- which declarations sit on the path from the root down to a key,
- which declarations sit strictly below a key.

Every enforcement decision is computed from these three primitives by
:class:`~twin_policy_enforcer.enforcement.enforcer.PolicyEnforcer`, so two
implementations that answer them identically produce identical decisions.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import ClassVar

from twin_policy_enforcer.errors import InvalidPolicyError, InvalidResourceKeyError
from twin_policy_enforcer.permissions.permission_set import EffectedPermissions
from twin_policy_enforcer.policies.model import Policy
from twin_policy_enforcer.resources.resource_key import ResourceKey

logger = logging.getLogger(__name__)

SubjectPermissions = Mapping[str, EffectedPermissions]
"""Grant/revoke declarations at one resource key, keyed by subject id."""

EMPTY_SUBJECT_PERMISSIONS: SubjectPermissions = MappingProxyType({})


def collect_declarations(policy: Policy) -> dict[ResourceKey, dict[str, EffectedPermissions]]:
    """Merge the declarations of all entries per (resource key, subject).

    Grants are unioned with grants and revokes with revokes; conflicts
    between a grant and a revoke are left for evaluation time.

    Raises
    ------
    InvalidPolicyError
        If ``policy`` is not a Policy or an entry holds a malformed key.
    """
    if not isinstance(policy, Policy):
        raise InvalidPolicyError(
            f"Expected a Policy instance; got {type(policy).__name__}."
        )

    merged: dict[ResourceKey, dict[str, EffectedPermissions]] = {}
    for entry in policy.entries:
        if not entry.subjects:
            continue
        try:
            resources = entry.effected_resources()
        except InvalidResourceKeyError as exc:
            raise InvalidPolicyError(str(exc), policy.policy_id, entry.label) from exc

        for resource_key, declared in resources.items():
            by_subject = merged.setdefault(resource_key, {})
            for subject_id in entry.subject_ids:
                existing = by_subject.get(subject_id)
                by_subject[subject_id] = declared if existing is None else existing.merge(declared)
    return merged


class CompiledPolicy(ABC):
    """Immutable, thread-safe index of a policy's grant/revoke declarations.

    Implementations must never mutate their state after construction.
    """

    algorithm: ClassVar[str]

    def __init__(self, policy_id: str | None, subject_ids: frozenset[str]) -> None:
        self._policy_id = policy_id
        self._subject_ids = subject_ids

    @classmethod
    def from_policy(cls, policy: Policy) -> CompiledPolicy:
        """Compile ``policy`` with this implementation."""
        declarations = collect_declarations(policy)
        compiled = cls._build(policy.policy_id, declarations)
        logger.info(
            "Compiled policy %s (%s): %d entries, %d resource keys, %d subjects",
            policy.policy_id or "<anonymous>",
            cls.algorithm,
            len(policy.entries),
            len(declarations),
            len(compiled.subject_ids),
        )
        return compiled

    @classmethod
    @abstractmethod
    def _build(
        cls,
        policy_id: str | None,
        declarations: dict[ResourceKey, dict[str, EffectedPermissions]],
    ) -> CompiledPolicy:
        """Create the index from merged declarations."""

    # ------------------------------------------------------------------
    # Structural primitives
    # ------------------------------------------------------------------

    @abstractmethod
    def permissions_at(self, resource_key: ResourceKey) -> SubjectPermissions:
        """Declarations stored exactly at ``resource_key`` (may be empty)."""

    @abstractmethod
    def path_permissions(
        self, resource_key: ResourceKey
    ) -> Iterator[tuple[ResourceKey, SubjectPermissions]]:
        """Yield declarations from the type root down to ``resource_key``.

        Only keys that carry declarations are yielded, in increasing depth.
        """

    @abstractmethod
    def descendant_permissions(
        self, resource_key: ResourceKey
    ) -> Iterator[tuple[ResourceKey, SubjectPermissions]]:
        """Yield declarations at keys strictly below ``resource_key``.

        Only keys that carry declarations are yielded; no order is implied
        beyond each key being yielded once.
        """

    @abstractmethod
    def resource_keys(self) -> Iterator[ResourceKey]:
        """Yield every resource key that carries declarations."""

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def policy_id(self) -> str | None:
        return self._policy_id

    @property
    def subject_ids(self) -> frozenset[str]:
        """Every subject id mentioned by the compiled policy."""
        return self._subject_ids

    def declarations(self) -> Iterator[tuple[ResourceKey, str, EffectedPermissions]]:
        """Yield every stored (resource key, subject id, grant/revoke) triple."""
        for resource_key in self.resource_keys():
            for subject_id, effected in self.permissions_at(resource_key).items():
                yield resource_key, subject_id, effected

    def __len__(self) -> int:
        return sum(1 for _ in self.declarations())

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(policy_id={self._policy_id!r}, "
            f"subjects={len(self._subject_ids)})"
        )


def freeze_subject_permissions(by_subject: Mapping[str, EffectedPermissions]) -> SubjectPermissions:
    return MappingProxyType(dict(by_subject))


def subjects_of(declarations: Mapping[ResourceKey, Mapping[str, EffectedPermissions]]) -> frozenset[str]:
    return frozenset(s for by_subject in declarations.values() for s in by_subject)
