"""Flat-map compiled policy.

Declarations are stored in a single mapping keyed by resource key.  The
ancestor chain of a key is resolved on the fly by looking up each of its
path prefixes; descendants are found by binary search over the keys of
the same resource type, sorted by path segments.
"""
from __future__ import annotations

from bisect import bisect_right
from collections.abc import Iterator, Mapping
from types import MappingProxyType

from twin_policy_enforcer.enforcement.base import (
    EMPTY_SUBJECT_PERMISSIONS,
    CompiledPolicy,
    SubjectPermissions,
    freeze_subject_permissions,
    subjects_of,
)
from twin_policy_enforcer.permissions.permission_set import EffectedPermissions
from twin_policy_enforcer.resources.resource_key import ResourceKey


class FlatCompiledPolicy(CompiledPolicy):
    """Compiled policy backed by a flat ``{ResourceKey: declarations}`` map."""

    algorithm = "flat"

    def __init__(
        self,
        policy_id: str | None,
        subject_ids: frozenset[str],
        entries: Mapping[ResourceKey, SubjectPermissions],
    ) -> None:
        super().__init__(policy_id, subject_ids)
        self._entries = entries
        by_type: dict[str, list[ResourceKey]] = {}
        for key in entries:
            by_type.setdefault(key.resource_type, []).append(key)
        self._keys_by_type: Mapping[str, tuple[ResourceKey, ...]] = MappingProxyType(
            {t: tuple(sorted(keys, key=_segments)) for t, keys in by_type.items()}
        )

    @classmethod
    def _build(
        cls,
        policy_id: str | None,
        declarations: dict[ResourceKey, dict[str, EffectedPermissions]],
    ) -> FlatCompiledPolicy:
        entries = MappingProxyType(
            {key: freeze_subject_permissions(by_subject) for key, by_subject in declarations.items()}
        )
        return cls(policy_id, subjects_of(declarations), entries)

    def permissions_at(self, resource_key: ResourceKey) -> SubjectPermissions:
        return self._entries.get(resource_key, EMPTY_SUBJECT_PERMISSIONS)

    def path_permissions(
        self, resource_key: ResourceKey
    ) -> Iterator[tuple[ResourceKey, SubjectPermissions]]:
        for prefix in resource_key.path.prefixes():
            key = ResourceKey(resource_key.resource_type, prefix)
            by_subject = self._entries.get(key)
            if by_subject:
                yield key, by_subject

    def descendant_permissions(
        self, resource_key: ResourceKey
    ) -> Iterator[tuple[ResourceKey, SubjectPermissions]]:
        # Descendants of a path are contiguous right after it in segment order.
        keys = self._keys_by_type.get(resource_key.resource_type, ())
        start = bisect_right(keys, resource_key.path.segments, key=_segments)
        for key in keys[start:]:
            if not resource_key.is_ancestor_of(key):
                break
            yield key, self._entries[key]

    def resource_keys(self) -> Iterator[ResourceKey]:
        for resource_type in sorted(self._keys_by_type):
            yield from self._keys_by_type[resource_type]


def _segments(key: ResourceKey) -> tuple[str, ...]:
    return key.path.segments
