"""Trie-based compiled policy.

One trie per resource type; every node corresponds to a path segment and
stores the grant/revoke declarations of each subject at that exact path.
Ancestor walks follow the segments of the requested key, and descendant
scans only visit the subtree below it.
"""
from __future__ import annotations

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
from twin_policy_enforcer.resources.resource_key import ResourceKey, ResourcePath


class _TrieNode:
    __slots__ = ("permissions", "children")

    def __init__(self) -> None:
        self.permissions: SubjectPermissions = EMPTY_SUBJECT_PERMISSIONS
        self.children: dict[str, _TrieNode] = {}


def _freeze(node: _TrieNode) -> None:
    for child in node.children.values():
        _freeze(child)
    node.children = MappingProxyType(node.children)  # type: ignore[assignment]


class TrieCompiledPolicy(CompiledPolicy):
    """Compiled policy backed by a literal trie over resource paths."""

    algorithm = "trie"

    def __init__(
        self,
        policy_id: str | None,
        subject_ids: frozenset[str],
        roots: Mapping[str, _TrieNode],
    ) -> None:
        super().__init__(policy_id, subject_ids)
        self._roots = roots

    @classmethod
    def _build(
        cls,
        policy_id: str | None,
        declarations: dict[ResourceKey, dict[str, EffectedPermissions]],
    ) -> TrieCompiledPolicy:
        roots: dict[str, _TrieNode] = {}
        for resource_key, by_subject in declarations.items():
            node = roots.setdefault(resource_key.resource_type, _TrieNode())
            for segment in resource_key.path.segments:
                node = node.children.setdefault(segment, _TrieNode())
            node.permissions = freeze_subject_permissions(by_subject)

        for root in roots.values():
            _freeze(root)
        return cls(policy_id, subjects_of(declarations), MappingProxyType(roots))

    # ------------------------------------------------------------------
    # Structural primitives
    # ------------------------------------------------------------------

    def _find(self, resource_key: ResourceKey) -> _TrieNode | None:
        node = self._roots.get(resource_key.resource_type)
        for segment in resource_key.path.segments:
            if node is None:
                return None
            node = node.children.get(segment)
        return node

    def permissions_at(self, resource_key: ResourceKey) -> SubjectPermissions:
        node = self._find(resource_key)
        return EMPTY_SUBJECT_PERMISSIONS if node is None else node.permissions

    def path_permissions(
        self, resource_key: ResourceKey
    ) -> Iterator[tuple[ResourceKey, SubjectPermissions]]:
        node = self._roots.get(resource_key.resource_type)
        if node is None:
            return
        segments = resource_key.path.segments
        depth = 0
        while True:
            if node.permissions:
                yield ResourceKey(resource_key.resource_type, ResourcePath(segments[:depth])), node.permissions
            if depth == len(segments):
                return
            node = node.children.get(segments[depth])
            if node is None:
                return
            depth += 1

    def descendant_permissions(
        self, resource_key: ResourceKey
    ) -> Iterator[tuple[ResourceKey, SubjectPermissions]]:
        start = self._find(resource_key)
        if start is None:
            return
        stack: list[tuple[ResourcePath, _TrieNode]] = [
            (resource_key.path.append(segment), child)
            for segment, child in start.children.items()
        ]
        while stack:
            path, node = stack.pop()
            if node.permissions:
                yield ResourceKey(resource_key.resource_type, path), node.permissions
            stack.extend((path.append(segment), child) for segment, child in node.children.items())

    def resource_keys(self) -> Iterator[ResourceKey]:
        for resource_type in sorted(self._roots):
            root_key = ResourceKey(resource_type)
            if self._roots[resource_type].permissions:
                yield root_key
            for key, _ in self.descendant_permissions(root_key):
                yield key
