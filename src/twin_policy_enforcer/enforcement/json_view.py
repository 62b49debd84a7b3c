"""Permission-filtered views of JSON documents.

The builder walks a JSON value (``dict``/``list``/scalars as produced by
:func:`json.loads`) located at a resource key and keeps exactly the parts
the authorization context may see:

1. With the ``subtree`` strategy, a subtree is copied verbatim once every
   required permission holds at its root *and* at every policy key below
   it.  A narrower revoke further down therefore disables the shortcut.
2. A scalar, or an empty object/array, is kept iff every required
   permission holds at its own path.
3. Object members and array elements whose subtree carries no required
   permission at all are pruned without descending.  Containers that
   filter down to nothing are dropped, except the root.

Array elements are addressed by their decimal index; surviving elements
keep their relative order.
"""
from __future__ import annotations

import copy
import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from twin_policy_enforcer.permissions.permission_set import PermissionSet, required_permissions
from twin_policy_enforcer.resources.resource_key import ResourceKey, ResourcePath

if TYPE_CHECKING:
    from twin_policy_enforcer.enforcement.enforcer import (
        ContextLike,
        PermissionsLike,
        PolicyEnforcer,
        ResourceKeyLike,
    )

logger = logging.getLogger(__name__)

_OMITTED = object()
_STRATEGIES = frozenset({"subtree", "exhaustive"})


class JsonViewBuilder:
    """Builds JSON views for one enforcer.

    Parameters
    ----------
    enforcer:
        The enforcer whose compiled policy decides visibility.
    strategy:
        ``"subtree"`` (default) or ``"exhaustive"``.  Both yield the same
        view; ``exhaustive`` never copies a subtree without visiting it.
    """

    def __init__(self, enforcer: PolicyEnforcer, strategy: str = "subtree") -> None:
        if strategy not in _STRATEGIES:
            raise ValueError(
                f"Unknown view strategy {strategy!r}; expected one of {sorted(_STRATEGIES)}."
            )
        self._enforcer = enforcer
        self._strategy = strategy

    @property
    def strategy(self) -> str:
        return self._strategy

    def build(
        self,
        resource_key: ResourceKeyLike,
        document: object,
        auth_context: ContextLike,
        required: PermissionsLike,
        allowlist: Iterable[str] | None = None,
    ) -> object:
        """Return the visible part of ``document`` (see module docstring)."""
        key = ResourceKey.parse(resource_key)
        permissions = required_permissions(required)
        subject_ids = self._enforcer._relevant_subjects(auth_context)
        pointers = [ResourcePath.parse(p) for p in allowlist or ()]

        held = self._enforcer._walk(key, subject_ids)
        view = self._filter(key, document, held, permissions)
        if view is _OMITTED:
            view = _empty_like(document)

        if pointers and isinstance(view, dict) and isinstance(document, dict):
            if self._enforcer._has_partial(key.root(), subject_ids, permissions):
                for pointer in pointers:
                    _copy_pointer(document, view, pointer)

        logger.debug(
            "Built JSON view of %s for %d known subject(s) requiring %s",
            key,
            len(subject_ids),
            permissions.to_list(),
        )
        return view

    # ------------------------------------------------------------------
    # Recursion
    # ------------------------------------------------------------------

    def _filter(
        self,
        key: ResourceKey,
        value: object,
        held: dict[str, PermissionSet],
        required: PermissionSet,
    ) -> object:
        """Filter ``value``; ``held`` is each subject's effective permissions at ``key``."""
        enforcer = self._enforcer
        children = _children(value)
        if not children:
            if enforcer._holds_all(held, required):
                return copy.deepcopy(value)
            return _OMITTED

        if self._strategy == "subtree" and enforcer._covers_below(key, held, required):
            return copy.deepcopy(value)

        kept: list[tuple[object, object]] = []
        for member, segment, child in children:
            child_key = key.child(segment)
            child_held = enforcer._step(child_key, held)
            if not enforcer._partial_below(child_key, child_held, required):
                continue
            filtered = self._filter(child_key, child, child_held, required)
            if filtered is not _OMITTED:
                kept.append((member, filtered))

        if not kept:
            return _OMITTED
        if isinstance(value, dict):
            return {member: filtered for member, filtered in kept}
        return [filtered for _, filtered in kept]


def _children(value: object) -> list[tuple[object, str, object]]:
    """Return (original key, path segment, child) triples of a container."""
    if isinstance(value, dict):
        return [(member, str(member), child) for member, child in value.items()]
    if isinstance(value, (list, tuple)):
        return [(index, str(index), child) for index, child in enumerate(value)]
    return []


def _empty_like(document: object) -> object:
    if isinstance(document, dict):
        return {}
    if isinstance(document, (list, tuple)):
        return []
    return None


def _copy_pointer(source: dict, target: dict, pointer: ResourcePath) -> None:
    """Copy the value at ``pointer`` from ``source`` into ``target``, if present."""
    if pointer.is_root:
        return
    current: object = source
    for segment in pointer.segments:
        if not isinstance(current, dict) or segment not in current:
            return
        current = current[segment]

    node = target
    for segment in pointer.segments[:-1]:
        existing = node.get(segment)
        if not isinstance(existing, dict):
            existing = {}
            node[segment] = existing
        node = existing
    node[pointer.segments[-1]] = copy.deepcopy(current)
