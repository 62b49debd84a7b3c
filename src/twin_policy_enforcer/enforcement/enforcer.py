"""Policy enforcer: permission resolution over a compiled policy.

Effective permissions of one subject at a resource key are computed by
walking from the root of the key's resource type down to the key.  At
every key on that path that carries a declaration for the subject, the
granted permissions are added and then the revoked ones removed, so

- a revoke wins over a grant declared at the same key, and
- a deeper declaration overrides shallower ones for the permissions it
  mentions.

An authorization context holds a permission when *any* of its subjects
does.  Revokes never cross subjects.  Absence of a declaration is denial.

Example
-------
::

    enforcer = PolicyEnforcer.from_policy(policy)
    if enforcer.has_unrestricted_permissions("thing:/features", ["google:alice"], {"READ"}):
        ...
    view = enforcer.build_view("thing:/", thing_json, ["google:alice"], {"READ"})
"""
from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from twin_policy_enforcer.auth.context import AuthorizationContext, AuthorizationSubject
from twin_policy_enforcer.config import EnforcerConfig
from twin_policy_enforcer.enforcement.base import CompiledPolicy
from twin_policy_enforcer.enforcement.compiler import compile_policy
from twin_policy_enforcer.enforcement.json_view import JsonViewBuilder
from twin_policy_enforcer.permissions.permission_set import (
    PermissionSet,
    required_permissions,
)
from twin_policy_enforcer.policies.model import Policy
from twin_policy_enforcer.resources.resource_key import ResourceKey

logger = logging.getLogger(__name__)

ResourceKeyLike = ResourceKey | str
ContextLike = AuthorizationContext | Iterable[str | AuthorizationSubject]
PermissionsLike = PermissionSet | Iterable[str] | str


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EnforcementDecision:
    """Immutable outcome of :meth:`PolicyEnforcer.check`.

    Attributes
    ----------
    allowed:
        Whether every required permission holds at the resource key.
    partial:
        Whether at least one required permission holds at the key or
        somewhere below it.
    resource_key:
        The key that was checked.
    required:
        The permissions that were required.
    granted:
        Effective permissions of the whole context at the key.
    reason:
        Human-readable explanation of the decision.
    """

    allowed: bool
    partial: bool
    resource_key: ResourceKey
    required: PermissionSet
    granted: PermissionSet
    reason: str

    @property
    def missing(self) -> PermissionSet:
        """Required permissions the context does not hold at the key."""
        return self.required.subtract(self.granted)

    def __bool__(self) -> bool:
        return self.allowed


@dataclass(frozen=True)
class EffectedSubjects:
    """Subjects classified by their permissions at one resource key.

    Attributes
    ----------
    granted:
        Subjects holding every required permission at the key.
    revoked:
        Remaining subjects with a revoke of a required permission on the
        path to the key.
    """

    granted: frozenset[str] = field(default_factory=frozenset)
    revoked: frozenset[str] = field(default_factory=frozenset)


# ---------------------------------------------------------------------------
# PolicyEnforcer
# ---------------------------------------------------------------------------


class PolicyEnforcer:
    """Answers permission questions against one compiled policy.

    Instances hold no mutable state and can be shared across threads.  To
    apply a new policy version, build a new enforcer and swap the
    reference held by the owning component.

    Parameters
    ----------
    compiled_policy:
        The compiled policy to evaluate.
    config:
        Optional configuration; only ``view_strategy`` is read here.
    """

    def __init__(
        self,
        compiled_policy: CompiledPolicy,
        config: EnforcerConfig | None = None,
    ) -> None:
        self._compiled = compiled_policy
        self._config = config or EnforcerConfig()

    @classmethod
    def from_policy(
        cls,
        policy: Policy,
        config: EnforcerConfig | None = None,
        algorithm: str | None = None,
    ) -> PolicyEnforcer:
        """Compile ``policy`` and wrap it in an enforcer.

        ``algorithm`` overrides ``config.algorithm`` when given.
        """
        effective_config = config or EnforcerConfig()
        compiled = compile_policy(policy, algorithm or effective_config.algorithm)
        return cls(compiled, effective_config)

    @property
    def compiled_policy(self) -> CompiledPolicy:
        return self._compiled

    @property
    def config(self) -> EnforcerConfig:
        return self._config

    # ------------------------------------------------------------------
    # Effective permissions
    # ------------------------------------------------------------------

    def effective_permissions(
        self, resource_key: ResourceKeyLike, subject: str | AuthorizationSubject
    ) -> PermissionSet:
        """Permissions ``subject`` holds at ``resource_key``.

        Raises
        ------
        InvalidResourceKeyError
            If ``resource_key`` is a malformed string.
        """
        key = ResourceKey.parse(resource_key)
        subject_id = subject.id if isinstance(subject, AuthorizationSubject) else str(subject)
        return self._walk(key, (subject_id,))[subject_id]

    def effective_permissions_for_context(
        self, resource_key: ResourceKeyLike, auth_context: ContextLike
    ) -> PermissionSet:
        """Union of the effective permissions of every subject in the context."""
        key = ResourceKey.parse(resource_key)
        return self._context_permissions(key, self._relevant_subjects(auth_context))

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def has_unrestricted_permissions(
        self,
        resource_key: ResourceKeyLike | Iterable[ResourceKeyLike],
        auth_context: ContextLike,
        required: PermissionsLike,
    ) -> bool:
        """Return True if the context holds all of ``required`` at the key.

        An iterable of keys may be given; the result is then True only if
        the permissions hold at every one of them.

        Raises
        ------
        InvalidResourceKeyError
            If a key is a malformed string.
        InvalidPermissionsError
            If ``required`` is empty or holds a malformed token.
        """
        permissions = required_permissions(required)
        subject_ids = self._relevant_subjects(auth_context)
        keys = self._resource_keys(resource_key)
        allowed = all(self._has_unrestricted(key, subject_ids, permissions) for key in keys)
        logger.debug(
            "Enforcement %s: unrestricted %s on %s",
            "ALLOW" if allowed else "DENY",
            permissions.to_list(),
            ", ".join(str(k) for k in keys),
        )
        return allowed

    def has_partial_permissions(
        self,
        resource_key: ResourceKeyLike,
        auth_context: ContextLike,
        required: PermissionsLike,
    ) -> bool:
        """Return True if any of ``required`` holds at the key or below it.

        Only keys that carry policy declarations are inspected; every other
        key below ``resource_key`` inherits the permissions of its nearest
        declared ancestor, which is already covered.
        """
        key = ResourceKey.parse(resource_key)
        permissions = required_permissions(required)
        partial = self._has_partial(key, self._relevant_subjects(auth_context), permissions)
        logger.debug(
            "Enforcement %s: partial %s on %s",
            "ALLOW" if partial else "DENY",
            permissions.to_list(),
            key,
        )
        return partial

    def check(
        self,
        resource_key: ResourceKeyLike,
        auth_context: ContextLike,
        required: PermissionsLike,
    ) -> EnforcementDecision:
        """Evaluate ``required`` at ``resource_key`` and explain the outcome."""
        key = ResourceKey.parse(resource_key)
        permissions = required_permissions(required)
        subject_ids = self._relevant_subjects(auth_context)

        granted = self._context_permissions(key, subject_ids)
        allowed = granted.contains_all(permissions)
        partial = allowed or self._has_partial(key, subject_ids, permissions)

        if allowed:
            reason = f"All of {permissions.to_list()} granted on '{key}'."
        elif partial:
            missing = permissions.subtract(granted).to_list()
            reason = (
                f"Missing {missing} on '{key}'; some required permissions are "
                "granted on or below it."
            )
        elif not subject_ids:
            reason = f"No subject of the context is known to the policy; default deny on '{key}'."
        else:
            reason = f"None of {permissions.to_list()} granted on or below '{key}'."

        logger.debug("Enforcement %s: %s", "ALLOW" if allowed else "DENY", reason)
        return EnforcementDecision(
            allowed=allowed,
            partial=partial,
            resource_key=key,
            required=permissions,
            granted=granted,
            reason=reason,
        )

    # ------------------------------------------------------------------
    # Subject queries
    # ------------------------------------------------------------------

    def subjects_with_permission(
        self, resource_key: ResourceKeyLike, required: PermissionsLike
    ) -> EffectedSubjects:
        """Classify every policy subject as granted or revoked at the key."""
        key = ResourceKey.parse(resource_key)
        permissions = required_permissions(required)
        subject_ids = tuple(sorted(self._compiled.subject_ids))
        effective = self._walk(key, subject_ids)

        granted = frozenset(s for s in subject_ids if effective[s].contains_all(permissions))
        revoked: set[str] = set()
        for _, by_subject in self._compiled.path_permissions(key):
            for subject_id, effected in by_subject.items():
                if subject_id not in granted and effected.revoked.contains_any(permissions):
                    revoked.add(subject_id)
        return EffectedSubjects(granted=granted, revoked=frozenset(revoked))

    def subjects_with_partial_permission(
        self, resource_key: ResourceKeyLike, required: PermissionsLike
    ) -> frozenset[str]:
        """Subjects holding any of ``required`` at the key or below it."""
        key = ResourceKey.parse(resource_key)
        permissions = required_permissions(required)
        return frozenset(
            s for s in self._compiled.subject_ids if self._has_partial(key, (s,), permissions)
        )

    def subjects_with_unrestricted_permission(
        self, resource_key: ResourceKeyLike, required: PermissionsLike
    ) -> frozenset[str]:
        """Subjects holding all of ``required`` at the key and everywhere below it."""
        key = ResourceKey.parse(resource_key)
        permissions = required_permissions(required)
        return frozenset(
            s for s in self._compiled.subject_ids if self._covers_subtree(key, (s,), permissions)
        )

    # ------------------------------------------------------------------
    # JSON view
    # ------------------------------------------------------------------

    def build_view(
        self,
        resource_key: ResourceKeyLike,
        document: object,
        auth_context: ContextLike,
        required: PermissionsLike,
        allowlist: Iterable[str] | None = None,
    ) -> object:
        """Return the part of ``document`` the context may see.

        ``document`` is the JSON value (dicts, lists, scalars) located at
        ``resource_key``.  It is never modified.  An invisible root object
        or array yields an empty one of the same kind; an invisible root
        scalar yields ``None``.

        ``allowlist`` names document-relative pointers (e.g. ``/thingId``)
        that are copied into the view whenever the context holds any of
        ``required`` somewhere in the key's resource type.
        """
        builder = JsonViewBuilder(self, strategy=self._config.view_strategy)
        return builder.build(resource_key, document, auth_context, required, allowlist)

    # ------------------------------------------------------------------
    # Internal algorithm
    # ------------------------------------------------------------------

    def _relevant_subjects(self, auth_context: ContextLike) -> tuple[str, ...]:
        """Context subject ids that the compiled policy knows about."""
        context = AuthorizationContext.coerce(auth_context)
        known = self._compiled.subject_ids
        return tuple(s for s in context.subject_ids if s in known)

    @staticmethod
    def _resource_keys(value: ResourceKeyLike | Iterable[ResourceKeyLike]) -> tuple[ResourceKey, ...]:
        if isinstance(value, (ResourceKey, str)):
            return (ResourceKey.parse(value),)
        return tuple(ResourceKey.parse(k) for k in value)

    def _walk(
        self,
        key: ResourceKey,
        subject_ids: Iterable[str],
        start: dict[str, PermissionSet] | None = None,
        below: ResourceKey | None = None,
    ) -> dict[str, PermissionSet]:
        """Accumulate grants then revokes per subject from root to ``key``.

        When ``start`` is given, the walk resumes from those accumulated sets
        and only applies declarations strictly below ``below``.
        """
        accumulated = dict(start) if start is not None else {
            s: PermissionSet.empty() for s in subject_ids
        }
        min_level = below.path.level_count if below is not None else -1
        for node_key, by_subject in self._compiled.path_permissions(key):
            if node_key.path.level_count <= min_level:
                continue
            for subject_id in accumulated:
                effected = by_subject.get(subject_id)
                if effected is not None:
                    accumulated[subject_id] = effected.apply_to(accumulated[subject_id])
        return accumulated

    def _context_permissions(self, key: ResourceKey, subject_ids: tuple[str, ...]) -> PermissionSet:
        return _union(self._walk(key, subject_ids).values())

    def _has_unrestricted(
        self, key: ResourceKey, subject_ids: tuple[str, ...], required: PermissionSet
    ) -> bool:
        if not subject_ids:
            return False
        return self._context_permissions(key, subject_ids).contains_all(required)

    def _has_partial(
        self, key: ResourceKey, subject_ids: tuple[str, ...], required: PermissionSet
    ) -> bool:
        if not subject_ids:
            return False
        return self._partial_below(key, self._walk(key, subject_ids), required)

    def _covers_subtree(
        self, key: ResourceKey, subject_ids: tuple[str, ...], required: PermissionSet
    ) -> bool:
        """True if ``required`` holds at ``key`` and at every declared key below.

        Keys below ``key`` without a declaration for any of the subjects
        inherit the permissions of a checked key, so they need no check.
        """
        if not subject_ids:
            return False
        return self._covers_below(key, self._walk(key, subject_ids), required)

    # The helpers below take ``held``: the effective permissions of each
    # relevant subject at ``key``, as returned by ``_walk`` or ``_step``.
    # Recursive callers pass it down instead of walking from the root again.

    def _step(self, key: ResourceKey, held: dict[str, PermissionSet]) -> dict[str, PermissionSet]:
        """Apply the declarations made exactly at ``key`` on top of its parent's ``held``."""
        by_subject = self._compiled.permissions_at(key)
        if not by_subject:
            return held
        stepped = dict(held)
        for subject_id, accumulated in held.items():
            effected = by_subject.get(subject_id)
            if effected is not None:
                stepped[subject_id] = effected.apply_to(accumulated)
        return stepped

    @staticmethod
    def _holds_all(held: dict[str, PermissionSet], required: PermissionSet) -> bool:
        return bool(held) and _union(held.values()).contains_all(required)

    def _partial_below(
        self, key: ResourceKey, held: dict[str, PermissionSet], required: PermissionSet
    ) -> bool:
        if any(p.contains_any(required) for p in held.values()):
            return True

        for descendant, by_subject in self._compiled.descendant_permissions(key):
            declared = tuple(s for s in held if s in by_subject)
            if not declared:
                continue
            below = self._walk(
                descendant, declared, start={s: held[s] for s in declared}, below=key
            )
            if any(p.contains_any(required) for p in below.values()):
                return True
        return False

    def _covers_below(
        self, key: ResourceKey, held: dict[str, PermissionSet], required: PermissionSet
    ) -> bool:
        if not self._holds_all(held, required):
            return False

        for descendant, by_subject in self._compiled.descendant_permissions(key):
            if not any(s in by_subject for s in held):
                continue
            below = self._walk(descendant, held, start=held, below=key)
            if not _union(below.values()).contains_all(required):
                return False
        return True

    def __repr__(self) -> str:
        return f"PolicyEnforcer({self._compiled!r}, view_strategy={self._config.view_strategy!r})"


def _union(permission_sets: Iterable[PermissionSet]) -> PermissionSet:
    result = PermissionSet.empty()
    for permissions in permission_sets:
        result = result.union(permissions)
    return result
