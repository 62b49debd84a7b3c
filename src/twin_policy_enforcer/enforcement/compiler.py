"""Selects a compiled policy implementation by name."""
from __future__ import annotations

from twin_policy_enforcer.enforcement.base import CompiledPolicy
from twin_policy_enforcer.enforcement.flat import FlatCompiledPolicy
from twin_policy_enforcer.enforcement.trie import TrieCompiledPolicy
from twin_policy_enforcer.policies.model import Policy

ALGORITHMS: dict[str, type[CompiledPolicy]] = {
    TrieCompiledPolicy.algorithm: TrieCompiledPolicy,
    FlatCompiledPolicy.algorithm: FlatCompiledPolicy,
}


def compile_policy(policy: Policy, algorithm: str = "trie") -> CompiledPolicy:
    """Compile ``policy`` into an immutable index.

    Parameters
    ----------
    policy:
        The validated policy.
    algorithm:
        ``"trie"`` or ``"flat"``.  Both produce identical decisions.

    Raises
    ------
    ValueError
        If ``algorithm`` is unknown.
    InvalidPolicyError
        If the policy violates model invariants.
    """
    try:
        implementation = ALGORITHMS[algorithm]
    except KeyError:
        raise ValueError(
            f"Unknown compilation algorithm {algorithm!r}; expected one of {sorted(ALGORITHMS)}."
        ) from None
    return implementation.from_policy(policy)
