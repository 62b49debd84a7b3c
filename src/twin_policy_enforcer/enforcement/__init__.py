"""Policy compilation and enforcement.

Example
-------
::

    from twin_policy_enforcer.enforcement import PolicyEnforcer, compile_policy

    enforcer = PolicyEnforcer(compile_policy(policy, algorithm="flat"))
    enforcer.has_partial_permissions("thing:/features", ["google:alice"], ["READ"])
"""
from __future__ import annotations

from twin_policy_enforcer.enforcement.base import CompiledPolicy
from twin_policy_enforcer.enforcement.compiler import ALGORITHMS, compile_policy
from twin_policy_enforcer.enforcement.enforcer import (
    EffectedSubjects,
    EnforcementDecision,
    PolicyEnforcer,
)
from twin_policy_enforcer.enforcement.flat import FlatCompiledPolicy
from twin_policy_enforcer.enforcement.json_view import JsonViewBuilder
from twin_policy_enforcer.enforcement.trie import TrieCompiledPolicy

__all__ = [
    "ALGORITHMS",
    "CompiledPolicy",
    "EffectedSubjects",
    "EnforcementDecision",
    "FlatCompiledPolicy",
    "JsonViewBuilder",
    "PolicyEnforcer",
    "TrieCompiledPolicy",
    "compile_policy",
]
