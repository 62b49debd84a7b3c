"""twin-policy-enforcer: policy enforcement engine for digital-twin resources.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import twin_policy_enforcer as tpe
>>> policy = tpe.Policy.from_dict({
...     "entries": {
...         "owner": {
...             "subjects": {"google:alice": {"type": "user"}},
...             "resources": {
...                 "thing:/": {"grant": ["READ"], "revoke": []},
...                 "thing:/features/secret": {"grant": [], "revoke": ["READ"]},
...             },
...         }
...     }
... })
>>> enforcer = tpe.PolicyEnforcer.from_policy(policy)
>>> enforcer.build_view(
...     "thing:/", {"features": {"public": 1, "secret": 2}}, ["google:alice"], ["READ"]
... )
{'features': {'public': 1}}
"""
from __future__ import annotations

__version__: str = "0.1.0"

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------
from twin_policy_enforcer.errors import (
    ConfigError,
    EnforcementError,
    InvalidPermissionsError,
    InvalidPolicyError,
    InvalidResourceKeyError,
)

# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------
from twin_policy_enforcer.resources.resource_key import ResourceKey, ResourcePath
from twin_policy_enforcer.permissions.permission_set import (
    EXECUTE,
    READ,
    WRITE,
    EffectedPermissions,
    PermissionSet,
)
from twin_policy_enforcer.policies.model import Policy, PolicyEntry, Subject
from twin_policy_enforcer.policies.loader import PolicyLoader
from twin_policy_enforcer.auth.context import AuthorizationContext, AuthorizationSubject

# ---------------------------------------------------------------------------
# Enforcement
# ---------------------------------------------------------------------------
from twin_policy_enforcer.enforcement.base import CompiledPolicy
from twin_policy_enforcer.enforcement.compiler import compile_policy
from twin_policy_enforcer.enforcement.enforcer import (
    EffectedSubjects,
    EnforcementDecision,
    PolicyEnforcer,
)
from twin_policy_enforcer.enforcement.flat import FlatCompiledPolicy
from twin_policy_enforcer.enforcement.json_view import JsonViewBuilder
from twin_policy_enforcer.enforcement.trie import TrieCompiledPolicy

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
from twin_policy_enforcer.config import ConfigLoader, EnforcerConfig

__all__ = [
    "__version__",
    # Errors
    "ConfigError",
    "EnforcementError",
    "InvalidPermissionsError",
    "InvalidPolicyError",
    "InvalidResourceKeyError",
    # Model
    "AuthorizationContext",
    "AuthorizationSubject",
    "EXECUTE",
    "EffectedPermissions",
    "PermissionSet",
    "Policy",
    "PolicyEntry",
    "PolicyLoader",
    "READ",
    "ResourceKey",
    "ResourcePath",
    "Subject",
    "WRITE",
    # Enforcement
    "CompiledPolicy",
    "EffectedSubjects",
    "EnforcementDecision",
    "FlatCompiledPolicy",
    "JsonViewBuilder",
    "PolicyEnforcer",
    "TrieCompiledPolicy",
    "compile_policy",
    # Configuration
    "ConfigLoader",
    "EnforcerConfig",
]
