"""Policy model and loading.

Example
-------
::

    from twin_policy_enforcer.policies import PolicyLoader

    policy = PolicyLoader().load_from_dict({
        "policyId": "org.acme:lamp-1",
        "entries": {
            "owner": {
                "subjects": {"google:alice": {"type": "user"}},
                "resources": {"thing:/": {"grant": ["READ", "WRITE"], "revoke": []}},
            }
        },
    })
"""
from __future__ import annotations

from twin_policy_enforcer.policies.loader import PolicyLoader
from twin_policy_enforcer.policies.model import (
    Policy,
    PolicyEntry,
    ResourcePermissions,
    Subject,
)

__all__ = [
    "Policy",
    "PolicyEntry",
    "PolicyLoader",
    "ResourcePermissions",
    "Subject",
]
