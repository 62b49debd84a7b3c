#!/usr/bin/env python3
"""Example: Quickstart for twin-policy-enforcer

Minimal working example: define a policy, compile it into an enforcer,
and check permissions for a few subjects.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install twin-policy-enforcer
"""
from __future__ import annotations

import twin_policy_enforcer as tpe


def main() -> None:
    print(f"twin-policy-enforcer version: {tpe.__version__}")

    # Step 1: Define the policy of one digital twin
    policy = tpe.Policy.from_dict({
        "policyId": "org.acme:lamp-1",
        "entries": {
            "owner": {
                "subjects": {"google:alice": {"type": "user"}},
                "resources": {
                    "thing:/": {"grant": ["READ", "WRITE"], "revoke": []},
                    "policy:/": {"grant": ["READ", "WRITE"], "revoke": []},
                },
            },
            "observer": {
                "subjects": {"nginx:bob": {"type": "pre-authenticated"}},
                "resources": {
                    "thing:/features": {"grant": ["READ"], "revoke": []},
                    "thing:/features/secret": {"grant": [], "revoke": ["READ"]},
                },
            },
        },
    })

    # Step 2: Compile the policy
    enforcer = tpe.PolicyEnforcer.from_policy(policy)
    print(f"Enforcer ready: {enforcer!r}")

    # Step 3: Evaluate requests
    requests = [
        ("thing:/features/lamp", ["google:alice"], ["WRITE"]),
        ("thing:/features/lamp", ["nginx:bob"], ["READ"]),
        ("thing:/features/secret", ["nginx:bob"], ["READ"]),
        ("thing:/", ["nginx:bob"], ["READ"]),
        ("policy:/", ["mallory"], ["READ"]),
    ]

    print("\nEnforcement:")
    for resource_key, subjects, required in requests:
        decision = enforcer.check(resource_key, subjects, required)
        if decision.allowed:
            icon = "ALLOW"
        elif decision.partial:
            icon = "PARTIAL"
        else:
            icon = "DENY"
        print(f"  [{icon}] {subjects} {required} on {resource_key}")
        print(f"    {decision.reason}")

    # Step 4: Who may read the secret feature?
    readers = enforcer.subjects_with_permission("thing:/features/secret", ["READ"])
    print(f"\nREAD on thing:/features/secret: granted={sorted(readers.granted)} "
          f"revoked={sorted(readers.revoked)}")


if __name__ == "__main__":
    main()
