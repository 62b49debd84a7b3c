#!/usr/bin/env python3
"""Example: Permission-filtered JSON views

Loads a policy from YAML, then prints the part of a thing document that
each requester may read, using both view strategies.

Usage:
    python examples/02_json_view.py

Requirements:
    pip install twin-policy-enforcer
"""
from __future__ import annotations

import json

import twin_policy_enforcer as tpe

_POLICY_YAML = """\
policyId: "org.acme:lamp-1"
entries:
  owner:
    subjects:
      "google:alice": {type: user}
    resources:
      "thing:/": {grant: [READ, WRITE], revoke: []}
      "thing:/features/secret": {grant: [], revoke: [READ]}
  support:
    subjects:
      "nginx:support": {type: group}
    resources:
      "thing:/features/lamp/properties": {grant: [READ], revoke: []}
"""

_THING = {
    "thingId": "org.acme:lamp-1",
    "policyId": "org.acme:lamp-1",
    "attributes": {"location": "kitchen"},
    "features": {
        "lamp": {"properties": {"on": True, "brightness": 80}},
        "secret": {"properties": {"pin": 1234}},
    },
}


def main() -> None:
    print(f"twin-policy-enforcer version: {tpe.__version__}")

    # Step 1: Load the policy
    policy = tpe.PolicyLoader().load_from_yaml_string(_POLICY_YAML, source="inline")
    print(f"Loaded policy '{policy.policy_id}' with entries {list(policy.labels)}")

    # Step 2: Build views for each requester and strategy
    for strategy in ("subtree", "exhaustive"):
        enforcer = tpe.PolicyEnforcer.from_policy(
            policy, tpe.EnforcerConfig(view_strategy=strategy)
        )
        print(f"\nView strategy: {strategy}")
        for subjects in (["google:alice"], ["nginx:support"], ["mallory"]):
            view = enforcer.build_view(
                "thing:/", _THING, subjects, ["READ"], allowlist=["/thingId"]
            )
            print(f"  {subjects}: {json.dumps(view)}")


if __name__ == "__main__":
    main()
