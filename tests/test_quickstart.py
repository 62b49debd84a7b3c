"""Test that the quickstart API works for twin-policy-enforcer."""
from __future__ import annotations

_POLICY = {
    "policyId": "org.acme:lamp-1",
    "entries": {
        "owner": {
            "subjects": {"google:alice": {"type": "user"}},
            "resources": {
                "thing:/": {"grant": ["READ", "WRITE"], "revoke": []},
                "thing:/features/secret": {"grant": [], "revoke": ["READ"]},
            },
        }
    },
}


def test_quickstart_import() -> None:
    from twin_policy_enforcer import Policy, PolicyEnforcer

    enforcer = PolicyEnforcer.from_policy(Policy.from_dict(_POLICY))
    assert enforcer is not None


def test_quickstart_check() -> None:
    from twin_policy_enforcer import Policy, PolicyEnforcer

    enforcer = PolicyEnforcer.from_policy(Policy.from_dict(_POLICY))
    assert enforcer.has_unrestricted_permissions("thing:/attributes", ["google:alice"], ["READ"])
    assert not enforcer.has_unrestricted_permissions(
        "thing:/features/secret", ["google:alice"], ["READ"]
    )


def test_quickstart_view() -> None:
    from twin_policy_enforcer import Policy, PolicyEnforcer

    enforcer = PolicyEnforcer.from_policy(Policy.from_dict(_POLICY))
    view = enforcer.build_view(
        "thing:/", {"features": {"public": 1, "secret": 2}}, ["google:alice"], ["READ"]
    )
    assert view == {"features": {"public": 1}}


def test_quickstart_loader_and_config() -> None:
    from twin_policy_enforcer import EnforcerConfig, PolicyEnforcer, PolicyLoader

    policy = PolicyLoader().load_from_dict(_POLICY)
    enforcer = PolicyEnforcer.from_policy(policy, EnforcerConfig(algorithm="flat"))
    assert enforcer.compiled_policy.algorithm == "flat"


def test_quickstart_version() -> None:
    import twin_policy_enforcer

    assert twin_policy_enforcer.__version__ == "0.1.0"


def test_quickstart_public_api() -> None:
    import twin_policy_enforcer

    for name in twin_policy_enforcer.__all__:
        assert hasattr(twin_policy_enforcer, name), name
