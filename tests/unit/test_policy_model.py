"""Unit tests for policies/model.py."""
from __future__ import annotations

import json
import logging

import pytest
from pydantic import ValidationError

from twin_policy_enforcer.errors import InvalidPolicyError
from twin_policy_enforcer.permissions.permission_set import EffectedPermissions
from twin_policy_enforcer.policies.model import (
    Policy,
    PolicyEntry,
    ResourcePermissions,
    Subject,
)
from twin_policy_enforcer.resources.resource_key import ResourceKey


_POLICY_DOCUMENT: dict[str, object] = {
    "policyId": "org.acme:lamp-1",
    "entries": {
        "owner": {
            "subjects": {"google:alice": {"type": "user"}},
            "resources": {
                "thing:/": {"grant": ["READ", "WRITE"], "revoke": []},
                "thing:/features/secret": {"grant": [], "revoke": ["READ"]},
            },
        },
        "observer": {
            "subjects": {"nginx:bob": {}},
            "resources": {"thing:/features": {"grant": ["READ"]}},
        },
    },
}


# ---------------------------------------------------------------------------
# Subject
# ---------------------------------------------------------------------------


class TestSubject:
    def test_default_type(self) -> None:
        assert Subject(id="google:alice").type == "generated"

    def test_issuer(self) -> None:
        assert Subject(id="google:alice").issuer == "google"
        assert Subject(id="alice").issuer is None

    def test_blank_id_rejected(self) -> None:
        with pytest.raises(ValueError):
            Subject(id="   ")


# ---------------------------------------------------------------------------
# ResourcePermissions
# ---------------------------------------------------------------------------


class TestResourcePermissions:
    def test_normalised_sorted_and_deduplicated(self) -> None:
        declared = ResourcePermissions(grant=["WRITE", "READ", "READ"])  # type: ignore[arg-type]
        assert declared.grant == ("READ", "WRITE")
        assert declared.revoke == ()

    def test_single_string_accepted(self) -> None:
        assert ResourcePermissions(grant="READ").grant == ("READ",)  # type: ignore[arg-type]

    def test_none_is_empty(self) -> None:
        assert ResourcePermissions(revoke=None).revoke == ()  # type: ignore[arg-type]

    def test_whitespace_token_rejected(self) -> None:
        with pytest.raises(ValueError):
            ResourcePermissions(grant=["RE AD"])  # type: ignore[arg-type]

    def test_to_effected(self) -> None:
        effected = ResourcePermissions(grant=["READ"], revoke=["WRITE"]).to_effected()  # type: ignore[arg-type]
        assert effected == EffectedPermissions.of(["READ"], ["WRITE"])


# ---------------------------------------------------------------------------
# PolicyEntry
# ---------------------------------------------------------------------------


class TestPolicyEntry:
    def test_subjects_from_mapping(self) -> None:
        entry = PolicyEntry(label="e", subjects={"google:alice": {"type": "user"}})  # type: ignore[arg-type]
        assert entry.subjects["google:alice"].type == "user"

    def test_subjects_from_string_list(self) -> None:
        entry = PolicyEntry(label="e", subjects=["a", "b"])  # type: ignore[arg-type]
        assert entry.subject_ids == ("a", "b")

    def test_subjects_from_dict_list(self) -> None:
        entry = PolicyEntry(label="e", subjects=[{"id": "a", "type": "group"}])  # type: ignore[arg-type]
        assert entry.subjects["a"].type == "group"

    def test_uninterpretable_subject_rejected(self) -> None:
        with pytest.raises(ValueError):
            PolicyEntry(label="e", subjects=[42])  # type: ignore[arg-type]

    def test_blank_label_rejected(self) -> None:
        with pytest.raises(ValueError):
            PolicyEntry(label=" ")

    def test_resource_keys_normalised(self) -> None:
        entry = PolicyEntry(
            label="e",
            resources={"thing:/features/": {"grant": ["READ"]}},  # type: ignore[arg-type]
        )
        assert list(entry.resources) == ["thing:/features"]

    def test_equivalent_resource_keys_merged(self) -> None:
        entry = PolicyEntry(
            label="e",
            resources={  # type: ignore[arg-type]
                "thing:/features": {"grant": ["READ"]},
                "thing:features/": {"grant": ["WRITE"], "revoke": ["EXECUTE"]},
            },
        )
        declared = entry.resources["thing:/features"]
        assert declared.grant == ("READ", "WRITE")
        assert declared.revoke == ("EXECUTE",)

    def test_malformed_resource_key_rejected(self) -> None:
        with pytest.raises(ValueError):
            PolicyEntry(label="e", resources={"thing:/a//b": {"grant": ["READ"]}})  # type: ignore[arg-type]

    def test_resource_key_without_type_rejected(self) -> None:
        with pytest.raises(ValueError):
            PolicyEntry(label="e", resources={"/features": {"grant": ["READ"]}})  # type: ignore[arg-type]

    def test_effected_resources_keyed_by_resource_key(self) -> None:
        entry = PolicyEntry(
            label="e",
            resources={"thing:/a": {"grant": ["READ"]}},  # type: ignore[arg-type]
        )
        assert entry.effected_resources() == {
            ResourceKey.parse("thing:/a"): EffectedPermissions.of(["READ"], [])
        }


# ---------------------------------------------------------------------------
# Policy
# ---------------------------------------------------------------------------


class TestPolicy:
    def test_from_dict_mapping_layout(self) -> None:
        policy = Policy.from_dict(_POLICY_DOCUMENT)
        assert policy.policy_id == "org.acme:lamp-1"
        assert set(policy.labels) == {"owner", "observer"}

    def test_list_layout(self) -> None:
        policy = Policy.from_dict(
            {
                "entries": [
                    {"label": "owner", "subjects": ["a"], "resources": {"thing:/": {"grant": ["READ"]}}},
                ]
            }
        )
        assert policy.get_entry("owner").subject_ids == ("a",)

    def test_policy_id_by_field_name(self) -> None:
        assert Policy.from_dict({"policy_id": "ns:p", "entries": {}}).policy_id == "ns:p"

    def test_empty_policy_is_legal(self) -> None:
        assert Policy.from_dict({"entries": {}}).entries == ()

    def test_get_entry_unknown_label(self) -> None:
        with pytest.raises(KeyError):
            Policy.from_dict(_POLICY_DOCUMENT).get_entry("nobody")

    def test_conflicting_duplicate_labels_rejected(self) -> None:
        with pytest.raises(InvalidPolicyError, match="duplicate entry label"):
            Policy.from_dict(
                {
                    "entries": [
                        {"label": "x", "subjects": ["a"]},
                        {"label": "x", "subjects": ["b"]},
                    ]
                }
            )

    def test_identical_duplicate_labels_collapse(self, caplog: pytest.LogCaptureFixture) -> None:
        entry = {"label": "x", "subjects": ["a"], "resources": {"thing:/": {"grant": ["READ"]}}}
        with caplog.at_level(logging.WARNING, logger="twin_policy_enforcer.policies.model"):
            policy = Policy.from_dict({"entries": [entry, dict(entry)]})
        assert policy.labels == ("x",)
        assert "duplicate" in caplog.text

    def test_validation_error_wrapped_with_source(self) -> None:
        with pytest.raises(InvalidPolicyError) as exc_info:
            Policy.from_dict(
                {"entries": {"e": {"subjects": ["a"], "resources": {"no-type": {}}}}},
                source="lamp.yaml",
            )
        assert exc_info.value.source == "lamp.yaml"
        assert str(exc_info.value).startswith("[lamp.yaml] ")

    def test_non_mapping_rejected(self) -> None:
        with pytest.raises(InvalidPolicyError):
            Policy.from_dict(["not", "a", "mapping"])  # type: ignore[arg-type]

    @pytest.mark.parametrize(
        "document",
        [
            {"entries": {"e": 7}},
            {"entries": {"e": {"subjects": {"google:a": 5}}}},
            {"entries": {"e": {"subjects": {"google:a": "user"}}}},
            {"entries": {"e": {"subjects": ["a"], "resources": {"thing:/": 5}}}},
            {"entries": {"e": {"subjects": ["a"], "resources": {"thing:/": {"grant": 5}}}}},
            {"entries": {"e": {"subjects": ["a"], "resources": {"thing:/": {"revoke": True}}}}},
        ],
    )
    def test_wrong_entry_shape_rejected(self, document: dict[str, object]) -> None:
        with pytest.raises(InvalidPolicyError):
            Policy.from_dict(document, source="lamp.yaml")

    def test_from_yaml(self) -> None:
        policy = Policy.from_yaml(
            "entries:\n"
            "  owner:\n"
            "    subjects: {'google:alice': {}}\n"
            "    resources:\n"
            "      'thing:/': {grant: [READ]}\n"
        )
        assert policy.get_entry("owner").resources["thing:/"].grant == ("READ",)

    def test_from_yaml_malformed(self) -> None:
        with pytest.raises(InvalidPolicyError, match="YAML"):
            Policy.from_yaml("entries: [unterminated")

    def test_to_dict_round_trips(self) -> None:
        policy = Policy.from_dict(_POLICY_DOCUMENT)
        assert Policy.from_dict(policy.to_dict()) == policy

    def test_to_json_is_valid_json(self) -> None:
        document = json.loads(Policy.from_dict(_POLICY_DOCUMENT).to_json())
        assert document["policyId"] == "org.acme:lamp-1"
        assert document["entries"]["observer"]["resources"]["thing:/features"]["grant"] == ["READ"]

    def test_input_document_not_mutated(self) -> None:
        snapshot = json.dumps(_POLICY_DOCUMENT, sort_keys=True)
        Policy.from_dict(_POLICY_DOCUMENT)
        assert json.dumps(_POLICY_DOCUMENT, sort_keys=True) == snapshot

    def test_policy_is_frozen(self) -> None:
        policy = Policy.from_dict(_POLICY_DOCUMENT)
        with pytest.raises(ValidationError):
            policy.policy_id = "other"  # type: ignore[misc]
