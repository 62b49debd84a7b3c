"""Policy model: pydantic v2 models for policies, entries and subjects.

A policy is an unordered collection of labelled entries.  Each entry names
the subjects it applies to and, per resource key, the permissions it
grants and revokes.  Both the mapping layout used by the digital-twin
platform and a list layout are accepted::

    policyId: "org.acme:lamp-1"
    entries:
      owner:
        subjects:
          "google:alice": {type: "user"}
        resources:
          "thing:/": {grant: [READ, WRITE], revoke: []}
          "thing:/features/secret": {grant: [], revoke: [READ]}

Example
-------
>>> policy = Policy.from_yaml(open("policy.yaml").read())
>>> policy.get_entry("owner").subject_ids
('google:alice',)
"""
from __future__ import annotations

import json
import logging
from collections.abc import Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from twin_policy_enforcer.errors import InvalidPolicyError
from twin_policy_enforcer.permissions.permission_set import (
    EffectedPermissions,
    PermissionSet,
)
from twin_policy_enforcer.resources.resource_key import ResourceKey

logger = logging.getLogger(__name__)

DEFAULT_SUBJECT_TYPE = "generated"


# ---------------------------------------------------------------------------
# Subject
# ---------------------------------------------------------------------------


class Subject(BaseModel):
    """An authorization identity that a policy entry applies to.

    Attributes
    ----------
    id:
        Issuer-qualified identifier, e.g. ``google:user123``.
    type:
        Free-form classification (``user``, ``group``, ``generated``...).
        Informational only; it never affects enforcement.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    type: str = DEFAULT_SUBJECT_TYPE

    @field_validator("id")
    @classmethod
    def id_must_not_be_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("subject id must not be blank")
        return value

    @property
    def issuer(self) -> str | None:
        """The part before the first ``:``, or ``None`` if unqualified."""
        issuer, separator, _ = self.id.partition(":")
        return issuer if separator else None


# ---------------------------------------------------------------------------
# Resource grant/revoke declaration
# ---------------------------------------------------------------------------


class ResourcePermissions(BaseModel):
    """The ``grant`` and ``revoke`` lists declared for one resource key."""

    model_config = ConfigDict(frozen=True)

    grant: tuple[str, ...] = ()
    revoke: tuple[str, ...] = ()

    @field_validator("grant", "revoke", mode="before")
    @classmethod
    def normalise_permissions(cls, value: object) -> tuple[str, ...]:
        if value is None:
            return ()
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, (list, tuple, set, frozenset, PermissionSet)):
            raise ValueError(
                f"permissions must be a string or a list of strings, got {type(value).__name__}"
            )
        # PermissionSet validates every token and collapses duplicates.
        return tuple(PermissionSet(value).to_list())  # type: ignore[arg-type]

    def to_effected(self) -> EffectedPermissions:
        return EffectedPermissions.of(self.grant, self.revoke)


# ---------------------------------------------------------------------------
# PolicyEntry
# ---------------------------------------------------------------------------


class PolicyEntry(BaseModel):
    """One labelled entry of a policy.

    Attributes
    ----------
    label:
        Unique name of the entry within its policy; used for traceability.
    subjects:
        Subjects the entry applies to, keyed by subject id.
    resources:
        Grant/revoke declarations keyed by normalised ``type:/path`` strings.
    """

    model_config = ConfigDict(frozen=True)

    label: str
    subjects: dict[str, Subject] = Field(default_factory=dict)
    resources: dict[str, ResourcePermissions] = Field(default_factory=dict)

    @field_validator("label")
    @classmethod
    def label_must_not_be_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("entry label must not be blank")
        return value

    @field_validator("subjects", mode="before")
    @classmethod
    def normalise_subjects(cls, value: object) -> dict[str, object]:
        """Accept ``{id: {type: ...}}``, ``[{id, type}]`` or ``[id, ...]``."""
        if value is None:
            return {}
        if isinstance(value, Mapping):
            normalised: dict[str, object] = {}
            for subject_id, body in value.items():
                if isinstance(body, Subject):
                    normalised[str(subject_id)] = body
                elif body is None or isinstance(body, Mapping):
                    fields = dict(body or {})
                    fields.setdefault("id", subject_id)
                    normalised[str(subject_id)] = fields
                else:
                    raise ValueError(f"subject {subject_id!r} must be a mapping, got {body!r}")
            return normalised
        if isinstance(value, (list, tuple)):
            normalised = {}
            for item in value:
                if isinstance(item, str):
                    normalised[item] = {"id": item}
                elif isinstance(item, Subject):
                    normalised[item.id] = item
                elif isinstance(item, Mapping) and "id" in item:
                    normalised[str(item["id"])] = dict(item)
                else:
                    raise ValueError(f"cannot interpret subject {item!r}")
            return normalised
        raise ValueError("subjects must be a mapping or a list")

    @field_validator("resources", mode="before")
    @classmethod
    def normalise_resource_keys(cls, value: object) -> dict[str, object]:
        """Validate every resource key and merge keys that normalise equally."""
        if value is None:
            return {}
        if not isinstance(value, Mapping):
            raise ValueError("resources must be a mapping of resource key to grant/revoke")
        merged: dict[str, ResourcePermissions] = {}
        for raw_key, body in value.items():
            key = str(ResourceKey.parse(str(raw_key)))
            if isinstance(body, ResourcePermissions):
                declared = body
            elif body is None or isinstance(body, Mapping):
                declared = ResourcePermissions.model_validate(body or {})
            else:
                raise ValueError(f"resource {raw_key!r} must map to grant/revoke, got {body!r}")
            if key in merged:
                effected = merged[key].to_effected().merge(declared.to_effected())
                declared = ResourcePermissions(
                    grant=tuple(effected.granted.to_list()),
                    revoke=tuple(effected.revoked.to_list()),
                )
            merged[key] = declared
        return merged

    @property
    def subject_ids(self) -> tuple[str, ...]:
        return tuple(self.subjects)

    def effected_resources(self) -> dict[ResourceKey, EffectedPermissions]:
        """Return the declarations keyed by parsed :class:`ResourceKey`."""
        return {
            ResourceKey.parse(key): declared.to_effected()
            for key, declared in self.resources.items()
        }

    def to_dict(self) -> dict[str, object]:
        return {
            "subjects": {s.id: {"type": s.type} for s in self.subjects.values()},
            "resources": {
                key: {"grant": list(declared.grant), "revoke": list(declared.revoke)}
                for key, declared in self.resources.items()
            },
        }


# ---------------------------------------------------------------------------
# Policy
# ---------------------------------------------------------------------------


class Policy(BaseModel):
    """A complete access-control policy.

    Attributes
    ----------
    policy_id:
        Optional identifier (``namespace:name``) used for logging.
    entries:
        Policy entries.  Entry order has no effect on enforcement.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    policy_id: str | None = Field(default=None, alias="policyId")
    entries: tuple[PolicyEntry, ...] = ()

    @field_validator("entries", mode="before")
    @classmethod
    def normalise_entries(cls, value: object) -> list[object]:
        """Accept the ``{label: body}`` mapping layout or a list of entries."""
        if value is None:
            return []
        if isinstance(value, Mapping):
            entries: list[object] = []
            for label, body in value.items():
                if isinstance(body, PolicyEntry):
                    entries.append(body)
                elif body is None or isinstance(body, Mapping):
                    fields = dict(body or {})
                    fields.setdefault("label", label)
                    entries.append(fields)
                else:
                    raise ValueError(f"entry {label!r} must be a mapping, got {body!r}")
            return entries
        if isinstance(value, (list, tuple)):
            return list(value)
        raise ValueError("entries must be a mapping of label to entry or a list")

    @field_validator("entries")
    @classmethod
    def labels_must_be_unique(cls, value: tuple[PolicyEntry, ...]) -> tuple[PolicyEntry, ...]:
        by_label: dict[str, PolicyEntry] = {}
        for entry in value:
            existing = by_label.get(entry.label)
            if existing is None:
                by_label[entry.label] = entry
            elif existing.model_dump() == entry.model_dump():
                logger.warning("Collapsing duplicate identical policy entry '%s'.", entry.label)
            else:
                raise ValueError(
                    f"duplicate entry label {entry.label!r} with conflicting content"
                )
        return tuple(by_label.values())

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Mapping[str, object], source: str | None = None) -> Policy:
        """Validate a parsed policy document.

        Raises
        ------
        InvalidPolicyError
            If the document violates the policy model.
        """
        if not isinstance(data, Mapping):
            raise InvalidPolicyError("Policy document must be a mapping.", source)
        try:
            return cls.model_validate(dict(data))
        except ValidationError as exc:
            raise InvalidPolicyError(_summarise(exc), source) from exc

    @classmethod
    def from_yaml(cls, yaml_text: str, source: str | None = None) -> Policy:
        """Parse and validate a YAML (or JSON) policy document."""
        try:
            raw = yaml.safe_load(yaml_text) or {}
        except yaml.YAMLError as exc:
            raise InvalidPolicyError(f"Failed to parse YAML: {exc}", source) from exc
        return cls.from_dict(raw, source)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def labels(self) -> tuple[str, ...]:
        return tuple(entry.label for entry in self.entries)

    def get_entry(self, label: str) -> PolicyEntry:
        """Return the entry named ``label``.

        Raises
        ------
        KeyError
            If no entry has that label.
        """
        for entry in self.entries:
            if entry.label == label:
                return entry
        raise KeyError(f"Policy entry {label!r} not found.")

    def to_dict(self) -> dict[str, object]:
        document: dict[str, object] = {}
        if self.policy_id is not None:
            document["policyId"] = self.policy_id
        document["entries"] = {entry.label: entry.to_dict() for entry in self.entries}
        return document

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


def _summarise(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts)
