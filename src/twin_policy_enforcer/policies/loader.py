"""Loads policies from YAML/JSON files, strings or parsed dictionaries.

The persistence layer normally hands the enforcer an already-parsed
policy.  PolicyLoader covers the remaining cases (fixtures, the CLI,
configuration-managed policies) and turns every structural problem into
an :class:`~twin_policy_enforcer.errors.InvalidPolicyError`.

Example
-------
::

    loader = PolicyLoader()
    policy = loader.load("policies/lamp.yaml")
    enforcer = PolicyEnforcer.from_policy(policy)
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path

import yaml

from twin_policy_enforcer.errors import InvalidPolicyError
from twin_policy_enforcer.policies.model import Policy

logger = logging.getLogger(__name__)


class PolicyLoader:
    """Builds :class:`Policy` objects from YAML/JSON sources.

    Parameters
    ----------
    strict:
        When ``True``, unknown top-level keys are rejected.  Default
        ``False`` (unknown keys are ignored).
    """

    _KNOWN_TOP_KEYS: frozenset[str] = frozenset(
        ["policyId", "policy_id", "entries", "_revision", "_created", "_modified", "_namespace"]
    )

    def __init__(self, strict: bool = False) -> None:
        self._strict = strict

    def load(self, policy_path: str | Path) -> Policy:
        """Load a policy from a YAML or JSON file on disk.

        Raises
        ------
        FileNotFoundError
            If the file does not exist.
        InvalidPolicyError
            If the file cannot be parsed or is structurally invalid.
        """
        policy_path = Path(policy_path)
        if not policy_path.exists():
            raise FileNotFoundError(f"Policy file not found: {policy_path}")

        try:
            with policy_path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise InvalidPolicyError(f"Failed to parse YAML: {exc}", str(policy_path)) from exc

        return self._build_policy(raw, source=str(policy_path))

    def load_from_dict(self, document: Mapping[str, object], source: str | None = None) -> Policy:
        """Validate an already-parsed policy document."""
        return self._build_policy(document, source=source)

    def load_from_yaml_string(self, yaml_string: str, source: str | None = None) -> Policy:
        """Parse and validate a YAML (or JSON) string."""
        try:
            raw = yaml.safe_load(yaml_string) or {}
        except yaml.YAMLError as exc:
            raise InvalidPolicyError(f"Failed to parse YAML string: {exc}", source) from exc
        return self._build_policy(raw, source=source)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _build_policy(self, raw: object, source: str | None) -> Policy:
        if not isinstance(raw, Mapping):
            raise InvalidPolicyError("Policy document must be a mapping.", source)
        if "entries" not in raw:
            raise InvalidPolicyError("Policy document must contain 'entries'.", source)

        if self._strict:
            unknown_keys = set(raw.keys()) - self._KNOWN_TOP_KEYS
            if unknown_keys:
                raise InvalidPolicyError(
                    f"Unknown top-level keys: {sorted(unknown_keys)}. "
                    f"Known keys: {sorted(self._KNOWN_TOP_KEYS)}.",
                    source,
                )

        known = {k: v for k, v in raw.items() if k in self._KNOWN_TOP_KEYS and not k.startswith("_")}
        policy = Policy.from_dict(known, source=source)
        logger.info(
            "Loaded policy %s with %d entries from %s",
            policy.policy_id or "<anonymous>",
            len(policy.entries),
            source or "<dict>",
        )
        return policy
