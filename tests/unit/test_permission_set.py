"""Unit tests for permissions/permission_set.py."""
from __future__ import annotations

import pytest

from twin_policy_enforcer.errors import InvalidPermissionsError
from twin_policy_enforcer.permissions.permission_set import (
    READ,
    WRITE,
    EffectedPermissions,
    PermissionSet,
    required_permissions,
)


class TestPermissionSetConstruction:
    def test_duplicates_collapse(self) -> None:
        assert len(PermissionSet(["READ", "READ", "WRITE"])) == 2

    def test_order_irrelevant(self) -> None:
        assert PermissionSet.of("READ", "WRITE") == PermissionSet.of("WRITE", "READ")

    def test_single_string_is_one_token(self) -> None:
        assert PermissionSet("READ").to_list() == ["READ"]

    def test_empty(self) -> None:
        assert PermissionSet.empty().is_empty
        assert not PermissionSet.empty()

    @pytest.mark.parametrize("token", ["", " ", "RE AD", "READ\n"])
    def test_blank_or_whitespace_tokens_rejected(self, token: str) -> None:
        with pytest.raises(InvalidPermissionsError):
            PermissionSet([token])

    def test_non_string_token_rejected(self) -> None:
        with pytest.raises(InvalidPermissionsError):
            PermissionSet([1])  # type: ignore[list-item]

    def test_coerce_passthrough(self) -> None:
        permissions = PermissionSet.of(READ)
        assert PermissionSet.coerce(permissions) is permissions

    def test_hashable(self) -> None:
        assert len({PermissionSet.of(READ), PermissionSet.of(READ)}) == 1

    def test_equal_to_builtin_set(self) -> None:
        assert PermissionSet.of(READ, WRITE) == {"READ", "WRITE"}


class TestPermissionSetAlgebra:
    def test_union(self) -> None:
        assert PermissionSet.of(READ).union([WRITE]) == PermissionSet.of(READ, WRITE)

    def test_subtract(self) -> None:
        assert PermissionSet.of(READ, WRITE).subtract([WRITE]) == PermissionSet.of(READ)

    def test_subtract_absent_is_noop(self) -> None:
        assert PermissionSet.of(READ).subtract(["EXECUTE"]) == PermissionSet.of(READ)

    def test_intersection(self) -> None:
        assert PermissionSet.of(READ, WRITE).intersection([WRITE, "EXECUTE"]) == {"WRITE"}

    def test_contains_all(self) -> None:
        granted = PermissionSet.of(READ, WRITE)
        assert granted.contains_all([READ])
        assert granted.contains_all([READ, WRITE])
        assert not granted.contains_all([READ, "EXECUTE"])

    def test_contains_all_of_empty_is_true(self) -> None:
        assert PermissionSet.empty().contains_all([])

    def test_contains_any(self) -> None:
        granted = PermissionSet.of(READ)
        assert granted.contains_any([READ, WRITE])
        assert not granted.contains_any([WRITE])
        assert not granted.contains_any([])

    def test_operators(self) -> None:
        a = PermissionSet.of(READ)
        b = PermissionSet.of(WRITE)
        assert (a | b) == PermissionSet.of(READ, WRITE)
        assert ((a | b) - b) == a
        assert (a & b).is_empty

    def test_operations_do_not_mutate(self) -> None:
        a = PermissionSet.of(READ)
        a.union([WRITE])
        assert a == PermissionSet.of(READ)

    def test_to_list_sorted(self) -> None:
        assert PermissionSet.of(WRITE, READ).to_list() == ["READ", "WRITE"]


class TestEffectedPermissions:
    def test_merge_unions_each_side(self) -> None:
        merged = EffectedPermissions.of([READ], []).merge(EffectedPermissions.of([WRITE], [READ]))
        assert merged.granted == PermissionSet.of(READ, WRITE)
        assert merged.revoked == PermissionSet.of(READ)

    def test_apply_grants_then_revokes(self) -> None:
        effected = EffectedPermissions.of([READ], [READ])
        assert effected.apply_to(PermissionSet.empty()).is_empty

    def test_apply_keeps_unmentioned_permissions(self) -> None:
        effected = EffectedPermissions.of([], [WRITE])
        assert effected.apply_to(PermissionSet.of(READ, WRITE)) == PermissionSet.of(READ)

    def test_to_dict(self) -> None:
        assert EffectedPermissions.of([WRITE, READ], []).to_dict() == {
            "grant": ["READ", "WRITE"],
            "revoke": [],
        }


class TestRequiredPermissions:
    def test_empty_rejected(self) -> None:
        with pytest.raises(InvalidPermissionsError, match="At least one"):
            required_permissions([])

    def test_string_accepted(self) -> None:
        assert required_permissions("READ") == PermissionSet.of(READ)
