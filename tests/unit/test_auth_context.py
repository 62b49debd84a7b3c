"""Unit tests for auth/context.py."""
from __future__ import annotations

import pytest

from twin_policy_enforcer.auth.context import (
    PRE_AUTHENTICATED_HTTP,
    AuthorizationContext,
    AuthorizationSubject,
)


class TestAuthorizationSubject:
    def test_str_is_id(self) -> None:
        assert str(AuthorizationSubject("google:alice")) == "google:alice"

    def test_blank_id_rejected(self) -> None:
        with pytest.raises(ValueError):
            AuthorizationSubject("  ")


class TestAuthorizationContext:
    def test_of_preserves_order(self) -> None:
        context = AuthorizationContext.of("b", "a", "c")
        assert context.subject_ids == ("b", "a", "c")

    def test_duplicates_collapse_first_wins(self) -> None:
        context = AuthorizationContext.of("a", "b", "a")
        assert context.subject_ids == ("a", "b")

    def test_empty_context_is_legal(self) -> None:
        context = AuthorizationContext()
        assert context.is_empty
        assert len(context) == 0

    def test_coerce_from_strings(self) -> None:
        context = AuthorizationContext.coerce(["google:alice", "nginx:bob"])
        assert context.subject_ids == ("google:alice", "nginx:bob")

    def test_coerce_single_string(self) -> None:
        assert AuthorizationContext.coerce("google:alice").subject_ids == ("google:alice",)

    def test_coerce_passthrough(self) -> None:
        context = AuthorizationContext.of("a")
        assert AuthorizationContext.coerce(context) is context

    def test_contains_by_id_or_subject(self) -> None:
        context = AuthorizationContext.of("a")
        assert "a" in context
        assert AuthorizationSubject("a") in context
        assert "b" not in context

    def test_context_type_is_informational(self) -> None:
        context = AuthorizationContext.of("a", context_type=PRE_AUTHENTICATED_HTTP)
        assert context.context_type == PRE_AUTHENTICATED_HTTP
        assert context.subject_ids == AuthorizationContext.of("a").subject_ids
