"""Authorization context supplied per request by the authentication layer."""
from __future__ import annotations

from twin_policy_enforcer.auth.context import (
    JWT,
    PRE_AUTHENTICATED_HTTP,
    AuthorizationContext,
    AuthorizationSubject,
)

__all__ = [
    "JWT",
    "PRE_AUTHENTICATED_HTTP",
    "AuthorizationContext",
    "AuthorizationSubject",
]
