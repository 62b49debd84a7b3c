"""Shared bootstrap for twin-policy-enforcer benchmarks."""
from __future__ import annotations

import sys
from pathlib import Path

_BENCHMARKS = Path(__file__).parent

if str(_BENCHMARKS) not in sys.path:
    sys.path.insert(0, str(_BENCHMARKS))

from twin_policy_enforcer.config import EnforcerConfig
from twin_policy_enforcer.enforcement.enforcer import PolicyEnforcer
from twin_policy_enforcer.policies.model import Policy

__all__ = [
    "EnforcerConfig",
    "Policy",
    "PolicyEnforcer",
]
