"""Resource path model: type-scoped, JSON-pointer-like resource keys.

Example
-------
::

    from twin_policy_enforcer.resources import ResourceKey

    key = ResourceKey.parse("thing:/features/lamp")
    assert key.child("properties").path.segments == ("features", "lamp", "properties")
"""
from __future__ import annotations

from twin_policy_enforcer.resources.resource_key import ResourceKey, ResourcePath

__all__ = [
    "ResourceKey",
    "ResourcePath",
]
