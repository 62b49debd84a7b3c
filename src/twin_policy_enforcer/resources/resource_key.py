"""Hierarchical resource paths and type-scoped resource keys.

A :class:`ResourcePath` is a JSON-pointer-like sequence of segments.  A
:class:`ResourceKey` scopes a path by resource type, so that the same path
inside a *thing* and inside a *policy* are unrelated resources.

String forms follow RFC 6901 escaping (``~0`` for ``~``, ``~1`` for ``/``)::

    thing:/features/lamp/properties/on
    policy:/entries/owner
    thing:/                      # root of all thing resources

Example
-------
>>> key = ResourceKey.parse("thing:/features/lamp")
>>> key.resource_type
'thing'
>>> key.path.segments
('features', 'lamp')
>>> ResourceKey.parse("thing:/").is_ancestor_of(key)
True
"""
from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass

from twin_policy_enforcer.errors import InvalidResourceKeyError

_RESOURCE_TYPE_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")
_INVALID_ESCAPE = re.compile(r"~(?![01])")


def _escape_segment(segment: str) -> str:
    return segment.replace("~", "~0").replace("/", "~1")


def _unescape_segment(segment: str, raw: str) -> str:
    if _INVALID_ESCAPE.search(segment):
        raise InvalidResourceKeyError(
            f"Invalid escape sequence in path segment {segment!r} of {raw!r}; "
            "only '~0' and '~1' are allowed.",
            raw,
        )
    return segment.replace("~1", "/").replace("~0", "~")


# ---------------------------------------------------------------------------
# ResourcePath
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ResourcePath:
    """Immutable slash-delimited path inside a resource tree.

    Attributes
    ----------
    segments:
        Unescaped path segments from the root downwards.  The empty tuple
        is the root path.
    """

    segments: tuple[str, ...] = ()

    @classmethod
    def root(cls) -> ResourcePath:
        """Return the root path (``/``)."""
        return _ROOT_PATH

    @classmethod
    def parse(cls, value: str | ResourcePath) -> ResourcePath:
        """Parse a slash-delimited path string.

        ``""`` and ``"/"`` both denote the root.  The leading slash is
        optional and a single trailing slash is ignored.

        Raises
        ------
        InvalidResourceKeyError
            If ``value`` is not a string, contains an empty inner segment
            (``/a//b``) or an invalid ``~`` escape.
        """
        if isinstance(value, ResourcePath):
            return value
        if not isinstance(value, str):
            raise InvalidResourceKeyError(
                f"Resource path must be a string; got {type(value).__name__}.",
                value,
            )

        if value in ("", "/"):
            return _ROOT_PATH

        body = value[1:] if value.startswith("/") else value
        if body.endswith("/"):
            body = body[:-1]

        raw_segments = body.split("/")
        if any(not segment for segment in raw_segments):
            raise InvalidResourceKeyError(
                f"Resource path {value!r} contains an empty segment.", value
            )
        return cls(tuple(_unescape_segment(s, value) for s in raw_segments))

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    @property
    def is_root(self) -> bool:
        return not self.segments

    @property
    def level_count(self) -> int:
        """Number of segments below the root."""
        return len(self.segments)

    @property
    def parent(self) -> ResourcePath | None:
        """The direct parent path, or ``None`` for the root."""
        if not self.segments:
            return None
        return ResourcePath(self.segments[:-1])

    def append(self, segment: str | int) -> ResourcePath:
        """Return a child path with one raw (unescaped) segment added.

        Integers are accepted for JSON array indices.
        """
        return ResourcePath(self.segments + (str(segment),))

    def join(self, other: ResourcePath | str) -> ResourcePath:
        """Return this path followed by ``other``."""
        other_path = ResourcePath.parse(other)
        return ResourcePath(self.segments + other_path.segments)

    def starts_with(self, other: ResourcePath) -> bool:
        """Return True if ``other`` is equal to or an ancestor of this path."""
        size = len(other.segments)
        return self.segments[:size] == other.segments

    def is_ancestor_of(self, other: ResourcePath) -> bool:
        """Return True if this path is a *proper* prefix of ``other``."""
        return len(self.segments) < len(other.segments) and other.starts_with(self)

    def prefixes(self) -> Iterator[ResourcePath]:
        """Yield the root, every intermediate path and this path itself."""
        for size in range(len(self.segments) + 1):
            yield ResourcePath(self.segments[:size])

    def relative_to(self, ancestor: ResourcePath) -> ResourcePath:
        """Return the remainder of this path below ``ancestor``.

        Raises
        ------
        ValueError
            If ``ancestor`` is not a prefix of this path.
        """
        if not self.starts_with(ancestor):
            raise ValueError(f"{ancestor} is not a prefix of {self}.")
        return ResourcePath(self.segments[len(ancestor.segments):])

    def __str__(self) -> str:
        return "/" + "/".join(_escape_segment(s) for s in self.segments)

    def __repr__(self) -> str:
        return f"ResourcePath({str(self)!r})"


_ROOT_PATH = ResourcePath()


# ---------------------------------------------------------------------------
# ResourceKey
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ResourceKey:
    """A ``(resource_type, path)`` pair identifying one node of a resource tree.

    Attributes
    ----------
    resource_type:
        The tree the path belongs to, e.g. ``"thing"``, ``"policy"`` or
        ``"message"``.
    path:
        Location inside that tree.
    """

    resource_type: str
    path: ResourcePath = _ROOT_PATH

    def __post_init__(self) -> None:
        if not isinstance(self.resource_type, str) or not _RESOURCE_TYPE_PATTERN.match(
            self.resource_type
        ):
            raise InvalidResourceKeyError(
                f"Invalid resource type {self.resource_type!r}; expected a "
                "non-empty identifier without ':' or '/'.",
                self.resource_type,
            )
        if not isinstance(self.path, ResourcePath):
            object.__setattr__(self, "path", ResourcePath.parse(self.path))

    @classmethod
    def of(cls, resource_type: str, path: str | ResourcePath = "/") -> ResourceKey:
        """Build a key from a resource type and a path string or object."""
        return cls(resource_type, ResourcePath.parse(path))

    @classmethod
    def parse(cls, value: str | ResourceKey) -> ResourceKey:
        """Parse the ``type:/path`` string form.

        Instances of :class:`ResourceKey` are returned unchanged, so callers
        may accept either form.

        Raises
        ------
        InvalidResourceKeyError
            If the string lacks the ``type:`` prefix or the path is malformed.
        """
        if isinstance(value, ResourceKey):
            return value
        if not isinstance(value, str):
            raise InvalidResourceKeyError(
                f"Resource key must be a string; got {type(value).__name__}.",
                value,
            )
        resource_type, separator, path = value.partition(":")
        if not separator:
            raise InvalidResourceKeyError(
                f"Resource key {value!r} is missing the 'type:' prefix.", value
            )
        return cls(resource_type, ResourcePath.parse(path))

    def root(self) -> ResourceKey:
        """Return the root key of this key's resource type."""
        return ResourceKey(self.resource_type, _ROOT_PATH)

    def child(self, segment: str | int) -> ResourceKey:
        """Return the key one level below, for a raw document key or index."""
        return ResourceKey(self.resource_type, self.path.append(segment))

    def is_ancestor_of(self, other: ResourceKey) -> bool:
        """Return True if this key is a proper ancestor of ``other``."""
        return (
            self.resource_type == other.resource_type
            and self.path.is_ancestor_of(other.path)
        )

    def contains(self, other: ResourceKey) -> bool:
        """Return True if ``other`` is this key or one of its descendants."""
        return (
            self.resource_type == other.resource_type
            and other.path.starts_with(self.path)
        )

    def __str__(self) -> str:
        return f"{self.resource_type}:{self.path}"

    def __repr__(self) -> str:
        return f"ResourceKey({str(self)!r})"
