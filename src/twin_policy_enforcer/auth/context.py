"""Authorization context: the subjects presented by one requester.

The authentication layer builds an :class:`AuthorizationContext` per
request.  The enforcer reads it as an ordered set; any subject that is
granted a permission is sufficient for the whole context.
"""
from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

DEFAULT_CONTEXT_TYPE = "unspecified"
PRE_AUTHENTICATED_HTTP = "pre-authenticated-http"
JWT = "jwt"


@dataclass(frozen=True)
class AuthorizationSubject:
    """One authorization identity, e.g. ``google:user123``."""

    id: str

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id.strip():
            raise ValueError(
                f"AuthorizationSubject.id must be a non-empty string; got {self.id!r}."
            )

    def __str__(self) -> str:
        return self.id


@dataclass(frozen=True)
class AuthorizationContext:
    """Ordered, duplicate-free collection of authorization subjects.

    Attributes
    ----------
    subjects:
        Subjects in the order the authentication layer supplied them.
    context_type:
        Informational tag describing how the requester was authenticated.
        It has no influence on enforcement.
    """

    subjects: tuple[AuthorizationSubject, ...] = ()
    context_type: str = DEFAULT_CONTEXT_TYPE

    def __post_init__(self) -> None:
        seen: dict[str, AuthorizationSubject] = {}
        for subject in self.subjects:
            seen.setdefault(subject.id, subject)
        object.__setattr__(self, "subjects", tuple(seen.values()))

    @classmethod
    def of(cls, *subject_ids: str, context_type: str = DEFAULT_CONTEXT_TYPE) -> AuthorizationContext:
        return cls(tuple(AuthorizationSubject(s) for s in subject_ids), context_type)

    @classmethod
    def coerce(
        cls, value: AuthorizationContext | Iterable[str | AuthorizationSubject]
    ) -> AuthorizationContext:
        """Accept a context, or a plain iterable of subject ids/subjects."""
        if isinstance(value, AuthorizationContext):
            return value
        if isinstance(value, str):
            value = (value,)
        return cls(
            tuple(
                s if isinstance(s, AuthorizationSubject) else AuthorizationSubject(s)
                for s in value
            )
        )

    @property
    def subject_ids(self) -> tuple[str, ...]:
        return tuple(s.id for s in self.subjects)

    @property
    def is_empty(self) -> bool:
        return not self.subjects

    def __iter__(self) -> Iterator[AuthorizationSubject]:
        return iter(self.subjects)

    def __len__(self) -> int:
        return len(self.subjects)

    def __contains__(self, subject: object) -> bool:
        subject_id = subject.id if isinstance(subject, AuthorizationSubject) else subject
        return subject_id in self.subject_ids
