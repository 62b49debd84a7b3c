"""Exception hierarchy for policy enforcement.

Invalid input is reported by raising one of the errors below.  A request
that simply lacks permission is *not* an error: the enforcer answers
``False`` or an empty view instead.
"""
from __future__ import annotations


class EnforcementError(Exception):
    """Base class for all errors raised by twin-policy-enforcer."""


class InvalidResourceKeyError(EnforcementError, ValueError):
    """Raised when a resource key or resource path is malformed.

    Attributes
    ----------
    value:
        The offending input, as given by the caller.
    """

    def __init__(self, message: str, value: object = None) -> None:
        self.value = value
        super().__init__(message)


class InvalidPermissionsError(EnforcementError, ValueError):
    """Raised for malformed permission tokens or an empty required set."""


class InvalidPolicyError(EnforcementError, ValueError):
    """Raised when a policy cannot be compiled.

    Attributes
    ----------
    source:
        Where the policy came from (file path, ``"<dict>"``), if known.
    label:
        Label of the offending policy entry, if the error is entry-specific.
    """

    def __init__(
        self,
        message: str,
        source: str | None = None,
        label: str | None = None,
    ) -> None:
        self.source = source
        self.label = label
        prefix = f"[{source}] " if source else ""
        entry = f"entry '{label}': " if label else ""
        super().__init__(f"{prefix}{entry}{message}")


class ConfigError(EnforcementError, ValueError):
    """Raised when an enforcer configuration file is malformed."""

    def __init__(self, message: str, config_path: str | None = None) -> None:
        self.config_path = config_path
        prefix = f"[{config_path}] " if config_path else ""
        super().__init__(f"{prefix}{message}")
