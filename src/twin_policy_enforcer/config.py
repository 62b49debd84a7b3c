"""Enforcer configuration with Pydantic v2 validation.

Loads an ``enforcer.yaml`` file into a typed :class:`EnforcerConfig`.
Unknown keys are allowed so that deployments can keep unrelated settings
in the same file.

Example
-------
>>> loader = ConfigLoader()
>>> config = loader.load_string("algorithm: flat\\nview_strategy: exhaustive\\n")
>>> config.algorithm
'flat'
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from twin_policy_enforcer.errors import ConfigError

Algorithm = Literal["trie", "flat"]
ViewStrategy = Literal["subtree", "exhaustive"]


class EnforcerConfig(BaseModel):
    """Top-level enforcer configuration.

    Attributes
    ----------
    algorithm:
        Compiled policy implementation: ``trie`` (default) or ``flat``.
    view_strategy:
        ``subtree`` includes a JSON subtree verbatim once every required
        permission holds at its root and at every policy key below it;
        ``exhaustive`` checks each document node individually.
    log_level:
        Level applied by the CLI when configuring logging.
    policy_files:
        Policy files ``twin-enforcer validate`` checks when none are given
        on the command line.
    """

    model_config = {"extra": "allow"}

    version: str = Field(default="1")
    algorithm: Algorithm = Field(default="trie")
    view_strategy: ViewStrategy = Field(default="subtree")
    log_level: str = Field(default="WARNING")
    policy_files: list[Path] = Field(default_factory=list)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level '{value}'.")
        return level


class ConfigLoader:
    """Loads and validates enforcer YAML configuration."""

    def load(self, config_path: Path) -> EnforcerConfig:
        """Load and validate an enforcer YAML file.

        Raises
        ------
        FileNotFoundError:
            When the config file does not exist.
        ConfigError:
            When the YAML is malformed or fails validation.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Enforcer config not found: {config_path}")

        with config_path.open("r", encoding="utf-8") as fh:
            text = fh.read()
        return self.load_string(text, config_path=str(config_path))

    def load_string(self, yaml_content: str, config_path: str | None = None) -> EnforcerConfig:
        """Load and validate a YAML string directly."""
        try:
            raw = yaml.safe_load(yaml_content) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse YAML: {exc}", config_path) from exc
        if not isinstance(raw, dict):
            raise ConfigError("Enforcer config must be a YAML mapping.", config_path)
        return self.load_dict(raw, config_path=config_path)

    def load_dict(self, raw: dict[str, object], config_path: str | None = None) -> EnforcerConfig:
        """Validate an already-parsed configuration dict."""
        try:
            return EnforcerConfig.model_validate(raw)
        except ValidationError as exc:
            raise ConfigError(str(exc), config_path) from exc

    def defaults(self) -> EnforcerConfig:
        """Return a default configuration with all defaults applied."""
        return EnforcerConfig()
