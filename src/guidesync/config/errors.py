"""Errors raised while assembling a run's configuration."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """A configuration value is present but unusable."""


class MissingConfigurationError(ConfigurationError):
    """One or more required environment variables are unset or blank."""

    def __init__(self, names: list[str]) -> None:
        super().__init__(f"Missing configuration for: {', '.join(sorted(names))}")
        self.names = tuple(sorted(names))


class PolicyError(ConfigurationError):
    """The classification policy file cannot be read or does not match the schemas."""
