from __future__ import annotations


class BackspaceError(Exception):
    """Base class for errors raised by the content tooling."""


class NotFoundError(BackspaceError):
    pass


class ValidationError(BackspaceError):
    pass


class DuplicateResourceError(BackspaceError):
    pass


class ConfigError(BackspaceError):
    """Missing or unreadable importer/exporter config or whitelist."""
