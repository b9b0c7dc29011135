"""Exceptions raised by configuration parsing and reconciliation."""

from __future__ import annotations


class NSCertError(Exception):
    """Base exception for controller errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigInvalidError(NSCertError):
    """A ConfigMap payload could not be turned into a configuration snapshot.

    The previously published snapshot stays in effect.
    """

    def __init__(self, message: str, config_name: str | None = None) -> None:
        super().__init__(message)
        self.config_name = config_name


class TemplateInvalidError(NSCertError):
    """The domain template does not render to a usable wildcard DNS name."""

    def __init__(self, message: str, template: str | None = None) -> None:
        super().__init__(message)
        self.template = template


class InternalError(NSCertError):
    """A reconciliation failed in a way that should be retried with backoff."""
