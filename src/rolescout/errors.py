from __future__ import annotations


class RoleScoutError(Exception):
    """Base class for errors raised by rolescout."""


class ConfigurationError(RoleScoutError):
    """A required credential or setting is missing; the run cannot proceed."""


class ProviderError(RoleScoutError):
    """An external provider answered with something we cannot use."""

    def __init__(self, provider: str, message: str, *, status_code: int | None = None):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.status_code = status_code


class LedgerError(RoleScoutError):
    """Invalid ledger operation (unknown URL, immutable field)."""
