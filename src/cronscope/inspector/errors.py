"""Fatal error types raised by the inspector."""

from __future__ import annotations


class CronscopeError(RuntimeError):
    """Base class for errors that abort an inspection run."""


class ProviderSetupError(CronscopeError):
    """Raised when the AWS session or one of its clients cannot be built."""


class RuleResolutionError(CronscopeError):
    """Raised when the rule listing call fails."""
