"""Auth-specific errors and denial reasons."""

from __future__ import annotations

import enum


class DenyReason(str, enum.Enum):
    """Why an admission was refused. Exactly one per denial."""

    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    REVOKED = "revoked"
    SCOPE_DENIED = "scope_denied"
    RATE_LIMITED = "rate_limited"
    UNAVAILABLE = "unavailable"

    @property
    def retryable(self) -> bool:
        """Only throttling and storage outages are worth retrying."""
        return self in (DenyReason.RATE_LIMITED, DenyReason.UNAVAILABLE)


class AuthenticationError(Exception):
    """Raised when an API key cannot be resolved to a usable record.

    The message is for internal logging only — clients see a generic
    message per reason.
    """

    reason: DenyReason


class KeyNotFound(AuthenticationError):
    """No record matches the presented credential."""

    reason = DenyReason.NOT_FOUND


class KeyExpired(AuthenticationError):
    """The record matched but is past its expires_at."""

    reason = DenyReason.EXPIRED


class KeyRevoked(AuthenticationError):
    """The record matched but has been deactivated."""

    reason = DenyReason.REVOKED


class StorageUnavailable(AuthenticationError):
    """The key storage timed out or could not be reached."""

    reason = DenyReason.UNAVAILABLE
