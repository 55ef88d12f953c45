"""
Exception types raised by the account-linking core.

Every error carries two messages: ``str(exc)`` is the detailed reason meant
for logs, ``user_message`` is the short text safe to show the end user.
HTTP handlers map ``status_code`` straight onto the response.
"""

from __future__ import annotations


class LinkError(Exception):
    """Base class for every failure the linking core reports."""

    user_message = "Something went wrong while linking your account. Please try again."
    status_code = 500

    def __init__(self, reason: str | None = None) -> None:
        super().__init__(reason or self.user_message)


class InvalidRequestError(LinkError):
    """The callback arrived without the ``state`` or ``code`` parameter."""

    user_message = "The authorization response was incomplete. Please start linking again."
    status_code = 400


InvalidStateError = InvalidRequestError


class ExpiredOrInvalidStateError(LinkError):
    """Unknown, already used or expired correlation token (possible CSRF / replay)."""

    user_message = "This link has expired or was already used. Please request a new one."
    status_code = 400


class ExchangeFailedError(LinkError):
    """The provider refused or failed the authorization-code exchange."""

    user_message = "We could not complete authorization with GitHub. Please try again."
    status_code = 502


class IdentityLookupFailedError(LinkError):
    """The new credential could not be used to resolve the remote account."""

    user_message = "We could not read your GitHub profile. Please try again."
    status_code = 502


class DecryptionFailedError(LinkError):
    """A stored credential failed authentication (corruption or wrong key)."""

    user_message = "Your stored authorization could not be read. Please unlink and link again."
    status_code = 500


class UnauthenticatedError(LinkError):
    """No credential is on file for the identity."""

    user_message = "Please link your GitHub account first."
    status_code = 401


class ConfigurationError(RuntimeError):
    """Fatal misconfiguration detected at startup."""
