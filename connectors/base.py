"""
BaseConnector — abstract interface for OAuth2 authorization-code providers.

A connector knows how to build the provider's authorize URL, trade an
authorization code for a bearer credential and resolve the account that
credential belongs to.  It translates every transport or provider failure
into ``ExchangeFailedError`` / ``IdentityLookupFailedError`` so nothing
provider-specific leaks past it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List


class BaseConnector(ABC):
    """Abstract base for OAuth2 connectors."""

    # ── Identity ────────────────────────────────────────────────────────
    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable, e.g. 'GitHub'."""
        ...

    @property
    @abstractmethod
    def scopes(self) -> List[str]:
        """OAuth scopes requested on every link attempt."""
        ...

    # ── OAuth flow ──────────────────────────────────────────────────────

    @abstractmethod
    def get_auth_url(self, state: str) -> str:
        """
        Build the provider's OAuth2 authorization URL.

        Parameters
        ----------
        state : str
            Single-use correlation token issued by the pending-link registry.

        Returns
        -------
        The full URL to send the user to.
        """
        ...

    @abstractmethod
    async def exchange_code(self, code: str) -> str:
        """
        Exchange the authorization code for a bearer credential.

        Raises ``ExchangeFailedError`` on any failure.  Never retried:
        authorization codes are single-use.
        """
        ...

    @abstractmethod
    async def fetch_account_name(self, access_token: str) -> str:
        """
        Resolve the canonical account name the credential belongs to.

        Raises ``IdentityLookupFailedError`` on any failure.
        """
        ...
