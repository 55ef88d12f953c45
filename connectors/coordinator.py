"""
Authorization coordinator — drives the OAuth2 authorization-code exchange.

    build_authorization_url(identity)
        registry.begin_link → connector.get_auth_url(state)

    handle_callback(state, code)
        1. both parameters present?            else InvalidRequestError
        2. registry.consume(state)             else ExpiredOrInvalidStateError
        3. connector.exchange_code(code)       else ExchangeFailedError
        4. connector.fetch_account_name(token) else IdentityLookupFailedError
        5. store.put(record)                   overwrites any prior link
        6. return CallbackResult

The state is consumed before any network call, so a replayed or expired
callback never reaches the provider.  Nothing is retried.
"""

from __future__ import annotations

import logging
from typing import Optional

from connectors.base import BaseConnector
from connectors.credential_store import CredentialStore
from connectors.errors import (
    ExchangeFailedError,
    ExpiredOrInvalidStateError,
    IdentityLookupFailedError,
    InvalidRequestError,
    LinkError,
)
from connectors.pending_links import PendingLinkRegistry, mask_secret
from utils.schemas import CallbackResult, CredentialRecord

logger = logging.getLogger(__name__)


class AuthorizationCoordinator:
    def __init__(
        self,
        registry: PendingLinkRegistry,
        store: CredentialStore,
        connector: BaseConnector,
    ):
        self.registry = registry
        self.store = store
        self.connector = connector

    def build_authorization_url(self, identity: str) -> str:
        """Register a pending link for *identity* and return the provider URL carrying its state."""
        state = self.registry.begin_link(identity)
        return self.connector.get_auth_url(state)

    def abandon(self, state: Optional[str]) -> Optional[str]:
        """Consume *state* without completing the flow (user denied consent)."""
        if not state:
            return None
        return self.registry.consume(state)

    async def handle_callback(self, state: Optional[str], code: Optional[str]) -> CallbackResult:
        if not state or not code:
            raise InvalidRequestError("callback missing state or code parameter")

        identity = self.registry.consume(state)
        if identity is None:
            logger.warning("Rejected callback with unknown, reused or expired state")
            raise ExpiredOrInvalidStateError("state not found in pending links")

        try:
            access_token = await self.connector.exchange_code(code)
        except LinkError:
            raise
        except Exception as exc:
            raise ExchangeFailedError(f"unexpected exchange error: {type(exc).__name__}") from exc

        try:
            account_name = await self.connector.fetch_account_name(access_token)
        except LinkError:
            raise
        except Exception as exc:
            raise IdentityLookupFailedError(f"unexpected lookup error: {type(exc).__name__}") from exc

        await self.store.put(
            CredentialRecord(
                identity=identity,
                remote_account_name=account_name,
                credential=access_token,
            )
        )
        logger.info(
            "Linked identity %s to %s account %s (token %s)",
            identity,
            self.connector.display_name,
            account_name,
            mask_secret(access_token),
        )
        return CallbackResult(identity=identity, remote_account_name=account_name)
