"""
LinkService — the entry point the chat application calls into.

    start_link(identity)      → LinkStart(url, expires_in)
    credential_for(identity)  → bearer credential, or UnauthenticatedError
    unlink(identity)          → None (idempotent)
    linked_account(identity)  → remote account name or None

One-account-at-a-time is the caller's policy: check ``linked_account`` and
ask the user to unlink first.  Completing a second link simply replaces the
stored credential.
"""

from __future__ import annotations

import logging
from typing import Optional

from connectors.coordinator import AuthorizationCoordinator
from connectors.credential_store import CredentialStore
from connectors.errors import InvalidRequestError, UnauthenticatedError
from utils.schemas import LinkStart

logger = logging.getLogger(__name__)


def _require_identity(identity: str) -> str:
    if not identity or not identity.strip():
        raise InvalidRequestError("identity must be a non-empty string")
    return identity


class LinkService:
    def __init__(self, coordinator: AuthorizationCoordinator, store: CredentialStore):
        self.coordinator = coordinator
        self.store = store

    def start_link(self, identity: str) -> LinkStart:
        url = self.coordinator.build_authorization_url(_require_identity(identity))
        return LinkStart(url=url, expires_in=self.coordinator.registry.ttl_seconds)

    async def credential_for(self, identity: str) -> str:
        record = await self.store.get(_require_identity(identity))
        if record is None:
            logger.debug("No credential on file for identity %s", identity)
            raise UnauthenticatedError(f"no credential for identity {identity}")
        return record.credential

    async def unlink(self, identity: str) -> None:
        await self.store.delete(_require_identity(identity))

    async def linked_account(self, identity: str) -> Optional[str]:
        return await self.store.account_name(_require_identity(identity))
