"""
Credential store — durable, encrypted-at-rest linked accounts.

One row per chat identity.  The identity and remote account name are stored
in plaintext, the bearer credential only as AES-256-GCM ciphertext (see
``connectors.encryption``).  Re-linking overwrites the row wholesale.

Every call opens its own short-lived session, so writes for different
identities never wait on each other beyond the database's own locking, and
each upsert is a single atomic ``INSERT … ON CONFLICT`` statement.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from connectors.encryption import CredentialCipher, get_cipher
from database.models import LinkedAccount, _utcnow
from database.session import async_session_factory
from utils.schemas import CredentialRecord

logger = logging.getLogger(__name__)


def _upsert(dialect_name: str, values: Dict[str, Any]):
    if dialect_name == "postgresql":
        stmt = pg_insert(LinkedAccount).values(**values)
    elif dialect_name == "sqlite":
        stmt = sqlite_insert(LinkedAccount).values(**values)
    else:
        raise NotImplementedError(f"upsert not supported for dialect {dialect_name!r}")
    return stmt.on_conflict_do_update(
        index_elements=[LinkedAccount.identity],
        set_={
            "remote_account_name": stmt.excluded.remote_account_name,
            "encrypted_credential": stmt.excluded.encrypted_credential,
            "updated_at": stmt.excluded.updated_at,
        },
    )


class CredentialStore:
    """Identity → credential persistence with envelope encryption."""

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        cipher: Optional[CredentialCipher] = None,
    ):
        self._session_factory = session_factory or async_session_factory
        self._cipher = cipher or get_cipher()

    async def put(self, record: CredentialRecord) -> None:
        """Insert or replace the record for ``record.identity``; always re-encrypts."""
        values = {
            "identity": record.identity,
            "remote_account_name": record.remote_account_name,
            "encrypted_credential": self._cipher.encrypt(record.credential),
            "created_at": _utcnow(),
            "updated_at": _utcnow(),
        }
        async with self._session_factory() as session:
            try:
                stmt = _upsert(session.bind.dialect.name, values)
                await session.execute(stmt)
                await session.commit()
            except Exception as exc:
                logger.error("credential put failed for identity %s: %s", record.identity, exc)
                await session.rollback()
                raise
        logger.info("Stored credential for identity %s (%s)", record.identity, record.remote_account_name)

    async def get(self, identity: str) -> Optional[CredentialRecord]:
        """
        Return the decrypted record, or None when nothing is stored.

        Raises ``DecryptionFailedError`` when the stored ciphertext cannot be
        authenticated.
        """
        async with self._session_factory() as session:
            result = await session.execute(
                select(LinkedAccount).where(LinkedAccount.identity == identity)
            )
            row = result.scalar_one_or_none()
            if row is None:
                return None
            name, blob = row.remote_account_name, row.encrypted_credential

        return CredentialRecord(
            identity=identity,
            remote_account_name=name,
            credential=self._cipher.decrypt(blob),
        )

    async def account_name(self, identity: str) -> Optional[str]:
        """Remote account name for *identity* without decrypting the credential."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(LinkedAccount.remote_account_name).where(LinkedAccount.identity == identity)
            )
            return result.scalar_one_or_none()

    async def delete(self, identity: str) -> bool:
        """Remove the record; succeeds whether or not one existed. Returns True if a row was removed."""
        async with self._session_factory() as session:
            try:
                result = await session.execute(
                    delete(LinkedAccount).where(LinkedAccount.identity == identity)
                )
                await session.commit()
            except Exception as exc:
                logger.error("credential delete failed for identity %s: %s", identity, exc)
                await session.rollback()
                raise
        removed = bool(result.rowcount)
        if removed:
            logger.info("Deleted credential for identity %s", identity)
        return removed
