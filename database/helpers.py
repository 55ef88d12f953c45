"""
Database helper functions — per-channel defaults used by chat commands.

Plain keyed records; nothing here is encrypted.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import ChannelSettings, _utcnow
from utils.schemas import ChannelSettingsRecord

logger = logging.getLogger(__name__)


async def get_channel_settings(session: AsyncSession, channel_id: str) -> ChannelSettingsRecord:
    """Return the channel's defaults, or an empty record when none were saved."""
    result = await session.execute(
        select(ChannelSettings).where(ChannelSettings.channel_id == channel_id)
    )
    row: Optional[ChannelSettings] = result.scalar_one_or_none()
    if row is None:
        return ChannelSettingsRecord(channel_id=channel_id)
    return ChannelSettingsRecord(
        channel_id=row.channel_id,
        default_repo=row.default_repo,
        default_project=row.default_project,
    )


async def save_channel_settings(session: AsyncSession, settings: ChannelSettingsRecord) -> None:
    """Upsert the channel's defaults (idempotent)."""
    insert = pg_insert if session.bind.dialect.name == "postgresql" else sqlite_insert
    now = _utcnow()
    stmt = insert(ChannelSettings).values(
        channel_id=settings.channel_id,
        default_repo=settings.default_repo,
        default_project=settings.default_project,
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[ChannelSettings.channel_id],
        set_={
            "default_repo": stmt.excluded.default_repo,
            "default_project": stmt.excluded.default_project,
            "updated_at": stmt.excluded.updated_at,
        },
    )
    await session.execute(stmt)
    await session.flush()
    logger.debug("Saved channel settings for %s", settings.channel_id)
