"""
SQLAlchemy ORM models for linked accounts and channel defaults.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.orm import DeclarativeBase


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class LinkedAccount(Base):
    """One GitHub credential per chat identity; the token column holds ciphertext only."""

    __tablename__ = "linked_accounts"

    identity = Column(Text, primary_key=True)
    remote_account_name = Column(String(255), nullable=False)
    encrypted_credential = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class ChannelSettings(Base):
    __tablename__ = "channel_settings"

    channel_id = Column(String(64), primary_key=True)
    default_repo = Column(String(255))
    default_project = Column(String(255))
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
