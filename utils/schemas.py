"""
Pydantic schemas shared by the account-linking modules.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CredentialRecord(BaseModel):
    """Plaintext view of a linked account; only ever held for one request."""

    model_config = ConfigDict(frozen=True)

    identity: str = Field(..., min_length=1)
    remote_account_name: str
    credential: str = Field(..., repr=False)


class LinkStart(BaseModel):
    """What the calling application shows the user to begin linking."""

    url: str
    expires_in: int  # seconds


class CallbackResult(BaseModel):
    identity: str
    remote_account_name: str


class ChannelSettingsRecord(BaseModel):
    channel_id: str
    default_repo: Optional[str] = None
    default_project: Optional[str] = None
