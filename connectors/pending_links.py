"""
Pending-link registry — CSRF-resistant correlation of OAuth ``state`` values.

When a user asks to link their account we mint a random, URL-safe token,
remember which identity asked for it, and send it to the provider as the
``state`` parameter.  The callback must present the same token; it is
consumed on first use, so a replayed callback URL fails.

Entries live in process memory only.  Losing them on restart just means the
user requests a new link.

Concurrency: a single ``threading.Lock`` guards the mapping and is held only
for the insert / pop, never across network calls.  Expiry is enforced both
on ``consume`` (so it is authoritative between sweeps) and by a periodic
sweep that frees memory.  Both paths remove the entry with ``dict.pop`` under
the lock, so whichever runs first wins and the other is a no-op.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from config.settings import config

logger = logging.getLogger(__name__)

_TOKEN_BYTES = 32  # 256 bits of entropy


def mask_secret(value: str, keep: int = 4) -> str:
    """Return the first *keep* characters of a secret followed by an ellipsis."""
    if not value:
        return "<empty>"
    return value[:keep] + "…"


@dataclass(frozen=True)
class PendingLink:
    identity: str
    created_at: float


class PendingLinkRegistry:
    """Time-bounded, single-use mapping from correlation token to identity."""

    def __init__(
        self,
        ttl_seconds: Optional[int] = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._ttl = ttl_seconds if ttl_seconds is not None else config.link_ttl_seconds
        self._clock = clock
        self._entries: Dict[str, PendingLink] = {}
        self._lock = threading.Lock()

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _expired(self, entry: PendingLink, now: float) -> bool:
        return now - entry.created_at >= self._ttl

    def begin_link(self, identity: str) -> str:
        """Register a new pending link for *identity* and return its token."""
        entry = PendingLink(identity=identity, created_at=self._clock())
        with self._lock:
            token = secrets.token_urlsafe(_TOKEN_BYTES)
            while token in self._entries:
                token = secrets.token_urlsafe(_TOKEN_BYTES)
            self._entries[token] = entry
        logger.debug("Pending link %s created for identity %s", mask_secret(token), identity)
        return token

    def consume(self, token: str) -> Optional[str]:
        """
        Atomically remove *token* and return the identity it was issued to.

        Returns None when the token is unknown, already consumed or past its
        TTL.  A token can therefore succeed at most once.
        """
        with self._lock:
            entry = self._entries.pop(token, None)
        if entry is None:
            return None
        if self._expired(entry, self._clock()):
            logger.debug("Pending link %s expired before use", mask_secret(token))
            return None
        return entry.identity

    def purge_expired(self) -> int:
        """Drop every entry past its TTL; returns how many were removed."""
        now = self._clock()
        removed = 0
        with self._lock:
            for token in [t for t, e in self._entries.items() if self._expired(e, now)]:
                if self._entries.pop(token, None) is not None:
                    removed += 1
        if removed:
            logger.debug("Purged %d expired pending links", removed)
        return removed

    async def run_sweeper(self, interval_seconds: Optional[float] = None) -> None:
        """Purge expired entries forever; run as a background task, cancel to stop."""
        interval = interval_seconds or config.link_sweep_interval_seconds
        while True:
            await asyncio.sleep(interval)
            self.purge_expired()
