"""
Access ledger — per-IP records behind the whitelist/blacklist workflow.

    request_access(ip, note)   idempotent create-or-fetch (new entries start PENDING)
    lookup(ip)                 read-only
    list_entries()             newest request first
    set_status(id, status)     admin override, any status to any status

Concurrency: two requests from the same unseen IP can both miss the lookup
and both try to insert. The unique constraint on `ip` lets exactly one
insert win; the loser rolls back and returns the winner's row instead of
erroring.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models.access import AccessEntry
from models.enums import AccessStatus

logger = logging.getLogger(__name__)


class AccessEntryNotFound(LookupError):
    pass


class AccessLedger:

    def __init__(self, session: AsyncSession):
        self._session = session

    async def request_access(self, ip: str, note: Optional[str] = None) -> AccessEntry:
        existing = await self.lookup(ip)
        if existing is not None:
            # Never reset a decided status back to PENDING
            return existing

        entry = AccessEntry(ip=ip, note=note, status=AccessStatus.PENDING.value)
        self._session.add(entry)
        try:
            await self._session.commit()
        except IntegrityError:
            await self._session.rollback()
            winner = await self.lookup(ip)
            if winner is None:
                raise
            logger.info(f"Concurrent access request for {ip} resolved to existing entry")
            return winner

        logger.info(f"Access requested for {ip}")
        return entry

    async def lookup(self, ip: str) -> Optional[AccessEntry]:
        result = await self._session.execute(select(AccessEntry).where(AccessEntry.ip == ip))
        return result.scalar_one_or_none()

    async def list_entries(self) -> list[AccessEntry]:
        result = await self._session.execute(
            select(AccessEntry).order_by(AccessEntry.requested_at.desc())
        )
        return list(result.scalars().all())

    async def set_status(self, entry_id: uuid.UUID, status: AccessStatus) -> AccessEntry:
        """
        Move an entry to `status`.

        Entering WHITELIST from another status stamps approved_at. Nothing
        ever clears it, so a later BLACKLIST keeps the approval on record.
        """
        entry = await self._session.get(AccessEntry, entry_id)
        if entry is None:
            raise AccessEntryNotFound(f"Access entry {entry_id} not found")

        previous = entry.status
        entry.status = status.value
        if status == AccessStatus.WHITELIST and previous != AccessStatus.WHITELIST.value:
            entry.approved_at = datetime.now(timezone.utc)

        await self._session.commit()
        logger.info(f"Access for {entry.ip} changed {previous} → {status.value}")
        return entry
