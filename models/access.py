"""
AccessEntry ORM model — maps to the "ip_access" table.

One row per client IP. The unique constraint on `ip` is what keeps two
concurrent first requests from the same address from creating two rows;
the ledger relies on it rather than on any application-level lock.

Lifecycle:
    (first request) → PENDING → WHITELIST / BLACKLIST / PENDING (admin, any-to-any)

`approved_at` is stamped every time the entry moves into WHITELIST and is
never cleared, so a later BLACKLIST keeps the historical approval time.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base
from models.enums import AccessStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AccessEntry(Base):
    __tablename__ = "ip_access"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    ip: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=AccessStatus.PENDING.value, nullable=False, index=True
    )
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Python-side default: microsecond precision keeps newest-first ordering stable
    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False, index=True
    )
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return f"<AccessEntry {self.ip} {self.status}>"
