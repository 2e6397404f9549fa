"""
IP access gate — the second half of admission, after the rate limit.

Decision table for public endpoints:

    no ledger entry  → reject, tell the caller to request access
    PENDING          → reject, "waiting approval"
    BLACKLIST        → reject with a phrase picked at random from BLACKLIST_MESSAGES
    WHITELIST        → admit
    ledger error     → admit (fail open)

A ledger outage admits the request and logs a warning.
"""

import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from models.access import AccessEntry
from models.enums import AccessStatus

logger = logging.getLogger(__name__)

NEEDS_APPROVAL = "Your IP needs approval. Please POST /api/ip/request to request whitelist."
WAITING_APPROVAL = "Your IP is waiting approval."

BLACKLIST_MESSAGES = (
    "Pause for a moment, and reflect on your steps.",
    "Pearls of the heart do not grow in a sea of spite.",
    "A quiet road gives time to change.",
    "Every soul deserves a second chance.",
    "Life is a journey toward understanding.",
    "Do not linger too close to bad circumstances.",
    "A hard heart needs gentleness to change.",
    "In silence, we find our true selves.",
    "Every action has consequences, so choose wisely.",
    "Let time be your best teacher.",
)


@dataclass
class AdmissionDecision:
    admitted: bool
    status: Optional[str] = None     # ledger status, None when no entry/unknown
    message: Optional[str] = None    # human-readable reason when rejected
    failed_open: bool = False


def resolve_client_ip(forwarded_for: Optional[str], peer: Optional[str]) -> str:
    """First X-Forwarded-For entry if present, else the socket peer address."""
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    return peer or "unknown"


class AccessGate:

    def __init__(
        self,
        lookup: Callable[[str], Awaitable[Optional[AccessEntry]]],
        rng: Optional[random.Random] = None,
    ):
        self._lookup = lookup
        self._rng = rng or random.Random()

    async def check(self, ip: str) -> AdmissionDecision:
        try:
            entry = await self._lookup(ip)
        except Exception:
            logger.warning(f"Access ledger lookup failed for {ip}, admitting", exc_info=True)
            return AdmissionDecision(admitted=True, failed_open=True)

        if entry is None:
            return AdmissionDecision(admitted=False, message=NEEDS_APPROVAL)

        if entry.status == AccessStatus.PENDING.value:
            return AdmissionDecision(admitted=False, status=entry.status, message=WAITING_APPROVAL)

        if entry.status == AccessStatus.BLACKLIST.value:
            return AdmissionDecision(
                admitted=False,
                status=entry.status,
                message=self._rng.choice(BLACKLIST_MESSAGES),
            )

        return AdmissionDecision(admitted=True, status=entry.status)
