"""Tests for the AccessLedger against an in-memory SQLite database."""

import uuid

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker

from access.ledger import AccessEntryNotFound, AccessLedger
from models.access import AccessEntry
from models.enums import AccessStatus


@pytest.mark.asyncio
async def test_request_access_starts_pending(async_session):
    entry = await AccessLedger(async_session).request_access("1.2.3.4", note="hi")

    assert entry.status == AccessStatus.PENDING.value
    assert entry.note == "hi"
    assert entry.requested_at is not None
    assert entry.approved_at is None


@pytest.mark.asyncio
async def test_request_access_returns_existing_entry(async_session):
    ledger = AccessLedger(async_session)
    first = await ledger.request_access("1.2.3.4")
    second = await ledger.request_access("1.2.3.4", note="again")

    assert second.id == first.id
    assert len(await ledger.list_entries()) == 1


@pytest.mark.asyncio
async def test_concurrent_insert_resolves_to_winner(async_engine, async_session):
    """The losing insert hits the unique constraint and returns the winner's row."""
    async with async_sessionmaker(async_engine, expire_on_commit=False)() as other:
        other.add(AccessEntry(ip="1.2.3.4", status=AccessStatus.WHITELIST.value))
        await other.commit()

    ledger = AccessLedger(async_session)
    # simulate the race: the lookup missed before the other insert landed
    original_lookup = ledger.lookup
    calls = []

    async def racing_lookup(ip):
        calls.append(ip)
        if len(calls) == 1:
            return None
        return await original_lookup(ip)

    ledger.lookup = racing_lookup

    entry = await ledger.request_access("1.2.3.4")

    assert entry.status == AccessStatus.WHITELIST.value


@pytest.mark.asyncio
async def test_whitelisting_stamps_approved_at(async_session):
    ledger = AccessLedger(async_session)
    entry = await ledger.request_access("1.2.3.4")

    updated = await ledger.set_status(entry.id, AccessStatus.WHITELIST)

    assert updated.status == "WHITELIST"
    assert updated.approved_at is not None


@pytest.mark.asyncio
async def test_approved_at_survives_blacklisting(async_session):
    ledger = AccessLedger(async_session)
    entry = await ledger.request_access("1.2.3.4")
    approved = (await ledger.set_status(entry.id, AccessStatus.WHITELIST)).approved_at

    updated = await ledger.set_status(entry.id, AccessStatus.BLACKLIST)

    assert updated.approved_at == approved


@pytest.mark.asyncio
async def test_rewhitelisting_does_not_restamp(async_session):
    ledger = AccessLedger(async_session)
    entry = await ledger.request_access("1.2.3.4")
    approved = (await ledger.set_status(entry.id, AccessStatus.WHITELIST)).approved_at

    updated = await ledger.set_status(entry.id, AccessStatus.WHITELIST)

    assert updated.approved_at == approved


@pytest.mark.asyncio
async def test_list_entries_newest_first(async_session):
    ledger = AccessLedger(async_session)
    await ledger.request_access("1.1.1.1")
    await ledger.request_access("2.2.2.2")

    assert [e.ip for e in await ledger.list_entries()] == ["2.2.2.2", "1.1.1.1"]


@pytest.mark.asyncio
async def test_set_status_unknown_entry(async_session):
    with pytest.raises(AccessEntryNotFound):
        await AccessLedger(async_session).set_status(uuid.uuid4(), AccessStatus.WHITELIST)
