"""Tests for the read-through ledger cache."""

from datetime import date
from decimal import Decimal

import pytest

from smartwealth.ledger import compute_net_worth
from smartwealth.models.ledger import (
    Account,
    EntityKind,
    Transaction,
    TransactionType,
)
from smartwealth.services.cache import LedgerCache
from smartwealth.services.storage import InMemoryLedgerStorage


def expense(day):
    return Transaction(
        account_id="a", date=date(2023, 10, day), amount=Decimal("1"),
        type=TransactionType.EXPENSE, category="飲食",
    )


class TestLedgerCache:

    @pytest.mark.asyncio
    async def test_loaded_after_start(self):
        storage = InMemoryLedgerStorage("u1")
        cache = LedgerCache(storage)
        assert cache.is_loaded is False
        await cache.start()
        assert cache.is_loaded is True
        assert cache.snapshot().is_empty

    @pytest.mark.asyncio
    async def test_follows_storage_writes(self):
        """Test the cache mirrors storage after each write without being told."""
        storage = InMemoryLedgerStorage("u1")
        cache = LedgerCache(storage)
        await cache.start()

        account_id = await storage.create_record(
            EntityKind.ACCOUNTS, Account(name="Checking", balance=Decimal("100"))
        )
        assert compute_net_worth(cache.accounts, cache.stocks) == Decimal("100")

        await storage.replace_record(
            EntityKind.ACCOUNTS, account_id, Account(name="Checking", balance=Decimal("250"))
        )
        assert cache.find_account(account_id).balance == Decimal("250")

        await storage.delete_record(EntityKind.ACCOUNTS, account_id)
        assert cache.find_account(account_id) is None

    @pytest.mark.asyncio
    async def test_transactions_newest_first(self):
        storage = InMemoryLedgerStorage("u1")
        cache = LedgerCache(storage)
        await cache.start()
        for day in (3, 20, 11):
            await storage.create_record(EntityKind.TRANSACTIONS, expense(day))
        assert [t.date.day for t in cache.transactions] == [20, 11, 3]

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self):
        storage = InMemoryLedgerStorage("u1")
        cache = LedgerCache(storage)
        changes = []
        cache.add_listener(changes.append)
        await cache.start()
        await cache.start()
        assert sorted(k.value for k in changes) == ["accounts", "stocks", "transactions"]

    @pytest.mark.asyncio
    async def test_listener_told_which_kind_changed(self):
        storage = InMemoryLedgerStorage("u1")
        cache = LedgerCache(storage)
        await cache.start()
        changes = []
        remove = cache.add_listener(changes.append)

        await storage.create_record(EntityKind.TRANSACTIONS, expense(1))
        assert changes == [EntityKind.TRANSACTIONS]

        remove()
        await storage.create_record(EntityKind.TRANSACTIONS, expense(2))
        assert changes == [EntityKind.TRANSACTIONS]

    @pytest.mark.asyncio
    async def test_close_stops_updates(self):
        storage = InMemoryLedgerStorage("u1")
        cache = LedgerCache(storage)
        await cache.start()
        cache.close()
        await storage.create_record(EntityKind.ACCOUNTS, Account(name="Late"))
        assert cache.accounts == []

    @pytest.mark.asyncio
    async def test_snapshot_is_a_copy(self):
        storage = InMemoryLedgerStorage("u1")
        cache = LedgerCache(storage)
        await cache.start()
        snapshot = cache.snapshot()
        snapshot.accounts.append(Account(name="Injected"))
        assert cache.accounts == []
