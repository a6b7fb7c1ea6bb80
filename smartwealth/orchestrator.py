"""
Main Orchestrator for SmartWealth

This module ties together all the components and defines the
intent-carrying operations the UI calls:
1. Accounts (add → validate → save → audit)
2. Transactions (validate → save → apply to balance → audit)
3. Stocks (add, edit, price refresh via the price simulator)
4. Advice (snapshot → advisor → audit)

DESIGN DECISION: Every mutation says what it means.
The UI never hands over a whole new list for the service to diff;
it calls record_transaction, delete_stock and so on, and each of
those maps to explicit storage calls.

Balance changes are a read-modify-write of one account record and
are not atomic. Two concurrent writers to the same account can lose
an update (last write wins).
"""

from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog

from smartwealth.agents import (
    FinancialAdvice,
    FinancialAdvisorAgent,
    PriceSimulationAgent,
)
from smartwealth.audit import AuditLogger, create_correlation_id
from smartwealth.config import get_settings
from smartwealth.ledger.aggregator import (
    apply_transaction,
    invert_transaction,
    reconcile_stock_price_update,
    sort_transactions,
)
from smartwealth.ledger.seed import seed_accounts, seed_stocks, seed_transactions
from smartwealth.models.audit import AuditEvent, AuditEventType
from smartwealth.models.ledger import (
    Account,
    EntityKind,
    StockPosition,
    Transaction,
    ValidationResult,
)
from smartwealth.services.cache import LedgerCache
from smartwealth.services.identity import IdentityProvider, SettingsIdentityProvider
from smartwealth.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    NotFoundError,
)
from smartwealth.validation import LedgerValidator

logger = structlog.get_logger(__name__)


class EntryRejectedError(Exception):
    """A form entry failed ledger validation and was not saved."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = "; ".join(i.message for i in result.issues if i.severity == "error")
        super().__init__(f"{result.entity_kind.value} entry rejected: {messages}")


class LedgerService:
    """
    Intent operations over one user's ledger.

    Reads go straight to storage so every operation works on current
    records, not on whatever the UI cache last saw.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        validator: Optional[LedgerValidator] = None,
        advisor: Optional[FinancialAdvisorAgent] = None,
        price_agent: Optional[PriceSimulationAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._validator = validator or LedgerValidator()
        self._advisor = advisor or FinancialAdvisorAgent()
        self._price_agent = price_agent or PriceSimulationAgent()
        self._audit_logger = audit_logger or AuditLogger(user_id=storage.user_id)

    @property
    def storage(self) -> LedgerStorageInterface:
        return self._storage

    @property
    def validator(self) -> LedgerValidator:
        return self._validator

    async def _reject_if_invalid(
        self,
        result: ValidationResult,
        correlation_id: UUID,
    ) -> None:
        if not result.has_errors:
            return
        await self._audit_logger.log_entry_rejected(
            entity_type=result.entity_kind.value,
            entity_id=result.entity_id,
            issues=[
                {"field": i.field, "type": i.issue_type, "message": i.message}
                for i in result.issues
            ],
            correlation_id=correlation_id,
        )
        raise EntryRejectedError(result)

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    async def add_account(self, account: Account) -> Account:
        correlation_id = create_correlation_id()
        await self._reject_if_invalid(self._validator.validate_account(account), correlation_id)

        account_id = await self._storage.create_record(EntityKind.ACCOUNTS, account)
        saved = account.model_copy(update={"id": account_id})

        await self._audit_logger.log_account_created(
            account_id=account_id,
            name=saved.name,
            balance=str(saved.balance),
            correlation_id=correlation_id,
        )
        return saved

    async def update_account(self, account: Account) -> Account:
        """
        Replace an account record as edited by the user.

        Raises:
            NotFoundError: If the account no longer exists
        """
        correlation_id = create_correlation_id()
        await self._reject_if_invalid(self._validator.validate_account(account), correlation_id)

        before = await self._storage.get_record(EntityKind.ACCOUNTS, account.id)
        if before is None:
            raise NotFoundError(f"Account not found: {account.id}")

        await self._storage.replace_record(EntityKind.ACCOUNTS, account.id, account)
        await self._audit_logger.log_account_updated(
            account_id=account.id,
            balance_before=str(before.balance),
            balance_after=str(account.balance),
            correlation_id=correlation_id,
        )
        return account

    async def delete_account(self, account_id: str) -> bool:
        """
        Delete an account.

        Transactions that reference it are kept and become orphans;
        they show as "Unknown" and still count in monthly totals.
        """
        deleted = await self._storage.delete_record(EntityKind.ACCOUNTS, account_id)
        if not deleted:
            return False

        transactions = await self._storage.list_records(EntityKind.TRANSACTIONS)
        orphaned = sum(1 for t in transactions if t.account_id == account_id)
        await self._audit_logger.log_account_deleted(
            account_id=account_id,
            orphaned_transactions=orphaned,
            correlation_id=create_correlation_id(),
        )
        return True

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    async def record_transaction(
        self,
        transaction: Transaction,
        today: Optional[date] = None,
    ) -> Transaction:
        """
        Record a transaction and apply it to its account balance.

        Steps:
        1. Validate against the current accounts
        2. Create the transaction record
        3. Read the account, apply the transaction, write it back

        If the account disappeared between steps 1 and 3 the transaction
        stays recorded as an orphan and a warning is audited.

        Raises:
            EntryRejectedError: If validation finds errors
        """
        correlation_id = create_correlation_id()
        accounts = await self._storage.list_records(EntityKind.ACCOUNTS)
        result = self._validator.validate_transaction(transaction, accounts, today=today)
        await self._reject_if_invalid(result, correlation_id)

        transaction_id = await self._storage.create_record(EntityKind.TRANSACTIONS, transaction)
        saved = transaction.model_copy(update={"id": transaction_id})

        await self._audit_logger.log_transaction_recorded(
            transaction_id=transaction_id,
            account_id=saved.account_id,
            transaction_type=saved.type.value,
            amount=str(saved.amount),
            category=saved.category,
            correlation_id=correlation_id,
        )

        await self._apply_to_account(saved, correlation_id)
        return saved

    async def delete_transaction(self, transaction_id: str) -> bool:
        """
        Delete a transaction and reverse its effect on the balance.

        Returns False if the transaction did not exist.
        """
        correlation_id = create_correlation_id()
        transaction = await self._storage.get_record(EntityKind.TRANSACTIONS, transaction_id)
        if transaction is None:
            return False

        deleted = await self._storage.delete_record(EntityKind.TRANSACTIONS, transaction_id)
        if not deleted:
            return False

        reversed_balance = await self._apply_to_account(
            invert_transaction(transaction), correlation_id
        )
        await self._audit_logger.log_transaction_deleted(
            transaction_id=transaction_id,
            balance_reversed=reversed_balance,
            correlation_id=correlation_id,
        )
        return True

    async def _apply_to_account(self, transaction: Transaction, correlation_id: UUID) -> bool:
        """Read-modify-write of one balance. False when the account is gone."""
        account = await self._storage.get_record(EntityKind.ACCOUNTS, transaction.account_id)
        if account is None:
            await self._audit_logger.log_orphaned_transaction(
                transaction_id=transaction.id,
                account_id=transaction.account_id,
                correlation_id=correlation_id,
            )
            return False

        (updated,) = apply_transaction([account], transaction)
        try:
            await self._storage.replace_record(EntityKind.ACCOUNTS, account.id, updated)
        except NotFoundError:
            # Deleted between the read and the write
            await self._audit_logger.log_orphaned_transaction(
                transaction_id=transaction.id,
                account_id=transaction.account_id,
                correlation_id=correlation_id,
            )
            return False

        await self._audit_logger.log_account_updated(
            account_id=account.id,
            balance_before=str(account.balance),
            balance_after=str(updated.balance),
            correlation_id=correlation_id,
            is_user_action=False,
        )
        return True

    # =========================================================================
    # STOCKS
    # =========================================================================

    async def add_stock(self, stock: StockPosition) -> StockPosition:
        correlation_id = create_correlation_id()
        await self._reject_if_invalid(self._validator.validate_stock(stock), correlation_id)

        stock_id = await self._storage.create_record(EntityKind.STOCKS, stock)
        saved = stock.model_copy(update={"id": stock_id})
        await self._audit_logger.log_stock_changed(
            event_type=AuditEventType.STOCK_ADDED,
            stock_id=stock_id,
            symbol=saved.symbol,
            details={"shares": str(saved.shares), "average_cost": str(saved.average_cost)},
            correlation_id=correlation_id,
        )
        return saved

    async def update_stock(self, stock: StockPosition) -> StockPosition:
        """
        Replace a stock position as edited by the user.

        Raises:
            NotFoundError: If the position no longer exists
        """
        correlation_id = create_correlation_id()
        await self._reject_if_invalid(self._validator.validate_stock(stock), correlation_id)

        await self._storage.replace_record(EntityKind.STOCKS, stock.id, stock)
        await self._audit_logger.log_stock_changed(
            event_type=AuditEventType.STOCK_UPDATED,
            stock_id=stock.id,
            symbol=stock.symbol,
            correlation_id=correlation_id,
        )
        return stock

    async def update_stock_price(self, stock_id: str, price: Decimal) -> StockPosition:
        """
        Set one position's current price.

        Raises:
            NotFoundError: If the position does not exist
            ValueError: If the price is negative
        """
        if price < 0:
            raise ValueError("Price cannot be negative")

        stock = await self._storage.get_record(EntityKind.STOCKS, stock_id)
        if stock is None:
            raise NotFoundError(f"Stock position not found: {stock_id}")

        (updated,) = reconcile_stock_price_update([stock], {stock.symbol: price})
        await self._storage.replace_record(EntityKind.STOCKS, stock_id, updated)
        await self._audit_logger.log_stock_changed(
            event_type=AuditEventType.STOCK_UPDATED,
            stock_id=stock_id,
            symbol=stock.symbol,
            details={"current_price": str(updated.current_price)},
            correlation_id=create_correlation_id(),
        )
        return updated

    async def delete_stock(self, stock_id: str) -> bool:
        stock = await self._storage.get_record(EntityKind.STOCKS, stock_id)
        deleted = await self._storage.delete_record(EntityKind.STOCKS, stock_id)
        if deleted:
            await self._audit_logger.log_stock_changed(
                event_type=AuditEventType.STOCK_DELETED,
                stock_id=stock_id,
                symbol=stock.symbol if stock else "",
                correlation_id=create_correlation_id(),
            )
        return deleted

    async def refresh_prices(self) -> list[StockPosition]:
        """
        Ask the price simulator for current prices and store them.

        Only positions whose price actually changed are written.
        Returns the full list of positions after reconciliation.
        """
        correlation_id = create_correlation_id()
        stocks = await self._storage.list_records(EntityKind.STOCKS)
        if not stocks:
            return []

        quote = await self._price_agent.simulate_prices(stocks)
        if quote.source == "local_retry":
            await self._audit_logger.log_external_service_error(
                service="gemini",
                error_message=quote.error or "price simulation failed",
                correlation_id=correlation_id,
            )

        reconciled = reconcile_stock_price_update(stocks, quote.prices)
        changed = []
        for before, after in zip(stocks, reconciled):
            if after.current_price != before.current_price:
                await self._storage.replace_record(EntityKind.STOCKS, after.id, after)
                changed.append(after.symbol)

        await self._audit_logger.log_prices_refreshed(
            updated_symbols=changed,
            source=quote.source,
            correlation_id=correlation_id,
        )
        logger.info("prices_refreshed", source=quote.source, changed=len(changed))
        return reconciled

    # =========================================================================
    # ADVICE
    # =========================================================================

    async def get_advice(self) -> FinancialAdvice:
        """Advisor text over current transactions (newest first) and positions."""
        correlation_id = create_correlation_id()
        transactions = sort_transactions(
            await self._storage.list_records(EntityKind.TRANSACTIONS)
        )
        stocks = await self._storage.list_records(EntityKind.STOCKS)

        advice = await self._advisor.get_advice(transactions, stocks)

        if advice.source == "unavailable":
            await self._audit_logger.log_external_service_error(
                service="gemini",
                error_message=advice.error or "advice generation failed",
                correlation_id=correlation_id,
            )
        await self._audit_logger.log_advice_generated(
            source=advice.source,
            transaction_count=len(transactions),
            correlation_id=correlation_id,
        )
        return advice

    # =========================================================================
    # ACTIVITY
    # =========================================================================

    async def recent_activity(self, limit: int = 20) -> list[AuditEvent]:
        return await self._audit_logger.recent_events(limit=limit)

    async def report_failure(self, action: str, error: Exception) -> None:
        """Record an operation the UI could not complete."""
        await self._audit_logger.log_error(
            error_type=action,
            error_message=str(error),
            details={"exception": type(error).__name__},
        )

    # =========================================================================
    # FIRST USE
    # =========================================================================

    async def seed_if_empty(self) -> bool:
        """
        Write the demo ledger when the user has no records at all.

        Seed balances already include the seed transactions, so the
        transactions are stored without touching balances.

        Returns True if the demo data was written.
        """
        if not get_settings().app.seed_demo_data:
            return False

        for kind in EntityKind:
            if await self._storage.list_records(kind):
                return False

        id_map = {}
        for account in seed_accounts():
            id_map[account.id] = await self._storage.create_record(EntityKind.ACCOUNTS, account)

        transactions = seed_transactions()
        for transaction in transactions:
            remapped = transaction.model_copy(
                update={"account_id": id_map.get(transaction.account_id, transaction.account_id)}
            )
            await self._storage.create_record(EntityKind.TRANSACTIONS, remapped)

        stocks = seed_stocks()
        for stock in stocks:
            await self._storage.create_record(EntityKind.STOCKS, stock)

        await self._audit_logger.log_seed_data_written({
            EntityKind.ACCOUNTS.value: len(id_map),
            EntityKind.TRANSACTIONS.value: len(transactions),
            EntityKind.STOCKS.value: len(stocks),
        })
        return True


def create_app_components(
    identity_provider: Optional[IdentityProvider] = None,
) -> tuple[LedgerService, LedgerCache]:
    """
    Factory function to create all application components.

    Uses the storage backend named by AppSettings.storage_backend.
    If Google Sheets cannot be set up, falls back to in-memory storage
    so the app still runs.

    Returns:
        (ledger_service, ledger_cache)

    Raises:
        PermissionError: If no user is signed in
    """
    identity = (identity_provider or SettingsIdentityProvider()).current_user()
    if identity is None:
        raise PermissionError("No signed-in user")

    ledger_storage = None
    audit_storage = None

    if get_settings().app.storage_backend == "google_sheets":
        try:
            sheets_client = GoogleSheetsClient()
            sheets_client.connect()
            ledger_storage = GoogleSheetsLedgerStorage(identity.user_id, sheets_client)
            audit_storage = GoogleSheetsAuditStorage(sheets_client)
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("google_sheets_unavailable", error=str(e))
            ledger_storage = None
            audit_storage = None

    if ledger_storage is None:
        ledger_storage = InMemoryLedgerStorage(identity.user_id)
        audit_storage = InMemoryAuditStorage()

    audit_logger = AuditLogger(audit_storage, user_id=identity.user_id)
    service = LedgerService(ledger_storage, audit_logger=audit_logger)
    cache = LedgerCache(ledger_storage)
    return service, cache
