"""
Demo ledger written on a user's first visit.

Transaction account ids refer to the seed account ids; the service
remaps them to the durable ids storage assigns.
"""

from datetime import date
from decimal import Decimal

from smartwealth.models.ledger import (
    Account,
    AccountType,
    StockPosition,
    Transaction,
    TransactionType,
)


def seed_accounts() -> list[Account]:
    return [
        Account(id="seed-1", name="中國信託 - 薪轉", type=AccountType.CHECKING,
                balance=Decimal("150000"), currency="TWD"),
        Account(id="seed-2", name="玉山銀行 - 儲蓄", type=AccountType.SAVINGS,
                balance=Decimal("500000"), currency="TWD"),
        Account(id="seed-3", name="錢包現金", type=AccountType.CASH,
                balance=Decimal("3500"), currency="TWD"),
    ]


def seed_transactions() -> list[Transaction]:
    return [
        Transaction(account_id="seed-1", date=date(2023, 10, 1), amount=Decimal("50000"),
                    type=TransactionType.INCOME, category="薪資", description="十月薪水"),
        Transaction(account_id="seed-3", date=date(2023, 10, 2), amount=Decimal("120"),
                    type=TransactionType.EXPENSE, category="飲食", description="午餐"),
        Transaction(account_id="seed-1", date=date(2023, 10, 5), amount=Decimal("15000"),
                    type=TransactionType.EXPENSE, category="居住", description="房租"),
        Transaction(account_id="seed-1", date=date(2023, 10, 10), amount=Decimal("3000"),
                    type=TransactionType.EXPENSE, category="交通", description="高鐵票"),
    ]


def seed_stocks() -> list[StockPosition]:
    return [
        StockPosition(symbol="2330.TW", name="台積電", shares=Decimal("1000"),
                      average_cost=Decimal("550"), current_price=Decimal("580")),
        StockPosition(symbol="0050.TW", name="元大台灣50", shares=Decimal("2000"),
                      average_cost=Decimal("120"), current_price=Decimal("135")),
    ]
