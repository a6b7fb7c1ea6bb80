"""
SmartWealth - Source Package

A personal finance tracker for a single user: account balances,
income/expense transactions and stock positions, with dashboards,
reports and optional AI advice.

DESIGN PRINCIPLES:
1. Derived figures are computed fresh, never stored
2. One mutation path keeps balances consistent with transactions
3. Every mutation is an explicit, named operation
4. Every step must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "SmartWealth Team"
