"""
Household Ledger - Source Package

Shared household finance tracking: expenses, budgets, categories,
recurring payments, shopping lists and todos, kept in a hosted store and
usable offline.

DESIGN PRINCIPLES:
1. The remote store is the source of truth once online
2. Offline writes show immediately and replay in order on reconnect
3. Invalid input never leaves the client
4. Every sync step is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Household Ledger Team"
