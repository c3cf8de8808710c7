"""
Data Models Package

This package contains all Pydantic models used in the Household Ledger system.
All data flowing through the system must conform to these schemas.
"""

from household_ledger.models.entities import (
    DEFAULT_CATEGORY_NAMES,
    Budget,
    Category,
    EntityType,
    Expense,
    Household,
    HouseholdEntity,
    Member,
    RecurringPayment,
    Reminder,
    ShoppingList,
    ShoppingListItem,
    Todo,
    current_month,
)
from household_ledger.models.sync import (
    ChangeEvent,
    ChangeType,
    MutationRecord,
    MutationType,
    ReconciliationResult,
)
from household_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Entity models
    "DEFAULT_CATEGORY_NAMES",
    "Budget",
    "Category",
    "EntityType",
    "Expense",
    "Household",
    "HouseholdEntity",
    "Member",
    "RecurringPayment",
    "Reminder",
    "ShoppingList",
    "ShoppingListItem",
    "Todo",
    "current_month",
    # Sync models
    "ChangeEvent",
    "ChangeType",
    "MutationRecord",
    "MutationType",
    "ReconciliationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
