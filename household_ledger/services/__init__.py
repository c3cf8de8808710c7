"""Services package."""

from household_ledger.services.entities import (
    BudgetService,
    CategoryService,
    EntityService,
    ExpenseService,
    HouseholdService,
    RecurringPaymentService,
    ReminderService,
    ShoppingListService,
    ShoppingListsService,
    TodoService,
    create_entity_services,
)
from household_ledger.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRemoteStore,
    InMemoryKeyValueStore,
    InMemoryRemoteStore,
    KeyValueStoreInterface,
    NotFoundError,
    PersistenceError,
    RemoteStoreInterface,
    SQLiteKeyValueStore,
    StorageError,
)

__all__ = [
    # Entity services
    "BudgetService",
    "CategoryService",
    "EntityService",
    "ExpenseService",
    "HouseholdService",
    "RecurringPaymentService",
    "ReminderService",
    "ShoppingListService",
    "ShoppingListsService",
    "TodoService",
    "create_entity_services",
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsRemoteStore",
    "InMemoryKeyValueStore",
    "InMemoryRemoteStore",
    "KeyValueStoreInterface",
    "NotFoundError",
    "PersistenceError",
    "RemoteStoreInterface",
    "SQLiteKeyValueStore",
    "StorageError",
]
