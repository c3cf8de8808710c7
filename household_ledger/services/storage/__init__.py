"""
Storage Services Package

Provides abstract interfaces and concrete implementations for the remote
household tables and for local durable key-value persistence.
"""

from household_ledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    KeyValueStoreInterface,
    NotFoundError,
    PersistenceError,
    RemoteStoreInterface,
    StorageError,
)
from household_ledger.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRemoteStore,
)
from household_ledger.services.storage.local import SQLiteKeyValueStore
from household_ledger.services.storage.memory import (
    InMemoryKeyValueStore,
    InMemoryRemoteStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "KeyValueStoreInterface",
    "RemoteStoreInterface",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "PersistenceError",
    "StorageError",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsRemoteStore",
    # Local implementations
    "InMemoryKeyValueStore",
    "InMemoryRemoteStore",
    "SQLiteKeyValueStore",
]
