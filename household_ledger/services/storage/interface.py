"""
Abstract Storage Interfaces

DESIGN DECISION: We define abstract interfaces for storage operations.
This allows us to:
1. Swap the hosted backend (Google Sheets today) without touching the views
2. Use in-memory storage for testing
3. Keep the offline queue decoupled from any particular backend

Two kinds of storage live here:
- The remote store: the shared, hosted household tables (source of truth)
- The key-value store: durable local persistence for mutation logs and
  mirror snapshots (survives a restart, never authoritative once online)
"""

from abc import ABC, abstractmethod
from typing import Optional

from household_ledger.models.audit import AuditEvent
from household_ledger.models.entities import EntityType


class RemoteStoreInterface(ABC):
    """
    Abstract interface for the hosted household tables.

    Rows are plain dicts. Every table row carries a `household_id`,
    and `select` only returns rows for the requested household.
    """

    @abstractmethod
    async def select(
        self,
        entity_type: EntityType,
        household_id: str,
    ) -> list[dict]:
        """
        Fetch every row of a table for a household.

        Returns:
            Rows in the table's natural order

        Raises:
            ConnectionError: If the backend is unreachable
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def insert(self, entity_type: EntityType, record: dict) -> dict:
        """
        Insert a row. The store assigns the id.

        Returns:
            The stored row, including its id
        """
        pass

    @abstractmethod
    async def update(
        self,
        entity_type: EntityType,
        entity_id: str,
        updates: dict,
    ) -> dict:
        """
        Apply a partial update to a row.

        Returns:
            The row after the update

        Raises:
            NotFoundError: If the row doesn't exist
        """
        pass

    @abstractmethod
    async def delete(self, entity_type: EntityType, entity_id: str) -> None:
        """Delete a row. Deleting a missing row is not an error."""
        pass

    @abstractmethod
    async def list_members(self, household_id: str) -> list[dict]:
        """List the users who belong to a household, ordered by name."""
        pass

    @abstractmethod
    async def find_member_by_email(self, email: str) -> Optional[dict]:
        """Return the user with this exact email, or None."""
        pass

    @abstractmethod
    async def update_member(self, member_id: str, updates: dict) -> dict:
        """
        Apply a partial update to a user row.

        Raises:
            NotFoundError: If the user doesn't exist
        """
        pass

    @abstractmethod
    async def insert_household(self, record: dict) -> dict:
        """Create a household. The store assigns the id (the invite code)."""
        pass

    @abstractmethod
    async def get_household(self, household_id: str) -> Optional[dict]:
        """Return a household row, or None if the id is unknown."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass


class KeyValueStoreInterface(ABC):
    """
    Durable string-keyed persistence.

    Values are opaque strings (callers store JSON). Implementations must
    make a `set` durable before returning.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None if the key is absent."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Store a value, replacing any previous one.

        Raises:
            PersistenceError: If the store is full or unavailable
        """
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        """Remove a key. Removing a missing key is not an error."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class PersistenceError(StorageError):
    """Local durable storage is full or unavailable."""

    user_message = "Changes may not be saved."
