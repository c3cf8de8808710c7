"""
In-Memory Storage Implementations

Used by the test-suite and for running the app without a configured
backend. The remote store can be switched offline or told to fail its
next calls, which is how network errors are simulated.
"""

import copy
from typing import Optional
from uuid import uuid4

from household_ledger.models.entities import EntityType
from household_ledger.services.storage.interface import (
    ConnectionError,
    KeyValueStoreInterface,
    NotFoundError,
    PersistenceError,
    RemoteStoreInterface,
    StorageError,
)


class InMemoryRemoteStore(RemoteStoreInterface):
    """Dict-backed stand-in for the hosted household tables."""

    def __init__(
        self,
        members: Optional[list[dict]] = None,
        households: Optional[list[dict]] = None,
    ):
        self._tables: dict[EntityType, dict[str, dict]] = {
            entity_type: {} for entity_type in EntityType
        }
        self._members = [dict(m) for m in members or []]
        self._households = {h["id"]: dict(h) for h in households or []}
        self._failures: list[Exception] = []
        self.offline = False
        self.calls: list[tuple] = []

    def fail_next(self, count: int = 1, error: Optional[Exception] = None) -> None:
        """Make the next `count` calls raise `error` (a StorageError by default)."""
        for _ in range(count):
            self._failures.append(error or StorageError("Simulated network error"))

    def rows(self, entity_type: EntityType) -> list[dict]:
        """All rows of a table regardless of household (test inspection)."""
        return [copy.deepcopy(row) for row in self._tables[entity_type].values()]

    def _check(self, *call) -> None:
        self.calls.append(call)
        if self.offline:
            raise ConnectionError("Remote store is unreachable")
        if self._failures:
            raise self._failures.pop(0)

    async def select(self, entity_type: EntityType, household_id: str) -> list[dict]:
        self._check("select", entity_type, household_id)
        rows = [
            copy.deepcopy(row)
            for row in self._tables[entity_type].values()
            if row.get("household_id") == household_id
        ]
        return entity_type.sort_rows(rows)

    async def insert(self, entity_type: EntityType, record: dict) -> dict:
        self._check("insert", entity_type, record)
        row = copy.deepcopy(record)
        row["id"] = str(uuid4())
        self._tables[entity_type][row["id"]] = row
        return copy.deepcopy(row)

    async def update(self, entity_type: EntityType, entity_id: str, updates: dict) -> dict:
        self._check("update", entity_type, entity_id, updates)
        row = self._tables[entity_type].get(entity_id)
        if row is None:
            raise NotFoundError(f"{entity_type.table} row not found: {entity_id}")
        row.update(copy.deepcopy(updates))
        row["id"] = entity_id
        return copy.deepcopy(row)

    async def delete(self, entity_type: EntityType, entity_id: str) -> None:
        self._check("delete", entity_type, entity_id)
        self._tables[entity_type].pop(entity_id, None)

    async def list_members(self, household_id: str) -> list[dict]:
        self._check("list_members", household_id)
        members = [
            copy.deepcopy(m) for m in self._members
            if m.get("household_id") == household_id
        ]
        members.sort(key=lambda m: m.get("name", ""))
        return members

    async def find_member_by_email(self, email: str) -> Optional[dict]:
        self._check("find_member_by_email", email)
        for member in self._members:
            if member.get("email") == email:
                return copy.deepcopy(member)
        return None

    async def update_member(self, member_id: str, updates: dict) -> dict:
        self._check("update_member", member_id, updates)
        for member in self._members:
            if member.get("id") == member_id:
                member.update(copy.deepcopy(updates))
                return copy.deepcopy(member)
        raise NotFoundError(f"User not found: {member_id}")

    async def insert_household(self, record: dict) -> dict:
        self._check("insert_household", record)
        row = copy.deepcopy(record)
        row["id"] = str(uuid4())
        self._households[row["id"]] = row
        return copy.deepcopy(row)

    async def get_household(self, household_id: str) -> Optional[dict]:
        self._check("get_household", household_id)
        row = self._households.get(household_id)
        return copy.deepcopy(row) if row is not None else None


class InMemoryKeyValueStore(KeyValueStoreInterface):
    """
    Process-local key-value store.

    Not durable across restarts; `capacity` (in characters) lets tests
    simulate a full store.
    """

    def __init__(self, capacity: Optional[int] = None):
        self._data: dict[str, str] = {}
        self._capacity = capacity

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if self._capacity is not None:
            used = sum(len(v) for k, v in self._data.items() if k != key)
            if used + len(value) > self._capacity:
                raise PersistenceError(f"Quota exceeded writing {key}")
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)
