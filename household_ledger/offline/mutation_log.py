"""
Pending Mutation Log

Ordered, durable record of writes made while offline, one log per
(household, entity type). Insertion order is replay order.

DESIGN DECISION: Draining is all-or-nothing. Records leave the log only
after the whole replay pass finishes; a pass that is interrupted leaves
every record in place, so a retry may re-apply writes that already
reached the remote store. Replay is therefore NOT idempotent: a
re-applied "add" creates a duplicate row.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from pydantic import TypeAdapter, ValidationError

from household_ledger.models.entities import EntityType
from household_ledger.models.sync import MutationRecord
from household_ledger.services.storage.interface import KeyValueStoreInterface


logger = structlog.get_logger(__name__)

_RECORDS = TypeAdapter(list[MutationRecord])


class PendingMutationLog:
    """
    FIFO log of queued writes for one household and entity type.

    The in-memory list is authoritative for the process; every change is
    written through to the key-value store before the call returns.
    """

    def __init__(
        self,
        kv: KeyValueStoreInterface,
        household_id: str,
        entity_type: EntityType,
    ):
        self._kv = kv
        self.household_id = household_id
        self.entity_type = entity_type
        self.key = entity_type.mutations_key(household_id)
        self._records: list[MutationRecord] = self._load()

    def _load(self) -> list[MutationRecord]:
        raw = self._kv.get(self.key)
        if not raw:
            return []
        try:
            return _RECORDS.validate_json(raw)
        except ValidationError as e:
            # Keep the raw value in the store; only this process starts empty
            logger.error(
                "mutation_log_unreadable",
                key=self.key,
                error=str(e),
            )
            return []

    def _persist(self) -> None:
        if self._records:
            self._kv.set(self.key, _RECORDS.dump_json(self._records).decode())
        else:
            self._kv.remove(self.key)

    def enqueue(self, mutation: MutationRecord) -> None:
        """
        Append a write to the end of the log and persist the log.

        No deduplication: two updates to the same id are both kept and
        replay in order.

        Raises:
            PersistenceError: If the log could not be made durable. The
                record is still kept for this process.
        """
        self._records.append(mutation)
        self._persist()

    def pending(self) -> list[MutationRecord]:
        """Ordered copy of the queued writes."""
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    @asynccontextmanager
    async def drain_all(self) -> AsyncIterator[list[MutationRecord]]:
        """
        Yield every queued write, in order, for replay.

        The yielded records are removed only if the block exits normally.
        Writes enqueued while the block is open stay queued.
        """
        drained = list(self._records)
        yield drained
        del self._records[:len(drained)]
        self._persist()
