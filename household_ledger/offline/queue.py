"""
Offline Queue Engine

One parametrised engine for every entity type: a durable pending log plus
the runner that replays it, bound to the entity's remote add/update/delete
operations.

The registry is the single owner of these queues for the process. Every
view of the same household and entity type gets the same queue object,
so two mounted views can't race each other on one log.
"""

from typing import Callable, Generic, Optional, TypeVar

from household_ledger.audit import AuditLogger
from household_ledger.models.entities import EntityType
from household_ledger.models.sync import MutationRecord, ReconciliationResult
from household_ledger.offline.mutation_log import PendingMutationLog
from household_ledger.offline.reconciliation import EntityOperations, ReconciliationRunner
from household_ledger.services.storage.interface import (
    KeyValueStoreInterface,
    PersistenceError,
)


T = TypeVar("T")


class OfflineQueue(Generic[T]):
    """Offline-durable mutation queue with replay for one (household, entity type)."""

    def __init__(
        self,
        kv: KeyValueStoreInterface,
        household_id: str,
        entity_type: EntityType,
        operations: EntityOperations[T],
        audit_logger: Optional[AuditLogger] = None,
    ):
        self.household_id = household_id
        self.entity_type = entity_type
        self.log = PendingMutationLog(kv, household_id, entity_type)
        self.runner: ReconciliationRunner[T] = ReconciliationRunner(
            self.log, operations, audit_logger
        )
        self._audit_logger = audit_logger

    @property
    def pending_count(self) -> int:
        return len(self.log)

    @property
    def syncing(self) -> bool:
        return self.runner.syncing

    def pending(self) -> list[MutationRecord]:
        return self.log.pending()

    async def enqueue(self, mutation: MutationRecord) -> int:
        """
        Queue a write for replay.

        Returns:
            The number of queued writes after this one

        Raises:
            PersistenceError: If the queue could not be made durable
        """
        try:
            self.log.enqueue(mutation)
        except PersistenceError as e:
            if self._audit_logger:
                await self._audit_logger.log_persistence_failed(
                    household_id=self.household_id,
                    entity_type=self.entity_type.value,
                    error_message=str(e),
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_mutation_queued(
                household_id=self.household_id,
                entity_type=self.entity_type.value,
                mutation_type=mutation.type.value,
                entity_id=mutation.entity_id,
                queue_length=len(self.log),
            )
        return len(self.log)

    async def reconcile(self) -> ReconciliationResult:
        return await self.runner.run()

    async def reconcile_and_wait(self) -> ReconciliationResult:
        """
        Reconcile, or wait out the pass another caller already started.

        Either way the log has been replayed when this returns, so a fetch
        that follows sees every write queued before the call.
        """
        result = await self.runner.run()
        if result.skipped:
            await self.runner.wait_idle()
        return result


class OfflineQueueRegistry:
    """
    Process-wide owner of offline queues, keyed by (household, entity type).

    Args:
        kv: Durable store shared by every queue
        operations_for: Returns the remote operations for an entity type
        audit_logger: Optional audit sink passed to every queue
    """

    def __init__(
        self,
        kv: KeyValueStoreInterface,
        operations_for: Callable[[EntityType], EntityOperations],
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._kv = kv
        self._operations_for = operations_for
        self._audit_logger = audit_logger
        self._queues: dict[tuple[str, EntityType], OfflineQueue] = {}

    def get(self, household_id: str, entity_type: EntityType) -> OfflineQueue:
        key = (household_id, entity_type)
        queue = self._queues.get(key)
        if queue is None:
            queue = OfflineQueue(
                self._kv,
                household_id,
                entity_type,
                self._operations_for(entity_type),
                self._audit_logger,
            )
            self._queues[key] = queue
        return queue

    def queues(self, household_id: Optional[str] = None) -> list[OfflineQueue]:
        return [
            queue for (hid, _), queue in self._queues.items()
            if household_id is None or hid == household_id
        ]

    async def reconcile_all(self, household_id: Optional[str] = None) -> list[ReconciliationResult]:
        """
        Reconcile every known queue, one after another.

        Queues for different entity types are independent; their relative
        replay order is not significant.
        """
        results = []
        for queue in self.queues(household_id):
            results.append(await queue.reconcile())
        return results

    def clear(self) -> None:
        """Forget every queue object (durable logs are kept)."""
        self._queues.clear()
