"""
Reconciliation Runner

Replays a household's queued writes for one entity type once the remote
store is reachable again.

Algorithm:
1. Skip if a pass is already running or nothing is queued
2. Raise the "syncing" flag
3. Replay every record strictly in enqueue order
4. Drop (don't retry, don't surface) any record whose replay fails
5. Clear the replayed records and lower the flag

DESIGN DECISION: Per-record replay failures are swallowed. They are
logged and counted in the result, but the user is never shown them and
the record is never retried. Whether this should change is an open
product question; do not add retries here without that decision.
"""

import asyncio
from typing import Any, Callable, Generic, Optional, Protocol, TypeVar

import structlog

from household_ledger.audit import AuditLogger, create_correlation_id
from household_ledger.models.sync import (
    MutationRecord,
    MutationType,
    ReconciliationResult,
)
from household_ledger.offline.mutation_log import PendingMutationLog
from household_ledger.services.storage.interface import PersistenceError


logger = structlog.get_logger(__name__)

T_co = TypeVar("T_co", covariant=True)


class EntityOperations(Protocol[T_co]):
    """Remote write operations for one entity type."""

    async def add(self, payload: dict) -> T_co: ...

    async def update(self, entity_id: str, payload: dict) -> T_co: ...

    async def delete(self, entity_id: str) -> None: ...


class ReconciliationRunner(Generic[T_co]):
    """Drains one pending mutation log against the remote store."""

    def __init__(
        self,
        log: PendingMutationLog,
        operations: EntityOperations[T_co],
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._log = log
        self._operations = operations
        self._audit_logger = audit_logger
        self._in_flight = False
        self._syncing = False
        self._listeners: list[Callable[[bool], Any]] = []
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def syncing(self) -> bool:
        """True while a pass is replaying (for the "Syncing..." indicator)."""
        return self._syncing

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def wait_idle(self) -> None:
        """Wait until no pass is in flight (returns at once if none is)."""
        await self._idle.wait()

    def on_syncing_changed(self, listener: Callable[[bool], Any]) -> Callable[[], None]:
        """Call `listener(syncing)` whenever the flag flips. Returns an unsubscribe."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_syncing(self, value: bool) -> None:
        if self._syncing == value:
            return
        self._syncing = value
        for listener in list(self._listeners):
            listener(value)

    async def _replay(self, mutation: MutationRecord) -> None:
        if mutation.type == MutationType.ADD:
            await self._operations.add(mutation.payload)
        elif mutation.type in (MutationType.UPDATE, MutationType.PURCHASE):
            await self._operations.update(mutation.entity_id, mutation.payload)
        elif mutation.type == MutationType.DELETE:
            await self._operations.delete(mutation.entity_id)

    async def _skip(self, reason: str) -> ReconciliationResult:
        if self._audit_logger:
            await self._audit_logger.log_reconciliation_skipped(
                household_id=self._log.household_id,
                entity_type=self._log.entity_type.value,
                reason=reason,
            )
        return ReconciliationResult(
            household_id=self._log.household_id,
            entity_type=self._log.entity_type,
            skipped=True,
        )

    async def run(self) -> ReconciliationResult:
        """
        Run one reconciliation pass.

        A second call while a pass is in flight returns immediately with
        `skipped=True`; so does a call with an empty log, which never
        raises the syncing flag.

        If the pass itself is interrupted (cancelled) the log is left
        exactly as it was. After a skip, `wait_idle()` waits out the pass
        that caused it.
        """
        if self._in_flight:
            return await self._skip("in_flight")
        if len(self._log) == 0:
            return await self._skip("empty")

        household_id = self._log.household_id
        entity_type = self._log.entity_type.value
        result = ReconciliationResult(
            household_id=household_id,
            entity_type=self._log.entity_type,
        )
        correlation_id = create_correlation_id()

        self._in_flight = True
        self._idle.clear()
        try:
            self._set_syncing(True)
            if self._audit_logger:
                await self._audit_logger.log_reconciliation_started(
                    household_id=household_id,
                    entity_type=entity_type,
                    pending=len(self._log),
                    correlation_id=correlation_id,
                )
            try:
                async with self._log.drain_all() as mutations:
                    for mutation in mutations:
                        result.attempted += 1
                        try:
                            await self._replay(mutation)
                            result.applied += 1
                        except Exception as e:
                            result.dropped += 1
                            logger.warning(
                                "queued_mutation_dropped",
                                household_id=household_id,
                                entity_type=entity_type,
                                mutation_type=mutation.type.value,
                                entity_id=mutation.entity_id,
                                error=str(e),
                            )
                            if self._audit_logger:
                                await self._audit_logger.log_replay_dropped(
                                    household_id=household_id,
                                    entity_type=entity_type,
                                    mutation_type=mutation.type.value,
                                    entity_id=mutation.entity_id,
                                    error_message=str(e),
                                    correlation_id=correlation_id,
                                )
            except PersistenceError as e:
                # Replay finished; only clearing the durable copy failed
                logger.error(
                    "mutation_log_clear_failed",
                    household_id=household_id,
                    entity_type=entity_type,
                    error=str(e),
                )
                if self._audit_logger:
                    await self._audit_logger.log_persistence_failed(
                        household_id=household_id,
                        entity_type=entity_type,
                        error_message=str(e),
                    )

            if self._audit_logger:
                await self._audit_logger.log_reconciliation_completed(
                    household_id=household_id,
                    entity_type=entity_type,
                    applied=result.applied,
                    dropped=result.dropped,
                    correlation_id=correlation_id,
                )
        finally:
            self._in_flight = False
            self._set_syncing(False)
            self._idle.set()

        return result
