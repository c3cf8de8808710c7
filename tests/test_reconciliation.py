"""Tests for the reconciliation runner and the offline queue registry."""

import asyncio

import pytest

from household_ledger.models import AuditEventType, EntityType, MutationRecord
from household_ledger.offline import (
    OfflineQueueRegistry,
    PendingMutationLog,
    ReconciliationRunner,
)
from household_ledger.services.storage import InMemoryKeyValueStore, PersistenceError, StorageError


class FakeOperations:
    """
    Records replayed calls.

    A call whose name (adds) or id (updates/deletes) is in `fail` raises;
    one in `block` waits on `gate` first.
    """

    def __init__(self, fail=(), block=()):
        self.calls = []
        self.fail = set(fail)
        self.block = set(block)
        self.gate = asyncio.Event()
        self.entered = asyncio.Event()
        self.syncing_seen = []
        self.runner = None

    async def _call(self, key, call):
        self.calls.append(call)
        if self.runner is not None:
            self.syncing_seen.append(self.runner.syncing)
        if key in self.block:
            self.entered.set()
            await self.gate.wait()
        if key in self.fail:
            raise StorageError(f"rejected {key}")

    async def add(self, payload):
        await self._call(payload.get("name"), ("add", payload.get("name")))
        return payload

    async def update(self, entity_id, payload):
        await self._call(entity_id, ("update", entity_id, payload))
        return payload

    async def delete(self, entity_id):
        await self._call(entity_id, ("delete", entity_id))


def make_runner(kv, operations, audit_logger=None):
    log = PendingMutationLog(kv, "h1", EntityType.CATEGORIES)
    runner = ReconciliationRunner(log, operations, audit_logger)
    operations.runner = runner
    return log, runner


class TestReplay:
    """Replaying queued writes."""

    @pytest.mark.asyncio
    async def test_replays_in_enqueue_order(self, kv):
        ops = FakeOperations()
        log, runner = make_runner(kv, ops)
        log.enqueue(MutationRecord.add({"name": "Pets"}))
        log.enqueue(MutationRecord.update("c1", {"name": "Garden"}))
        log.enqueue(MutationRecord.delete("c2"))

        result = await runner.run()

        assert ops.calls == [
            ("add", "Pets"),
            ("update", "c1", {"name": "Garden"}),
            ("delete", "c2"),
        ]
        assert result.attempted == 3
        assert result.applied == 3
        assert result.dropped == 0
        assert not result.skipped

    @pytest.mark.asyncio
    async def test_clears_log_after_pass(self, kv):
        ops = FakeOperations()
        log, runner = make_runner(kv, ops)
        log.enqueue(MutationRecord.add({"name": "Pets"}))

        await runner.run()

        assert len(log) == 0
        assert kv.get(log.key) is None

    @pytest.mark.asyncio
    async def test_purchase_replays_as_update(self, kv):
        ops = FakeOperations()
        log, runner = make_runner(kv, ops)
        log.enqueue(MutationRecord.purchase("s1", {"is_purchased": True}))

        await runner.run()

        assert ops.calls == [("update", "s1", {"is_purchased": True})]

    @pytest.mark.asyncio
    async def test_failed_record_is_dropped(self, kv, audit_logger, audit_storage):
        """A failing replay is skipped; later records still apply; nothing is retried."""
        ops = FakeOperations(fail={"c1"})
        log, runner = make_runner(kv, ops, audit_logger)
        log.enqueue(MutationRecord.update("c1", {"name": "Gone"}))
        log.enqueue(MutationRecord.add({"name": "Pets"}))

        result = await runner.run()

        assert result.applied == 1
        assert result.dropped == 1
        assert ("add", "Pets") in ops.calls
        assert len(log) == 0

        dropped = audit_storage.of_type(AuditEventType.REPLAY_DROPPED)
        assert len(dropped) == 1
        assert dropped[0].entity_id == "c1"
        assert dropped[0].error_message == "rejected c1"

        await runner.run()
        assert ops.calls.count(("update", "c1", {"name": "Gone"})) == 1

    @pytest.mark.asyncio
    async def test_pass_events_share_correlation_id(self, kv, audit_logger, audit_storage):
        ops = FakeOperations()
        log, runner = make_runner(kv, ops, audit_logger)
        log.enqueue(MutationRecord.add({"name": "Pets"}))

        await runner.run()

        started = audit_storage.of_type(AuditEventType.RECONCILIATION_STARTED)[0]
        completed = audit_storage.of_type(AuditEventType.RECONCILIATION_COMPLETED)[0]
        assert started.correlation_id == completed.correlation_id
        assert completed.details["applied"] == 1


class TestSyncingFlag:
    """The "Syncing..." indicator."""

    @pytest.mark.asyncio
    async def test_raised_during_pass(self, kv):
        ops = FakeOperations()
        log, runner = make_runner(kv, ops)
        changes = []
        runner.on_syncing_changed(changes.append)
        log.enqueue(MutationRecord.add({"name": "Pets"}))

        await runner.run()

        assert ops.syncing_seen == [True]
        assert changes == [True, False]
        assert runner.syncing is False

    @pytest.mark.asyncio
    async def test_empty_log_never_raises_flag(self, kv, audit_logger, audit_storage):
        ops = FakeOperations()
        _, runner = make_runner(kv, ops, audit_logger)
        changes = []
        runner.on_syncing_changed(changes.append)

        result = await runner.run()

        assert result.skipped
        assert changes == []
        assert ops.calls == []
        skipped = audit_storage.of_type(AuditEventType.RECONCILIATION_SKIPPED)
        assert skipped[0].details["reason"] == "empty"

    @pytest.mark.asyncio
    async def test_unsubscribe(self, kv):
        ops = FakeOperations()
        log, runner = make_runner(kv, ops)
        changes = []
        unsubscribe = runner.on_syncing_changed(changes.append)
        unsubscribe()
        log.enqueue(MutationRecord.add({"name": "Pets"}))

        await runner.run()

        assert changes == []


class TestConcurrency:
    """Overlapping triggers and interrupted passes."""

    @pytest.mark.asyncio
    async def test_second_trigger_while_in_flight_is_skipped(self, kv):
        ops = FakeOperations(block={"Pets"})
        log, runner = make_runner(kv, ops)
        log.enqueue(MutationRecord.add({"name": "Pets"}))

        first = asyncio.create_task(runner.run())
        await ops.entered.wait()
        assert runner.in_flight

        second = await runner.run()
        assert second.skipped

        ops.gate.set()
        result = await first
        assert result.applied == 1
        assert ops.calls == [("add", "Pets")]

    @pytest.mark.asyncio
    async def test_wait_idle_blocks_until_pass_ends(self, kv):
        ops = FakeOperations(block={"Pets"})
        log, runner = make_runner(kv, ops)
        log.enqueue(MutationRecord.add({"name": "Pets"}))

        first = asyncio.create_task(runner.run())
        await ops.entered.wait()
        waiter = asyncio.create_task(runner.wait_idle())
        await asyncio.sleep(0)
        assert not waiter.done()

        ops.gate.set()
        await first
        await asyncio.wait_for(waiter, timeout=1)
        assert len(log) == 0

    @pytest.mark.asyncio
    async def test_wait_idle_returns_when_nothing_runs(self, kv):
        _, runner = make_runner(kv, FakeOperations())
        await asyncio.wait_for(runner.wait_idle(), timeout=1)

    @pytest.mark.asyncio
    async def test_reconcile_and_wait_outlasts_running_pass(self, kv):
        """A caller that finds a pass running returns only once the log is drained."""
        ops = FakeOperations(block={"Pets"})
        registry = OfflineQueueRegistry(kv, lambda entity_type: ops)
        queue = registry.get("h1", EntityType.CATEGORIES)
        ops.runner = queue.runner
        queue.log.enqueue(MutationRecord.add({"name": "Pets"}))

        first = asyncio.create_task(queue.reconcile())
        await ops.entered.wait()
        second = asyncio.create_task(queue.reconcile_and_wait())
        await asyncio.sleep(0)
        assert not second.done()

        ops.gate.set()
        assert (await second).skipped
        assert queue.pending_count == 0
        assert (await first).applied == 1

    @pytest.mark.asyncio
    async def test_writes_queued_mid_pass_wait_for_next_pass(self, kv):
        ops = FakeOperations(block={"Pets"})
        log, runner = make_runner(kv, ops)
        log.enqueue(MutationRecord.add({"name": "Pets"}))

        task = asyncio.create_task(runner.run())
        await ops.entered.wait()
        log.enqueue(MutationRecord.add({"name": "Garden"}))
        ops.gate.set()
        await task

        assert [m.payload["name"] for m in log.pending()] == ["Garden"]
        await runner.run()
        assert ops.calls == [("add", "Pets"), ("add", "Garden")]

    @pytest.mark.asyncio
    async def test_cancelled_pass_leaves_log_intact(self, kv):
        ops = FakeOperations(block={"Garden"})
        log, runner = make_runner(kv, ops)
        log.enqueue(MutationRecord.add({"name": "Pets"}))
        log.enqueue(MutationRecord.add({"name": "Garden"}))

        task = asyncio.create_task(runner.run())
        await ops.entered.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert len(log) == 2
        assert len(PendingMutationLog(kv, "h1", EntityType.CATEGORIES)) == 2
        assert not runner.in_flight
        assert not runner.syncing

    @pytest.mark.asyncio
    async def test_retry_after_interruption_reapplies_adds(self, kv):
        """Replay is not idempotent: an add that already went through is sent again."""
        ops = FakeOperations(block={"Garden"})
        log, runner = make_runner(kv, ops)
        log.enqueue(MutationRecord.add({"name": "Pets"}))
        log.enqueue(MutationRecord.add({"name": "Garden"}))

        task = asyncio.create_task(runner.run())
        await ops.entered.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        ops.block.clear()
        await runner.run()

        assert ops.calls.count(("add", "Pets")) == 2
        assert len(log) == 0


class TestClearFailure:

    @pytest.mark.asyncio
    async def test_clear_failure_is_logged_not_raised(self, audit_logger, audit_storage):
        """If the emptied log can't be written back the pass still completes."""
        kv = InMemoryKeyValueStore()
        ops = FakeOperations(block={"Pets"})
        log, runner = make_runner(kv, ops, audit_logger)
        log.enqueue(MutationRecord.add({"name": "Pets"}))

        task = asyncio.create_task(runner.run())
        await ops.entered.wait()
        # A write queued mid-pass forces a rewrite of the log; make that fail
        kv._capacity = 1
        with pytest.raises(PersistenceError):
            log.enqueue(MutationRecord.add({"name": "Garden"}))
        ops.gate.set()
        result = await task

        assert result.applied == 1
        assert not runner.syncing
        assert audit_storage.of_type(AuditEventType.PERSISTENCE_FAILED)


class TestOfflineQueueRegistry:
    """One shared queue per household and entity type."""

    def _registry(self, kv, audit_logger=None):
        ops = {entity_type: FakeOperations() for entity_type in EntityType}
        return OfflineQueueRegistry(kv, ops.__getitem__, audit_logger), ops

    def test_same_key_same_queue(self, kv):
        registry, _ = self._registry(kv)
        assert registry.get("h1", EntityType.BUDGETS) is registry.get("h1", EntityType.BUDGETS)
        assert registry.get("h1", EntityType.BUDGETS) is not registry.get("h2", EntityType.BUDGETS)
        assert registry.get("h1", EntityType.BUDGETS) is not registry.get("h1", EntityType.TODOS)

    @pytest.mark.asyncio
    async def test_enqueue_returns_length_and_audits(self, kv, audit_logger, audit_storage):
        registry, _ = self._registry(kv, audit_logger)
        queue = registry.get("h1", EntityType.TODOS)

        assert await queue.enqueue(MutationRecord.add({"title": "Call plumber"})) == 1
        assert await queue.enqueue(MutationRecord.delete("t1")) == 2
        assert queue.pending_count == 2

        queued = audit_storage.of_type(AuditEventType.MUTATION_QUEUED)
        assert [e.details["queue_length"] for e in queued] == [1, 2]

    @pytest.mark.asyncio
    async def test_enqueue_persistence_failure(self, audit_logger, audit_storage):
        registry, _ = self._registry(InMemoryKeyValueStore(capacity=4), audit_logger)
        queue = registry.get("h1", EntityType.TODOS)

        with pytest.raises(PersistenceError):
            await queue.enqueue(MutationRecord.add({"title": "Call plumber"}))

        assert queue.pending_count == 1
        assert audit_storage.of_type(AuditEventType.PERSISTENCE_FAILED)

    @pytest.mark.asyncio
    async def test_reconcile_all_for_household(self, kv):
        registry, ops = self._registry(kv)
        await registry.get("h1", EntityType.TODOS).enqueue(MutationRecord.delete("t1"))
        await registry.get("h1", EntityType.BUDGETS).enqueue(MutationRecord.delete("b1"))
        await registry.get("h2", EntityType.TODOS).enqueue(MutationRecord.delete("t2"))

        results = await registry.reconcile_all("h1")

        assert sorted(r.entity_type.value for r in results) == ["budgets", "todos"]
        assert ops[EntityType.TODOS].calls == [("delete", "t1")]
        assert registry.get("h2", EntityType.TODOS).pending_count == 1

    def test_clear_keeps_durable_logs(self, kv):
        registry, _ = self._registry(kv)
        registry.get("h1", EntityType.TODOS).log.enqueue(MutationRecord.delete("t1"))
        registry.clear()

        assert registry.queues() == []
        assert registry.get("h1", EntityType.TODOS).pending_count == 1
