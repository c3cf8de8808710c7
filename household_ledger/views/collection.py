"""
Collection View

In-memory view state for one household collection, plus the optimistic
write flow every entity screen shares:

    [idle] --write--> online?
      yes: call the remote store
           success -> merge the stored row into the view
           failure -> show the error, view unchanged, nothing queued
      no:  apply the change to the view immediately
           queue the write for replay

Validation runs before either branch; an invalid write is neither sent
nor queued.

The view state lives from `mount()` to `unmount()` and is replaced
wholesale by every successful fetch.
"""

from typing import Generic, Optional, TypeVar

from pydantic import ValidationError

from household_ledger.audit import AuditLogger
from household_ledger.models.entities import HouseholdEntity
from household_ledger.models.sync import (
    ChangeEvent,
    ChangeType,
    MutationRecord,
    MutationType,
)
from household_ledger.offline.connectivity import ConnectivityMonitor
from household_ledger.offline.mirror import LocalMirrorStore
from household_ledger.offline.queue import OfflineQueue
from household_ledger.services.entities import EntityService
from household_ledger.services.storage.interface import (
    PersistenceError,
    StorageError,
)
from household_ledger.validation import validate_payload


T = TypeVar("T", bound=HouseholdEntity)

NOT_SYNCED_MESSAGE = "This item hasn't been saved online yet. Try again once you're back online."


def describe_validation_error(error: ValidationError) -> str:
    """First pydantic error as one readable line."""
    first = error.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "Invalid value")
    return f"{field}: {message}" if field else message


class CollectionView(Generic[T]):
    """
    View state and write dispatch for one (household, entity type).

    Args:
        household_id: The household whose rows are shown
        service: Remote CRUD for the entity type
        queue: Shared offline queue for this household and entity type
        mirror: Snapshot cache used when the remote store is unreachable
        connectivity: Online/offline signal
        audit_logger: Optional audit sink
    """

    def __init__(
        self,
        household_id: str,
        service: EntityService[T],
        queue: OfflineQueue,
        mirror: LocalMirrorStore,
        connectivity: ConnectivityMonitor,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self.household_id = household_id
        self._service = service
        self._queue = queue
        self._mirror = mirror
        self._connectivity = connectivity
        self._audit_logger = audit_logger
        self._unsubscribe = None

        self.items: list[T] = []
        self.error: Optional[str] = None
        self.loading = False
        self.mounted = False

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def entity_type(self):
        return self._service.entity_type

    @property
    def is_online(self) -> bool:
        return self._connectivity.is_online

    @property
    def syncing(self) -> bool:
        return self._queue.syncing

    @property
    def pending_count(self) -> int:
        return self._queue.pending_count

    def get(self, entity_id: str) -> Optional[T]:
        for item in self.items:
            if item.id == entity_id:
                return item
        return None

    def dismiss_error(self) -> None:
        self.error = None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def mount(self) -> None:
        """
        Start following connectivity and load the collection.

        A log left over from an earlier run is replayed first when the
        view mounts online, the same as on a reconnect.
        """
        if self.mounted:
            return
        self._unsubscribe = self._connectivity.subscribe(self._on_connectivity_changed)
        self.mounted = True
        if self.is_online and (self._queue.pending_count or self._queue.syncing):
            await self._queue.reconcile_and_wait()
        await self.load()

    def unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
        self.items = []
        self.error = None
        self.mounted = False

    async def _on_connectivity_changed(self, online: bool) -> None:
        if not online:
            return
        # Another view of this queue may already be replaying
        await self._queue.reconcile_and_wait()
        if self.mounted:
            await self.load()

    async def load(self) -> None:
        """
        Replace the view state with the current collection.

        Online: fetch from the remote store and refresh the mirror. If the
        fetch fails the error is shown and the mirror is rendered instead.
        Offline: render the mirror.
        """
        self.loading = True
        try:
            if not self.is_online:
                self._show_mirror()
                if self._audit_logger:
                    await self._audit_logger.log_mirror_fallback(
                        household_id=self.household_id,
                        entity_type=self.entity_type.value,
                        row_count=len(self.items),
                    )
                return

            try:
                fetched = await self._service.list_for_household(self.household_id)
            except StorageError as e:
                self.error = str(e)
                used_mirror = self._show_mirror()
                if self._audit_logger:
                    await self._audit_logger.log_remote_read_failed(
                        household_id=self.household_id,
                        entity_type=self.entity_type.value,
                        error_message=str(e),
                        used_mirror=used_mirror,
                    )
                return

            self.items = fetched
            try:
                self._mirror.write_collection(
                    self.entity_type,
                    self.household_id,
                    [item.to_payload() for item in fetched],
                )
            except PersistenceError as e:
                if self._audit_logger:
                    await self._audit_logger.log_persistence_failed(
                        household_id=self.household_id,
                        entity_type=self.entity_type.value,
                        error_message=str(e),
                    )
        finally:
            self.loading = False

    def _show_mirror(self) -> bool:
        """Render the mirror plus still-queued writes. Returns whether a snapshot existed."""
        snapshot = self._mirror.read_collection(self.entity_type, self.household_id)
        items = []
        for row in snapshot or []:
            try:
                items.append(self._service.to_model(row))
            except ValidationError:
                continue
        self.items = items
        # The mirror never holds offline edits; layer them back on top
        for mutation in self._queue.pending():
            self._apply_local(mutation)
        return snapshot is not None

    # -------------------------------------------------------------------------
    # Local state changes
    # -------------------------------------------------------------------------

    def _replace(self, entity_id: str, entity: T) -> None:
        self.items = [entity if item.id == entity_id else item for item in self.items]

    def _remove(self, entity_id: str) -> None:
        self.items = [item for item in self.items if item.id != entity_id]

    def _apply_local(self, mutation: MutationRecord) -> Optional[T]:
        """Apply a write to the view state only (the optimistic path)."""
        if mutation.type == MutationType.ADD:
            entity = self._service.to_model(mutation.payload)
            self.items = [*self.items, entity]
            return entity

        if mutation.type == MutationType.DELETE:
            self._remove(mutation.entity_id)
            return None

        current = self.get(mutation.entity_id)
        if current is None:
            return None
        merged = self._service.to_model({
            **current.to_payload(),
            **mutation.payload,
        })
        self._replace(mutation.entity_id, merged)
        return merged

    def _merge_result(self, mutation: MutationRecord, result: Optional[T]) -> None:
        """Fold a confirmed remote write into the view state."""
        if mutation.type == MutationType.ADD:
            if result is not None and self.get(result.id) is None:
                self.items = [*self.items, result]
        elif mutation.type == MutationType.DELETE:
            self._remove(mutation.entity_id)
        elif result is not None:
            self._replace(mutation.entity_id, result)

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    async def _send(self, mutation: MutationRecord) -> Optional[T]:
        if mutation.type == MutationType.ADD:
            return await self._service.add(mutation.payload)
        if mutation.type == MutationType.DELETE:
            await self._service.delete(mutation.entity_id)
            return None
        return await self._service.update(mutation.entity_id, mutation.payload)

    async def _dispatch(self, mutation: MutationRecord) -> tuple[bool, Optional[T]]:
        """
        Send a write, or apply and queue it when offline.

        Returns:
            (accepted, entity) where entity is the stored (online) or
            optimistic (offline) row, None for deletes
        """
        if not self.is_online:
            entity = self._apply_local(mutation)
            try:
                await self._queue.enqueue(mutation)
            except PersistenceError:
                self.error = PersistenceError.user_message
            return True, entity

        try:
            result = await self._send(mutation)
        except StorageError as e:
            self.error = str(e)
            if self._audit_logger:
                await self._audit_logger.log_remote_write_failed(
                    household_id=self.household_id,
                    entity_type=self.entity_type.value,
                    operation=mutation.type.value,
                    error_message=str(e),
                    entity_id=mutation.entity_id,
                )
            return False, None

        self._merge_result(mutation, result)
        return True, result

    def _check(self, payload: dict) -> Optional[str]:
        """Client-side checks for a write payload; returns the first error."""
        errors = validate_payload(self.entity_type, payload)
        return errors[0] if errors else None

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def add(self, data: dict) -> Optional[T]:
        """Create an entity in this household. Returns it, or None if rejected."""
        payload = {**data, "household_id": self.household_id}
        payload.pop("id", None)

        error = self._check(payload)
        if error:
            self.error = error
            return None
        try:
            entity = self._service.to_model(payload)
        except ValidationError as e:
            self.error = describe_validation_error(e)
            return None

        mutation = MutationRecord.add(entity.to_payload())
        _, result = await self._dispatch(mutation)
        return result

    def _prepare_changes(self, entity_id: str, changes: dict) -> Optional[dict]:
        """Validate a partial update; returns the JSON-safe changes or None."""
        changes = {k: v for k, v in changes.items() if k not in ("id", "household_id")}
        error = self._check(changes)
        if error:
            self.error = error
            return None

        current = self.get(entity_id)
        if current is None:
            return changes
        try:
            merged = self._service.to_model({**current.model_dump(), **changes})
        except ValidationError as e:
            self.error = describe_validation_error(e)
            return None
        return merged.model_dump(mode="json", include=set(changes))

    async def update(self, entity_id: Optional[str], changes: dict) -> Optional[T]:
        """Apply a partial update. Returns the updated entity, or None if rejected."""
        if not entity_id:
            self.error = NOT_SYNCED_MESSAGE
            return None
        payload = self._prepare_changes(entity_id, changes)
        if payload is None:
            return None
        _, result = await self._dispatch(MutationRecord.update(entity_id, payload))
        return result

    async def delete(self, entity_id: Optional[str]) -> bool:
        """Delete an entity. Returns False if the write was rejected or failed."""
        if not entity_id:
            self.error = NOT_SYNCED_MESSAGE
            return False
        accepted, _ = await self._dispatch(MutationRecord.delete(entity_id))
        return accepted

    # -------------------------------------------------------------------------
    # Realtime
    # -------------------------------------------------------------------------

    def apply_change(self, event: ChangeEvent) -> None:
        """Merge a realtime change notification into the view state."""
        if not self.mounted:
            return
        row_id = event.row_id
        if event.event_type == ChangeType.DELETE:
            if row_id:
                self._remove(row_id)
            return

        row = event.new or {}
        if row.get("household_id") != self.household_id:
            return
        try:
            entity = self._service.to_model(row)
        except ValidationError:
            return

        if self.get(row_id) is not None:
            self._replace(row_id, entity)
        elif event.event_type == ChangeType.INSERT:
            self.items = [*self.items, entity]
