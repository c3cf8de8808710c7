"""
Application Composition Root for Household Ledger

This module wires the stores, services, offline queues and views together
and owns their lifecycle:
1. Startup: configure logging, start following connectivity
2. Running: open a view per (household, entity type) on demand
3. Shutdown: unmount views, finish listener tasks, close the local store

DESIGN DECISION: Connectivity, the mirror and the queue registry are
explicit objects created here and injected into every view. Nothing reads
online/offline state from globals, and all views of one household and
entity type share one offline queue.
"""

from typing import Optional

import structlog

from household_ledger.audit import AuditLogger, configure_logging
from household_ledger.config import get_settings
from household_ledger.models.entities import EntityType, Household, Member, current_month
from household_ledger.offline import (
    ConnectivityMonitor,
    LocalMirrorStore,
    OfflineQueueRegistry,
)
from household_ledger.services.entities import HouseholdService, create_entity_services
from household_ledger.services.storage import (
    ConnectionError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRemoteStore,
    InMemoryKeyValueStore,
    InMemoryRemoteStore,
    KeyValueStoreInterface,
    RemoteStoreInterface,
    SQLiteKeyValueStore,
    StorageError,
)
from household_ledger.summary import MonthlySummary, summarize_month
from household_ledger.views import VIEW_CLASSES, CollectionView, ShoppingListView


logger = structlog.get_logger(__name__)

OFFLINE_MEMBERSHIP_MESSAGE = "You're offline. Household changes need a connection."


class AppComponents:
    """
    Process-wide application state.

    Create with `create_app_components()`, then `await startup()` once and
    `await shutdown()` when the process ends.
    """

    def __init__(
        self,
        remote: RemoteStoreInterface,
        kv: KeyValueStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        connectivity: Optional[ConnectivityMonitor] = None,
    ):
        self.remote = remote
        self.kv = kv
        self.audit_logger = audit_logger
        self.connectivity = connectivity or ConnectivityMonitor()
        self.mirror = LocalMirrorStore(kv)
        self.services = create_entity_services(remote)
        self.households = HouseholdService(remote)
        self.queues = OfflineQueueRegistry(kv, self.services.__getitem__, audit_logger)
        self._views: list[CollectionView] = []
        self._unsubscribe = None
        self.started = False

    async def startup(self) -> None:
        if self.started:
            return
        configure_logging(get_settings().app.log_level)
        self._unsubscribe = self.connectivity.subscribe(self._on_connectivity_changed)
        self.started = True
        logger.info("app_started", online=self.connectivity.is_online)

    async def _on_connectivity_changed(self, online: bool) -> None:
        if self.audit_logger:
            await self.audit_logger.log_connectivity_changed(online)

    def open_view(self, household_id: str, entity_type: EntityType) -> CollectionView:
        """Create (but don't mount) a view bound to the shared queue for its collection."""
        view_class = VIEW_CLASSES[entity_type]
        args = (
            household_id,
            self.services[entity_type],
            self.queues.get(household_id, entity_type),
            self.mirror,
            self.connectivity,
            self.audit_logger,
        )
        if view_class is ShoppingListView:
            view = view_class(*args, expenses=self.services[EntityType.EXPENSES])
        else:
            view = view_class(*args)
        self._views.append(view)
        return view

    async def mount_view(self, household_id: str, entity_type: EntityType) -> CollectionView:
        view = self.open_view(household_id, entity_type)
        await view.mount()
        return view

    def close_view(self, view: CollectionView) -> None:
        view.unmount()
        if view in self._views:
            self._views.remove(view)

    async def _collection_rows(self, household_id: str, entity_type: EntityType) -> list:
        service = self.services[entity_type]
        if self.connectivity.is_online:
            try:
                return await service.list_for_household(household_id)
            except StorageError as e:
                logger.warning(
                    "summary_fetch_failed",
                    household_id=household_id,
                    entity_type=entity_type.value,
                    error=str(e),
                )
        snapshot = self.mirror.read_collection(entity_type, household_id) or []
        return [service.to_model(row) for row in snapshot]

    async def monthly_summary(
        self,
        household_id: str,
        month: Optional[str] = None,
    ) -> MonthlySummary:
        """Dashboard summary, from the remote store or the mirror when unreachable."""
        expenses = await self._collection_rows(household_id, EntityType.EXPENSES)
        categories = await self._collection_rows(household_id, EntityType.CATEGORIES)
        budgets = await self._collection_rows(household_id, EntityType.BUDGETS)
        return summarize_month(
            expenses,
            categories,
            budgets,
            month=month or current_month(),
            warning_percent=get_settings().app.budget_warning_percent,
        )

    # -------------------------------------------------------------------------
    # Households
    # -------------------------------------------------------------------------

    def _require_online(self) -> None:
        # Membership changes are never queued
        if not self.connectivity.is_online:
            raise ConnectionError(OFFLINE_MEMBERSHIP_MESSAGE)

    async def create_household(self, name: str, member_id: str) -> Household:
        self._require_online()
        household = await self.households.create_household(name, member_id)
        logger.info("household_created", household_id=household.id, member_id=member_id)
        return household

    async def join_household(self, invite_code: str, member_id: str) -> Household:
        self._require_online()
        household = await self.households.join_household(invite_code, member_id)
        logger.info("household_joined", household_id=household.id, member_id=member_id)
        return household

    async def invite_member(self, email: str, household_id: str) -> Member:
        self._require_online()
        member = await self.households.invite_by_email(email, household_id)
        logger.info("household_member_invited", household_id=household_id, member_id=member.id)
        return member

    async def household_members(self, household_id: str) -> list[Member]:
        self._require_online()
        return await self.households.get_members(household_id)

    async def shutdown(self) -> None:
        for view in list(self._views):
            self.close_view(view)
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
        await self.connectivity.wait_idle()
        self.connectivity.close()
        self.queues.clear()
        close = getattr(self.kv, "close", None)
        if close:
            close()
        self.started = False
        logger.info("app_stopped")


def create_app_components(
    use_storage: bool = True,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to connect to Google Sheets.
                    Set to False to run against in-memory storage.

    Returns:
        The application components (not yet started)
    """
    remote: Optional[RemoteStoreInterface] = None
    audit_logger = None

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            remote = GoogleSheetsRemoteStore(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))
            remote = None

    if remote is None:
        remote = InMemoryRemoteStore()
        audit_logger = AuditLogger()  # Local-only logging

    offline = get_settings().offline
    if offline.enabled:
        kv: KeyValueStoreInterface = SQLiteKeyValueStore(offline.store_file)
    else:
        kv = InMemoryKeyValueStore()

    return AppComponents(remote, kv, audit_logger)
