"""Tests for settings and the application composition root."""

import pytest

from household_ledger.config import OfflineSettings, get_settings, validate_all_settings
from household_ledger.models import AuditEventType, EntityType
from household_ledger.orchestrator import create_app_components
from household_ledger.services.storage import (
    ConnectionError,
    InMemoryKeyValueStore,
    InMemoryRemoteStore,
    SQLiteKeyValueStore,
)
from household_ledger.views import ShoppingListView

from conftest import HOUSEHOLD_ID


@pytest.fixture
def offline_env(monkeypatch, tmp_path):
    monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
    monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)
    monkeypatch.setenv("OFFLINE_STORE_PATH", str(tmp_path / "store" / "offline.sqlite3"))
    get_settings.cache_clear()
    yield tmp_path
    get_settings.cache_clear()


class TestSettings:

    def test_offline_defaults(self, monkeypatch):
        monkeypatch.delenv("OFFLINE_ENABLED", raising=False)
        monkeypatch.delenv("OFFLINE_STORE_PATH", raising=False)
        settings = OfflineSettings()
        assert settings.enabled is True
        assert settings.store_file.name == "offline.sqlite3"

    def test_missing_sheets_config_reported(self, offline_env):
        results = validate_all_settings()
        assert results["google_sheets"] is False
        assert "google_sheets_error" in results
        assert results["offline"] is True
        assert results["app"] is True


class TestCreateAppComponents:

    def test_falls_back_to_in_memory_remote(self, offline_env):
        app = create_app_components(use_storage=True)
        assert isinstance(app.remote, InMemoryRemoteStore)
        assert app.audit_logger is not None
        assert isinstance(app.kv, SQLiteKeyValueStore)
        app.kv.close()

    def test_offline_store_disabled(self, offline_env, monkeypatch):
        monkeypatch.setenv("OFFLINE_ENABLED", "false")
        app = create_app_components(use_storage=False)
        assert isinstance(app.kv, InMemoryKeyValueStore)

    @pytest.mark.asyncio
    async def test_lifecycle(self, offline_env):
        app = create_app_components(use_storage=False)
        await app.startup()
        assert app.started

        view = await app.mount_view(HOUSEHOLD_ID, EntityType.CATEGORIES)
        app.connectivity.go_offline()
        await view.add_category("Pets")

        await app.shutdown()

        assert not view.mounted
        assert not app.started
        assert app.kv.conn is None

        # The queued write is still on disk for the next run
        restarted = create_app_components(use_storage=False)
        assert restarted.queues.get(HOUSEHOLD_ID, EntityType.CATEGORIES).pending_count == 1
        restarted.kv.close()


class TestAppComponents:

    @pytest.mark.asyncio
    async def test_connectivity_changes_are_audited(self, app, audit_storage):
        await app.startup()

        app.connectivity.go_offline()
        app.connectivity.go_online()
        await app.connectivity.wait_idle()

        types = [e.event_type for e in audit_storage.events]
        assert AuditEventType.WENT_OFFLINE in types
        assert AuditEventType.WENT_ONLINE in types
        await app.shutdown()

    def test_shopping_view_gets_expense_service(self, app):
        view = app.open_view(HOUSEHOLD_ID, EntityType.SHOPPING_ITEMS)
        assert isinstance(view, ShoppingListView)
        assert view._expenses is app.services[EntityType.EXPENSES]

    @pytest.mark.asyncio
    async def test_monthly_summary(self, app, remote):
        category = await remote.insert(EntityType.CATEGORIES, {"household_id": HOUSEHOLD_ID, "name": "Groceries"})
        await remote.insert(EntityType.BUDGETS, {
            "household_id": HOUSEHOLD_ID,
            "category_id": category["id"],
            "month": "2024-05",
            "limit_amount": "100",
        })
        await remote.insert(EntityType.EXPENSES, {
            "household_id": HOUSEHOLD_ID,
            "date": "2024-05-02",
            "item_name": "Weekly shop",
            "amount": "90",
            "category_id": category["id"],
        })

        summary = await app.monthly_summary(HOUSEHOLD_ID, month="2024-05")

        row = summary.for_category(category["id"])
        assert row.percent_used == 90.0
        assert row.status == "orange"

    @pytest.mark.asyncio
    async def test_monthly_summary_offline_uses_mirror(self, app, remote):
        await remote.insert(EntityType.EXPENSES, {
            "household_id": HOUSEHOLD_ID,
            "date": "2024-05-02",
            "item_name": "Weekly shop",
            "amount": "90",
            "category_id": "food",
        })
        await app.mount_view(HOUSEHOLD_ID, EntityType.EXPENSES)
        app.connectivity.go_offline()
        await app.connectivity.wait_idle()
        remote.offline = True

        summary = await app.monthly_summary(HOUSEHOLD_ID, month="2024-05")

        assert str(summary.total_spent) == "90"


class TestHouseholdMembership:

    @pytest.mark.asyncio
    async def test_create_then_invite(self, app, remote):
        household = await app.create_household("The Parkers", "user-4")

        invited = await app.invite_member("kim@example.com", household.id)

        assert invited.household_id == household.id
        members = await app.household_members(household.id)
        assert [m.name for m in members] == ["Jo", "Kim"]

    @pytest.mark.asyncio
    async def test_join_existing_household(self, app):
        joined = await app.join_household(HOUSEHOLD_ID, "user-4")

        assert joined.name == "The Smiths"
        assert "user-4" in [m.id for m in await app.household_members(HOUSEHOLD_ID)]

    @pytest.mark.asyncio
    async def test_membership_changes_need_a_connection(self, app, remote):
        app.connectivity.go_offline()
        await app.connectivity.wait_idle()

        with pytest.raises(ConnectionError, match="Household changes need a connection"):
            await app.join_household(HOUSEHOLD_ID, "user-4")
        assert not [c for c in remote.calls if c[0] == "update_member"]
