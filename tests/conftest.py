"""
Shared fixtures for the Household Ledger tests.

Everything runs against the in-memory remote store and key-value store;
no test talks to Google Sheets.
"""

import pytest

from household_ledger.audit import AuditLogger
from household_ledger.models.audit import AuditEvent
from household_ledger.offline import ConnectivityMonitor, LocalMirrorStore
from household_ledger.orchestrator import AppComponents
from household_ledger.services.entities import create_entity_services
from household_ledger.services.storage import (
    AuditStorageInterface,
    InMemoryKeyValueStore,
    InMemoryRemoteStore,
)


HOUSEHOLD_ID = "household-1"
OTHER_HOUSEHOLD_ID = "household-2"


class RecordingAuditStorage(AuditStorageInterface):
    """Keeps appended audit events in a list."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    def of_type(self, event_type) -> list[AuditEvent]:
        return [e for e in self.events if e.event_type == event_type]


@pytest.fixture
def remote():
    return InMemoryRemoteStore(members=[
        {"id": "user-2", "household_id": HOUSEHOLD_ID, "email": "sam@example.com", "name": "Sam"},
        {"id": "user-1", "household_id": HOUSEHOLD_ID, "email": "alex@example.com", "name": "Alex"},
        {"id": "user-3", "household_id": OTHER_HOUSEHOLD_ID, "email": "kim@example.com", "name": "Kim"},
        {"id": "user-4", "household_id": None, "email": "jo@example.com", "name": "Jo"},
    ], households=[
        {"id": HOUSEHOLD_ID, "name": "The Smiths"},
        {"id": OTHER_HOUSEHOLD_ID, "name": "The Kims"},
    ])


@pytest.fixture
def kv():
    return InMemoryKeyValueStore()


@pytest.fixture
def audit_storage():
    return RecordingAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def services(remote):
    return create_entity_services(remote)


@pytest.fixture
def mirror(kv):
    return LocalMirrorStore(kv)


@pytest.fixture
def connectivity():
    return ConnectivityMonitor(online=True)


@pytest.fixture
def app(remote, kv, audit_logger, connectivity):
    return AppComponents(remote, kv, audit_logger, connectivity)
