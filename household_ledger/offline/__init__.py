"""
Offline Support

Lets household collections keep working without the remote store:
- LocalMirrorStore: last known-good snapshot per collection
- PendingMutationLog: durable FIFO of writes made while offline
- ReconciliationRunner: replays the log when connectivity returns
- OfflineQueue / OfflineQueueRegistry: one engine per (household, entity type)
- ConnectivityMonitor: the online/offline signal
"""

from household_ledger.offline.connectivity import ConnectivityMonitor
from household_ledger.offline.mirror import LocalMirrorStore
from household_ledger.offline.mutation_log import PendingMutationLog
from household_ledger.offline.queue import OfflineQueue, OfflineQueueRegistry
from household_ledger.offline.reconciliation import (
    EntityOperations,
    ReconciliationRunner,
)

__all__ = [
    "ConnectivityMonitor",
    "EntityOperations",
    "LocalMirrorStore",
    "OfflineQueue",
    "OfflineQueueRegistry",
    "PendingMutationLog",
    "ReconciliationRunner",
]
