"""
Local Mirror Store

Last known-good snapshot of each (household, entity type) collection,
rendered when the remote store can't be reached.

The mirror is written only after a successful remote fetch. Offline edits
are never written into it, so it can lag behind the pending mutation log.
"""

import json
from typing import Optional

import structlog

from household_ledger.models.entities import EntityType
from household_ledger.services.storage.interface import KeyValueStoreInterface


logger = structlog.get_logger(__name__)


class LocalMirrorStore:
    """Snapshot cache over a durable key-value store."""

    def __init__(self, kv: KeyValueStoreInterface):
        self._kv = kv

    def read(self, key: str) -> Optional[list[dict]]:
        """
        Return the last snapshot written under `key`, or None.

        Never raises: a missing key, an unreadable store and a corrupt
        value all read as "no data".
        """
        try:
            raw = self._kv.get(key)
            if raw is None:
                return None
            snapshot = json.loads(raw)
        except Exception as e:
            logger.warning("mirror_read_failed", key=key, error=str(e))
            return None

        if not isinstance(snapshot, list):
            logger.warning("mirror_snapshot_malformed", key=key)
            return None
        return snapshot

    def write(self, key: str, snapshot: list[dict]) -> None:
        """
        Replace the snapshot under `key`. No merge with the old contents.

        Raises:
            PersistenceError: If the store is full or unavailable
        """
        self._kv.set(key, json.dumps(snapshot, default=str))

    def read_collection(self, entity_type: EntityType, household_id: str) -> Optional[list[dict]]:
        return self.read(entity_type.mirror_key(household_id))

    def write_collection(
        self,
        entity_type: EntityType,
        household_id: str,
        snapshot: list[dict],
    ) -> None:
        self.write(entity_type.mirror_key(household_id), snapshot)
