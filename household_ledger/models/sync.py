"""
Offline Sync Models

A MutationRecord is one write the user made while the remote store was
unreachable. Records are kept in a per-(household, entity type) log in
the order they were made; that order is the order they are replayed in.

There is no timestamp field: log position is the only clock.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator

from household_ledger.models.entities import EntityType


class MutationType(str, Enum):
    """Kinds of queued writes."""
    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"
    PURCHASE = "purchase"  # Shopping list "mark as purchased", replays as an update


class MutationRecord(BaseModel):
    """A single queued write."""

    type: MutationType
    entity_id: Optional[str] = Field(
        default=None,
        description="Target entity for update/purchase/delete"
    )
    payload: dict[str, Any] = Field(
        default_factory=dict,
        description="Full row for add, changed fields for update"
    )

    @model_validator(mode='after')
    def validate_target(self) -> 'MutationRecord':
        if self.type == MutationType.ADD:
            if self.entity_id is not None:
                raise ValueError("An add mutation cannot target an existing id")
        elif not self.entity_id:
            raise ValueError(f"A {self.type.value} mutation needs an entity_id")
        return self

    @classmethod
    def add(cls, payload: dict) -> 'MutationRecord':
        return cls(type=MutationType.ADD, payload=payload)

    @classmethod
    def update(cls, entity_id: str, payload: dict) -> 'MutationRecord':
        return cls(type=MutationType.UPDATE, entity_id=entity_id, payload=payload)

    @classmethod
    def delete(cls, entity_id: str) -> 'MutationRecord':
        return cls(type=MutationType.DELETE, entity_id=entity_id)

    @classmethod
    def purchase(cls, entity_id: str, payload: dict) -> 'MutationRecord':
        return cls(type=MutationType.PURCHASE, entity_id=entity_id, payload=payload)


class ChangeType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class ChangeEvent(BaseModel):
    """
    Realtime change notification from the remote store.

    `new` holds the row after an insert or update, `old` the row (or at
    least its id) before a delete.
    """

    event_type: ChangeType
    new: Optional[dict[str, Any]] = None
    old: Optional[dict[str, Any]] = None

    @property
    def row_id(self) -> Optional[str]:
        row = self.old if self.event_type == ChangeType.DELETE else self.new
        return (row or {}).get("id")


class ReconciliationResult(BaseModel):
    """Outcome of one reconciliation pass."""

    household_id: str
    entity_type: EntityType
    attempted: int = Field(default=0, ge=0)
    applied: int = Field(default=0, ge=0)
    dropped: int = Field(default=0, ge=0)
    skipped: bool = Field(
        default=False,
        description="True when no pass ran (empty log or a pass already in flight)"
    )
