"""
Audit Models for Household Ledger

Every offline-sync step is recorded as an audit event:
1. Writes queued while offline
2. Reconciliation passes and what they dropped
3. Remote read/write failures shown to the user
4. Local persistence failures

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Offline queue
    MUTATION_QUEUED = "mutation_queued"
    PERSISTENCE_FAILED = "persistence_failed"

    # Reconciliation
    RECONCILIATION_STARTED = "reconciliation_started"
    RECONCILIATION_COMPLETED = "reconciliation_completed"
    RECONCILIATION_SKIPPED = "reconciliation_skipped"
    REPLAY_DROPPED = "replay_dropped"

    # Remote store
    REMOTE_WRITE_FAILED = "remote_write_failed"
    REMOTE_READ_FAILED = "remote_read_failed"
    MIRROR_FALLBACK = "mirror_fallback"

    # Connectivity
    WENT_OFFLINE = "went_offline"
    WENT_ONLINE = "went_online"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """A single audit event."""

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context
    household_id: Optional[str] = None
    entity_type: Optional[str] = Field(
        default=None,
        description="Entity collection (e.g., 'categories', 'budgets')"
    )
    entity_id: Optional[str] = None
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one reconciliation pass)"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "household_id": self.household_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, household_id, entity_type,
         entity_id, correlation_id, description, details_json, error_message]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.household_id or "",
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details) if self.details else "",
            self.error_message or "",
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.mutation_queued("h1", "categories", "add", None)
    """

    @staticmethod
    def mutation_queued(
        household_id: str,
        entity_type: str,
        mutation_type: str,
        entity_id: Optional[str],
        queue_length: int = 0,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MUTATION_QUEUED,
            household_id=household_id,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"Queued offline {mutation_type} for {entity_type}",
            details={
                "mutation_type": mutation_type,
                "queue_length": queue_length,
            },
        )

    @staticmethod
    def persistence_failed(
        household_id: str,
        entity_type: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSISTENCE_FAILED,
            severity=AuditSeverity.ERROR,
            household_id=household_id,
            entity_type=entity_type,
            description="Local persistence failed; changes may not be saved",
            error_message=error_message,
        )

    @staticmethod
    def reconciliation_started(
        household_id: str,
        entity_type: str,
        pending: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECONCILIATION_STARTED,
            household_id=household_id,
            entity_type=entity_type,
            correlation_id=correlation_id,
            description=f"Replaying {pending} queued {entity_type} changes",
            details={"pending": pending},
        )

    @staticmethod
    def reconciliation_completed(
        household_id: str,
        entity_type: str,
        applied: int,
        dropped: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECONCILIATION_COMPLETED,
            severity=AuditSeverity.WARNING if dropped else AuditSeverity.INFO,
            household_id=household_id,
            entity_type=entity_type,
            correlation_id=correlation_id,
            description=f"Reconciliation finished: {applied} applied, {dropped} dropped",
            details={"applied": applied, "dropped": dropped},
        )

    @staticmethod
    def reconciliation_skipped(
        household_id: str,
        entity_type: str,
        reason: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECONCILIATION_SKIPPED,
            severity=AuditSeverity.DEBUG,
            household_id=household_id,
            entity_type=entity_type,
            description=f"Reconciliation skipped: {reason}",
            details={"reason": reason},
        )

    @staticmethod
    def replay_dropped(
        household_id: str,
        entity_type: str,
        mutation_type: str,
        entity_id: Optional[str],
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REPLAY_DROPPED,
            severity=AuditSeverity.WARNING,
            household_id=household_id,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Dropped queued {mutation_type} after replay failure",
            details={"mutation_type": mutation_type},
            error_message=error_message,
        )

    @staticmethod
    def remote_write_failed(
        household_id: str,
        entity_type: str,
        operation: str,
        error_message: str,
        entity_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMOTE_WRITE_FAILED,
            severity=AuditSeverity.ERROR,
            household_id=household_id,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"Remote {operation} failed",
            details={"operation": operation},
            error_message=error_message,
        )

    @staticmethod
    def remote_read_failed(
        household_id: str,
        entity_type: str,
        error_message: str,
        used_mirror: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMOTE_READ_FAILED,
            severity=AuditSeverity.ERROR,
            household_id=household_id,
            entity_type=entity_type,
            description="Remote read failed",
            details={"used_mirror": used_mirror},
            error_message=error_message,
        )

    @staticmethod
    def mirror_fallback(
        household_id: str,
        entity_type: str,
        row_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MIRROR_FALLBACK,
            severity=AuditSeverity.DEBUG,
            household_id=household_id,
            entity_type=entity_type,
            description=f"Rendered {row_count} cached {entity_type} rows",
            details={"row_count": row_count},
        )

    @staticmethod
    def connectivity_changed(online: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.WENT_ONLINE if online else AuditEventType.WENT_OFFLINE,
            description="Connectivity restored" if online else "Connectivity lost",
        )
