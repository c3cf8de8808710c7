"""
Audit Logger

DESIGN DECISION: Every offline-sync step is logged.
This provides:
1. Traceability of queued writes and what happened to them on replay
2. Visibility into replay failures, which are never shown to the user
3. Debugging capability for connectivity problems

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace one reconciliation pass
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from household_ledger.models.audit import AuditEvent, AuditEventBuilder
from household_ledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through the stdlib root logger at `level`."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper()))


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence), when configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("household_ledger.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        severity = event.severity.value
        if severity in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif severity == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif severity == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_mutation_queued(
        self,
        household_id: str,
        entity_type: str,
        mutation_type: str,
        entity_id: Optional[str],
        queue_length: int,
    ) -> None:
        await self.log(AuditEventBuilder.mutation_queued(
            household_id=household_id,
            entity_type=entity_type,
            mutation_type=mutation_type,
            entity_id=entity_id,
            queue_length=queue_length,
        ))

    async def log_persistence_failed(
        self,
        household_id: str,
        entity_type: str,
        error_message: str,
    ) -> None:
        await self.log(AuditEventBuilder.persistence_failed(
            household_id=household_id,
            entity_type=entity_type,
            error_message=error_message,
        ))

    async def log_reconciliation_started(
        self,
        household_id: str,
        entity_type: str,
        pending: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.reconciliation_started(
            household_id=household_id,
            entity_type=entity_type,
            pending=pending,
            correlation_id=correlation_id,
        ))

    async def log_reconciliation_completed(
        self,
        household_id: str,
        entity_type: str,
        applied: int,
        dropped: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.reconciliation_completed(
            household_id=household_id,
            entity_type=entity_type,
            applied=applied,
            dropped=dropped,
            correlation_id=correlation_id,
        ))

    async def log_reconciliation_skipped(
        self,
        household_id: str,
        entity_type: str,
        reason: str,
    ) -> None:
        await self.log(AuditEventBuilder.reconciliation_skipped(
            household_id=household_id,
            entity_type=entity_type,
            reason=reason,
        ))

    async def log_replay_dropped(
        self,
        household_id: str,
        entity_type: str,
        mutation_type: str,
        entity_id: Optional[str],
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.replay_dropped(
            household_id=household_id,
            entity_type=entity_type,
            mutation_type=mutation_type,
            entity_id=entity_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_remote_write_failed(
        self,
        household_id: str,
        entity_type: str,
        operation: str,
        error_message: str,
        entity_id: Optional[str] = None,
    ) -> None:
        await self.log(AuditEventBuilder.remote_write_failed(
            household_id=household_id,
            entity_type=entity_type,
            operation=operation,
            error_message=error_message,
            entity_id=entity_id,
        ))

    async def log_remote_read_failed(
        self,
        household_id: str,
        entity_type: str,
        error_message: str,
        used_mirror: bool,
    ) -> None:
        await self.log(AuditEventBuilder.remote_read_failed(
            household_id=household_id,
            entity_type=entity_type,
            error_message=error_message,
            used_mirror=used_mirror,
        ))

    async def log_mirror_fallback(
        self,
        household_id: str,
        entity_type: str,
        row_count: int,
    ) -> None:
        await self.log(AuditEventBuilder.mirror_fallback(
            household_id=household_id,
            entity_type=entity_type,
            row_count=row_count,
        ))

    async def log_connectivity_changed(self, online: bool) -> None:
        await self.log(AuditEventBuilder.connectivity_changed(online))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a reconciliation pass and pass it to every
    event the pass logs.
    """
    return uuid4()
