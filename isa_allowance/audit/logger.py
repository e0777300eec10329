"""
Audit Logger

DESIGN DECISION: Every write to the ledger and every refused deposit is
logged. This provides:
1. Complete traceability of contribution history
2. Visibility of tax years that went over the allowance through backdating
3. Debugging capability

The audit logger:
- Is async to match the storage interfaces
- Gracefully handles failures (a failing audit store never breaks a write)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from isa_allowance.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from isa_allowance.models.contribution import AllowanceBreach, Contribution
from isa_allowance.models.violations import RuleViolation
from isa_allowance.services.storage import AuditStorageInterface


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


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An AuditStorageInterface (for persistence and user visibility)
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
        self._logger = structlog.get_logger("isa_allowance.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
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

    async def log_contribution_added(
        self,
        contribution: Contribution,
        correlation_id: UUID,
        allocation: Optional[dict[str, str]] = None,
    ) -> None:
        await self.log(AuditEventBuilder.contribution_added(
            contribution=contribution,
            correlation_id=correlation_id,
            allocation=allocation,
        ))

    async def log_contribution_updated(
        self,
        before: Contribution,
        after: Contribution,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.contribution_updated(
            before=before,
            after=after,
            correlation_id=correlation_id,
        ))

    async def log_contribution_withdrawn(
        self,
        contribution: Contribution,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.contribution_withdrawn(
            contribution=contribution,
            correlation_id=correlation_id,
        ))

    async def log_contribution_deleted(
        self,
        contribution: Contribution,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.contribution_deleted(
            contribution=contribution,
            correlation_id=correlation_id,
        ))

    async def log_rule_violation(
        self,
        violation: RuleViolation,
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> None:
        """Log a refused deposit, failed validation or policy violation."""
        await self.log(AuditEventBuilder.rule_violated(
            violation=violation,
            correlation_id=correlation_id,
            details=details,
        ))

    async def log_allowance_breaches(
        self,
        breaches: list[AllowanceBreach],
        correlation_id: UUID,
    ) -> None:
        """One event per tax year over the allowance."""
        for breach in breaches:
            await self.log(AuditEventBuilder.allowance_exceeded(
                breach=breach,
                correlation_id=correlation_id,
            ))

    async def log_flexibility_changed(
        self,
        provider: str,
        isa_type: str,
        is_flexible: bool,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.flexibility_changed(
            provider=provider,
            isa_type=isa_type,
            is_flexible=is_flexible,
            correlation_id=correlation_id,
        ))

    async def log_level_up(
        self,
        tax_year_label: str,
        previous_level: int,
        new_level: int,
        level_name: str,
        score: int,
    ) -> None:
        await self.log(AuditEventBuilder.level_up(
            tax_year_label=tax_year_label,
            previous_level=previous_level,
            new_level=new_level,
            level_name=level_name,
            score=score,
        ))

    async def log_storage_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., adding a contribution).
    Pass it through all subsequent operations.
    """
    return uuid4()
