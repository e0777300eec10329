"""
Audit Models for the ISA Allowance Engine

Every write to the ledger, every refused deposit and every historical
allowance breach is recorded as an audit event. This provides:
1. Complete traceability of contribution history
2. A place to surface over-allowance years that were accepted as fact
3. Debugging information when things go wrong

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from isa_allowance.formatting import format_gbp
from isa_allowance.models.contribution import AllowanceBreach, Contribution
from isa_allowance.models.violations import RuleViolation


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Ledger writes
    CONTRIBUTION_ADDED = "contribution_added"
    CONTRIBUTION_UPDATED = "contribution_updated"
    CONTRIBUTION_WITHDRAWN = "contribution_withdrawn"
    CONTRIBUTION_DELETED = "contribution_deleted"

    # Refusals
    DEPOSIT_REJECTED = "deposit_rejected"
    VALIDATION_FAILED = "validation_failed"
    POLICY_VIOLATION = "policy_violation"

    # Historical fact that breaks the allowance
    ALLOWANCE_EXCEEDED = "allowance_exceeded"

    # Settings
    FLEXIBILITY_CHANGED = "flexibility_changed"

    # Gamification
    LEVEL_UP = "level_up"

    # System events
    STORAGE_ERROR = "storage_error"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

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
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'contribution', 'tax_year')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one add-contribution action)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_record(self) -> dict:
        """JSON-safe dict for persistence. Round-trips through model_validate."""
        return self.model_dump(mode="json")


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.contribution_added(contribution, correlation_id)
        event = AuditEventBuilder.allowance_exceeded(breach, correlation_id)
    """

    @staticmethod
    def _contribution_details(contribution: Contribution) -> dict[str, Any]:
        return {
            "isa_type": contribution.isa_type.value,
            "provider": contribution.provider,
            "amount": str(contribution.amount),
            "date": contribution.date.isoformat(),
        }

    @staticmethod
    def contribution_added(
        contribution: Contribution,
        correlation_id: Optional[UUID] = None,
        allocation: Optional[dict[str, str]] = None,
    ) -> AuditEvent:
        details = AuditEventBuilder._contribution_details(contribution)
        if allocation:
            details["allocation"] = allocation
        return AuditEvent(
            event_type=AuditEventType.CONTRIBUTION_ADDED,
            entity_type="contribution",
            entity_id=contribution.id,
            correlation_id=correlation_id,
            description=(
                f"Contribution added: {format_gbp(contribution.amount)} to "
                f"{contribution.provider} {contribution.isa_type.display_name}"
            ),
            details=details,
            is_user_action=True,
        )

    @staticmethod
    def contribution_updated(
        before: Contribution,
        after: Contribution,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONTRIBUTION_UPDATED,
            entity_type="contribution",
            entity_id=after.id,
            correlation_id=correlation_id,
            description=f"Contribution updated: {after.provider}",
            details={
                "before": AuditEventBuilder._contribution_details(before),
                "after": AuditEventBuilder._contribution_details(after),
            },
            is_user_action=True,
        )

    @staticmethod
    def contribution_withdrawn(
        contribution: Contribution,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONTRIBUTION_WITHDRAWN,
            entity_type="contribution",
            entity_id=contribution.id,
            correlation_id=correlation_id,
            description=f"Contribution marked withdrawn: {format_gbp(contribution.amount)}",
            details=AuditEventBuilder._contribution_details(contribution),
            is_user_action=True,
        )

    @staticmethod
    def contribution_deleted(
        contribution: Contribution,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONTRIBUTION_DELETED,
            entity_type="contribution",
            entity_id=contribution.id,
            correlation_id=correlation_id,
            description=f"Contribution deleted: {format_gbp(contribution.amount)}",
            details=AuditEventBuilder._contribution_details(contribution),
            is_user_action=True,
        )

    @staticmethod
    def rule_violated(
        violation: RuleViolation,
        correlation_id: Optional[UUID] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> AuditEvent:
        """Deposit refusal, validation failure or policy violation."""
        event_type = {
            "capacity_exceeded": AuditEventType.DEPOSIT_REJECTED,
            "policy": AuditEventType.POLICY_VIOLATION,
        }.get(violation.kind.value, AuditEventType.VALIDATION_FAILED)
        return AuditEvent(
            event_type=event_type,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=violation.message[:500],
            details={"violation": violation.to_log_dict(), **(details or {})},
            error_code=violation.code,
            is_user_action=True,
        )

    @staticmethod
    def allowance_exceeded(
        breach: AllowanceBreach,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ALLOWANCE_EXCEEDED,
            severity=AuditSeverity.WARNING,
            entity_type="tax_year",
            correlation_id=correlation_id,
            description=(
                f"Tax year {breach.tax_year_label} is {format_gbp(breach.excess)} "
                f"over the {format_gbp(breach.annual_allowance)} allowance"
            ),
            details=breach.model_dump(mode="json"),
        )

    @staticmethod
    def flexibility_changed(
        provider: str,
        isa_type: str,
        is_flexible: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FLEXIBILITY_CHANGED,
            entity_type="isa_account",
            correlation_id=correlation_id,
            description=f"{provider} {isa_type} marked {'flexible' if is_flexible else 'not flexible'}",
            details={
                "provider": provider,
                "isa_type": isa_type,
                "is_flexible": is_flexible,
            },
            is_user_action=True,
        )

    @staticmethod
    def level_up(
        tax_year_label: str,
        previous_level: int,
        new_level: int,
        level_name: str,
        score: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEVEL_UP,
            entity_type="tax_year",
            description=f"Level up: reached level {new_level} ({level_name})",
            details={
                "tax_year": tax_year_label,
                "previous_level": previous_level,
                "new_level": new_level,
                "score": score,
            },
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={"operation": operation},
            correlation_id=correlation_id,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
