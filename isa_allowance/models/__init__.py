"""
Data Models Package

This package contains all Pydantic models used by the ISA allowance engine.
All data flowing through the engine must conform to these schemas.
"""

from isa_allowance.models.contribution import (
    ANNUAL_ALLOWANCE,
    ISA_TYPE_INFO,
    LIFETIME_ISA_BONUS_RATE,
    LIFETIME_ISA_MAX,
    AllowanceBreach,
    Contribution,
    DepositEvaluation,
    FlexibleISAState,
    ISAType,
    ISATypeInfo,
)
from isa_allowance.models.violations import (
    CapacityExceeded,
    InvalidInput,
    PolicyRule,
    PolicyViolation,
    RuleViolation,
    ViolationKind,
)
from isa_allowance.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Contribution models
    "ANNUAL_ALLOWANCE",
    "ISA_TYPE_INFO",
    "LIFETIME_ISA_BONUS_RATE",
    "LIFETIME_ISA_MAX",
    "AllowanceBreach",
    "Contribution",
    "DepositEvaluation",
    "FlexibleISAState",
    "ISAType",
    "ISATypeInfo",
    # Violations
    "CapacityExceeded",
    "InvalidInput",
    "PolicyRule",
    "PolicyViolation",
    "RuleViolation",
    "ViolationKind",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
