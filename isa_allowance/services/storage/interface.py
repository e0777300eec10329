"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the allowance engine free of any file or database code
2. Use in-memory storage for testing
3. Swap local JSON files for a real database later

The interface is intentionally simple. The ledger is small (one person's
ISA history), so stores load and save the whole collection. The
orchestrator owns the read-modify-write cycle and serializes it.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from isa_allowance.models.audit import AuditEvent
from isa_allowance.models.contribution import Contribution
from isa_allowance.policy.flexibility import FlexibilityPolicy


class ContributionStoreInterface(ABC):
    """
    Abstract interface for the contribution ledger.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    async def load(self) -> list[Contribution]:
        """
        Load every stored contribution, in insertion order.

        Returns:
            All contributions, including withdrawn and deleted ones.
            An empty list if nothing has been stored yet.

        Raises:
            CorruptDataError: If the stored data cannot be decoded
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def save(self, contributions: list[Contribution]) -> bool:
        """
        Replace the stored ledger with `contributions`.

        Args:
            contributions: The full ledger, in insertion order

        Returns:
            True if saved successfully

        Raises:
            StorageError: If save fails
        """
        pass


class FlexibilityStoreInterface(ABC):
    """Abstract interface for per provider/type flexibility settings."""

    @abstractmethod
    async def load(self) -> dict[str, FlexibilityPolicy]:
        """
        Load all flexibility settings keyed by settings_key.

        Raises:
            CorruptDataError: If the stored data cannot be decoded
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def save(self, policies: dict[str, FlexibilityPolicy]) -> bool:
        """
        Replace all stored flexibility settings.

        Raises:
            StorageError: If save fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one add-contribution action).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Args:
            entity_type: Type of entity (e.g., 'contribution')
            entity_id: The entity's ID

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class CorruptDataError(StorageError):
    """Stored data exists but cannot be decoded."""
    pass
