"""
In-Memory Storage

Implementations of the storage interfaces that keep everything in process
memory. Used by the tests and by callers embedding the engine without a
data directory.

Stored values are copied on the way in and out so callers can never
mutate the "persisted" state behind the store's back.
"""

from typing import Optional
from uuid import UUID

from isa_allowance.models.audit import AuditEvent
from isa_allowance.models.contribution import Contribution
from isa_allowance.policy.flexibility import FlexibilityPolicy
from isa_allowance.services.storage.interface import (
    AuditStorageInterface,
    ContributionStoreInterface,
    FlexibilityStoreInterface,
)


class InMemoryContributionStore(ContributionStoreInterface):

    def __init__(self, contributions: Optional[list[Contribution]] = None):
        self._contributions = [c.model_copy() for c in contributions or []]
        self.save_count = 0

    async def load(self) -> list[Contribution]:
        return [c.model_copy() for c in self._contributions]

    async def save(self, contributions: list[Contribution]) -> bool:
        self._contributions = [c.model_copy() for c in contributions]
        self.save_count += 1
        return True


class InMemoryFlexibilityStore(FlexibilityStoreInterface):

    def __init__(self, policies: Optional[dict[str, FlexibilityPolicy]] = None):
        self._policies = dict(policies or {})

    async def load(self) -> dict[str, FlexibilityPolicy]:
        # FlexibilityPolicy is frozen, a shallow copy of the mapping is enough
        return dict(self._policies)

    async def save(self, policies: dict[str, FlexibilityPolicy]) -> bool:
        self._policies = dict(policies)
        return True


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of events."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return sorted(
            (e for e in self.events if e.correlation_id == correlation_id),
            key=lambda e: e.timestamp,
        )

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        return sorted(
            (
                e for e in self.events
                if e.entity_type == entity_type and e.entity_id == entity_id
            ),
            key=lambda e: e.timestamp,
        )

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
