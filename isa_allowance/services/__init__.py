"""Services package."""

from isa_allowance.services.storage import (
    AuditStorageInterface,
    ContributionStoreInterface,
    CorruptDataError,
    FlexibilityStoreInterface,
    InMemoryAuditStorage,
    InMemoryContributionStore,
    InMemoryFlexibilityStore,
    JsonContributionStore,
    JsonFlexibilityStore,
    JsonLinesAuditStorage,
    NotFoundError,
    StorageError,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "ContributionStoreInterface",
    "CorruptDataError",
    "FlexibilityStoreInterface",
    "InMemoryAuditStorage",
    "InMemoryContributionStore",
    "InMemoryFlexibilityStore",
    "JsonContributionStore",
    "JsonFlexibilityStore",
    "JsonLinesAuditStorage",
    "NotFoundError",
    "StorageError",
]
