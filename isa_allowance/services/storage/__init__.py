"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Local JSON files are the default backend; in-memory stores serve tests and
embedding. Designed to be swappable.
"""

from isa_allowance.services.storage.interface import (
    AuditStorageInterface,
    ContributionStoreInterface,
    CorruptDataError,
    FlexibilityStoreInterface,
    NotFoundError,
    StorageError,
)
from isa_allowance.services.storage.json_file import (
    JsonContributionStore,
    JsonFlexibilityStore,
    JsonLinesAuditStorage,
)
from isa_allowance.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryContributionStore,
    InMemoryFlexibilityStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "ContributionStoreInterface",
    "FlexibilityStoreInterface",
    # Exceptions
    "CorruptDataError",
    "NotFoundError",
    "StorageError",
    # JSON file implementation
    "JsonContributionStore",
    "JsonFlexibilityStore",
    "JsonLinesAuditStorage",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryContributionStore",
    "InMemoryFlexibilityStore",
]
