"""
Local JSON File Storage

DESIGN DECISION: The ledger lives in plain JSON files under one data
directory because:
1. Users can read and back up their own data without tooling
2. No database setup required
3. A whole-blob write is cheap at personal-ledger scale

TRADEOFFS:
- Every save rewrites the whole file (fine for thousands of entries)
- No cross-process locking (the orchestrator serializes in-process writes)

Writes go to a temp file in the same directory and are moved into place
with os.replace, so a crash mid-write never leaves a half-written ledger.

Amounts are stored as decimal strings and dates as ISO-8601. None-valued
optional fields are omitted; explicit empty strings are kept.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional
from uuid import UUID

import structlog
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from isa_allowance.config import get_settings
from isa_allowance.models.audit import AuditEvent
from isa_allowance.models.contribution import Contribution
from isa_allowance.policy.flexibility import FlexibilityPolicy
from isa_allowance.services.storage.interface import (
    AuditStorageInterface,
    ContributionStoreInterface,
    CorruptDataError,
    FlexibilityStoreInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


def file_retry(attempts: int = 3):
    """Only transient OS errors are retried. Decode errors are permanent."""
    return retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )


def _read_text(path: Path) -> Optional[str]:
    """Read a file, or None if it does not exist yet."""
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None


def _write_atomic(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def _append_line(path: Path, line: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as handle:
        handle.write(line + "\n")


def _decode_blob(path: Path, text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise CorruptDataError(f"{path} is not valid JSON: {e}")


class _JsonFile:
    """Shared path and retry handling for the JSON stores."""

    def __init__(self, path: Path, retry_attempts: Optional[int] = None):
        self._path = Path(path)
        if retry_attempts is None:
            retry_attempts = get_settings().storage.retry_attempts
        self._retry = file_retry(retry_attempts)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> Optional[str]:
        return self._retry(_read_text)(self._path)

    def _write(self, text: str) -> None:
        self._retry(_write_atomic)(self._path, text)

    def _append(self, line: str) -> None:
        self._retry(_append_line)(self._path, line)


# =============================================================================
# CONTRIBUTION LEDGER
# =============================================================================

class JsonContributionStore(_JsonFile, ContributionStoreInterface):
    """
    Contribution ledger stored as a JSON array.

    Element order is insertion order and is preserved across load/save.
    """

    def __init__(self, path: Optional[Path] = None, retry_attempts: Optional[int] = None):
        super().__init__(path or get_settings().storage.contributions_path, retry_attempts)

    async def load(self) -> list[Contribution]:
        try:
            text = self._read()
        except OSError as e:
            logger.error("contribution_load_failed", path=str(self._path), error=str(e))
            raise StorageError(f"Failed to read contributions: {e}")

        if text is None or not text.strip():
            return []

        raw = _decode_blob(self._path, text)
        if not isinstance(raw, list):
            raise CorruptDataError(f"{self._path} must hold a JSON array")

        try:
            contributions = [Contribution.model_validate(item) for item in raw]
        except ValidationError as e:
            raise CorruptDataError(f"Invalid contribution record in {self._path}: {e}")

        logger.debug("contributions_loaded", count=len(contributions))
        return contributions

    async def save(self, contributions: list[Contribution]) -> bool:
        payload = [
            c.model_dump(mode="json", exclude_none=True) for c in contributions
        ]
        try:
            self._write(json.dumps(payload, indent=2, ensure_ascii=False))
        except OSError as e:
            logger.error("contribution_save_failed", path=str(self._path), error=str(e))
            raise StorageError(f"Failed to save contributions: {e}")

        logger.debug("contributions_saved", count=len(contributions))
        return True


# =============================================================================
# FLEXIBILITY SETTINGS
# =============================================================================

class JsonFlexibilityStore(_JsonFile, FlexibilityStoreInterface):
    """Flexibility settings stored as a JSON object keyed by settings_key."""

    def __init__(self, path: Optional[Path] = None, retry_attempts: Optional[int] = None):
        super().__init__(path or get_settings().storage.flexibility_path, retry_attempts)

    async def load(self) -> dict[str, FlexibilityPolicy]:
        try:
            text = self._read()
        except OSError as e:
            raise StorageError(f"Failed to read flexibility settings: {e}")

        if text is None or not text.strip():
            return {}

        raw = _decode_blob(self._path, text)
        if not isinstance(raw, dict):
            raise CorruptDataError(f"{self._path} must hold a JSON object")

        try:
            return {
                key: FlexibilityPolicy.model_validate(value)
                for key, value in raw.items()
            }
        except ValidationError as e:
            raise CorruptDataError(f"Invalid flexibility record in {self._path}: {e}")

    async def save(self, policies: dict[str, FlexibilityPolicy]) -> bool:
        payload = {
            key: policy.model_dump(mode="json", exclude_none=True)
            for key, policy in policies.items()
        }
        try:
            self._write(json.dumps(payload, indent=2, ensure_ascii=False))
        except OSError as e:
            logger.error("flexibility_save_failed", path=str(self._path), error=str(e))
            raise StorageError(f"Failed to save flexibility settings: {e}")
        return True


# =============================================================================
# AUDIT LOG
# =============================================================================

class JsonLinesAuditStorage(_JsonFile, AuditStorageInterface):
    """
    Append-only audit log, one JSON object per line.

    Unreadable lines are skipped on read so one bad line never hides
    the rest of the history.
    """

    def __init__(self, path: Optional[Path] = None, retry_attempts: Optional[int] = None):
        super().__init__(path or get_settings().storage.audit_path, retry_attempts)

    async def append_event(self, event: AuditEvent) -> bool:
        try:
            self._append(json.dumps(event.to_record(), ensure_ascii=False))
            return True
        except OSError as e:
            # Don't raise - audit logging should not break the main flow
            logger.warning("audit_append_failed", error=str(e), event_id=str(event.event_id))
            return False

    def _read_events(self) -> list[AuditEvent]:
        try:
            text = self._read()
        except OSError as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for line in (text or "").splitlines():
            if not line.strip():
                continue
            try:
                events.append(AuditEvent.model_validate_json(line))
            except ValidationError:
                logger.warning("audit_line_skipped", path=str(self._path))
                continue
        return events

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._read_events() if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._read_events()
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = self._read_events()
        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
