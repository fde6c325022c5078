"""Persisted migration state and the result descriptor of a pass."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class MigrationPhase(StrEnum):
    """Stages of the multi-load migration."""

    NOT_STARTED = "not_started"
    # New highlights created, legacy elements hidden but still present
    PHASE_1_CREATED = "phase_1"
    # New highlights confirmed after a reload
    PHASE_2_VERIFIED = "phase_2"
    # Legacy elements removed
    COMPLETED = "completed"
    # Rolled back; retried on the next pass
    FAILED = "failed"


class MigrationStatistics(BaseModel):
    """Counters accumulated across the phases of one migration attempt."""

    legacy_found: int = 0
    new_created: int = 0
    verified: int = 0
    removed: int = 0
    failures: int = 0


class MigrationState(BaseModel):
    """Per-page state as stored under ``<prefix>:<normalized url>``."""

    phase: MigrationPhase = MigrationPhase.NOT_STARTED
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def retry_count(self) -> int:
        value = self.metadata.get("retry_count", 0)
        return value if isinstance(value, int) and value >= 0 else 0

    @property
    def statistics(self) -> MigrationStatistics:
        raw = self.metadata.get("statistics")
        if isinstance(raw, dict):
            return MigrationStatistics.model_validate(raw)
        return MigrationStatistics()


@dataclass(frozen=True)
class MigrationResult:
    """What one ``perform_migration()`` pass did.

    Attributes:
        phase: Phase persisted at the end of the pass (None if unknown).
        completed: The page is fully migrated.
        skipped: Nothing needed doing.
        rolled_back: Verification failed and legacy markup was restored.
        reason: Machine-readable explanation for skips and rollbacks.
        error: Description of an aborted pass.
        statistics: Counters at the end of the pass.
    """

    phase: MigrationPhase | None = None
    completed: bool = False
    skipped: bool = False
    rolled_back: bool = False
    reason: str | None = None
    error: str | None = None
    statistics: MigrationStatistics = field(default_factory=MigrationStatistics)

    @property
    def ok(self) -> bool:
        return self.error is None
