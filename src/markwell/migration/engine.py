"""Resumable migration of legacy highlight markup.

Each page load calls :meth:`MigrationEngine.perform_migration` once. The
engine reads the page's persisted phase and performs only that phase's
step, so a page migrates over several loads::

    NOT_STARTED --(legacy found)--> PHASE_1_CREATED --(next load, count > 0)-->
    PHASE_2_VERIFIED --> COMPLETED

    NOT_STARTED --(nothing found)--> COMPLETED
    PHASE_1_CREATED --(next load, count == 0)--> FAILED --(next load)--> NOT_STARTED

Phase 1 creates new highlights and hides the legacy elements without
removing them. Verification is deferred to the next load so it observes
highlights restored from storage rather than the ones just created.
Only then are the legacy elements unwrapped.

DOM changes inside a step are made without awaiting in between, and the
phase is persisted after them. A persistence failure aborts the pass and
leaves the stored phase untouched, so the next load repeats the step.

Two tabs migrating the same URL at once race on the stored state; the
last write wins.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from markwell.config import MigrationConfig
from markwell.errors import PersistenceError
from markwell.highlights.colors import legacy_color_to_name
from markwell.migration.persistence import PrunablePersistence, state_key
from markwell.migration.state import (
    MigrationPhase,
    MigrationResult,
    MigrationState,
    MigrationStatistics,
)

if TYPE_CHECKING:
    from markwell.highlights.store import HighlightStore
    from markwell.migration.legacy import LegacyMarkupReader
    from markwell.migration.persistence import PersistenceGateway

logger = logging.getLogger(__name__)

# Characters of legacy text kept in the persisted id mapping
_TEXT_PREVIEW_CHARS = 30


class MigrationEngine:
    """Per-page migration state machine.

    Args:
        url: Page URL; normalised into the persistence key.
        store: Highlight store receiving the migrated highlights.
        reader: Access to the page's legacy markup.
        persistence: Async key-value gateway for the page's state.
        config: Migration settings (defaults when omitted).
    """

    def __init__(
        self,
        url: str,
        store: HighlightStore,
        reader: LegacyMarkupReader[Any],
        persistence: PersistenceGateway,
        config: MigrationConfig | None = None,
    ) -> None:
        self.url = url
        self.store = store
        self.reader = reader
        self.persistence = persistence
        self.config = config or MigrationConfig()
        self.key = state_key(url, self.config.state_key_prefix)
        self.statistics = MigrationStatistics()
        self._state = MigrationState()
        self._disposed = False

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def perform_migration(self) -> MigrationResult:
        """Run the step for the persisted phase. Never raises."""
        if self._disposed:
            return MigrationResult(skipped=True, reason="disposed")
        try:
            state = await self._load_state()
            return await self._dispatch(state)
        except PersistenceError as exc:
            return self._aborted(exc)
        except Exception as exc:
            logger.exception("Migration pass for %s failed", self.url)
            return MigrationResult(
                error=str(exc) or type(exc).__name__,
                statistics=self.get_statistics(),
            )

    async def retry_migration(self) -> MigrationResult:
        """Reset the page to NOT_STARTED and run a pass.

        Elements converted by an earlier pass on this page are revealed and
        unmarked and their highlights dropped, so the new pass converts
        each legacy element exactly once.
        """
        if self._disposed:
            return MigrationResult(skipped=True, reason="disposed")
        try:
            await self._save_state(MigrationPhase.NOT_STARTED, {})
        except PersistenceError as exc:
            return self._aborted(exc)

        for element in self.reader.find_migrated():
            new_id = self.reader.new_id_of(element)
            if new_id is not None:
                self.store.remove_highlight(new_id)
            self.reader.reveal(element)
            self.reader.clear_marker(element)
        return await self.perform_migration()

    async def rollback(self, reason: str) -> MigrationResult:
        """Restore every migrated legacy element and persist FAILED.

        Highlights already added to the store are left alone.
        """
        logger.warning("Rolling back migration for %s: %s", self.url, reason)
        restored = 0
        for element in self.reader.find_migrated():
            self.reader.reveal(element)
            self.reader.clear_marker(element)
            restored += 1

        await self._save_state(
            MigrationPhase.FAILED,
            {
                "reason": reason,
                "failed_at": datetime.now(UTC).isoformat(),
                "retry_count": self._state.retry_count,
                "restored": restored,
                "statistics": self.statistics.model_dump(),
            },
        )
        return MigrationResult(
            phase=MigrationPhase.FAILED,
            rolled_back=True,
            reason=reason,
            statistics=self.get_statistics(),
        )

    def get_statistics(self) -> MigrationStatistics:
        return self.statistics.model_copy()

    def dispose(self) -> None:
        """Stop accepting passes (page navigated away)."""
        self._disposed = True

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def _load_state(self) -> MigrationState:
        try:
            raw = await self.persistence.get(self.key)
        except PersistenceError:
            raise
        except Exception as exc:
            msg = f"Failed to read migration state: {exc}"
            raise PersistenceError(msg, key=self.key) from exc

        if raw is None:
            state = MigrationState()
        else:
            try:
                state = MigrationState.model_validate(raw)
            except ValidationError:
                logger.warning("Discarding unreadable migration state for %s", self.url)
                state = MigrationState()

        self._state = state
        self.statistics = state.statistics
        return state

    async def _save_state(
        self, phase: MigrationPhase, metadata: dict[str, Any]
    ) -> MigrationState:
        state = MigrationState(phase=phase, metadata=metadata)
        try:
            await self.persistence.set(self.key, state.model_dump(mode="json"))
        except PersistenceError:
            raise
        except Exception as exc:
            msg = f"Failed to write migration state: {exc}"
            raise PersistenceError(msg, key=self.key) from exc
        self._state = state
        logger.info("Migration for %s -> %s", self.url, phase.value)
        return state

    def _aborted(self, exc: PersistenceError) -> MigrationResult:
        logger.warning("Migration pass for %s aborted, will retry: %s", self.url, exc)
        return MigrationResult(
            phase=self._state.phase,
            error=f"persistence_failure: {exc}",
            statistics=self.get_statistics(),
        )

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    async def _dispatch(self, state: MigrationState) -> MigrationResult:
        match state.phase:
            case MigrationPhase.NOT_STARTED:
                return await self._create_new_highlights()
            case MigrationPhase.PHASE_1_CREATED:
                return await self._verify()
            case MigrationPhase.PHASE_2_VERIFIED:
                return await self._remove_legacy()
            case MigrationPhase.COMPLETED:
                return MigrationResult(
                    phase=MigrationPhase.COMPLETED,
                    completed=True,
                    statistics=self.get_statistics(),
                )
            case MigrationPhase.FAILED:
                return await self._retry_after_failure()
            case _:
                return MigrationResult(skipped=True, reason="unknown_phase")

    async def _create_new_highlights(self) -> MigrationResult:
        """Phase 1: add a highlight per legacy element and hide the element."""
        retry_count = self._state.retry_count
        elements = self.reader.find_legacy()
        self.statistics = MigrationStatistics(legacy_found=len(elements))

        if not elements:
            await self._save_state(
                MigrationPhase.COMPLETED,
                {
                    "reason": "no_legacy_data",
                    "statistics": self.statistics.model_dump(),
                },
            )
            await self._prune_completed_states()
            return MigrationResult(
                phase=MigrationPhase.COMPLETED,
                completed=True,
                skipped=True,
                reason="no_legacy_data",
                statistics=self.get_statistics(),
            )

        migrated: list[tuple[Any, str, str]] = []
        created: list[tuple[Any, str]] = []
        for element in elements:
            text = self.reader.text_of(element)
            existing_id = self.reader.new_id_of(element)
            if existing_id is not None and existing_id in self.store:
                # Already converted by an earlier pass on this page
                migrated.append((element, existing_id, text[:_TEXT_PREVIEW_CHARS]))
                continue
            try:
                color = legacy_color_to_name(self.reader.color_token_of(element))
                new_id = self.store.add_highlight(
                    self.reader.contents_range(element), color
                )
            except Exception:
                logger.exception(
                    "Could not migrate legacy highlight %r",
                    text[:_TEXT_PREVIEW_CHARS],
                )
                new_id = None

            if new_id is None:
                self.statistics.failures += 1
                continue

            self.reader.mark_migrated(element, new_id)
            self.reader.hide(element)
            migrated.append((element, new_id, text[:_TEXT_PREVIEW_CHARS]))
            created.append((element, new_id))
            self.statistics.new_created += 1

        try:
            await self._save_state(
                MigrationPhase.PHASE_1_CREATED,
                {
                    "retry_count": retry_count,
                    "new_highlights": [
                        {"id": new_id, "text": preview} for _, new_id, preview in migrated
                    ],
                    "statistics": self.statistics.model_dump(),
                },
            )
        except PersistenceError:
            # Stored phase is still NOT_STARTED: undo the pass so the page
            # shows its legacy highlights as before
            for element, new_id in created:
                self.reader.reveal(element)
                self.reader.clear_marker(element)
                self.store.remove_highlight(new_id)
            raise

        logger.info(
            "Migration phase 1 for %s: %d found, %d created, %d failed",
            self.url,
            self.statistics.legacy_found,
            self.statistics.new_created,
            self.statistics.failures,
        )
        return MigrationResult(
            phase=MigrationPhase.PHASE_1_CREATED,
            statistics=self.get_statistics(),
        )

    async def _verify(self) -> MigrationResult:
        """Phase 2: confirm highlights came back after the reload."""
        if self.store.get_count() == 0:
            logger.error("No highlights restored for %s; rolling back", self.url)
            return await self.rollback("verification_failed")

        self.statistics.verified = len(self.reader.find_migrated())
        await self._save_state(
            MigrationPhase.PHASE_2_VERIFIED,
            {
                "retry_count": self._state.retry_count,
                "verified": True,
                "statistics": self.statistics.model_dump(),
            },
        )
        return await self._remove_legacy()

    async def _remove_legacy(self) -> MigrationResult:
        """Phase 3: unwrap the hidden legacy elements."""
        removed = 0
        # Unwrapping detaches the nodes highlight ranges point into
        with self.store.preserving_ranges():
            for element in self.reader.find_migrated():
                try:
                    self.reader.unwrap(element)
                except Exception:
                    logger.exception("Failed to remove legacy element")
                    continue
                removed += 1
        self.statistics.removed = removed

        await self._save_state(
            MigrationPhase.COMPLETED,
            {
                "completed_at": datetime.now(UTC).isoformat(),
                "statistics": self.statistics.model_dump(),
            },
        )
        await self._prune_completed_states()
        return MigrationResult(
            phase=MigrationPhase.COMPLETED,
            completed=True,
            statistics=self.get_statistics(),
        )

    async def _retry_after_failure(self) -> MigrationResult:
        retry_count = self._state.retry_count
        max_retries = self.config.max_retries
        if max_retries is not None and retry_count >= max_retries:
            logger.error(
                "Migration for %s failed %d times; not retrying", self.url, retry_count
            )
            return MigrationResult(
                phase=MigrationPhase.FAILED,
                skipped=True,
                reason="max_retries_exceeded",
                statistics=self.get_statistics(),
            )

        logger.warning(
            "Previous migration attempt for %s failed; retrying (%d)",
            self.url,
            retry_count + 1,
        )
        await self._save_state(MigrationPhase.NOT_STARTED, {"retry_count": retry_count + 1})
        return await self._create_new_highlights()

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    async def _prune_completed_states(self) -> None:
        """Drop other pages' COMPLETED markers older than the configured TTL."""
        if not isinstance(self.persistence, PrunablePersistence):
            return
        cutoff = datetime.now(UTC) - timedelta(days=self.config.completed_state_ttl_days)
        prefix = f"{self.config.state_key_prefix}:"
        try:
            stale: list[str] = []
            for key in await self.persistence.keys():
                if key == self.key or not key.startswith(prefix):
                    continue
                try:
                    other = MigrationState.model_validate(await self.persistence.get(key))
                except ValidationError:
                    continue
                timestamp = other.timestamp
                if timestamp.tzinfo is None:
                    timestamp = timestamp.replace(tzinfo=UTC)
                if other.phase is MigrationPhase.COMPLETED and timestamp < cutoff:
                    stale.append(key)
            if stale:
                await self.persistence.remove(stale)
                logger.info("Pruned %d completed migration states", len(stale))
        except Exception:
            logger.exception("Failed to prune completed migration states")
