"""Background AI enrichment orchestrator.

Computes suggestions for records off the request path. Work is keyed by
(record_id, kind); every enqueue opens a new cycle for its key and any older
cycle for the same key is discarded, either before it starts or when its
result comes back. Each kind runs under its own timeout and fails alone.
"""

import asyncio
import hashlib
import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Iterable, Optional, Union
from uuid import UUID, uuid4

from cortex.core.config import EnrichmentConfig, enrichment_config_from_settings, get_settings
from cortex.core.logging import get_logger, log_with_context
from cortex.core.results import ComputationFailed
from cortex.core.schemas_records import Record, RecordKind
from cortex.core.schemas_suggestions import (
    AIPreferences,
    Suggestion,
    SuggestionKind,
    SuggestionResult,
    SuggestionStatus,
    WorkflowEvent,
    WorkflowEventType,
    suggestion_id_for,
)
from cortex.db import ai_preferences as ai_preferences_db
from cortex.db import records as records_db
from cortex.db import suggestions as suggestions_db

logger = get_logger(__name__)

SuggestionGenerator = Callable[[SuggestionKind, Record], Awaitable[SuggestionResult]]

# Record fields a suggestion is derived from
CONTENT_FIELDS = {"kind", "title", "description", "status", "payload"}

# Which kinds run for which workflow event, per record category
ENRICHMENT_RULES: dict[tuple[WorkflowEventType, RecordKind], tuple[SuggestionKind, ...]] = {
    (WorkflowEventType.CREATED, RecordKind.POV): (
        SuggestionKind.CONTENT,
        SuggestionKind.RECOMMENDATION,
        SuggestionKind.QUALITY_SCORE,
    ),
    (WorkflowEventType.CREATED, RecordKind.TRR): (
        SuggestionKind.CONTENT,
        SuggestionKind.RECOMMENDATION,
        SuggestionKind.QUALITY_SCORE,
    ),
    (WorkflowEventType.UPDATED, RecordKind.POV): (
        SuggestionKind.RISK,
        SuggestionKind.ANOMALY,
        SuggestionKind.QUALITY_SCORE,
    ),
    (WorkflowEventType.UPDATED, RecordKind.TRR): (
        SuggestionKind.RISK,
        SuggestionKind.ANOMALY,
        SuggestionKind.QUALITY_SCORE,
    ),
}


def hash_content(content: dict[str, Any]) -> str:
    """Stable sha256 of a JSON-serializable dict."""
    canonical = json.dumps(content, sort_keys=True, default=str, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def record_content(record: Record) -> dict[str, Any]:
    """The part of a record that suggestions are computed from."""
    return record.model_dump(mode="json", include=CONTENT_FIELDS)


def kinds_for_event(event: WorkflowEvent) -> tuple[SuggestionKind, ...]:
    """Look up the kinds to compute for a workflow event."""
    return ENRICHMENT_RULES.get((event.event_type, event.category), ())


async def _default_generator(kind: SuggestionKind, record: Record) -> SuggestionResult:
    from cortex.chains.generate_suggestion import generate_suggestion

    return await generate_suggestion(kind, record)


@dataclass
class EnrichmentJob:
    """One computation cycle for a (record, kind) key."""
    record_id: UUID
    kind: SuggestionKind
    cycle_id: UUID
    actor_id: Optional[UUID] = None
    category: Optional[RecordKind] = None
    input_hash: Optional[str] = None
    # Last earlier cycle that wrote the pending row for this key
    superseded_cycle_id: Optional[UUID] = None
    claimed: bool = False

    @property
    def key(self) -> tuple[UUID, SuggestionKind]:
        return (self.record_id, self.kind)


class BackgroundEnrichmentOrchestrator:
    """Queue plus worker tasks that turn enrichment jobs into suggestions.

    enqueue() and on_workflow_event() only touch in-memory state; all store
    access and model calls happen on the workers.
    """

    def __init__(
        self,
        config: Optional[EnrichmentConfig] = None,
        generator: Optional[SuggestionGenerator] = None,
        records_store: Any = None,
        suggestions_store: Any = None,
        preferences_store: Any = None,
    ):
        """
        Args:
            config: Worker count, enable switch and per-kind timeouts
            generator: Async callable computing one suggestion
            records_store: Record reads (defaults to cortex.db.records)
            suggestions_store: Suggestion writes (defaults to cortex.db.suggestions)
            preferences_store: AI preference reads (defaults to cortex.db.ai_preferences)
        """
        self.config = config or EnrichmentConfig()
        self.generator = generator or _default_generator
        self.records_store = records_store or records_db
        self.suggestions_store = suggestions_store or suggestions_db
        self.preferences_store = preferences_store or ai_preferences_db

        self._queue: asyncio.Queue[EnrichmentJob] = asyncio.Queue()
        self._current: dict[tuple[UUID, SuggestionKind], EnrichmentJob] = {}
        self._workers: list[asyncio.Task] = []
        self._running = False
        self._start_time: float | None = None

        self._processed_count = 0
        self._failed_count = 0
        self._cancelled_count = 0
        self._coalesced_count = 0
        self._skipped_count = 0

    @property
    def stats(self) -> dict[str, Any]:
        """Get orchestrator statistics."""
        uptime = time.time() - self._start_time if self._start_time else 0
        return {
            "running": self._running,
            "workers": len(self._workers),
            "queued": self._queue.qsize(),
            "in_flight": len(self._current),
            "processed_count": self._processed_count,
            "failed_count": self._failed_count,
            "cancelled_count": self._cancelled_count,
            "coalesced_count": self._coalesced_count,
            "skipped_count": self._skipped_count,
            "uptime_seconds": round(uptime, 1),
        }

    # ------------------------------------------------------------------
    # Caller side
    # ------------------------------------------------------------------

    def enqueue(
        self,
        record_id: UUID,
        kinds: Iterable[SuggestionKind],
        *,
        actor_id: Optional[UUID] = None,
        category: Optional[RecordKind] = None,
        input_hash: Optional[str] = None,
    ) -> list[UUID]:
        """
        Schedule suggestion computation and return immediately.

        A new cycle supersedes any in-flight cycle for the same (record, kind).
        If the in-flight cycle carries the same input_hash the request is
        coalesced into it instead.

        Returns:
            Cycle ids that were scheduled (empty when disabled or coalesced)
        """
        if not self.config.enabled:
            return []

        scheduled: list[UUID] = []
        for kind in dict.fromkeys(SuggestionKind(k) for k in kinds):
            key = (record_id, kind)
            current = self._current.get(key)

            if input_hash is not None and current is not None and current.input_hash == input_hash:
                self._coalesced_count += 1
                logger.debug(
                    f"Coalesced {kind.value} for {record_id} into cycle {current.cycle_id}",
                    extra={"record_id": str(record_id), "kind": kind.value},
                )
                continue

            superseded = None
            if current is not None:
                superseded = current.cycle_id if current.claimed else current.superseded_cycle_id

            job = EnrichmentJob(
                record_id=record_id,
                kind=kind,
                cycle_id=uuid4(),
                actor_id=actor_id,
                category=category,
                input_hash=input_hash,
                superseded_cycle_id=superseded,
            )
            self._current[key] = job
            self._queue.put_nowait(job)
            scheduled.append(job.cycle_id)

        return scheduled

    def on_workflow_event(self, event: WorkflowEvent) -> list[UUID]:
        """Enqueue the kinds the rule table assigns to this event."""
        kinds = kinds_for_event(event)
        if not kinds:
            return []

        input_hash = hash_content(event.payload) if event.payload else None
        return self.enqueue(
            event.record_id,
            kinds,
            actor_id=event.actor_id,
            category=event.category,
            input_hash=input_hash,
        )

    def cancel_record(self, record_id: UUID) -> int:
        """Drop every in-flight cycle for a record. Returns cycles dropped."""
        keys = [key for key in self._current if key[0] == record_id]
        for key in keys:
            del self._current[key]
        return len(keys)

    # ------------------------------------------------------------------
    # Worker side
    # ------------------------------------------------------------------

    def _is_current(self, job: EnrichmentJob) -> bool:
        return self._current.get(job.key) is job

    def _release(self, job: EnrichmentJob) -> None:
        if self._is_current(job):
            del self._current[job.key]

    def _load_preferences(self, actor_id: UUID) -> AIPreferences:
        return AIPreferences(**self.preferences_store.get_ai_preferences(actor_id))

    def _fail_superseded(self, job: EnrichmentJob, cause: str) -> None:
        """Fail the row an earlier cycle left pending when this cycle will not write it."""
        if job.superseded_cycle_id is None or not self._is_current(job):
            return
        stored = self.suggestions_store.finalize_suggestion(
            job.record_id,
            job.kind.value,
            job.superseded_cycle_id,
            {
                "status": SuggestionStatus.FAILED.value,
                "error": cause,
                "generated_at": datetime.now(timezone.utc).isoformat(),
            },
        )
        if stored is not None:
            log_with_context(
                logger,
                logging.INFO,
                "Failed superseded suggestion cycle",
                record_id=job.record_id,
                kind=job.kind.value,
                cycle_id=job.superseded_cycle_id,
                cause=cause,
            )

    async def process_one(
        self, job: EnrichmentJob
    ) -> Union[Suggestion, ComputationFailed, None]:
        """
        Run one cycle.

        Returns:
            The finalized Suggestion, ComputationFailed, or None when the cycle
            was superseded, opted out, or its record no longer exists
        """
        record_id, kind = job.record_id, job.kind

        if not self._is_current(job):
            self._cancelled_count += 1
            return None

        try:
            try:
                if job.actor_id is not None:
                    prefs = self._load_preferences(job.actor_id)
                    if not prefs.allows(job.category) or kind not in prefs.enabled_kinds:
                        self._skipped_count += 1
                        logger.debug(
                            f"Background AI disabled for user {job.actor_id}, skipping {kind.value}",
                            extra={"record_id": str(record_id), "user_id": str(job.actor_id)},
                        )
                        self._fail_superseded(job, "background AI disabled")
                        return None

                row = self.records_store.get_record(record_id)
                if row is None:
                    self._cancelled_count += 1
                    return None
                record = Record(**row)

                input_hash = job.input_hash or hash_content(record_content(record))
                self.suggestions_store.upsert_pending_suggestion(
                    {
                        "id": str(suggestion_id_for(record_id, kind)),
                        "record_id": str(record_id),
                        "kind": kind.value,
                        "cycle_id": str(job.cycle_id),
                        "input_hash": input_hash,
                    }
                )
                job.claimed = True
            except Exception as e:
                self._fail_superseded(job, f"cycle {job.cycle_id} failed before start: {e}")
                raise

            timeout = self.config.timeout_for(kind.value)
            failure: ComputationFailed | None = None
            try:
                result = await asyncio.wait_for(self.generator(kind, record), timeout=timeout)
            except asyncio.TimeoutError:
                failure = ComputationFailed(kind=kind, cause=f"timed out after {timeout}s")
            except Exception as e:
                failure = ComputationFailed(kind=kind, cause=str(e) or type(e).__name__)

            if not self._is_current(job):
                self._cancelled_count += 1
                return None

            now = datetime.now(timezone.utc).isoformat()
            if failure is None:
                updates = {
                    "status": SuggestionStatus.READY.value,
                    "payload": result.payload,
                    "confidence": result.confidence,
                    "reasoning": result.reasoning,
                    "error": None,
                    "generated_at": now,
                }
            else:
                updates = {
                    "status": SuggestionStatus.FAILED.value,
                    "error": failure.cause,
                    "generated_at": now,
                }

            stored = self.suggestions_store.finalize_suggestion(
                record_id, kind.value, job.cycle_id, updates
            )
            if stored is None:
                self._cancelled_count += 1
                return None

            if failure is not None:
                self._failed_count += 1
                log_with_context(
                    logger,
                    logging.WARNING,
                    "Suggestion computation failed",
                    record_id=record_id,
                    kind=kind.value,
                    cycle_id=job.cycle_id,
                    cause=failure.cause,
                )
                return failure

            self._processed_count += 1
            logger.info(
                f"Suggestion {kind.value} ready for {record_id}",
                extra={"record_id": str(record_id), "kind": kind.value, "cycle_id": str(job.cycle_id)},
            )
            return Suggestion(**stored)

        finally:
            self._release(job)

    async def _worker(self, index: int) -> None:
        while self._running:
            job = await self._queue.get()
            try:
                await self.process_one(job)
            except Exception as e:
                self._failed_count += 1
                logger.exception(
                    f"Enrichment worker {index} error: {e}",
                    extra={"record_id": str(job.record_id), "kind": job.kind.value},
                )
            finally:
                self._queue.task_done()

    async def drain(self) -> None:
        """Wait until every queued job has been processed."""
        await self._queue.join()

    def start(self) -> None:
        """Start worker tasks on the running event loop."""
        if self._running:
            return

        self._running = True
        self._start_time = time.time()
        self._workers = [
            asyncio.create_task(self._worker(i)) for i in range(max(1, self.config.workers))
        ]
        logger.info(
            f"Starting enrichment orchestrator (workers={len(self._workers)}, enabled={self.config.enabled})"
        )

    async def stop(self) -> None:
        """Stop worker tasks. Queued jobs are dropped."""
        logger.info("Stopping enrichment orchestrator...")
        self._running = False
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info("Enrichment orchestrator stopped")


# Global orchestrator instance (for API control)
_orchestrator: BackgroundEnrichmentOrchestrator | None = None


def get_orchestrator() -> BackgroundEnrichmentOrchestrator:
    """Get or create the global orchestrator instance."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = BackgroundEnrichmentOrchestrator(
            config=enrichment_config_from_settings(get_settings())
        )
    return _orchestrator
