# main_server/app/application/provenance_log.py
from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from mood_back.main_server.app.application.provenance_codec import dumps_record
from mood_back.main_server.app.application.ports.provenance_store_port import ProvenanceStore
from mood_back.main_server.app.domain.errors_domain import ProvenanceLogNotFoundError
from mood_back.main_server.app.domain.provenance_domain import (
    AppendError,
    ClearRecords,
    CreateRecord,
    DeleteRecord,
    ProvenanceCommand,
    ProvenanceRecord,
    ProvenanceSummary,
    PurgeExpired,
    Records,
    StageError,
    UpdateRecord,
    apply_command,
    sanitize_input,
    summarize,
)

log = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 30

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_log_id(now: datetime) -> str:
    return f"log_{int(now.timestamp() * 1000)}_{uuid.uuid4().hex[:9]}"


class ProvenanceLog:
    """
    Per-session causal records of the generation pipeline.

    Every mutation is a command applied to an immutable tuple of records; the
    resulting tuple replaces the current one in a single step, then the whole
    collection is written to the store. Build it with ``await ProvenanceLog.open(...)``
    so the retention sweep has run before anything reads it.
    """

    def __init__(
        self,
        store: ProvenanceStore,
        *,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        clock: Clock = _utcnow,
    ) -> None:
        self._store = store
        self._retention = timedelta(days=retention_days)
        self._clock = clock
        self._records: Records = ()
        self._save_lock = asyncio.Lock()
        self._loaded = False

    @classmethod
    async def open(
        cls,
        store: ProvenanceStore,
        *,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        clock: Clock = _utcnow,
    ) -> "ProvenanceLog":
        plog = cls(store, retention_days=retention_days, clock=clock)
        await plog.load()
        return plog

    # -----------------------------
    # load / persist
    # -----------------------------
    async def load(self) -> None:
        loaded = tuple(await self._store.load_all())
        kept = apply_command(loaded, PurgeExpired(now=self._clock(), retention=self._retention))
        self._records = kept
        self._loaded = True

        dropped = len(loaded) - len(kept)
        if dropped:
            log.info("Retention sweep dropped %d provenance record(s) older than %s", dropped, self._retention)
            await self._persist()
        log.info("Provenance log loaded: %d record(s)", len(kept))

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            raise RuntimeError("ProvenanceLog used before load(); use ProvenanceLog.open()")

    async def _persist(self) -> None:
        # saves are serialized; each writes the collection current at lock time
        async with self._save_lock:
            await self._store.save_all(list(self._records))

    async def _apply(self, command: ProvenanceCommand) -> None:
        self._ensure_loaded()
        try:
            self._records = apply_command(self._records, command)
        except KeyError as e:
            raise ProvenanceLogNotFoundError(str(e.args[0])) from None
        await self._persist()

    # -----------------------------
    # commands
    # -----------------------------
    async def create(
        self,
        session_id: str,
        *,
        timestamp: Optional[datetime] = None,
        mood: Optional[str] = None,
        duration: Optional[int] = None,
        free_text: Optional[str] = None,
        onboarding: Optional[object] = None,
    ) -> str:
        now = self._clock()
        record = ProvenanceRecord(
            id=_new_log_id(now),
            session_id=session_id,
            created_at=now,
            input=sanitize_input(
                timestamp=timestamp or now,
                mood=mood,
                duration=duration,
                free_text=free_text,
                onboarding=onboarding,
            ),
        )
        await self._apply(CreateRecord(record))
        log.info("Created provenance log %s for session %s", record.id, session_id)
        return record.id

    async def update(self, log_id: str, **changes: Any) -> None:
        """
        Merge stage payloads into a record. total_duration is recomputed from
        whichever stages are present after the merge.
        """
        await self._apply(UpdateRecord(log_id=log_id, changes=changes))
        log.debug("Updated provenance log %s: %s", log_id, sorted(changes))

    async def append_error(self, log_id: str, stage: str, message: str) -> None:
        error = StageError(stage=stage, error=message, timestamp=self._clock())
        await self._apply(AppendError(log_id=log_id, error=error))
        log.info("Error recorded on %s at stage %s", log_id, stage)

    async def delete(self, log_id: str) -> None:
        await self._apply(DeleteRecord(log_id))
        log.info("Deleted provenance log %s", log_id)

    async def clear_all(self) -> None:
        count = len(self._records)
        await self._apply(ClearRecords())
        log.info("Cleared %d provenance log(s)", count)

    # -----------------------------
    # reads
    # -----------------------------
    @property
    def records(self) -> Records:
        self._ensure_loaded()
        return self._records

    def get(self, log_id: str) -> Optional[ProvenanceRecord]:
        self._ensure_loaded()
        return next((r for r in self._records if r.id == log_id), None)

    def get_by_session(self, session_id: str) -> Optional[ProvenanceRecord]:
        """Most recent record of the session."""
        self._ensure_loaded()
        matches = [r for r in self._records if r.session_id == session_id]
        return matches[-1] if matches else None

    def summaries(self) -> list[ProvenanceSummary]:
        self._ensure_loaded()
        return [summarize(r) for r in self._records]

    def export(self, log_id: str) -> str:
        record = self.get(log_id)
        if record is None:
            raise ProvenanceLogNotFoundError(log_id)
        return dumps_record(record, indent=2)
