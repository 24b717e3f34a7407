# adapters/provenance/redis_store.py
from __future__ import annotations

import logging
from typing import Sequence

from redis.asyncio import Redis

from mood_back.main_server.app.application.ports.provenance_store_port import ProvenanceStore
from mood_back.main_server.app.application.provenance_codec import dumps_records, loads_records
from mood_back.main_server.app.domain.provenance_domain import ProvenanceRecord

log = logging.getLogger(__name__)


class RedisProvenanceStore(ProvenanceStore):
    """
    Redis implementation of the provenance store.

    Key layout:
      {key}   STRING  JSON list of every provenance record

    The whole list is rewritten on each save, mirroring how the log is
    loaded wholesale at startup.
    """

    def __init__(self, redis: Redis, *, key: str = "mood:provenance"):
        self._r = redis
        self._key = key

    async def load_all(self) -> list[ProvenanceRecord]:
        raw = await self._r.get(self._key)
        if not raw:
            return []
        if isinstance(raw, (bytes, bytearray)):
            raw = raw.decode()
        try:
            return loads_records(raw)
        except (ValueError, KeyError, TypeError) as e:
            log.error("Unreadable provenance document at %s: %s", self._key, e)
            raise

    async def save_all(self, records: Sequence[ProvenanceRecord]) -> None:
        if not records:
            await self._r.delete(self._key)
            return
        await self._r.set(self._key, dumps_records(records))
