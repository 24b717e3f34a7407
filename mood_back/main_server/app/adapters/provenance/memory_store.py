# main_server/app/adapters/provenance/memory_store.py
from __future__ import annotations

from typing import Iterable, Sequence

from mood_back.main_server.app.application.ports.provenance_store_port import ProvenanceStore
from mood_back.main_server.app.domain.provenance_domain import ProvenanceRecord


class InMemoryProvenanceStore(ProvenanceStore):
    def __init__(self, records: Iterable[ProvenanceRecord] = ()):
        self._records: list[ProvenanceRecord] = list(records)
        self.save_count = 0

    async def load_all(self) -> list[ProvenanceRecord]:
        return list(self._records)

    async def save_all(self, records: Sequence[ProvenanceRecord]) -> None:
        self._records = list(records)
        self.save_count += 1
