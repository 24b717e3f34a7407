# app/application/ports/provenance_store_port.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from mood_back.main_server.app.domain.provenance_domain import ProvenanceRecord


class ProvenanceStore(ABC):
    """
    Persistent home of the provenance records.

    The log is loaded wholesale at startup and rewritten wholesale on every
    mutation, so the port only needs these two operations.
    """

    @abstractmethod
    async def load_all(self) -> list[ProvenanceRecord]:
        ...

    @abstractmethod
    async def save_all(self, records: Sequence[ProvenanceRecord]) -> None:
        ...
