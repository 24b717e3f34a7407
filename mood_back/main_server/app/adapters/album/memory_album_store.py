# main_server/app/adapters/album/memory_album_store.py
from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone
from typing import Optional

from mood_back.main_server.app.domain.pipeline_domain import AlbumDraft

log = logging.getLogger(__name__)


class InMemoryAlbumStore:
    """Album store for dev runs and tests. Assigns album_<ms>_<hex> ids."""

    def __init__(self) -> None:
        self._albums: dict[str, AlbumDraft] = {}

    async def assemble(self, draft: AlbumDraft) -> str:
        now = datetime.now(timezone.utc)
        album_id = f"album_{int(now.timestamp() * 1000)}_{secrets.token_hex(4)}"
        self._albums[album_id] = draft
        log.info("Album %s assembled (music=%s)", album_id, draft.music is not None)
        return album_id

    def get(self, album_id: str) -> Optional[AlbumDraft]:
        return self._albums.get(album_id)

    def __len__(self) -> int:
        return len(self._albums)
