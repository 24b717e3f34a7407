from __future__ import annotations

from typing import Protocol

from mood_back.main_server.app.domain.pipeline_domain import AlbumDraft


# album store that receives the assembled image + music
class AlbumAssemblerPort(Protocol):
    async def assemble(self, draft: AlbumDraft) -> str:
        """Persist the album and return the identifier the store assigned."""
        ...
