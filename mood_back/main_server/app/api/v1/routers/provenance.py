# main_server/app/api/v1/routers/provenance.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, ConfigDict, Field

from mood_back.main_server.app.api.v1.deps import get_provenance_log
from mood_back.main_server.app.application.provenance_codec import record_to_dict
from mood_back.main_server.app.application.provenance_log import ProvenanceLog
from mood_back.main_server.app.domain.errors_domain import ProvenanceLogNotFoundError

router = APIRouter(prefix="/v1/provenance", tags=["provenance"])


class ProvenanceSummaryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    session_id: str = Field(alias="sessionId")
    created_at: datetime = Field(alias="createdAt")
    success: bool
    total_duration: float = Field(alias="totalDuration")
    album_id: Optional[str] = Field(default=None, alias="albumId")


@router.get("", response_model=List[ProvenanceSummaryResponse])
async def list_provenance(plog: ProvenanceLog = Depends(get_provenance_log)):
    return [
        ProvenanceSummaryResponse(
            id=s.id,
            session_id=s.session_id,
            created_at=s.created_at,
            success=s.success,
            total_duration=s.total_duration,
            album_id=s.album_id,
        )
        for s in plog.summaries()
    ]


@router.get("/sessions/{session_id}")
async def get_session_provenance(
    session_id: str,
    plog: ProvenanceLog = Depends(get_provenance_log),
) -> Dict[str, Any]:
    record = plog.get_by_session(session_id)
    if record is None:
        raise HTTPException(status_code=404, detail="No provenance for session")
    return record_to_dict(record)


@router.get("/{log_id}")
async def get_provenance(
    log_id: str,
    plog: ProvenanceLog = Depends(get_provenance_log),
) -> Dict[str, Any]:
    record = plog.get(log_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Provenance log not found")
    return record_to_dict(record)


@router.get("/{log_id}/export")
async def export_provenance(
    log_id: str,
    plog: ProvenanceLog = Depends(get_provenance_log),
):
    try:
        document = plog.export(log_id)
    except ProvenanceLogNotFoundError:
        raise HTTPException(status_code=404, detail="Provenance log not found")
    return Response(
        content=document,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="provenance-{log_id}.json"'},
    )


@router.delete("/{log_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_provenance(
    log_id: str,
    plog: ProvenanceLog = Depends(get_provenance_log),
):
    if plog.get(log_id) is None:
        raise HTTPException(status_code=404, detail="Provenance log not found")
    await plog.delete(log_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def clear_provenance(plog: ProvenanceLog = Depends(get_provenance_log)):
    await plog.clear_all()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
