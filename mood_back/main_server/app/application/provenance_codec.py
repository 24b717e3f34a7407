# main_server/app/application/provenance_codec.py
"""
ProvenanceRecord <-> JSON document.

Documents use camelCase field names throughout, nested representation and
music structure included.
Datetimes are stored as ISO-8601 strings with their UTC offset.
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from mood_back.main_server.app.domain.jobs_domain import (
    ClassicalProfile,
    EmotionRepresentation,
    MusicMotif,
    MusicSection,
    MusicStructure,
)
from mood_back.main_server.app.domain.provenance_domain import (
    AlbumStage,
    AnalysisStage,
    ImageStage,
    MusicStage,
    ProvenanceRecord,
    SanitizedInput,
    StageError,
)


def _dt_to_str(dt: datetime) -> str:
    return dt.isoformat()


def _str_to_dt(s: str) -> datetime:
    dt = datetime.fromisoformat(s)
    # naive timestamps from older documents are taken as UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _drop_none(d: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in d.items() if v is not None}


# -----------------------------
# representation / structure
# -----------------------------
def representation_to_dict(rep: EmotionRepresentation) -> Dict[str, Any]:
    profile = None
    if rep.classical_profile is not None:
        profile = _drop_none({
            "tempo": rep.classical_profile.tempo,
            "dynamics": rep.classical_profile.dynamics,
            "harmony": rep.classical_profile.harmony,
        })
    return _drop_none({
        "valence": rep.valence,
        "arousal": rep.arousal,
        "focus": rep.focus,
        "motifTags": list(rep.motif_tags),
        "confidence": rep.confidence,
        "classicalProfile": profile,
        "reasoning": rep.reasoning,
    })


def representation_from_dict(d: Dict[str, Any]) -> EmotionRepresentation:
    profile = d.get("classicalProfile")
    return EmotionRepresentation(
        valence=float(d["valence"]),
        arousal=float(d["arousal"]),
        focus=float(d["focus"]),
        motif_tags=tuple(d.get("motifTags") or ()),
        confidence=float(d.get("confidence", 0.5)),
        classical_profile=ClassicalProfile(**profile) if isinstance(profile, dict) else None,
        reasoning=d.get("reasoning"),
    )


def structure_to_dict(s: MusicStructure) -> Dict[str, Any]:
    return _drop_none({
        "key": s.key,
        "tempo": s.tempo,
        "timeSignature": s.time_signature,
        "form": s.form,
        "sections": [
            {
                "name": sec.name,
                "measures": sec.measures,
                "chordProgression": list(sec.chord_progression),
                "melody": {
                    "motifs": [
                        {"degrees": list(m.degrees), "rhythm": list(m.rhythm)}
                        for m in sec.motifs
                    ]
                },
                "dynamics": sec.dynamics,
                "texture": sec.texture,
            }
            for sec in s.sections
        ],
        "instrumentation": s.instrumentation,
        "character": s.character,
        "reasoning": s.reasoning,
    })


def structure_from_dict(d: Dict[str, Any]) -> MusicStructure:
    sections = []
    for sec in d.get("sections") or []:
        motifs = (sec.get("melody") or {}).get("motifs") or []
        sections.append(
            MusicSection(
                name=sec["name"],
                measures=int(sec["measures"]),
                chord_progression=tuple(sec.get("chordProgression") or ()),
                motifs=tuple(
                    MusicMotif(degrees=tuple(m["degrees"]), rhythm=tuple(m["rhythm"]))
                    for m in motifs
                ),
                dynamics=sec.get("dynamics", "mf"),
                texture=sec.get("texture", "simple"),
            )
        )
    return MusicStructure(
        key=d["key"],
        tempo=int(d["tempo"]),
        time_signature=d["timeSignature"],
        form=d["form"],
        sections=tuple(sections),
        instrumentation=d.get("instrumentation", "piano"),
        character=d.get("character", ""),
        reasoning=d.get("reasoning"),
    )


# -----------------------------
# record
# -----------------------------
def record_to_dict(r: ProvenanceRecord) -> Dict[str, Any]:
    doc: Dict[str, Any] = {
        "id": r.id,
        "sessionId": r.session_id,
        "createdAt": _dt_to_str(r.created_at),
        "input": _drop_none({
            "mood": r.input.mood,
            "duration": r.input.duration,
            "timestamp": _dt_to_str(r.input.timestamp),
            "customInput": r.input.free_text,
            "onboardingAnswers": r.input.onboarding,
        }),
        "totalDuration": r.total_duration,
        "success": r.success,
        "errors": [
            {"stage": e.stage, "error": e.error, "timestamp": _dt_to_str(e.timestamp)}
            for e in r.errors
        ],
    }
    if r.analysis is not None:
        a = r.analysis
        doc["analysis"] = {
            "intermediateRepresentation": representation_to_dict(a.representation),
            "reasoning": a.reasoning,
            "timestamp": _dt_to_str(a.timestamp),
            "duration": a.duration,
            "provider": a.provider,
            "model": a.model,
        }
    if r.image_generation is not None:
        i = r.image_generation
        doc["imageGeneration"] = _drop_none({
            "prompt": i.prompt,
            "negativePrompt": i.negative_prompt,
            "stylePreset": i.style_preset,
            "seed": i.seed,
            "reasoning": i.reasoning,
            "jobId": i.job_id,
            "provider": i.provider,
            "model": i.model,
            "resultUrl": i.result_url,
            "timestamp": _dt_to_str(i.timestamp),
            "duration": i.duration,
            "retryCount": i.retry_count,
        })
    if r.music_generation is not None:
        m = r.music_generation
        doc["musicGeneration"] = {
            "structure": structure_to_dict(m.structure),
            "reasoning": m.reasoning,
            "jobId": m.job_id,
            "provider": m.provider,
            "model": m.model,
            "timestamp": _dt_to_str(m.timestamp),
            "duration": m.duration,
            "retryCount": m.retry_count,
        }
    if r.album is not None:
        doc["album"] = {
            "albumId": r.album.album_id,
            "title": r.album.title,
            "timestamp": _dt_to_str(r.album.timestamp),
        }
    return doc


def record_from_dict(d: Dict[str, Any]) -> ProvenanceRecord:
    raw_input = d.get("input") or {}
    created_at = _str_to_dt(d["createdAt"])

    analysis: Optional[AnalysisStage] = None
    if d.get("analysis"):
        a = d["analysis"]
        analysis = AnalysisStage(
            representation=representation_from_dict(a["intermediateRepresentation"]),
            reasoning=a.get("reasoning", ""),
            duration=float(a.get("duration", 0)),
            provider=a.get("provider", "unknown"),
            model=a.get("model", "unknown"),
            timestamp=_str_to_dt(a["timestamp"]),
        )

    image: Optional[ImageStage] = None
    if d.get("imageGeneration"):
        i = d["imageGeneration"]
        image = ImageStage(
            prompt=i.get("prompt", ""),
            negative_prompt=i.get("negativePrompt", ""),
            style_preset=i.get("stylePreset", ""),
            seed=i.get("seed"),
            reasoning=i.get("reasoning", ""),
            job_id=i["jobId"],
            provider=i.get("provider", "unknown"),
            model=i.get("model", "unknown"),
            result_url=i.get("resultUrl", ""),
            duration=float(i.get("duration", 0)),
            retry_count=int(i.get("retryCount", 0)),
            timestamp=_str_to_dt(i["timestamp"]),
        )

    music: Optional[MusicStage] = None
    if d.get("musicGeneration"):
        m = d["musicGeneration"]
        music = MusicStage(
            structure=structure_from_dict(m["structure"]),
            reasoning=m.get("reasoning", ""),
            job_id=m["jobId"],
            provider=m.get("provider", "unknown"),
            model=m.get("model", "unknown"),
            duration=float(m.get("duration", 0)),
            retry_count=int(m.get("retryCount", 0)),
            timestamp=_str_to_dt(m["timestamp"]),
        )

    album: Optional[AlbumStage] = None
    if d.get("album"):
        album = AlbumStage(
            album_id=d["album"]["albumId"],
            title=d["album"].get("title", ""),
            timestamp=_str_to_dt(d["album"]["timestamp"]),
        )

    return ProvenanceRecord(
        id=d["id"],
        session_id=d["sessionId"],
        created_at=created_at,
        input=SanitizedInput(
            timestamp=_str_to_dt(raw_input["timestamp"]) if raw_input.get("timestamp") else created_at,
            mood=raw_input.get("mood"),
            duration=raw_input.get("duration"),
            free_text=raw_input.get("customInput"),
            onboarding=raw_input.get("onboardingAnswers"),
        ),
        analysis=analysis,
        image_generation=image,
        music_generation=music,
        album=album,
        total_duration=float(d.get("totalDuration", 0)),
        success=bool(d.get("success", False)),
        errors=tuple(
            StageError(stage=e["stage"], error=e["error"], timestamp=_str_to_dt(e["timestamp"]))
            for e in d.get("errors") or []
        ),
    )


def dumps_record(record: ProvenanceRecord, *, indent: Optional[int] = None) -> str:
    return json.dumps(record_to_dict(record), ensure_ascii=False, indent=indent)


def dumps_records(records) -> str:
    return json.dumps([record_to_dict(r) for r in records], ensure_ascii=False, separators=(",", ":"))


def loads_records(raw: str) -> list[ProvenanceRecord]:
    data = json.loads(raw)
    if not isinstance(data, list):
        raise ValueError("provenance document must be a JSON list")
    return [record_from_dict(d) for d in data]
