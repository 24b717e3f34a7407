# main_server/app/domain/reasoning_domain.py
"""
Human readable "why was this generated" text stored with each provenance stage.
Remote reasoning wins when the service supplied one.
"""
from __future__ import annotations

from typing import Optional

from mood_back.main_server.app.domain.jobs_domain import EmotionRepresentation, ImageResult, MusicStructure


def _describe_scalars(rep: EmotionRepresentation) -> str:
    return (
        f"valence={rep.valence:.2f}, arousal={rep.arousal:.2f}, "
        f"focus={rep.focus:.2f}, confidence={rep.confidence:.2f}"
    )


def analysis_reasoning(rep: EmotionRepresentation, *, mood: str, duration: int) -> str:
    if rep.reasoning:
        return rep.reasoning
    tags = ", ".join(rep.motif_tags) or "none"
    return f"Mood '{mood}' over {duration}s mapped to {_describe_scalars(rep)}; motifs: {tags}"


def image_reasoning(
    result: ImageResult,
    rep: EmotionRepresentation,
    *,
    mood: str,
    style_preset: str,
    degraded: bool,
) -> str:
    source = "session defaults" if degraded else "analysis"
    tags = ", ".join(rep.motif_tags[:4]) or "no motifs"
    text = (
        f"Style '{style_preset}' for mood '{mood}' using {source} ({_describe_scalars(rep)}); "
        f"prompt built around {tags}"
    )
    if result.seed is not None:
        text += f"; seed {result.seed}"
    return text


def music_reasoning(structure: MusicStructure, rep: EmotionRepresentation) -> str:
    if structure.reasoning:
        return structure.reasoning
    mode = "minor" if "minor" in structure.key.lower() else "major"
    return (
        f"{structure.key} ({mode}) follows valence {rep.valence:.2f}; "
        f"{structure.tempo} BPM follows arousal {rep.arousal:.2f}; "
        f"{structure.form} form in {structure.time_signature} follows focus {rep.focus:.2f}"
    )


def album_title(*, title: Optional[str], mood: str) -> str:
    cleaned = (title or "").strip()
    return cleaned or mood
