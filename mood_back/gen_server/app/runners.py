# gen_server/app/runners.py
from __future__ import annotations

from typing import Any, Dict

from mood_back.gen_server.app.job_table import GenJob, Runner
from mood_back.gen_server.app.providers.composer import compose
from mood_back.gen_server.app.providers.cover import placeholder_cover
from mood_back.gen_server.app.providers.emotion import analyze
from mood_back.gen_server.app.providers.midi import structure_to_midi
from mood_back.gen_server.app.providers.prompt_builder import STYLE_PRESETS, build_prompt


def run_analysis(job: GenJob) -> Dict[str, Any]:
    return {
        "result": analyze(job.input["mood"], int(job.input["duration"])),
        "model": "mood-rules-v1",
    }


def run_image(job: GenJob) -> Dict[str, Any]:
    inp = job.input
    prompt, negative_prompt = build_prompt(
        mood=inp.get("mood"),
        duration=int(inp.get("duration", 60)),
        motif_tags=inp.get("motifTags") or (),
        style_preset=inp.get("stylePreset"),
    )
    seed = inp.get("seed")
    preset = STYLE_PRESETS.get(inp.get("stylePreset") or "")
    return {
        "result_url": placeholder_cover(
            title="Mood",
            mood=inp.get("mood"),
            seed=str(seed if seed is not None else job.id),
            note=preset.name if preset else None,
        ),
        "prompt": prompt,
        "negative_prompt": negative_prompt,
        "provider": "placeholder",
        "model": "svg-cover",
    }


def run_music(job: GenJob) -> Dict[str, Any]:
    inp = job.input
    structure = compose(
        valence=float(inp["valence"]),
        arousal=float(inp["arousal"]),
        focus=float(inp["focus"]),
    )
    return {
        "result": structure,
        "midi_data": structure_to_midi(structure),
        "model": "music-rules-v1",
    }


RUNNERS: Dict[str, Runner] = {
    "analysis": run_analysis,
    "image": run_image,
    "music": run_music,
}
