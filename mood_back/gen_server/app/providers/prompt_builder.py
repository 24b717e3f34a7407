# gen_server/app/providers/prompt_builder.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence


@dataclass(frozen=True)
class StylePreset:
    name: str
    prompt_suffix: str
    negative_prompt: str


STYLE_PRESETS = {
    "abstract-oil": StylePreset(
        name="Abstract Oil Painting",
        prompt_suffix="abstract oil painting, thick brushstrokes, rich textures, expressive colors, modern art style, museum quality",
        negative_prompt="photorealistic, photography, realistic, detailed faces, text, watermark",
    ),
    "impressionist": StylePreset(
        name="Impressionist Landscape",
        prompt_suffix="impressionist landscape painting, soft brushwork, natural light, pastoral scene, claude monet style, plein air",
        negative_prompt="sharp edges, photorealistic, modern, digital art, text, watermark",
    ),
    "romantic-landscape": StylePreset(
        name="Classical Romantic Landscape",
        prompt_suffix="romantic landscape painting, dramatic sky, sublime nature, classical composition, JMW Turner style, oil on canvas",
        negative_prompt="modern, minimal, abstract, photography, text, watermark",
    ),
    "minimal-abstract": StylePreset(
        name="Monochrome Minimal Abstract",
        prompt_suffix="minimal abstract art, monochromatic, geometric shapes, clean composition, modernist, high contrast",
        negative_prompt="busy, colorful, realistic, detailed, ornate, text, watermark",
    ),
}
DEFAULT_STYLE = "abstract-oil"

MOOD_DESCRIPTORS = {
    "calm": "calm, peaceful, serene, tranquil, gentle",
    "happy": "joyful, vibrant, energetic, bright, uplifting",
    "anxious": "anxious, turbulent, uncertain, tense, restless",
    "tired": "tired, muted, subdued, melancholic, quiet",
}


def complexity_for_duration(duration: int) -> str:
    if duration < 60:
        return "simple, minimalist"
    if duration < 120:
        return "balanced, moderate detail"
    return "complex, intricate, detailed"


def build_prompt(
    *,
    mood: Optional[str],
    duration: int = 60,
    motif_tags: Sequence[str] = (),
    style_preset: Optional[str] = None,
) -> tuple[str, str]:
    """Returns (prompt, negative_prompt). Unknown presets fall back to abstract-oil."""
    preset = STYLE_PRESETS.get(style_preset or DEFAULT_STYLE, STYLE_PRESETS[DEFAULT_STYLE])

    parts = []
    descriptor = MOOD_DESCRIPTORS.get((mood or "").strip().lower())
    if descriptor:
        parts.append(descriptor)
    parts.append(complexity_for_duration(duration))
    if motif_tags:
        parts.append(", ".join(motif_tags))

    return f"{', '.join(parts)}, {preset.prompt_suffix}", preset.negative_prompt
