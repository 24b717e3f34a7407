# gen_server/app/providers/emotion.py
from __future__ import annotations

from typing import Any, Dict

"""
    Rule-based emotion analysis: mood -> valence/arousal and motif tags,
    session length -> focus.
"""

MOOD_MAPPINGS: Dict[str, Dict[str, Any]] = {
    "calm": {"valence": 0.6, "arousal": 0.2, "tags": ["stillness", "water surface", "lull", "legato"]},
    "happy": {"valence": 0.8, "arousal": 0.7, "tags": ["light", "hope", "dawn", "allegro"]},
    "anxious": {"valence": -0.4, "arousal": 0.6, "tags": ["tension", "dark clouds", "storm", "dissonance"]},
    "tired": {"valence": -0.2, "arousal": 0.1, "tags": ["melancholy", "shadow", "dusk", "adagio"]},
}
DEFAULT_MOOD = "calm"


def focus_for_duration(duration: int) -> float:
    # longer sessions read as more focused, capped at 0.9
    return round(min(0.9, 0.3 + (duration / 180) * 0.6), 2)


def analyze(mood: str, duration: int) -> Dict[str, Any]:
    mapping = MOOD_MAPPINGS.get(mood.strip().lower(), MOOD_MAPPINGS[DEFAULT_MOOD])
    valence = mapping["valence"]
    arousal = mapping["arousal"]
    return {
        "valence": valence,
        "arousal": arousal,
        "focus": focus_for_duration(duration),
        "motif_tags": list(mapping["tags"]),
        "confidence": 0.5,
        "classical_profile": {
            "tempo": "Allegro" if arousal > 0.5 else "Adagio",
            "dynamics": "forte" if arousal > 0.5 else "piano",
            "harmony": "consonant" if valence > 0 else "dissonant",
        },
    }
