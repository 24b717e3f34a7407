# gen_server/app/providers/composer.py
from __future__ import annotations

from typing import Any, Dict, List

"""
    Rule-based music structure from the emotion scalars.
      valence -> key (minor below zero)
      arousal -> tempo and dynamics
      focus   -> time signature and form
"""


def _dynamics(arousal: float) -> str:
    if arousal < 0.3:
        return "p"
    if arousal > 0.7:
        return "f"
    return "mf"


def _character(valence: float, arousal: float) -> str:
    if valence < 0:
        return "melancholic"
    if arousal < 0.5:
        return "uplifting and calm"
    return "energetic"


def compose(*, valence: float, arousal: float, focus: float) -> Dict[str, Any]:
    minor = valence < 0
    dynamics = _dynamics(arousal)
    form = "ABA" if focus > 0.5 else "theme-variation"

    section_a = {
        "name": "A",
        "measures": 8,
        "chordProgression": ["i", "iv", "V", "i"] if minor else ["I", "IV", "V", "I"],
        "melody": {
            "motifs": [
                {
                    "degrees": [5, 4, 3, 2, 1] if minor else [1, 3, 5, 3, 1],
                    "rhythm": [1, 1, 1, 1, 2],
                }
            ]
        },
        "dynamics": dynamics,
        "texture": "simple",
    }
    section_b = {
        "name": "B",
        "measures": 8,
        "chordProgression": ["VI", "iv", "V", "i"] if minor else ["vi", "IV", "I", "V"],
        "melody": {"motifs": [{"degrees": [3, 5, 6, 5, 3], "rhythm": [0.5, 0.5, 1, 1, 2]}]},
        "dynamics": dynamics,
        "texture": "simple",
    }

    sections: List[Dict[str, Any]] = [section_a, section_b]
    if form == "ABA":
        sections.append(dict(section_a, name="A (reprise)"))

    key = "d minor" if minor else "C major"
    tempo = round(60 + arousal * 80)
    time_signature = "4/4" if focus > 0.6 else "3/4"
    return {
        "key": key,
        "tempo": tempo,
        "timeSignature": time_signature,
        "form": form,
        "sections": sections,
        "instrumentation": "piano",
        "character": _character(valence, arousal),
        "reasoning": (
            f"{key} for valence {valence:.2f}, {tempo} BPM for arousal {arousal:.2f}, "
            f"{form} in {time_signature} for focus {focus:.2f}"
        ),
    }
