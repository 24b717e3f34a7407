# gen_server/app/providers/midi.py
from __future__ import annotations

import base64
import io
from typing import Any, Dict, List, Sequence

import mido

TICKS_PER_BEAT = 480

MAJOR = [0, 2, 4, 5, 7, 9, 11]
MINOR = [0, 2, 3, 5, 7, 8, 10]
TONICS = {"C": 60, "D": 62, "E": 64, "F": 65, "G": 67, "A": 69, "B": 71}

CHORD_INTERVALS = {
    "i": [0, 3, 7], "I": [0, 4, 7],
    "ii": [2, 5, 9], "II": [2, 6, 9],
    "iii": [4, 7, 11], "III": [4, 8, 11],
    "iv": [5, 8, 12], "IV": [5, 9, 12],
    "v": [7, 10, 14], "V": [7, 11, 14],
    "vi": [9, 12, 16], "VI": [9, 13, 16],
    "vii": [11, 14, 17], "VII": [11, 15, 17],
}

VELOCITY = {"pp": 40, "p": 60, "mp": 75, "mf": 90, "f": 105, "ff": 120}


def _key_info(key: str) -> tuple[int, List[int]]:
    parts = key.split()
    tonic = TONICS.get(parts[0][:1].upper(), 60) if parts else 60
    scale = MINOR if len(parts) > 1 and parts[1].lower() == "minor" else MAJOR
    return tonic, scale


def _chord_notes(symbol: str, scale: Sequence[int], base: int) -> List[int]:
    notes = []
    for interval in CHORD_INTERVALS.get(symbol, CHORD_INTERVALS["I"]):
        degree = interval // 2
        notes.append(base + scale[degree % len(scale)] + (interval // 12) * 12)
    return notes


def _quantize(beats: float) -> float:
    # whole, half, quarter, eighth, sixteenth
    for value in (4, 2, 1, 0.5):
        if beats >= value:
            return value
    return 0.25


def _add_notes(track: mido.MidiTrack, notes: Sequence[int], beats: float, velocity: int) -> None:
    ticks = int(_quantize(beats) * TICKS_PER_BEAT)
    for n in notes:
        track.append(mido.Message("note_on", note=n, velocity=velocity, time=0))
    for i, n in enumerate(notes):
        track.append(mido.Message("note_off", note=n, velocity=0, time=ticks if i == 0 else 0))


def structure_to_midi(structure: Dict[str, Any]) -> str:
    """
    Render a music structure as a single-track Standard MIDI File, base64 encoded.
    Each measure plays its chord (bass octave, softer) then the section motif.
    """
    tonic, scale = _key_info(structure["key"])
    numerator, denominator = (int(x) for x in structure["timeSignature"].split("/"))

    mid = mido.MidiFile(ticks_per_beat=TICKS_PER_BEAT)
    track = mido.MidiTrack()
    mid.tracks.append(track)
    track.append(mido.MetaMessage("set_tempo", tempo=mido.bpm2tempo(structure["tempo"]), time=0))
    track.append(mido.MetaMessage("time_signature", numerator=numerator, denominator=denominator, time=0))
    track.append(mido.Message("program_change", program=0, time=0))

    for section in structure["sections"]:
        velocity = VELOCITY.get(section.get("dynamics", "mf"), 90)
        chords = section.get("chordProgression") or ["I"]
        motifs = (section.get("melody") or {}).get("motifs") or []

        for measure in range(section["measures"]):
            chord = chords[measure % len(chords)]
            _add_notes(track, _chord_notes(chord, scale, tonic - 12), 2, int(velocity * 0.7))

            if motifs:
                motif = motifs[measure % len(motifs)]
                rhythm = motif.get("rhythm") or []
                for i, degree in enumerate(motif["degrees"]):
                    idx = (degree - 1) % len(scale)
                    octave = ((degree - 1) // len(scale)) * 12
                    note = tonic + 12 + scale[idx] + octave
                    _add_notes(track, [note], rhythm[i] if i < len(rhythm) else 1, velocity)

    buf = io.BytesIO()
    mid.save(file=buf)
    return base64.b64encode(buf.getvalue()).decode("ascii")
