import base64
import io

import mido
import pytest

from mood_back.gen_server.app.providers.composer import compose
from mood_back.gen_server.app.providers.cover import placeholder_cover
from mood_back.gen_server.app.providers.emotion import analyze, focus_for_duration
from mood_back.gen_server.app.providers.midi import TICKS_PER_BEAT, structure_to_midi
from mood_back.gen_server.app.providers.prompt_builder import build_prompt, complexity_for_duration


@pytest.mark.parametrize("duration,expected", [(0, 0.3), (90, 0.6), (180, 0.9), (600, 0.9)])
def test_focus_grows_with_duration_and_caps(duration, expected):
    assert focus_for_duration(duration) == expected


def test_known_mood_maps_to_scalars_and_tags():
    rep = analyze("Anxious ", 60)

    assert (rep["valence"], rep["arousal"]) == (-0.4, 0.6)
    assert "storm" in rep["motif_tags"]
    assert rep["classical_profile"] == {"tempo": "Allegro", "dynamics": "forte", "harmony": "dissonant"}


def test_unknown_mood_falls_back_to_calm():
    rep = analyze("bewildered", 60)

    assert (rep["valence"], rep["arousal"]) == (0.6, 0.2)
    assert rep["confidence"] == 0.5


def test_prompt_combines_mood_length_tags_and_preset():
    prompt, negative = build_prompt(
        mood="tired", duration=150, motif_tags=["dusk", "shadow"], style_preset="impressionist",
    )

    assert prompt.startswith("tired, muted")
    assert "complex, intricate, detailed" in prompt
    assert "dusk, shadow" in prompt
    assert "impressionist landscape painting" in prompt
    assert negative.startswith("sharp edges")


def test_unknown_preset_uses_abstract_oil():
    prompt, _ = build_prompt(mood=None, duration=30, style_preset="vaporwave")

    assert prompt.startswith("simple, minimalist")
    assert "abstract oil painting" in prompt


@pytest.mark.parametrize("duration,expected", [(59, "simple, minimalist"), (60, "balanced, moderate detail"), (120, "complex, intricate, detailed")])
def test_complexity_bands(duration, expected):
    assert complexity_for_duration(duration) == expected


def test_cover_is_deterministic_per_seed():
    a = placeholder_cover(title="Mood", mood="calm", seed="42")
    b = placeholder_cover(title="Mood", mood="calm", seed="42")
    c = placeholder_cover(title="Mood", mood="calm", seed="43")

    assert a == b
    assert a != c
    svg = base64.b64decode(a.split(",", 1)[1]).decode("utf-8")
    assert "<svg" in svg
    assert ">calm<" in svg


def test_cover_escapes_markup():
    url = placeholder_cover(title="<b>&</b>", mood="calm", seed="1")
    svg = base64.b64decode(url.split(",", 1)[1]).decode("utf-8")

    assert "<b>" not in svg
    assert "&lt;b&gt;&amp;" in svg


def test_negative_valence_composes_in_minor():
    s = compose(valence=-0.4, arousal=0.6, focus=0.4)

    assert s["key"] == "d minor"
    assert s["tempo"] == 108
    assert s["timeSignature"] == "3/4"
    assert s["form"] == "theme-variation"
    assert [sec["name"] for sec in s["sections"]] == ["A", "B"]
    assert s["sections"][0]["chordProgression"] == ["i", "iv", "V", "i"]
    assert s["character"] == "melancholic"


def test_focused_session_gets_reprise_and_common_time():
    s = compose(valence=0.6, arousal=0.2, focus=0.75)

    assert s["key"] == "C major"
    assert s["timeSignature"] == "4/4"
    assert s["form"] == "ABA"
    assert [sec["name"] for sec in s["sections"]] == ["A", "B", "A (reprise)"]
    assert all(sec["dynamics"] == "p" for sec in s["sections"])


def test_midi_is_a_readable_standard_midi_file():
    structure = compose(valence=0.6, arousal=0.2, focus=0.75)

    raw = base64.b64decode(structure_to_midi(structure))

    assert raw[:4] == b"MThd"
    mid = mido.MidiFile(file=io.BytesIO(raw))
    assert mid.ticks_per_beat == TICKS_PER_BEAT
    assert len(mid.tracks) == 1

    messages = list(mid.tracks[0])
    tempo = next(m for m in messages if m.type == "set_tempo")
    assert round(mido.tempo2bpm(tempo.tempo)) == structure["tempo"]
    signature = next(m for m in messages if m.type == "time_signature")
    assert (signature.numerator, signature.denominator) == (4, 4)

    note_ons = [m for m in messages if m.type == "note_on"]
    note_offs = [m for m in messages if m.type == "note_off"]
    # 3 sections x 8 measures, a triad per measure plus the motif
    assert len(note_ons) == len(note_offs) == 24 * (3 + 5)
