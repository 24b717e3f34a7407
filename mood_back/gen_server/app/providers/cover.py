# gen_server/app/providers/cover.py
from __future__ import annotations

import base64
from typing import Optional
from xml.sax.saxutils import escape


def _hue(seed: str) -> int:
    acc = 7
    for ch in seed:
        acc = acc * 33 + ord(ch)
    return acc % 360


def placeholder_cover(*, title: str, mood: Optional[str], seed: str, note: Optional[str] = None) -> str:
    """
    Gradient SVG cover as a data URL. The hue is derived from seed, so the
    same seed always yields the same cover.
    """
    hue = _hue(seed)
    safe_title = escape((title or "").strip() or "Mood")[:28]
    safe_mood = escape((mood or "").strip() or "mood")[:24]
    subtitle = escape((note or "Placeholder cover")[:60])

    svg = f"""<?xml version="1.0" encoding="UTF-8"?>
<svg xmlns="http://www.w3.org/2000/svg" width="1024" height="1024" viewBox="0 0 1024 1024">
  <defs>
    <linearGradient id="g" x1="0" y1="0" x2="1" y2="1">
      <stop offset="0%" stop-color="hsl({hue} 70% 52%)"/>
      <stop offset="55%" stop-color="hsl({(hue + 35) % 360} 65% 42%)"/>
      <stop offset="100%" stop-color="hsl({(hue + 120) % 360} 55% 28%)"/>
    </linearGradient>
  </defs>
  <rect width="1024" height="1024" fill="url(#g)"/>
  <circle cx="770" cy="300" r="240" fill="rgba(255,255,255,0.14)"/>
  <g fill="rgba(255,255,255,0.92)" font-family="system-ui, sans-serif">
    <text x="72" y="794" font-size="54" font-weight="700">{safe_title}</text>
    <text x="72" y="858" font-size="28" font-weight="600">{safe_mood}</text>
    <text x="72" y="916" font-size="18">{subtitle}</text>
  </g>
</svg>"""
    encoded = base64.b64encode(svg.encode("utf-8")).decode("ascii")
    return f"data:image/svg+xml;base64,{encoded}"
