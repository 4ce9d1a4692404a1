"""Funscript loading, intensity analysis and heatmap rendering."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from pathlib import Path

from PIL import Image

_WHITE_REF = (0.95047, 1.00000, 1.08883)
_TICK_MS = 600000


class FunscriptError(ValueError):
    """Raised when a funscript file cannot be used."""


def _linearize(v: float) -> float:
    if v <= 0.04045:
        return v / 12.92
    return ((v + 0.055) / 1.055) ** 2.4


def _delinearize(v: float) -> float:
    if v <= 0.0031308:
        return 12.92 * v
    return 1.055 * (v ** (1.0 / 2.4)) - 0.055


def _lab_f(t: float) -> float:
    if t > (6.0 / 29.0) ** 3:
        return math.copysign(abs(t) ** (1.0 / 3.0), t)
    return t / 3.0 * (29.0 / 6.0) ** 2 + 4.0 / 29.0


def _lab_finv(t: float) -> float:
    if t > 6.0 / 29.0:
        return t * t * t
    return 3.0 * (6.0 / 29.0) ** 2 * (t - 4.0 / 29.0)


def _interp_angle(a0: float, a1: float, t: float) -> float:
    delta = math.fmod(math.fmod(a1 - a0, 360.0) + 540.0, 360.0) - 180.0
    return math.fmod(a0 + t * delta + 360.0, 360.0)


@dataclass(frozen=True)
class Color:
    """An sRGB color with channels in the range 0..1."""

    r: float
    g: float
    b: float

    @classmethod
    def from_hex(cls, text: str) -> "Color":
        value = text.lstrip("#")
        if len(value) == 3:
            value = "".join(ch * 2 for ch in value)
        if len(value) != 6:
            raise ValueError(f"invalid hex color: {text!r}")
        return cls(*(int(value[i:i + 2], 16) / 255.0 for i in (0, 2, 4)))

    def to_rgb255(self) -> tuple[int, int, int]:
        return tuple(int(c * 255.0 + 0.5) for c in (self.r, self.g, self.b))

    def clamped(self) -> "Color":
        return Color(*(min(max(c, 0.0), 1.0) for c in (self.r, self.g, self.b)))

    def _xyz(self) -> tuple[float, float, float]:
        r, g, b = (_linearize(c) for c in (self.r, self.g, self.b))
        return (
            0.4124564 * r + 0.3575761 * g + 0.1804375 * b,
            0.2126729 * r + 0.7151522 * g + 0.0721750 * b,
            0.0193339 * r + 0.1191920 * g + 0.9503041 * b,
        )

    def _lab(self) -> tuple[float, float, float]:
        x, y, z = self._xyz()
        fy = _lab_f(y / _WHITE_REF[1])
        fx = _lab_f(x / _WHITE_REF[0])
        fz = _lab_f(z / _WHITE_REF[2])
        return 1.16 * fy - 0.16, 5.0 * (fx - fy), 2.0 * (fy - fz)

    @classmethod
    def _from_lab(cls, l: float, a: float, b: float) -> "Color":
        l1 = (l + 0.16) / 1.16
        x = _WHITE_REF[0] * _lab_finv(l1 + a / 5.0)
        y = _WHITE_REF[1] * _lab_finv(l1)
        z = _WHITE_REF[2] * _lab_finv(l1 - b / 2.0)
        r = 3.2404542 * x - 1.5371385 * y - 0.4985314 * z
        g = -0.9692660 * x + 1.8760108 * y + 0.0415560 * z
        bl = 0.0556434 * x - 0.2040259 * y + 1.0572252 * z
        return cls(_delinearize(r), _delinearize(g), _delinearize(bl))

    def _hcl(self) -> tuple[float, float, float]:
        l, a, b = self._lab()
        if abs(b - a) > 1e-4 and abs(a) > 1e-4:
            h = math.fmod(57.29577951308232087721 * math.atan2(b, a) + 360.0, 360.0)
        else:
            h = 0.0
        return h, math.sqrt(a * a + b * b), l

    def blend_rgb(self, other: "Color", t: float) -> "Color":
        return Color(
            self.r + t * (other.r - self.r),
            self.g + t * (other.g - self.g),
            self.b + t * (other.b - self.b),
        )

    def blend_lab(self, other: "Color", t: float) -> "Color":
        l1, a1, b1 = self._lab()
        l2, a2, b2 = other._lab()
        return Color._from_lab(l1 + t * (l2 - l1), a1 + t * (a2 - a1), b1 + t * (b2 - b1))

    def blend_hcl(self, other: "Color", t: float) -> "Color":
        h1, c1, l1 = self._hcl()
        h2, c2, l2 = other._hcl()
        h = _interp_angle(h1, h2, t)
        c = c1 + t * (c2 - c1)
        l = l1 + t * (l2 - l1)
        rad = math.radians(h)
        return Color._from_lab(l, c * math.cos(rad), c * math.sin(rad))


@dataclass
class Action:
    """A move to position ``pos`` (percent) at time ``at`` (milliseconds)."""

    at: int
    pos: int
    slope: float = 0.0
    intensity: int = 0


@dataclass(frozen=True)
class GradientStop:
    color: Color
    pos: float


class GradientTable(list):
    """Ordered list of gradient stops."""

    def color_at(self, t: float) -> Color:
        for c1, c2 in zip(self, self[1:]):
            if c1.pos <= t <= c2.pos:
                local = (t - c1.pos) / (c2.pos - c1.pos)
                return c1.color.blend_hcl(c2.color, local).clamped()
        return self[-1].color


_BLUE = Color.from_hex("#1e90ff")
_GREEN = Color.from_hex("#228b22")
_YELLOW = Color.from_hex("#ffd700")
_RED = Color.from_hex("#dc143c")
_PURPLE = Color.from_hex("#800080")
_BLACK = Color.from_hex("#0f001e")
_WHITE = Color.from_hex("#ffffff")


def segment_color(intensity: float) -> Color:
    """Map an average intensity to its heatmap color."""
    step = 60.0
    if intensity <= 0.001:
        return _WHITE
    if intensity <= step:
        return _BLUE.blend_lab(_GREEN, intensity / step)
    if intensity <= 2 * step:
        return _GREEN.blend_lab(_YELLOW, (intensity - step) / step)
    if intensity <= 3 * step:
        return _YELLOW.blend_lab(_RED, (intensity - 2 * step) / step)
    if intensity <= 4 * step:
        return _RED.blend_rgb(_PURPLE, (intensity - 3 * step) / step)
    f = min((intensity - 4 * step) / (5 * step), 1.0)
    return _PURPLE.blend_lab(_BLACK, f)


@dataclass
class Script:
    """A funscript: a version string and timed actions."""

    actions: list[Action] = field(default_factory=list)
    version: str = ""
    inverted: bool = False
    range: int = 0

    def update_intensity(self) -> None:
        for prev, cur in zip(self.actions, self.actions[1:]):
            dt = cur.at - prev.at
            slope = 20.0 if dt == 0 else min(max(1.0 / (2.0 * dt / 1000.0), 0.0), 20.0)
            cur.slope = slope
            cur.intensity = int(slope * abs(cur.pos - prev.pos))

    def gradient_table(self, num_segments: int) -> GradientTable:
        counts = [0] * num_segments
        totals = [0] * num_segments
        maxts = self.actions[-1].at
        for action in self.actions:
            segment = int(action.at / (maxts + 1) * num_segments)
            counts[segment] += 1
            totals[segment] += int(action.intensity)
        span = max(num_segments - 1, 1)
        return GradientTable(
            GradientStop(
                segment_color(totals[i] / counts[i] if counts[i] else 0.0),
                i / span,
            )
            for i in range(num_segments)
        )


def load_funscript(path) -> Script:
    """Read a funscript file, with its actions sorted by time."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise FunscriptError(f"invalid funscript {path}: {exc}") from exc
    if not isinstance(data, dict) or data.get("actions") is None:
        raise FunscriptError(f"actions list missing in {path}")
    raw = data["actions"]
    if not raw:
        raise FunscriptError(f"actions list empty in {path}")
    actions = sorted(
        (Action(at=int(a.get("at", 0)), pos=int(a.get("pos", 0))) for a in raw),
        key=lambda a: a.at,
    )
    return Script(
        actions=actions,
        version=str(data.get("version", "")),
        inverted=bool(data.get("inverted", False)),
        range=int(data.get("range", 0) or 0),
    )


def render_heatmap(input_file, dest_file, width, height, num_segments) -> None:
    """Render a PNG heatmap of a funscript with ten-minute tick marks."""
    script = load_funscript(input_file)
    script.update_intensity()
    gradient = script.gradient_table(num_segments)

    img = Image.new("RGBA", (width, height))
    for x in range(width):
        rgb = gradient.color_at(x / width).to_rgb255()
        img.paste((*rgb, 255), (x, 0, x + 1, height))

    maxts = script.actions[-1].at
    ts = _TICK_MS
    while ts < maxts:
        x = int(ts / maxts * width)
        img.paste((0, 0, 0, 255), (max(x - 1, 0), height // 2, x + 1, height))
        ts += _TICK_MS

    img.save(dest_file, format="PNG")


def funscript_duration(path) -> float:
    """Duration of a funscript in seconds, from its last action."""
    return load_funscript(path).actions[-1].at / 1000.0