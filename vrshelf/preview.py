"""Rendering of short video previews from snippets with ffmpeg."""

from __future__ import annotations

import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

_END_WINDOW = 150


@dataclass
class PreviewSettings:
    """How a preview is cut from a video."""

    start_time: int
    snippet_length: float
    snippet_amount: int
    resolution: int
    extra_snippet: bool


def _number(value: float) -> str:
    text = repr(float(value))
    return text[:-2] if text.endswith(".0") else text


def _to_slash(path) -> str:
    return str(path).replace(os.sep, "/")


def format_timecode(seconds: float) -> str:
    """Format whole seconds as ``HH:MM:SS``."""
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def crop_filter(width: int, height: int, resolution: int) -> str:
    """ffmpeg video filter taking one eye of a stereo video and scaling it."""
    crop = "iw/2:ih/2:iw/4:ih/2" if width == height else "iw/2:ih:iw/2:ih"
    return f"crop={crop},scale={resolution}:{resolution}"


def snippet_starts(duration: float, start_time: int, snippet_amount: int) -> list[int]:
    """Start second of each snippet, spread evenly after ``start_time``."""
    if snippet_amount < 1:
        raise ValueError("snippet_amount must be at least 1")
    interval = (duration - start_time) / snippet_amount
    return [int(i * interval + start_time) for i in range(1, snippet_amount + 1)]


def build_preview_commands(input_file, dest_file, tmp_dir, duration, width, height, settings):
    """Return (snippet argument lists, concat file text, final argument list)."""
    tmp = Path(tmp_dir)
    vf = crop_filter(width, height, settings.resolution)
    length = _number(settings.snippet_length)

    commands = [
        ["-y", "-ss", format_timecode(start), "-i", str(input_file), "-vf", vf,
         "-pix_fmt", "yuv420p", "-t", length, "-an", str(tmp / f"{i}.mp4")]
        for i, start in enumerate(
            snippet_starts(duration, settings.start_time, settings.snippet_amount), 1
        )
    ]

    count = settings.snippet_amount
    if settings.extra_snippet and duration / settings.snippet_amount > _END_WINDOW:
        count += 1
        commands.append(
            ["-y", "-ss", format_timecode(int(duration - _END_WINDOW)), "-i", str(input_file),
             "-vf", vf, "-t", length, "-an", str(tmp / f"{count}.mp4")]
        )

    concat_text = "".join(f"file '{i}.mp4'\n" for i in range(1, count + 1))
    final = ["-y", "-f", "concat", "-safe", "0", "-i", _to_slash(tmp / "concat.txt"),
             "-c", "copy", _to_slash(dest_file)]
    return commands, concat_text, final


def render_preview(input_file, dest_file, duration, width, height, settings,
                   ffmpeg="ffmpeg", work_dir=".") -> None:
    """Cut snippets with ffmpeg and join them into ``dest_file``."""
    tmp = Path(work_dir) / "tmp"
    tmp.mkdir(parents=True, exist_ok=True)
    try:
        snippets, concat_text, final = build_preview_commands(
            input_file, dest_file, tmp, duration, width, height, settings
        )
        for args in snippets:
            subprocess.run([str(ffmpeg), *args], check=True,
                           stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        (tmp / "concat.txt").write_text(concat_text, encoding="utf-8")
        subprocess.run([str(ffmpeg), *final], check=True,
                       stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
    finally:
        shutil.rmtree(tmp, ignore_errors=True)