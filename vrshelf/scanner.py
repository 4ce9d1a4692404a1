"""Library scanning helpers: file classification, matching and search text."""

from __future__ import annotations

import os
import posixpath
import re
from pathlib import Path
from typing import Iterable, Optional

ALLOWED_VIDEO_EXT = (".mp4", ".avi", ".wmv", ".mpeg4", ".mov", ".mkv")
_SPECIAL_PROJECTIONS = ("mkx200", "mkx220", "vrca220")
_SEPARATOR = re.compile(r"[ _.-]+")
_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def _visible(path) -> bool:
    return not os.path.basename(os.fspath(path)).startswith(".")


def is_video_file(path) -> bool:
    """Whether a path names a visible file with a known video extension."""
    return _visible(path) and os.path.splitext(os.fspath(path))[1].lower() in ALLOWED_VIDEO_EXT


def is_script_file(path) -> bool:
    """Whether a path names a visible funscript file."""
    return _visible(path) and os.path.splitext(os.fspath(path))[1] == ".funscript"


def detect_projection(filename: str, width: int, height: int) -> Optional[str]:
    """Guess a video's projection from its frame size and filename."""
    projection = None
    if height * 2 == width or width > height:
        projection = "180_sbs"
        for part in _SEPARATOR.split(os.path.basename(filename).lower()):
            if part in _SPECIAL_PROJECTIONS:
                projection = part
    if height == width:
        projection = "360_tb"
    return projection


def html_escape_filename(name: str) -> str:
    """Escape a name the way it appears inside HTML-safe JSON strings."""
    return "".join(_HTML_ESCAPES.get(ch, ch) for ch in name)


def filename_match_candidates(filename: str) -> list[str]:
    """SQL LIKE patterns that find a file's name in a JSON filename list.

    A script file is also matched by the video name it belongs to.
    """
    escaped = html_escape_filename(posixpath.basename(filename))
    as_video = escaped.replace(".funscript", ".mp4")
    return [f'%"{escaped}"%', f'%"{as_video}"%']


def _walk(directory: Path, videos: list[Path], scripts: list[Path]) -> None:
    try:
        entries = sorted(os.scandir(directory), key=lambda e: e.name)
    except OSError:
        return
    for entry in entries:
        path = Path(entry.path)
        if entry.is_dir(follow_symlinks=False):
            _walk(path, videos, scripts)
            continue
        if is_video_file(path):
            videos.append(path)
        if is_script_file(path):
            scripts.append(path)


def walk_volume(root) -> tuple[list[Path], list[Path]]:
    """Find video and funscript files below ``root`` in lexical order."""
    root = Path(root)
    videos: list[Path] = []
    scripts: list[Path] = []
    if root.is_dir():
        _walk(root, videos, scripts)
    elif root.exists():
        if is_video_file(root):
            videos.append(root)
        if is_script_file(root):
            scripts.append(root)
    else:
        raise FileNotFoundError(f"volume path does not exist: {root}")
    return videos, scripts


def scene_fulltext(scene_id: str, title: str, site: str, synopsis: str,
                   cast: Iterable[str]) -> str:
    """Text indexed for full-text search of a scene."""
    names = list(cast)
    cast_text = "".join(" " + name for name in names)
    cast_concat = "".join(" " + name.replace(" ", "") for name in names)
    return f"{scene_id} {title} {site} {synopsis} {cast_text} {cast_concat}"