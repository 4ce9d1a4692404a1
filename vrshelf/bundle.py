"""Content bundles of scraped scenes and replay of recorded scene edits."""

from __future__ import annotations

import json
import re
import time
from dataclasses import asdict, dataclass, field, fields
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

import requests

from vrshelf.twowebmedia import ScrapedScene

BUNDLE_VERSION = "1"

_ASSOCIATION_COLUMNS = ("tags", "cast", "is_multipart")
_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}
_TIMESTAMP = re.compile(
    r"^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})$"
)
_SCENE_FIELDS = {f.name for f in fields(ScrapedScene)}


def _format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    text = value.strftime("%Y-%m-%dT%H:%M:%S")
    if value.microsecond:
        text += "." + f"{value.microsecond:06d}".rstrip("0")
    return text + "Z"


def _parse_timestamp(text: str) -> datetime:
    match = _TIMESTAMP.match(text)
    if match is None:
        raise ValueError(f"invalid bundle timestamp: {text!r}")
    base, frac, zone = match.groups()
    micro = (frac or "").ljust(6, "0")[:6]
    offset = "+00:00" if zone == "Z" else zone
    return datetime.fromisoformat(f"{base}.{micro}{offset}").astimezone(timezone.utc)


def _scene_from_dict(data: Mapping[str, Any]) -> ScrapedScene:
    if not isinstance(data, Mapping):
        raise ValueError("bundle scene is not an object")
    return ScrapedScene(**{k: v for k, v in data.items() if k in _SCENE_FIELDS})


@dataclass
class ContentBundle:
    """A timestamped collection of scraped scenes."""

    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    bundle_version: str = BUNDLE_VERSION
    scenes: list[ScrapedScene] = field(default_factory=list)

    def to_json(self) -> str:
        body = {
            "timestamp": _format_timestamp(self.timestamp),
            "bundleVersion": self.bundle_version,
            "scenes": [asdict(scene) for scene in self.scenes],
        }
        return json.dumps(body, indent=1, ensure_ascii=False)

    @classmethod
    def from_json(cls, text) -> "ContentBundle":
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("bundle is not a JSON object")
        raw_ts = data.get("timestamp")
        timestamp = (
            _parse_timestamp(raw_ts)
            if raw_ts
            else datetime(1, 1, 1, tzinfo=timezone.utc)
        )
        return cls(
            timestamp=timestamp,
            bundle_version=str(data.get("bundleVersion", "")),
            scenes=[_scene_from_dict(s) for s in data.get("scenes") or []],
        )


def save_bundle(bundle: ContentBundle, directory, timestamp=None) -> Path:
    """Write a bundle as ``content-bundle-<unix time>.json`` and return its path."""
    if timestamp is None:
        seconds = int(time.time())
    elif isinstance(timestamp, datetime):
        seconds = int(timestamp.timestamp())
    else:
        seconds = int(timestamp)
    path = Path(directory) / f"content-bundle-{seconds}.json"
    path.write_text(bundle.to_json(), encoding="utf-8")
    return path


def load_bundle(url: str) -> ContentBundle:
    """Download a bundle; anything but HTTP 200 is an error."""
    resp = requests.get(url, timeout=60)
    if resp.status_code != 200:
        raise requests.HTTPError(
            f"Download failed: HTTP status code {resp.status_code}", response=resp
        )
    return ContentBundle.from_json(resp.text)


@dataclass(frozen=True)
class SceneEdit:
    """A recorded user edit of one scene column, ready to be applied again."""

    column: str
    value: Any
    remove: bool = False
    release_date: Optional[date] = None


def _parse_bool(text: str) -> bool:
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    return False


def parse_edit(column: str, new_value: str) -> SceneEdit:
    """Interpret a stored edit.

    Tag and cast edits carry a ``+`` or ``-`` prefix saying whether the name is
    added or removed; cast names lose their dots. A release date text edit also
    yields the parsed date.
    """
    if column in _ASSOCIATION_COLUMNS:
        if not new_value:
            raise ValueError(f"empty value for {column} edit")
        remove = new_value[0] == "-"
        name = new_value[1:]
        if column == "tags":
            return SceneEdit(column, name, remove)
        if column == "cast":
            return SceneEdit(column, name.replace(".", ""), remove)
        return SceneEdit(column, _parse_bool(new_value), remove)
    if column == "release_date_text":
        try:
            released = datetime.strptime(new_value, "%Y-%m-%d").date()
        except ValueError:
            released = None
        return SceneEdit(column, new_value, release_date=released)
    return SceneEdit(column, new_value)


def known_scene_urls(scenes: Iterable[Mapping[str, Any]]) -> list[str]:
    """URLs of scenes that need no new scrape (``needs_update`` is false)."""
    return [
        scene["scene_url"]
        for scene in scenes
        if not scene.get("needs_update", False)
    ]