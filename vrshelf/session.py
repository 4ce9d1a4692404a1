"""Tracking of watch sessions from file streaming and the player remote."""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Callable, Optional, Protocol
from urllib.parse import urlparse

from vrshelf.remote import DeoPacket, PlayerState

log = logging.getLogger(__name__)


class SessionStore(Protocol):
    """Persistence used by the session tracker."""

    def start_history(self, scene_id: int, started: float) -> int: ...
    def finish_history(self, history_id: int, ended: float, duration: float) -> bool: ...
    def scene_for_file(self, file_id: int) -> int: ...
    def scene_exists(self, scene_id: int) -> bool: ...
    def mark_opened(self, scene_id: int, when: float) -> None: ...
    def mark_watched(self, scene_id: int) -> None: ...
    def is_multipart(self, scene_id: int) -> bool: ...


class MemorySessionStore:
    """In-memory store of scenes, files and watch history."""

    def __init__(self, scenes=None, files=None, multipart=None):
        self.scenes: set[int] = set(scenes or ())
        self.files: dict[int, int] = dict(files or {})
        self.multipart: set[int] = set(multipart or ())
        self.history: dict[int, dict] = {}
        self.opened: dict[int, float] = {}
        self.watched: set[int] = set()

    def start_history(self, scene_id, started):
        history_id = len(self.history) + 1
        self.history[history_id] = {"scene_id": scene_id, "start": started,
                                    "end": None, "duration": None}
        return history_id

    def finish_history(self, history_id, ended, duration):
        entry = self.history.get(history_id)
        if entry is None:
            return False
        entry["end"] = ended
        entry["duration"] = duration
        return True

    def scene_for_file(self, file_id):
        return self.files.get(file_id, 0)

    def scene_exists(self, scene_id):
        return scene_id in self.scenes

    def mark_opened(self, scene_id, when):
        self.opened[scene_id] = when

    def mark_watched(self, scene_id):
        self.watched.add(scene_id)

    def is_multipart(self, scene_id):
        return scene_id in self.multipart


def dump_heatmap(heatmap_dir, scene_id, data) -> list[int]:
    """Add ``data`` to the stored heatmap of a scene and return the result."""
    path = Path(heatmap_dir) / f"{scene_id}.json"
    merged = list(data)
    if path.exists():
        existing = json.loads(path.read_text(encoding="utf-8"))
        if len(existing) > len(merged):
            raise ValueError(f"stored heatmap for scene {scene_id} is longer than session data")
        for k, v in enumerate(existing):
            merged[k] += v
    path.write_text(json.dumps(merged, separators=(",", ":")), encoding="utf-8")
    return merged


class SessionTracker:
    """Keeps the state of the current watch session."""

    def __init__(self, store: SessionStore, heatmap_dir, clock: Optional[Callable[[], float]] = None):
        self.store = store
        self.heatmap_dir = heatmap_dir
        self.clock = clock or time.time
        self.source = ""
        self.is_playing = False
        self.current_position = 0.0
        self.current_file_id = 0
        self.current_scene_id = 0
        self.last_session_id = 0
        self.last_session_scene_id = 0
        self.last_session_start = 0.0
        self.last_session_end = 0.0
        self.heatmap: list[int] = []

    def has_active_session(self) -> bool:
        return self.last_session_id != 0

    def track_from_file(self, scene_id: int, do_not_track: str = "") -> None:
        self.source = "file"
        if scene_id != 0 and do_not_track != "true":
            if self.last_session_scene_id != scene_id:
                self._new_session(scene_id)
            self.last_session_end = self.clock()

    def finish_tracking_from_file(self, do_not_track: str = "") -> None:
        self.last_session_end = self.clock()
        if do_not_track != "true":
            self._flush()

    def track_from_remote(self, packet: DeoPacket) -> None:
        if not packet.path or packet.duration == 0:
            return
        self.source = "deovr"
        self.is_playing = packet.player_state == PlayerState.PLAYING
        self.current_position = packet.current_time

        try:
            file_id = int(urlparse(packet.path).path.split("/")[-1])
        except ValueError:
            return

        if file_id != self.current_file_id:
            self.current_file_id = file_id
            scene_id = self.store.scene_for_file(file_id)
            if self.last_session_scene_id != scene_id:
                self._new_session(scene_id)
            self.heatmap = [0] * int(packet.duration)

        if packet.player_state == PlayerState.PLAYING:
            self.last_session_end = self.clock()
            position = int(packet.current_time)
            if 0 < position < len(self.heatmap):
                self.heatmap[position] += 1

    def check_for_dead_session(self) -> None:
        timeout = 60 if self.source == "file" else 5
        if (self.clock() - self.last_session_end > timeout
                and self.last_session_scene_id != 0
                and self.has_active_session()):
            self._flush()
            self.last_session_id = 0
            self.last_session_scene_id = 0

    def state(self) -> dict:
        return {
            "isPlaying": self.is_playing,
            "currentPosition": self.current_position,
            "sessionStart": self.last_session_start,
            "sessionEnd": self.last_session_end,
            "currentFileID": self.current_file_id,
            "currentSceneID": self.current_scene_id,
        }

    def _new_session(self, scene_id: int) -> None:
        if self.has_active_session():
            self._flush()
        self.last_session_scene_id = scene_id
        self.last_session_start = self.clock()
        history_id = self.store.start_history(scene_id, self.last_session_start)
        if not self.store.scene_exists(scene_id):
            return
        self.store.mark_opened(scene_id, self.clock())
        self.last_session_id = history_id
        self.current_scene_id = scene_id
        log.info("New session #%s for scene #%s from %s", history_id, scene_id, self.source)

    def _flush(self) -> None:
        duration = self.clock() - self.last_session_start
        if self.last_session_id and self.store.finish_history(
                self.last_session_id, self.last_session_end, duration):
            scene_id = self.last_session_scene_id
            exists = self.store.scene_exists(scene_id)
            if exists:
                self.store.mark_watched(scene_id)
            log.info("Session #%s duration for scene #%s is %s",
                     self.last_session_id, scene_id, duration)
            multipart = exists and self.store.is_multipart(scene_id)
            if not multipart and self.source == "deovr":
                try:
                    dump_heatmap(self.heatmap_dir, scene_id, self.heatmap)
                except (OSError, ValueError) as exc:
                    log.error("Error while writing heatmap data: %s", exc)
        self.current_file_id = 0
        self.current_scene_id = 0
        self.last_session_id = 0
        self.last_session_scene_id = 0