import json

import pytest

from vrshelf.remote import DeoPacket, PlayerState
from vrshelf.session import MemorySessionStore, SessionTracker, dump_heatmap


class Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def _tracker(tmp_path, **kw):
    store = MemorySessionStore(scenes={7}, files={3: 7}, **kw)
    clock = Clock()
    return SessionTracker(store, tmp_path, clock), store, clock


def test_file_session_lifecycle(tmp_path):
    t, store, clock = _tracker(tmp_path)
    t.track_from_file(7)
    assert t.has_active_session()
    assert store.opened[7] == clock.now
    clock.now += 30
    t.finish_tracking_from_file()
    assert not t.has_active_session()
    assert store.history[1]["duration"] == 30
    assert 7 in store.watched


def test_do_not_track(tmp_path):
    t, store, _ = _tracker(tmp_path)
    t.track_from_file(7, "true")
    assert not t.has_active_session()
    assert store.history == {}


def test_unknown_scene_not_active(tmp_path):
    t, store, _ = _tracker(tmp_path)
    t.track_from_file(99)
    assert not t.has_active_session()
    assert len(store.history) == 1


def test_remote_heatmap_dumped(tmp_path):
    t, store, clock = _tracker(tmp_path)
    t.track_from_remote(DeoPacket(path="http://h/api/file/3", duration=10,
                                  current_time=4, player_state=PlayerState.PLAYING))
    t.track_from_remote(DeoPacket(path="http://h/api/file/3", duration=10,
                                  current_time=4.5, player_state=PlayerState.PLAYING))
    assert t.state()["currentSceneID"] == 7
    clock.now += 6
    t.check_for_dead_session()
    assert not t.has_active_session()
    data = json.loads((tmp_path / "7.json").read_text())
    assert len(data) == 10 and data[4] == 2 and sum(data) == 2


def test_file_session_survives_short_idle(tmp_path):
    t, _, clock = _tracker(tmp_path)
    t.track_from_file(7)
    clock.now += 30
    t.check_for_dead_session()
    assert t.has_active_session()


def test_remote_ignores_empty(tmp_path):
    t, store, _ = _tracker(tmp_path)
    t.track_from_remote(DeoPacket())
    assert store.history == {} and t.source == ""


def test_dump_heatmap_merges(tmp_path):
    assert dump_heatmap(tmp_path, 1, [1, 2, 3]) == [1, 2, 3]
    assert dump_heatmap(tmp_path, 1, [1, 1, 1]) == [2, 3, 4]
    with pytest.raises(ValueError):
        dump_heatmap(tmp_path, 1, [1])