import json

import pytest
from PIL import Image

from vrshelf.heatmap import (
    Action,
    Color,
    FunscriptError,
    Script,
    funscript_duration,
    load_funscript,
    render_heatmap,
    segment_color,
)


def _write(tmp_path, actions):
    p = tmp_path / "a.funscript"
    p.write_text(json.dumps({"version": "1.0", "actions": actions}))
    return p


def test_hex_round_trip():
    assert Color.from_hex("#1e90ff").to_rgb255() == (0x1E, 0x90, 0xFF)


def test_bad_hex():
    with pytest.raises(ValueError):
        Color.from_hex("#12")


def test_blend_endpoints():
    a, b = Color.from_hex("#228b22"), Color.from_hex("#ffd700")
    assert a.blend_lab(b, 0).to_rgb255() == a.to_rgb255()
    assert a.blend_lab(b, 1).to_rgb255() == b.to_rgb255()
    assert a.blend_hcl(b, 1).clamped().to_rgb255() == b.to_rgb255()
    assert a.blend_rgb(b, 0.5).r == pytest.approx((a.r + b.r) / 2)


def test_clamped():
    assert Color(1.5, -0.2, 0.5).clamped() == Color(1.0, 0.0, 0.5)


def test_segment_color_fixed_points():
    assert segment_color(0).to_rgb255() == (255, 255, 255)
    assert segment_color(60).to_rgb255() == Color.from_hex("#228b22").to_rgb255()
    assert segment_color(240).to_rgb255() == Color.from_hex("#800080").to_rgb255()


def test_load_sorts(tmp_path):
    s = load_funscript(_write(tmp_path, [{"at": 500, "pos": 10}, {"at": 0, "pos": 90}]))
    assert [a.at for a in s.actions] == [0, 500]


def test_load_errors(tmp_path):
    with pytest.raises(FunscriptError):
        load_funscript(_write(tmp_path, []))
    p = tmp_path / "b.funscript"
    p.write_text(json.dumps({"version": "1.0"}))
    with pytest.raises(FunscriptError):
        load_funscript(p)


def test_update_intensity():
    s = Script(actions=[Action(0, 0), Action(500, 100)])
    s.update_intensity()
    assert s.actions[1].slope == 1.0
    assert s.actions[1].intensity == 100


def test_gradient_table_positions():
    s = Script(actions=[Action(0, 0), Action(1000, 50)])
    s.update_intensity()
    g = s.gradient_table(5)
    assert len(g) == 5
    assert g[0].pos == 0.0 and g[-1].pos == 1.0
    assert g.color_at(2.0) == g[-1].color


def test_render_and_duration(tmp_path):
    src = _write(tmp_path, [{"at": 0, "pos": 0}, {"at": 1200000, "pos": 100}])
    dest = tmp_path / "out.png"
    render_heatmap(src, dest, 100, 10, 20)
    with Image.open(dest) as img:
        assert img.size == (100, 10)
    assert funscript_duration(src) == 1200.0