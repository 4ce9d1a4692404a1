import io
import zipfile

from vrshelf.funscripts import (
    ScriptEntry,
    add_file_to_zip,
    content_disposition,
    export_funscripts,
)


def _script(tmp_path, name, body='{"actions": []}'):
    path = tmp_path / name
    path.write_text(body)
    return path


def test_content_disposition():
    assert content_disposition(False) == 'attachment; filename="funscripts.zip"'
    assert content_disposition(True) == 'attachment; filename="funscripts-update.zip"'


def test_add_file_to_zip(tmp_path):
    src = _script(tmp_path, "a.funscript", "hello")
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        add_file_to_zip(zf, src, "renamed.funscript")
    with zipfile.ZipFile(buf) as zf:
        info = zf.getinfo("renamed.funscript")
        assert info.compress_type == zipfile.ZIP_DEFLATED
        assert zf.read("renamed.funscript") == b"hello"


def test_export_marks_first_and_clears_others(tmp_path):
    first = ScriptEntry(_script(tmp_path, "a.funscript", "A"))
    second = ScriptEntry(_script(tmp_path, "b.funscript", "B"), is_exported=True)
    buf = io.BytesIO()
    changed = export_funscripts(buf, [("Scene A", [first, second])])
    with zipfile.ZipFile(buf) as zf:
        assert zf.namelist() == ["Scene A.funscript"]
        assert zf.read("Scene A.funscript") == b"A"
    assert first.is_exported is True
    assert second.is_exported is False
    assert changed == [first, second]


def test_updated_only_skips_exported(tmp_path):
    done = ScriptEntry(_script(tmp_path, "a.funscript"), is_exported=True)
    fresh = ScriptEntry(_script(tmp_path, "b.funscript"))
    buf = io.BytesIO()
    changed = export_funscripts(buf, [("Old", [done]), ("New", [fresh])], updated_only=True)
    with zipfile.ZipFile(buf) as zf:
        assert zf.namelist() == ["New.funscript"]
    assert changed == [fresh]


def test_full_export_includes_exported(tmp_path):
    done = ScriptEntry(_script(tmp_path, "a.funscript"), is_exported=True)
    buf = io.BytesIO()
    changed = export_funscripts(buf, [("Old", [done])])
    with zipfile.ZipFile(buf) as zf:
        assert zf.namelist() == ["Old.funscript"]
    assert changed == []


def test_missing_file_is_skipped(tmp_path):
    missing = ScriptEntry(tmp_path / "gone.funscript")
    buf = io.BytesIO()
    changed = export_funscripts(buf, [("Gone", [missing])])
    with zipfile.ZipFile(buf) as zf:
        assert zf.namelist() == []
    assert missing.is_exported is False
    assert changed == []