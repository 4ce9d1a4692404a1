import io
import os
import zipfile
from unittest.mock import MagicMock, patch

import pytest

from vrshelf.deps import (
    FFBINARIES_API,
    DependencyError,
    bin_path,
    download_file,
    ensure_tool,
    ffbinaries_url,
    platform_id,
)


def _response(status=200, chunks=(), payload=None):
    resp = MagicMock()
    resp.status_code = status
    resp.iter_content.return_value = list(chunks)
    resp.json.return_value = payload
    return resp


@pytest.mark.parametrize(
    "system, machine, expected",
    [
        ("linux", "x86_64", "linux-64"),
        ("linux", "i686", "linux-32"),
        ("linux", "armv7l", "linux-armhf"),
        ("linux", "aarch64", "linux-arm64"),
        ("windows", "AMD64", "windows-64"),
        ("windows", "x86", "windows-32"),
        ("darwin", "arm64", "osx-64"),
        ("Linux", "amd64", "linux-64"),
    ],
)
def test_platform_id(system, machine, expected):
    assert platform_id(system, machine) == expected


@pytest.mark.parametrize("system, machine", [("freebsd", "amd64"), ("linux", "mips")])
def test_platform_id_unknown(system, machine):
    with pytest.raises(DependencyError):
        platform_id(system, machine)


def test_bin_path(tmp_path):
    assert bin_path(tmp_path, "ffmpeg", "windows") == tmp_path / "ffmpeg.exe"
    assert bin_path(tmp_path, "ffmpeg", "linux") == tmp_path / "ffmpeg"


def test_ffbinaries_url_dict_and_text():
    meta = {"bin": {"linux-64": {"ffprobe": "https://downloads.example.com/p.zip"}}}
    assert ffbinaries_url(meta, "linux-64", "ffprobe") == "https://downloads.example.com/p.zip"
    text = '{"bin": {"osx-64": {"ffmpeg": "https://downloads.example.com/m.zip"}}}'
    assert ffbinaries_url(text, "osx-64", "ffmpeg") == "https://downloads.example.com/m.zip"


def test_ffbinaries_url_missing():
    with pytest.raises(DependencyError):
        ffbinaries_url({"bin": {}}, "linux-64", "ffprobe")


def test_download_file_writes_body(tmp_path):
    dest = tmp_path / "file.bin"
    with patch("vrshelf.deps.requests.get", return_value=_response(chunks=[b"ab", b"cd"])):
        download_file("https://downloads.example.com/f", dest)
    assert dest.read_bytes() == b"abcd"


def test_download_file_bad_status(tmp_path):
    with patch("vrshelf.deps.requests.get", return_value=_response(status=404)):
        with pytest.raises(DependencyError, match="404"):
            download_file("https://downloads.example.com/f", tmp_path / "x")
    assert not (tmp_path / "x").exists()


def test_ensure_tool_existing(tmp_path):
    (tmp_path / "ffprobe").write_bytes(b"bin")
    with patch("vrshelf.deps.requests.get") as get:
        assert ensure_tool(tmp_path, "ffprobe", "linux", "x86_64") == tmp_path / "ffprobe"
    get.assert_not_called()


def test_ensure_tool_downloads(tmp_path):
    archive = io.BytesIO()
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("ffprobe", b"binary-data")
    url = "https://downloads.example.com/ffprobe.zip"
    meta = {"bin": {"linux-64": {"ffprobe": url}}}
    responses = [_response(payload=meta), _response(chunks=[archive.getvalue()])]
    with patch("vrshelf.deps.requests.get", side_effect=responses) as get:
        path = ensure_tool(tmp_path, "ffprobe", "linux", "x86_64")
    assert get.call_args_list[0].args[0] == FFBINARIES_API
    assert get.call_args_list[1].args[0] == url
    assert path == tmp_path / "ffprobe"
    assert path.read_bytes() == b"binary-data"
    assert os.access(path, os.X_OK)
    assert not (tmp_path / "ffprobe.zip").exists()


def test_ensure_tool_api_failure(tmp_path):
    with patch("vrshelf.deps.requests.get", return_value=_response(status=500)):
        with pytest.raises(DependencyError, match="500"):
            ensure_tool(tmp_path, "ffmpeg", "linux", "x86_64")