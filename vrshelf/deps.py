"""Download of the ffmpeg and ffprobe binaries."""

from __future__ import annotations

import json
import logging
import platform
import zipfile
from pathlib import Path
from typing import Optional

import requests

log = logging.getLogger(__name__)

FFBINARIES_API = "https://ffbinaries.com/api/v1/version/4.2.1"

_ARCH_ALIASES = {
    "x86_64": "amd64", "amd64": "amd64", "x64": "amd64",
    "i386": "386", "i486": "386", "i586": "386", "i686": "386", "x86": "386", "386": "386",
    "aarch64": "arm64", "arm64": "arm64", "armv8": "arm64", "armv8l": "arm64",
}


class DependencyError(RuntimeError):
    """Raised when a tool cannot be located or downloaded."""


def _system(system: Optional[str]) -> str:
    return (system or platform.system()).lower()


def _arch(machine: Optional[str]) -> str:
    name = (machine or platform.machine()).lower()
    if name in _ARCH_ALIASES:
        return _ARCH_ALIASES[name]
    if name.startswith("arm"):
        return "arm"
    return name


def platform_id(system: Optional[str] = None, machine: Optional[str] = None) -> str:
    """The ffbinaries platform name for an operating system and machine."""
    os_name = _system(system)
    arch = _arch(machine)
    if os_name == "windows":
        return "windows-32" if arch == "386" else "windows-64"
    if os_name == "darwin":
        return "osx-64"
    if os_name == "linux":
        linux = {"386": "linux-32", "amd64": "linux-64",
                 "arm": "linux-armhf", "arm64": "linux-arm64"}
        if arch in linux:
            return linux[arch]
    raise DependencyError(f"Unknown architecture: {os_name}/{arch}")


def bin_path(bin_dir, tool: str, system: Optional[str] = None) -> Path:
    """Path of a tool's binary inside ``bin_dir``."""
    name = tool + ".exe" if _system(system) == "windows" else tool
    return Path(bin_dir) / name


def ffbinaries_url(metadata, platform: str, tool: str) -> str:
    """Download URL of a tool from the ffbinaries version metadata."""
    if isinstance(metadata, (str, bytes)):
        metadata = json.loads(metadata)
    try:
        url = metadata["bin"][platform][tool]
    except (KeyError, TypeError) as exc:
        raise DependencyError(f"no {tool} download for {platform}") from exc
    if not isinstance(url, str) or not url:
        raise DependencyError(f"no {tool} download for {platform}")
    return url


def download_file(url: str, dest_path) -> None:
    """Save the body of ``url`` to ``dest_path``."""
    resp = requests.get(url, stream=True, timeout=60)
    try:
        if resp.status_code != 200:
            raise DependencyError(f"HTTP status code {resp.status_code}")
        with open(dest_path, "wb") as out:
            for chunk in resp.iter_content(chunk_size=65536):
                if chunk:
                    out.write(chunk)
    finally:
        resp.close()


def ensure_tool(bin_dir, tool: str, system: Optional[str] = None,
                machine: Optional[str] = None) -> Path:
    """Return the tool's path, downloading and unpacking it if missing."""
    os_name = _system(system)
    target = bin_path(bin_dir, tool, os_name)
    if target.exists():
        return target

    log.info("%s not installed, downloading now...", tool)
    pid = platform_id(os_name, machine)
    resp = requests.get(FFBINARIES_API, timeout=30)
    if resp.status_code != 200:
        raise DependencyError(f"HTTP status code {resp.status_code}")
    url = ffbinaries_url(resp.json(), pid, tool)

    directory = Path(bin_dir)
    directory.mkdir(parents=True, exist_ok=True)
    archive = directory / f"{tool}.zip"
    download_file(url, archive)
    with zipfile.ZipFile(archive) as zf:
        zf.extractall(directory)
    archive.unlink()

    if os_name != "windows" and target.exists():
        target.chmod(target.stat().st_mode | 0o111)
    return target