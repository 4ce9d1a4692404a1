"""Export of scene funscripts as a zip archive."""

from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

log = logging.getLogger(__name__)


@dataclass
class ScriptEntry:
    """A script file of a scene and whether it has been exported."""

    path: Path
    is_exported: bool = False

    def exists(self) -> bool:
        return Path(self.path).is_file()


def content_disposition(updated_only: bool) -> str:
    """Content-Disposition header value for the exported archive."""
    name = "funscripts-update.zip" if updated_only else "funscripts.zip"
    return f'attachment; filename="{name}"'


def add_file_to_zip(zip_file: zipfile.ZipFile, src_filename, zip_filename: str) -> None:
    """Add a file to the archive under ``zip_filename``, deflated."""
    zip_file.write(src_filename, arcname=zip_filename, compress_type=zipfile.ZIP_DEFLATED)


def export_funscripts(target, scenes: Iterable[tuple[str, Sequence[ScriptEntry]]],
                      updated_only: bool = False) -> list[ScriptEntry]:
    """Write the first script of each scene to a zip archive.

    ``scenes`` yields (funscript title, script entries). Only the first entry of
    a scene is exported; the export flags are updated and the entries whose
    flag changed are returned so they can be persisted.
    """
    changed: list[ScriptEntry] = []
    with zipfile.ZipFile(target, "w") as zf:
        for title, entries in scenes:
            for index, entry in enumerate(entries):
                if index:
                    if entry.is_exported:
                        entry.is_exported = False
                        changed.append(entry)
                    continue
                if not entry.exists():
                    continue
                if not entry.is_exported or not updated_only:
                    name = f"{title}.funscript"
                    try:
                        add_file_to_zip(zf, entry.path, name)
                    except OSError as exc:
                        log.info("Error when adding file to zip: %s (%s)", exc, name)
                        continue
                if not entry.is_exported:
                    entry.is_exported = True
                    changed.append(entry)
    return changed