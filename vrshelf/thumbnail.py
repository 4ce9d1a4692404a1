"""Composition of scene thumbnails with a funscript heatmap strip."""

from __future__ import annotations

import io
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

THUMBNAIL_WIDTH = 700
THUMBNAIL_HEIGHT = 420
HEATMAP_HEIGHT = 10
HEATMAP_MARGIN = 3
IMAGE_HEIGHT = THUMBNAIL_HEIGHT - HEATMAP_HEIGHT - HEATMAP_MARGIN


def split_request_path(path: str) -> tuple[str, str]:
    """Split ``/<scene id>/<image url>`` into the scene part and the image URL."""
    parts = path.split("/", 2)
    if len(parts) != 3:
        raise ValueError(f"not a heatmap thumbnail path: {path!r}")
    return parts[1], parts[2]


def cache_key(file_id: int, image_url: str) -> str:
    """Key under which a composed thumbnail is cached."""
    return f"{file_id}:{image_url}"


def heatmap_path(directory, file_id: int) -> Path:
    """Location of the rendered heatmap of a script file."""
    return Path(directory) / f"heatmap-{file_id}.png"


def load_heatmap(directory, file_id: int) -> Image.Image:
    """Open the rendered heatmap of a script file."""
    with Image.open(heatmap_path(directory, file_id)) as img:
        return img.convert("RGBA")


def compose_heatmap_thumbnail(jpeg_data: bytes, heatmap: Image.Image) -> bytes:
    """Place a heatmap strip under a JPEG thumbnail and return the new JPEG."""
    try:
        with Image.open(io.BytesIO(jpeg_data)) as src:
            if src.format != "JPEG":
                raise ValueError(f"thumbnail is not a JPEG image but {src.format}")
            thumb = src.convert("RGB")
    except UnidentifiedImageError as exc:
        raise ValueError("thumbnail is not a JPEG image") from exc

    if thumb.size != (THUMBNAIL_WIDTH, IMAGE_HEIGHT):
        thumb = ImageOps.fit(
            thumb,
            (THUMBNAIL_WIDTH, IMAGE_HEIGHT),
            method=Image.Resampling.BILINEAR,
            centering=(0.5, 0.5),
        )
    strip = heatmap.convert("RGBA").resize(
        (THUMBNAIL_WIDTH, HEATMAP_HEIGHT), Image.Resampling.BILINEAR
    )

    canvas = Image.new("RGBA", (THUMBNAIL_WIDTH, THUMBNAIL_HEIGHT), (0, 0, 0, 0))
    canvas.alpha_composite(thumb.convert("RGBA"), (0, 0))
    canvas.alpha_composite(strip, (0, THUMBNAIL_HEIGHT - HEATMAP_HEIGHT))

    out = io.BytesIO()
    canvas.convert("RGB").save(out, format="JPEG", quality=90)
    return out.getvalue()