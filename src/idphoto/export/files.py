from __future__ import annotations

import io
from datetime import datetime
from pathlib import Path
from typing import Optional

from PIL import Image

from idphoto.export.png_dpi import embed_dpi_metadata


def encode_png(image: Image.Image) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


def export_png(image: Image.Image, dpi: Optional[float] = 300) -> bytes:
    """PNG bytes of `image`, with a pHYs chunk when `dpi` is given."""
    data = encode_png(image)
    if dpi is None:
        return data
    return embed_dpi_metadata(data, dpi)


def build_filename(kind: str, size_id: str, dpi: float, timestamp: Optional[datetime] = None) -> str:
    """
    Download filename, e.g. "id-photo_1-inch_300dpi_20240101-120000.png".

    kind:
        "id-photo" or "print-layout".
    """
    ts = (timestamp or datetime.now()).strftime("%Y%m%d-%H%M%S")
    return f"{kind}_{size_id}_{dpi:g}dpi_{ts}.png"


def write_png(data: bytes, output_dir: Path, filename: str) -> Path:
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / filename
    path.write_bytes(data)
    return path
