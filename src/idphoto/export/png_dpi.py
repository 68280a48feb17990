"""
Resolution metadata for PNG files.

PNG stores physical resolution in a pHYs chunk as pixels per meter. Print
software uses it to report the physical size, so an ID photo rendered at
300 DPI must carry pHYs or it prints at whatever the viewer assumes.
"""

from __future__ import annotations

import struct
import zlib
from typing import Iterator, Optional, Tuple

from idphoto.core.dpi import round_half_up
from idphoto.core.errors import MetadataError

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
INCHES_PER_METER = 39.3701
UNIT_METER = 1


def _chunk(chunk_type: bytes, data: bytes) -> bytes:
    crc = zlib.crc32(chunk_type + data) & 0xFFFFFFFF
    return struct.pack(">I", len(data)) + chunk_type + data + struct.pack(">I", crc)


def create_phys_chunk(dpi: float) -> bytes:
    """Complete pHYs chunk (length, type, data, CRC) for `dpi` on both axes."""
    ppm = round_half_up(dpi * INCHES_PER_METER)
    return _chunk(b"pHYs", struct.pack(">IIB", ppm, ppm, UNIT_METER))


def _check_signature(png: bytes) -> None:
    if len(png) < len(PNG_SIGNATURE) or png[: len(PNG_SIGNATURE)] != PNG_SIGNATURE:
        raise MetadataError("Invalid PNG file", code="invalid-format")


def iter_chunks(png: bytes) -> Iterator[Tuple[bytes, bytes, int]]:
    """Yield (type, data, offset) for each chunk; offset is where its length field starts."""
    _check_signature(png)
    offset = len(PNG_SIGNATURE)
    while offset < len(png):
        if offset + 8 > len(png):
            raise MetadataError("Truncated PNG chunk header", code="invalid-format")
        (length,) = struct.unpack(">I", png[offset:offset + 4])
        chunk_type = png[offset + 4:offset + 8]
        end = offset + 12 + length
        if end > len(png):
            raise MetadataError(f"Truncated PNG chunk {chunk_type!r}", code="invalid-format")
        yield chunk_type, png[offset + 8:offset + 8 + length], offset
        offset = end


def embed_dpi_metadata(png: bytes, dpi: float) -> bytes:
    """
    Return `png` with a pHYs chunk spliced in right after IHDR.

    A PNG may carry only one pHYs, so any existing one is dropped. Every
    other chunk, IEND included, is kept byte for byte.
    """
    _check_signature(png)

    header = len(PNG_SIGNATURE)
    if len(png) < header + 8:
        raise MetadataError("Truncated PNG: missing IHDR", code="invalid-format")
    (ihdr_length,) = struct.unpack(">I", png[header:header + 4])
    # length field + type + data + CRC
    ihdr_end = header + 4 + 4 + ihdr_length + 4
    if ihdr_end > len(png):
        raise MetadataError("Truncated PNG: incomplete IHDR", code="invalid-format")

    kept = [
        png[offset:offset + 12 + len(data)]
        for chunk_type, data, offset in iter_chunks(png)
        if offset >= ihdr_end and chunk_type != b"pHYs"
    ]
    return png[:ihdr_end] + create_phys_chunk(dpi) + b"".join(kept)


def read_dpi_metadata(png: bytes) -> Optional[Tuple[int, int, int]]:
    """(pixels_per_unit_x, pixels_per_unit_y, unit) of the first pHYs chunk, if any."""
    for chunk_type, data, _ in iter_chunks(png):
        if chunk_type == b"pHYs" and len(data) == 9:
            return struct.unpack(">IIB", data)
        if chunk_type == b"IDAT":
            # pHYs must precede the image data
            break
    return None
