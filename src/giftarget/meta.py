"""Metadata extraction for GIF files.

Frame counting walks the GIF block stream (extension blocks, image
descriptors and their data sub-blocks) without decompressing any pixel data,
so inspecting a large animation costs one sequential read of the file.
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from .error_handling import (
    GifIOError,
    InputNotFoundError,
    NotAGifError,
    TruncatedGifError,
)

logger = logging.getLogger(__name__)

GIF_SIGNATURES = (b"GIF87a", b"GIF89a")

_TRAILER = 0x3B
_EXTENSION_INTRODUCER = 0x21
_IMAGE_SEPARATOR = 0x2C
_GRAPHIC_CONTROL_LABEL = 0xF9
_APPLICATION_LABEL = 0xFF
_LOOP_APPLICATIONS = (b"NETSCAPE2.0", b"ANIMEXTS1.0")


@dataclass(frozen=True)
class GifMetadata:
    """Structural metadata of a GIF file."""

    size_bytes: int
    frame_count: int
    width: int = 0
    height: int = 0
    loop_count: int | None = None
    frame_delays: tuple[int, ...] = ()  # centiseconds, one entry per frame

    @property
    def size_kb(self) -> float:
        return self.size_bytes / 1024.0


def _read_exact(stream: BinaryIO, n: int, what: str) -> bytes:
    data = stream.read(n)
    if len(data) < n:
        raise TruncatedGifError(
            f"Unexpected end of file while reading {what} "
            f"(wanted {n} bytes, got {len(data)})"
        )
    return data


def _color_table_bytes(packed: int) -> int:
    """Return the byte length of the colour table flagged in *packed* (0 if absent)."""
    if not packed & 0x80:
        return 0
    return 3 * (2 ** ((packed & 0x07) + 1))


def _read_sub_blocks(stream: BinaryIO, what: str) -> list[bytes]:
    """Read a data sub-block chain up to and including its zero terminator."""
    blocks = []
    while True:
        size = _read_exact(stream, 1, f"{what} sub-block size")[0]
        if size == 0:
            return blocks
        blocks.append(_read_exact(stream, size, f"{what} sub-block"))


def _skip_sub_blocks(stream: BinaryIO, what: str) -> None:
    while True:
        size = _read_exact(stream, 1, f"{what} sub-block size")[0]
        if size == 0:
            return
        _read_exact(stream, size, f"{what} sub-block")


def _scan(stream: BinaryIO, path: Path, size_bytes: int) -> GifMetadata:
    signature = stream.read(6)
    if signature not in GIF_SIGNATURES:
        raise NotAGifError(f"File is not a GIF: {path}")

    width, height, packed, _bg, _aspect = struct.unpack(
        "<HHBBB", _read_exact(stream, 7, "logical screen descriptor")
    )
    _read_exact(stream, _color_table_bytes(packed), "global color table")

    frame_delays: list[int] = []
    pending_delay: int | None = None
    loop_count: int | None = None

    while True:
        introducer = stream.read(1)
        if not introducer:
            if frame_delays:
                # Missing trailer; decoders still play every complete frame
                logger.debug(f"{path} has no trailer after {len(frame_delays)} frames")
                break
            raise TruncatedGifError(f"No image data before end of file: {path}")

        block = introducer[0]
        if block == _TRAILER:
            break

        if block == _EXTENSION_INTRODUCER:
            label = _read_exact(stream, 1, "extension label")[0]
            if label == _GRAPHIC_CONTROL_LABEL:
                blocks = _read_sub_blocks(stream, "graphic control extension")
                if blocks and len(blocks[0]) >= 3:
                    pending_delay = blocks[0][1] | (blocks[0][2] << 8)
            elif label == _APPLICATION_LABEL:
                blocks = _read_sub_blocks(stream, "application extension")
                if blocks and blocks[0][:11] in _LOOP_APPLICATIONS:
                    for sub in blocks[1:]:
                        if len(sub) >= 3 and sub[0] == 0x01:
                            loop_count = sub[1] | (sub[2] << 8)
            else:
                _skip_sub_blocks(stream, "extension")
            continue

        if block == _IMAGE_SEPARATOR:
            descriptor = _read_exact(stream, 9, "image descriptor")
            _read_exact(stream, _color_table_bytes(descriptor[8]), "local color table")
            _read_exact(stream, 1, "LZW minimum code size")
            _skip_sub_blocks(stream, "image data")
            frame_delays.append(pending_delay or 0)
            pending_delay = None
            continue

        if frame_delays:
            logger.warning(
                f"Unknown block 0x{block:02X} in {path} after {len(frame_delays)} "
                "frames, ignoring the rest of the file"
            )
            break
        raise TruncatedGifError(f"Unknown block 0x{block:02X} in {path}")

    return GifMetadata(
        size_bytes=size_bytes,
        frame_count=len(frame_delays),
        width=width,
        height=height,
        loop_count=loop_count,
        frame_delays=tuple(frame_delays),
    )


def inspect_gif(file_path: Path | str) -> GifMetadata:
    """Extract size and frame structure from a GIF file.

    Args:
        file_path: Path to the GIF file

    Returns:
        GifMetadata with the file size and per-frame information

    Raises:
        InputNotFoundError: If the file does not exist
        NotAGifError: If the GIF signature is missing
        TruncatedGifError: If a block is cut short
        GifIOError: If the file cannot be read
    """
    path = Path(file_path)
    if not path.exists():
        raise InputNotFoundError(f"File not found: {path}")

    try:
        size_bytes = path.stat().st_size
        with open(path, "rb") as stream:
            return _scan(stream, path, size_bytes)
    except OSError as e:
        raise GifIOError(f"Cannot read {path}", cause=e) from e


def get_gif_info(file_path: Path | str) -> tuple[float, int]:
    """Return ``(size_kb, frame_count)`` for *file_path*."""
    metadata = inspect_gif(file_path)
    return metadata.size_kb, metadata.frame_count
