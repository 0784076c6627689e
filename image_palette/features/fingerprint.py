"""Content fingerprints used to recognise repeated inputs."""

from __future__ import annotations

import gzip
import logging
import zlib
from typing import BinaryIO

from PIL import Image

from ..extract.decode import EncodeError, canonical_bytes

logger = logging.getLogger(__name__)

FNV64_OFFSET = 0xCBF29CE484222325
FNV64_PRIME = 0x100000001B3
_MASK64 = 0xFFFFFFFFFFFFFFFF


def fnv1a_64(data: bytes) -> int:
    """Return the 64-bit FNV-1a hash of *data*."""
    value = FNV64_OFFSET
    for byte in data:
        value ^= byte
        value = (value * FNV64_PRIME) & _MASK64
    return value


def fingerprint_decodable(img: Image.Image) -> int:
    """Fingerprint the pixels of *img* so pixel-identical images collide."""
    try:
        payload = canonical_bytes(img)
    except EncodeError as exc:
        logger.warning("Canonical encoding failed, hashing raw pixels: %s", exc)
        rgba = img.convert("RGBA")
        width, height = rgba.size
        payload = f"{width}x{height}:".encode("ascii") + rgba.tobytes()
    return fnv1a_64(payload)


def fingerprint_opaque(content: bytes | BinaryIO) -> int:
    """Fingerprint non-image *content*; streams are read to the end."""
    raw = content if isinstance(content, (bytes, bytearray)) else content.read()
    try:
        payload = gzip.compress(bytes(raw), mtime=0)
    except (OSError, zlib.error) as exc:
        logger.warning("Compression failed, hashing raw bytes: %s", exc)
        payload = bytes(raw)
    return fnv1a_64(payload)
