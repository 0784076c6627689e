"""Decode fetched bytes into Pillow images and re-encode them canonically."""

from __future__ import annotations

import logging
from io import BytesIO
from typing import Sequence

import numpy as np
from PIL import Image, UnidentifiedImageError
from PIL.Image import DecompressionBombError

logger = logging.getLogger(__name__)

_CANONICAL_MODE = "RGBA"
_GRAY16_MODES = frozenset({"I", "I;16", "I;16L", "I;16B", "I;16N"})


class EncodeError(Exception):
    """Raised when an image cannot be re-encoded into its canonical form."""


def decode_image(data: bytes, formats: Sequence[str] | None = None) -> Image.Image | None:
    """Return a fully loaded image for *data*, or ``None`` if it is not one.

    *formats* restricts the Pillow decoders that are tried, e.g.
    ``("JPEG",)``. Failing to decode is the normal signal for non-image
    content and is only logged at debug level.
    """
    if not data:
        return None
    try:
        with Image.open(BytesIO(data), formats=list(formats) if formats else None) as img:
            img.load()
            # copy() detaches the pixels from the soon-closed file handle
            return img.copy()
    except (
        UnidentifiedImageError,
        DecompressionBombError,
        OSError,
        EOFError,
        ValueError,
        SyntaxError,
    ):
        logger.debug("Content is not a decodable image", exc_info=True)
    return None


def canonical_bytes(img: Image.Image) -> bytes:
    """Return a deterministic PNG encoding of the pixels of *img*.

    The image is rebuilt from its RGBA buffer, or from its 16-bit gray
    levels for high bit depth grayscale, so metadata such as ICC profiles,
    DPI or EXIF never reaches the encoder.
    """
    try:
        levels = gray16_levels(img)
        if levels is not None:
            bare = Image.frombytes("I;16", img.size, levels.astype("<u2").tobytes())
        else:
            rgba = img if img.mode == _CANONICAL_MODE else img.convert(_CANONICAL_MODE)
            bare = Image.frombytes(_CANONICAL_MODE, rgba.size, rgba.tobytes())
        buffer = BytesIO()
        bare.save(buffer, format="PNG", compress_level=6, optimize=False)
    except (OSError, ValueError) as exc:
        raise EncodeError(str(exc)) from exc
    return buffer.getvalue()


def gray16_levels(img: Image.Image) -> np.ndarray | None:
    """Return the 16-bit gray levels of *img*, or ``None`` for other modes.

    Pillow decodes 16-bit grayscale into the ``I;16*`` modes (``I`` on some
    versions). Converting those to RGB clips every level above 255, so
    callers read the levels directly. ``I`` values are clipped to 0-65535.
    """
    if img.mode not in _GRAY16_MODES:
        return None
    levels = np.asarray(img).astype(np.int64)
    return np.clip(levels, 0, 0xFFFF).astype(np.uint16)
