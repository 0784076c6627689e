"""Quantized color histograms and dominant color selection."""

from __future__ import annotations

from typing import Dict, Mapping

import numpy as np
from PIL import Image

from ..extract.decode import gray16_levels
from ..io.models import ColorKey

QUANT_SHIFT = 12
_COMPONENT_BITS = 16
_MAX_PACKED_BITS = 6
_WIDEN_8_TO_16 = 0x101

Histogram = Dict[ColorKey, int]


def quantize(component: int, shift: int = QUANT_SHIFT) -> int:
    """Drop the low *shift* bits of a 16-bit color *component*."""
    return int(component) >> shift


def quantize_rgb(r: int, g: int, b: int, shift: int = QUANT_SHIFT) -> ColorKey:
    """Return the :class:`ColorKey` for a 16-bit RGB triple."""
    return ColorKey(quantize(r, shift), quantize(g, shift), quantize(b, shift))


def build_histogram(img: Image.Image, shift: int = QUANT_SHIFT) -> Histogram:
    """Count the quantized RGB colors of every pixel in *img*.

    8-bit channels are widened to 16 bits (``v * 257``) before the shift so
    that the default shift of 12 yields 16 buckets per channel. 16-bit
    grayscale levels are shifted as they are. Alpha is dropped as-is,
    without premultiplying.
    """
    if not 0 <= shift <= _COMPONENT_BITS:
        raise ValueError(f"shift must be between 0 and {_COMPONENT_BITS}, got {shift}")
    if img.width == 0 or img.height == 0:
        return {}

    levels = gray16_levels(img)
    if levels is not None:
        wide = np.repeat(levels.reshape(-1, 1).astype(np.int64), 3, axis=1)
    else:
        rgb_image = img.convert("RGB") if img.mode != "RGB" else img
        wide = np.asarray(rgb_image, dtype=np.int64).reshape(-1, 3) * _WIDEN_8_TO_16
    return _count_keys(wide >> shift, _COMPONENT_BITS - shift)


def _count_keys(keys: np.ndarray, bits: int) -> Histogram:
    # one bincount slot per possible color keeps the count linear in pixels
    if bits <= _MAX_PACKED_BITS:
        mask = (1 << bits) - 1
        packed = (keys[:, 0] << (2 * bits)) | (keys[:, 1] << bits) | keys[:, 2]
        counts = np.bincount(packed, minlength=1 << (3 * bits))
        histogram: Histogram = {}
        for index in np.flatnonzero(counts).tolist():
            key = ColorKey(index >> (2 * bits), (index >> bits) & mask, index & mask)
            histogram[key] = int(counts[index])
        return histogram

    colors, counts = np.unique(keys, axis=0, return_counts=True)
    return {
        ColorKey(int(r), int(g), int(b)): int(count)
        for (r, g, b), count in zip(colors, counts)
    }


def _beats(count: int, key: ColorKey, best_count: int, best_key: ColorKey | None) -> bool:
    if best_key is None or count > best_count:
        return True
    return count == best_count and key < best_key


def select_top(histogram: Mapping[ColorKey, int], k: int = 3) -> list[ColorKey]:
    """Return up to *k* keys of *histogram*, most frequent first.

    Runs *k* linear scans over a working copy, removing each winner before
    the next scan. Equal counts are ordered by the smaller ColorKey. When
    the histogram holds fewer than *k* colors the result is shorter.
    """
    working = dict(histogram)
    selected: list[ColorKey] = []
    for _ in range(k):
        best_key: ColorKey | None = None
        best_count = 0
        for key, count in working.items():
            if _beats(count, key, best_count, best_key):
                best_key, best_count = key, count
        if best_key is None:
            break
        selected.append(best_key)
        del working[best_key]
    return selected


def dominant_colors(img: Image.Image, k: int = 3, shift: int = QUANT_SHIFT) -> list[ColorKey]:
    """Return the *k* most frequent quantized colors of *img*."""
    return select_top(build_histogram(img, shift), k)


def format_color(key: ColorKey) -> str:
    """Render *key* as space separated components, e.g. ``"15 0 8"``."""
    return f"{key.r} {key.g} {key.b}"
