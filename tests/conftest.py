"""Shared fixtures for the image palette test-suite."""

from __future__ import annotations

import io
from contextlib import contextmanager
from typing import Dict, Iterator, Sequence, Tuple

import pytest
from PIL import Image

from image_palette.crawl.fetch import FetchError

Pixel = Tuple[int, int, int]


def make_image(colors: Sequence[Tuple[Pixel, int]], mode: str = "RGB") -> Image.Image:
    """Return a one-row image holding each color the given number of times."""
    width = sum(count for _, count in colors)
    img = Image.new(mode, (width, 1))
    x = 0
    for color, count in colors:
        fill = color if mode == "RGB" else (*color, 255)
        for _ in range(count):
            img.putpixel((x, 0), fill)
            x += 1
    return img


def encode(img: Image.Image, fmt: str, **params) -> bytes:
    buffer = io.BytesIO()
    img.save(buffer, format=fmt, **params)
    return buffer.getvalue()


class StubFetcher:
    """In-memory fetcher; URLs missing from *responses* fail to fetch."""

    def __init__(self, responses: Dict[str, bytes]) -> None:
        self.responses = responses
        self.opened: list[str] = []
        self.closed: list[str] = []

    @contextmanager
    def open(self, url: str) -> Iterator[io.BytesIO]:
        if url not in self.responses:
            raise FetchError(url, "connection refused")
        self.opened.append(url)
        try:
            yield io.BytesIO(self.responses[url])
        finally:
            self.closed.append(url)


@pytest.fixture
def photo() -> Image.Image:
    """A small RGB image with four colors of distinct frequency."""
    return make_image(
        [
            ((255, 0, 0), 10),
            ((0, 255, 0), 7),
            ((0, 0, 255), 5),
            ((255, 255, 255), 2),
        ]
    )


@pytest.fixture
def gradient() -> Image.Image:
    """A larger image with plenty of colors, useful for encoder tests."""
    img = Image.new("RGB", (32, 32))
    for y in range(32):
        for x in range(32):
            img.putpixel((x, y), (x * 8, y * 8, (x + y) * 4))
    return img
