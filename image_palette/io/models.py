"""Data models shared across the image palette pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, NamedTuple, Tuple

INVALID_FORMAT_SUFFIX = "has an invalid file format"


class ColorKey(NamedTuple):
    """A quantized RGB triple used as a histogram key."""

    r: int
    g: int
    b: int


@dataclass(slots=True)
class PipelineSettings:
    """Tunable knobs for a pipeline run."""

    timeout: float = 10.0
    max_bytes: int = 50 * 1024 * 1024
    shift: int = 12
    top_k: int = 3
    formats: Tuple[str, ...] | None = None
    skip_error_status: bool = False


@dataclass(slots=True)
class OutputRecord:
    """One output row, either an opaque notice or a dominant color list."""

    url: str
    message: str | None = None
    colors: List[ColorKey] = field(default_factory=list)

    @classmethod
    def opaque(cls, url: str) -> "OutputRecord":
        return cls(url=url, message=f"{url} {INVALID_FORMAT_SUFFIX}")

    @property
    def is_opaque(self) -> bool:
        return self.message is not None

    def to_row(self) -> list[str]:
        """Return the CSV fields for this record."""
        if self.message is not None:
            return [self.url, self.message]
        return [self.url, *(" ".join(str(c) for c in color) for color in self.colors)]


class ItemStatus(str, Enum):
    """Terminal state of one input URL."""

    EMITTED_IMAGE = "emitted_image"
    EMITTED_OPAQUE = "emitted_opaque"
    DUPLICATE_IMAGE = "duplicate_image"
    DUPLICATE_OPAQUE = "duplicate_opaque"
    FETCH_ERROR = "fetch_error"
    FAILED = "failed"


@dataclass(slots=True)
class ItemOutcome:
    """Result of processing a single URL."""

    url: str
    status: ItemStatus
    record: OutputRecord | None = None
    fingerprint: int | None = None
    error: str | None = None


@dataclass(slots=True)
class RunSummary:
    """High-level summary of a pipeline run."""

    processed: int = 0
    emitted_images: int = 0
    emitted_opaque: int = 0
    duplicates: int = 0
    fetch_errors: int = 0
    failures: int = 0
    write_errors: int = 0
    cancelled: bool = False
    errors: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def emitted(self) -> int:
        return self.emitted_images + self.emitted_opaque

    def record(self, outcome: ItemOutcome) -> None:
        """Fold *outcome* into the running totals."""
        self.processed += 1
        status = outcome.status
        if status is ItemStatus.EMITTED_IMAGE:
            self.emitted_images += 1
        elif status is ItemStatus.EMITTED_OPAQUE:
            self.emitted_opaque += 1
        elif status in (ItemStatus.DUPLICATE_IMAGE, ItemStatus.DUPLICATE_OPAQUE):
            self.duplicates += 1
        elif status is ItemStatus.FETCH_ERROR:
            self.fetch_errors += 1
            self.errors.append((outcome.url, outcome.error or "fetch failed"))
        else:
            self.failures += 1
            self.errors.append((outcome.url, outcome.error or "processing failed"))
