"""CSV input and output for URL lists and result rows."""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import IO

from .models import OutputRecord

logger = logging.getLogger(__name__)


class WriteError(Exception):
    """Raised when a result row cannot be appended to the sink."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Failed to write row for {url}: {reason}")
        self.url = url
        self.reason = reason
        self.summary = None


def read_urls(path: Path) -> list[str]:
    """Read the first field of each CSV row in *path*, skipping blank rows."""
    if not path.exists():
        raise FileNotFoundError(f"Input file does not exist: {path}")
    urls: list[str] = []
    with path.open(newline="", encoding="utf-8-sig") as handle:
        for row in csv.reader(handle):
            if not row:
                continue
            value = row[0].strip()
            if value:
                urls.append(value)
    return urls


class CsvRecordSink:
    """Append :class:`OutputRecord` rows to a CSV file as they are produced."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._handle: IO[str] | None = None
        self._url_writer = None
        self._value_writer = None
        self.rows_written = 0

    def __enter__(self) -> "CsvRecordSink":
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def open(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._handle = self.path.open("w", newline="", encoding="utf-8")
        # the URL keeps minimal quoting, every field after it is always quoted
        self._url_writer = csv.writer(self._handle, lineterminator=",")
        self._value_writer = csv.writer(self._handle, quoting=csv.QUOTE_ALL)

    def close(self) -> None:
        if self._handle is not None:
            try:
                self._handle.close()
            except OSError:
                logger.warning("Failed to close %s", self.path, exc_info=True)
            self._handle = None
            self._url_writer = None
            self._value_writer = None

    def write(self, record: OutputRecord) -> None:
        """Append *record* and flush so a crash never loses an emitted row."""
        if self._handle is None or self._url_writer is None or self._value_writer is None:
            raise WriteError(record.url, "sink is not open")
        url, *values = record.to_row()
        try:
            if values:
                self._url_writer.writerow([url])
                self._value_writer.writerow(values)
            else:
                csv.writer(self._handle).writerow([url])
            self._handle.flush()
        except OSError as exc:
            raise WriteError(record.url, str(exc)) from exc
        self.rows_written += 1


class ListRecordSink:
    """In-memory sink collecting records, handy for embedding and tests."""

    def __init__(self) -> None:
        self.records: list[OutputRecord] = []

    def write(self, record: OutputRecord) -> None:
        self.records.append(record)

    def rows(self) -> list[list[str]]:
        return [record.to_row() for record in self.records]
