"""Tests for CSV input, CSV output and the JSON run report."""

import csv
import json

import pytest

from image_palette.io.models import ColorKey, ItemOutcome, ItemStatus, OutputRecord, RunSummary
from image_palette.io.outputs import write_report
from image_palette.io.records import CsvRecordSink, WriteError, read_urls


def test_read_urls_first_column(tmp_path):
    path = tmp_path / "urls.csv"
    path.write_text(
        "\ufeffhttp://a/1.jpg\n\n  http://a/2.jpg  ,extra\nhttp://a/3.jpg\n",
        encoding="utf-8",
    )

    assert read_urls(path) == ["http://a/1.jpg", "http://a/2.jpg", "http://a/3.jpg"]


def test_read_urls_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_urls(tmp_path / "nope.csv")


def test_csv_sink_rows(tmp_path):
    path = tmp_path / "out" / "results.csv"
    with CsvRecordSink(path) as sink:
        sink.write(OutputRecord(url="http://a/1.jpg", colors=[ColorKey(15, 0, 8), ColorKey(0, 0, 0)]))
        sink.write(OutputRecord.opaque("http://a/t.txt"))
        assert sink.rows_written == 2

    with path.open(newline="", encoding="utf-8") as handle:
        rows = list(csv.reader(handle))

    assert rows == [
        ["http://a/1.jpg", "15 0 8", "0 0 0"],
        ["http://a/t.txt", "http://a/t.txt has an invalid file format"],
    ]


def test_closed_sink_refuses_writes(tmp_path):
    sink = CsvRecordSink(tmp_path / "results.csv")
    with pytest.raises(WriteError):
        sink.write(OutputRecord.opaque("http://a/t"))


def test_summary_totals():
    summary = RunSummary()
    summary.record(ItemOutcome(url="a", status=ItemStatus.EMITTED_IMAGE))
    summary.record(ItemOutcome(url="b", status=ItemStatus.DUPLICATE_OPAQUE))
    summary.record(ItemOutcome(url="c", status=ItemStatus.FETCH_ERROR, error="timeout"))

    assert summary.processed == 3
    assert summary.emitted == 1
    assert summary.duplicates == 1
    assert summary.errors == [("c", "timeout")]


def test_write_report(tmp_path):
    summary = RunSummary(processed=2, emitted_opaque=1, fetch_errors=1, errors=[("u", "refused")])

    path = write_report(tmp_path / "report.json", summary)
    payload = json.loads(path.read_text(encoding="utf-8"))

    assert payload["processed"] == 2
    assert payload["emitted"] == 1
    assert payload["errors"] == [{"url": "u", "reason": "refused"}]


def test_csv_sink_quotes_value_fields(tmp_path):
    path = tmp_path / "results.csv"
    with CsvRecordSink(path) as sink:
        sink.write(OutputRecord(url="http://a/1.jpg", colors=[ColorKey(15, 0, 8)]))
        sink.write(OutputRecord.opaque("http://a/t.txt"))
        sink.write(OutputRecord(url="http://a/x,y.jpg", colors=[ColorKey(1, 2, 3)]))

    assert path.read_text(encoding="utf-8").splitlines() == [
        'http://a/1.jpg,"15 0 8"',
        'http://a/t.txt,"http://a/t.txt has an invalid file format"',
        '"http://a/x,y.jpg","1 2 3"',
    ]
