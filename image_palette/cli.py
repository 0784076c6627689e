"""Command-line interface for the image_palette project."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Iterable

from .crawl.fetch import HttpFetcher
from .dedup.ledger import DedupLedger
from .features.color import QUANT_SHIFT
from .io.models import PipelineSettings, RunSummary
from .io.outputs import write_report
from .io.records import CsvRecordSink, WriteError, read_urls
from .pipeline import run_pipeline

DEFAULT_INPUT = Path("urls.csv")
DEFAULT_OUTPUT = Path("results.csv")


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments for the image palette pipeline."""
    parser = argparse.ArgumentParser(
        description="Report the three most prevalent colors of each distinct image in a URL list."
    )
    parser.add_argument(
        "--input",
        default=str(DEFAULT_INPUT),
        help="CSV file with one image URL in the first column of each row.",
    )
    parser.add_argument(
        "--out",
        default=str(DEFAULT_OUTPUT),
        help="CSV file the result rows are written to.",
    )
    parser.add_argument(
        "--report",
        default=None,
        help="Optional JSON file receiving the run summary.",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=10.0,
        help="Per-request timeout in seconds.",
    )
    parser.add_argument(
        "--max-bytes",
        type=int,
        default=50 * 1024 * 1024,
        help="Largest response body that will be downloaded.",
    )
    parser.add_argument(
        "--shift",
        type=int,
        default=QUANT_SHIFT,
        help="Bits dropped from each 16-bit color component before counting.",
    )
    parser.add_argument(
        "--jpeg-only",
        action="store_true",
        help="Treat everything except JPEG as an invalid file format.",
    )
    parser.add_argument(
        "--skip-error-pages",
        action="store_true",
        help="Skip non-2xx responses instead of treating their bodies as content.",
    )
    parser.add_argument(
        "--progress",
        action="store_true",
        help="Show a progress bar while processing.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    args = parser.parse_args(list(argv) if argv is not None else None)
    if not 0 <= args.shift <= 16:
        parser.error(f"--shift must be between 0 and 16, got {args.shift}")
    return args


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _print_summary(summary: RunSummary, out_path: Path) -> None:
    print(f"[summary] processed: {summary.processed}")
    print(
        f"[summary] emitted: {summary.emitted} "
        f"({summary.emitted_images} images, {summary.emitted_opaque} invalid)"
    )
    print(f"[summary] duplicates: {summary.duplicates}")
    print(f"[summary] fetch errors: {summary.fetch_errors}, failures: {summary.failures}")
    print(f"[summary] results: {out_path}")


def main(argv: Iterable[str] | None = None) -> int:
    """Entry point for the CLI."""
    args = parse_args(argv)
    _configure_logging(args.verbose)

    input_path = Path(args.input)
    out_path = Path(args.out)
    try:
        urls = read_urls(input_path)
    except FileNotFoundError as exc:
        print(f"[error] {exc}")
        return 2

    settings = PipelineSettings(
        timeout=args.timeout,
        max_bytes=args.max_bytes,
        shift=args.shift,
        formats=("JPEG",) if args.jpeg_only else None,
        skip_error_status=args.skip_error_pages,
    )
    fetcher = HttpFetcher(
        timeout=settings.timeout,
        max_bytes=settings.max_bytes,
        skip_error_status=settings.skip_error_status,
    )
    exit_code = 0
    with CsvRecordSink(out_path) as sink:
        try:
            summary = run_pipeline(
                urls,
                fetcher,
                sink,
                ledger=DedupLedger(),
                settings=settings,
                progress=args.progress,
            )
        except WriteError as exc:
            print(f"[error] {exc}")
            summary = exc.summary or RunSummary()
            exit_code = 1

    _print_summary(summary, out_path)
    if args.report:
        report_path = write_report(Path(args.report), summary)
        print(f"[summary] report: {report_path}")
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
