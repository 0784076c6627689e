"""Fetch, deduplicate and summarise the dominant colors of a URL list."""

from __future__ import annotations

import logging
from threading import Event
from typing import Iterable, Protocol

from tqdm import tqdm

from .crawl.fetch import FetchError, Fetcher
from .dedup.ledger import DedupLedger
from .extract.decode import decode_image
from .features.color import dominant_colors
from .features.fingerprint import fingerprint_decodable, fingerprint_opaque
from .io.models import (
    ItemOutcome,
    ItemStatus,
    OutputRecord,
    PipelineSettings,
    RunSummary,
)
from .io.records import WriteError

logger = logging.getLogger(__name__)


class RecordSink(Protocol):
    def write(self, record: OutputRecord) -> None:
        ...


def process_url(
    url: str,
    fetcher: Fetcher,
    ledger: DedupLedger,
    settings: PipelineSettings,
) -> ItemOutcome:
    """Run one URL through fetch, classify, fingerprint and dedup.

    A fetch failure ends the item without touching the decoder. Content
    Pillow cannot decode takes the opaque path. Content whose fingerprint
    is already in the ledger yields an outcome without a record.
    """
    try:
        with fetcher.open(url) as stream:
            data = stream.read()
    except FetchError as exc:
        logger.warning("Skipping %s: %s", url, exc.reason)
        return ItemOutcome(url=url, status=ItemStatus.FETCH_ERROR, error=exc.reason)

    img = decode_image(data, settings.formats)
    if img is None:
        fingerprint = fingerprint_opaque(data)
        if not ledger.claim_opaque(fingerprint):
            logger.debug("Duplicate opaque content at %s (%016x)", url, fingerprint)
            return ItemOutcome(
                url=url, status=ItemStatus.DUPLICATE_OPAQUE, fingerprint=fingerprint
            )
        return ItemOutcome(
            url=url,
            status=ItemStatus.EMITTED_OPAQUE,
            record=OutputRecord.opaque(url),
            fingerprint=fingerprint,
        )

    try:
        fingerprint = fingerprint_decodable(img)
        if not ledger.claim_decodable(fingerprint):
            logger.debug("Duplicate image at %s (%016x)", url, fingerprint)
            return ItemOutcome(
                url=url, status=ItemStatus.DUPLICATE_IMAGE, fingerprint=fingerprint
            )
        try:
            colors = dominant_colors(img, k=settings.top_k, shift=settings.shift)
        except Exception:
            ledger.release_decodable(fingerprint)
            raise
    finally:
        img.close()

    if len(colors) < settings.top_k:
        logger.info("%s has only %d distinct colors", url, len(colors))
    return ItemOutcome(
        url=url,
        status=ItemStatus.EMITTED_IMAGE,
        record=OutputRecord(url=url, colors=colors),
        fingerprint=fingerprint,
    )


def run_pipeline(
    urls: Iterable[str],
    fetcher: Fetcher,
    sink: RecordSink,
    ledger: DedupLedger | None = None,
    settings: PipelineSettings | None = None,
    cancel: Event | None = None,
    progress: bool = False,
) -> RunSummary:
    """Process *urls* in order and append one record per distinct content.

    Per-item problems are counted in the returned summary. A sink failure
    stops the run with :class:`WriteError`, whose ``summary`` attribute holds
    the totals reached so far.
    """
    ledger = ledger if ledger is not None else DedupLedger()
    settings = settings if settings is not None else PipelineSettings()
    summary = RunSummary()

    iterator: Iterable[str] = urls
    if progress:
        iterator = tqdm(urls, desc="Analysing images", unit="url", leave=False)

    for url in iterator:
        if cancel is not None and cancel.is_set():
            logger.info("Run cancelled after %d items", summary.processed)
            summary.cancelled = True
            break
        try:
            outcome = process_url(url, fetcher, ledger, settings)
        except Exception as exc:  # noqa: BLE001 - one bad item must not end the run
            logger.exception("Unexpected error processing %s", url)
            outcome = ItemOutcome(url=url, status=ItemStatus.FAILED, error=str(exc))
        summary.record(outcome)

        if outcome.record is None:
            continue
        try:
            sink.write(outcome.record)
        except (WriteError, OSError) as exc:
            summary.write_errors += 1
            error = exc if isinstance(exc, WriteError) else WriteError(url, str(exc))
            error.summary = summary
            logger.error("Stopping run: %s", error)
            if error is exc:
                raise
            raise error from exc

    return summary
