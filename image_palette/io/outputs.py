"""Output helpers for persisting pipeline results."""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path

from .models import RunSummary


def write_report(path: Path, summary: RunSummary) -> Path:
    """Write a run summary to *path* as JSON and return the path."""
    payload = asdict(summary)
    payload["emitted"] = summary.emitted
    payload["errors"] = [{"url": url, "reason": reason} for url, reason in summary.errors]
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return path
