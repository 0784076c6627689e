"""Per-run record of fingerprints that already produced output."""

from __future__ import annotations

from threading import Lock
from typing import Set


class DedupLedger:
    """Two independent fingerprint sets, one per content class.

    Decodable and opaque fingerprints are hashed from different byte forms,
    so a value in one set says nothing about the other.
    """

    def __init__(self) -> None:
        self._decodable: Set[int] = set()
        self._opaque: Set[int] = set()
        self._lock = Lock()

    def seen_decodable(self, fingerprint: int) -> bool:
        return fingerprint in self._decodable

    def mark_decodable(self, fingerprint: int) -> None:
        with self._lock:
            self._decodable.add(fingerprint)

    def seen_opaque(self, fingerprint: int) -> bool:
        return fingerprint in self._opaque

    def mark_opaque(self, fingerprint: int) -> None:
        with self._lock:
            self._opaque.add(fingerprint)

    def claim_decodable(self, fingerprint: int) -> bool:
        """Mark *fingerprint* as seen; return True if it was new."""
        return self._claim(self._decodable, fingerprint)

    def claim_opaque(self, fingerprint: int) -> bool:
        """Mark *fingerprint* as seen; return True if it was new."""
        return self._claim(self._opaque, fingerprint)

    def release_decodable(self, fingerprint: int) -> None:
        """Forget *fingerprint* after the item that claimed it failed."""
        with self._lock:
            self._decodable.discard(fingerprint)

    def _claim(self, bucket: Set[int], fingerprint: int) -> bool:
        with self._lock:
            if fingerprint in bucket:
                return False
            bucket.add(fingerprint)
            return True

    @property
    def decodable_count(self) -> int:
        return len(self._decodable)

    @property
    def opaque_count(self) -> int:
        return len(self._opaque)
