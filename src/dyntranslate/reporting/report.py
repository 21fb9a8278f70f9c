"""Coalescer statistics data model."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class CoalescerStats:
    """Counts what a coalescer did, including every absorbed failure."""

    backend: str = ""
    source_lang: str = ""
    target_lang: str = ""

    requests: int = 0
    short_circuits: int = 0
    cache_hits: int = 0
    dedup_joins: int = 0
    batches_flushed: int = 0
    provider_calls: int = 0
    items_sent: int = 0
    items_translated: int = 0
    items_missing: int = 0
    absorbed_failures: int = 0
    timeouts: int = 0
    invalidations: int = 0

    last_error: str | None = None
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: datetime | None = None

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def finish(self) -> None:
        self.finished_at = datetime.now()

    def record_failure(self, exc: BaseException) -> None:
        self.absorbed_failures += 1
        self.last_error = f"{type(exc).__name__}: {exc}"

    def to_dict(self) -> dict:
        return {
            "backend": self.backend,
            "source_lang": self.source_lang,
            "target_lang": self.target_lang,
            "requests": self.requests,
            "short_circuits": self.short_circuits,
            "cache_hits": self.cache_hits,
            "dedup_joins": self.dedup_joins,
            "batches_flushed": self.batches_flushed,
            "provider_calls": self.provider_calls,
            "items_sent": self.items_sent,
            "items_translated": self.items_translated,
            "items_missing": self.items_missing,
            "absorbed_failures": self.absorbed_failures,
            "timeouts": self.timeouts,
            "invalidations": self.invalidations,
            "last_error": self.last_error,
            "duration_seconds": self.duration_seconds,
        }
