"""
batch_driver.py

Bounded fan-out/fan-in over a stream of input items (usually file lines).

A fixed number of worker threads take items from a bounded queue, so the
reading side blocks whenever the queue is full instead of loading the
whole file. Every item yields a RecordResult; exceptions from a processor
are turned into failed results here and never stop the batch.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_WORKERS = 9
DEFAULT_CAPACITY = 10000
DEFAULT_PROGRESS_EVERY = 100000

OK = "ok"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass(frozen=True)
class RecordResult:
    status: str = OK
    reason: Optional[str] = None

    @classmethod
    def ok(cls) -> "RecordResult":
        return _OK

    @classmethod
    def skip(cls, reason: str) -> "RecordResult":
        return cls(SKIPPED, reason)

    @classmethod
    def fail(cls, reason: str) -> "RecordResult":
        return cls(FAILED, reason)


_OK = RecordResult()
_DONE = object()


@dataclass
class StageReport:
    """Run-level counters for one stage."""

    what: str
    processed: int = 0
    ok: int = 0
    skipped: Counter = field(default_factory=Counter)
    failed: Counter = field(default_factory=Counter)

    def add(self, result: RecordResult) -> None:
        self.processed += 1
        if result.status == OK:
            self.ok += 1
        elif result.status == SKIPPED:
            self.skipped[result.reason] += 1
        else:
            self.failed[result.reason] += 1

    def summary(self) -> str:
        parts = [f"{self.what}: {self.processed:,} processed", f"{self.ok:,} ok"]
        for reason, count in sorted(self.skipped.items()):
            parts.append(f"{count:,} skipped ({reason})")
        for reason, count in sorted(self.failed.items()):
            parts.append(f"{count:,} failed ({reason})")
        return ", ".join(parts)


def _run_one(processor: Callable[[T], RecordResult], item: T) -> RecordResult:
    try:
        result = processor(item)
    except Exception as e:
        logger.exception("Unhandled error while processing record: %r", item)
        return RecordResult.fail(type(e).__name__)
    return result if result is not None else _OK


def process_concurrently(
    items: Iterable[T],
    processor: Callable[[T], RecordResult],
    what: str,
    workers: int = DEFAULT_WORKERS,
    capacity: int = DEFAULT_CAPACITY,
    progress_every: int = DEFAULT_PROGRESS_EVERY,
) -> StageReport:
    """Run ``processor`` over ``items`` on ``workers`` threads.

    Items pass through a queue holding at most ``capacity`` entries; reading
    blocks while it is full. No ordering is guaranteed between items.
    Returns the stage counters once the input is exhausted and every item
    has finished.
    """
    if workers < 1:
        raise ValueError(f"workers must be positive, got {workers}")
    if capacity < 1:
        raise ValueError(f"capacity must be positive, got {capacity}")

    report = StageReport(what)
    report_lock = threading.Lock()
    pending: queue.Queue = queue.Queue(maxsize=capacity)

    def work() -> None:
        while True:
            item = pending.get()
            if item is _DONE:
                return
            result = _run_one(processor, item)
            with report_lock:
                report.add(result)
                if progress_every and report.processed % progress_every == 0:
                    print(f"  processed {report.processed:,} {what}")

    threads = [
        threading.Thread(target=work, name=f"{what}-{n}", daemon=True)
        for n in range(workers)
    ]
    for thread in threads:
        thread.start()

    try:
        for item in items:
            pending.put(item)
    finally:
        for _ in threads:
            pending.put(_DONE)
        for thread in threads:
            thread.join()

    print(f"done adding {what}")
    return report
