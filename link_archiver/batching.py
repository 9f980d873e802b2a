"""Time-windowed accumulation of links awaiting submission."""

from __future__ import annotations

from typing import Iterable, List, Optional, Set

from .models import Batch, fingerprint


class BatchScheduler:
    """Accumulates accepted links and decides when to flush them.

    The accumulator is only touched by `append` and `drain`. `last_update`
    records when the batch was last drained; before the first drain any
    non-empty batch is due.
    """

    def __init__(self) -> None:
        self._urls: List[str] = []
        self._fingerprints: Set[str] = set()
        self.last_update: Optional[float] = None

    def __len__(self) -> int:
        return len(self._urls)

    @property
    def pending(self) -> List[str]:
        """Links currently queued, in order."""
        return list(self._urls)

    @property
    def pending_fingerprints(self) -> Set[str]:
        return set(self._fingerprints)

    def append(self, urls: Iterable[str]) -> int:
        """Queue links in order; return the new batch size."""
        for url in urls:
            self._urls.append(url)
            self._fingerprints.add(fingerprint(url))
        return len(self._urls)

    def should_flush(self, force: bool, now: float, min_interval: float) -> bool:
        """Return True if the batch should be submitted now.

        Args:
            force: Explicit user request; flushes any non-empty batch.
            now: Current monotonic time in seconds.
            min_interval: Minimum seconds between two automatic flushes.
        """
        if not self._urls:
            return False
        if force or self.last_update is None:
            return True
        return now - self.last_update > min_interval

    def drain(self, now: float) -> Batch:
        """Hand over the queued links and clear the accumulator."""
        batch = Batch(urls=self._urls, drained_at=now)
        self._urls = []
        self._fingerprints = set()
        self.last_update = now
        return batch


__all__ = ["BatchScheduler"]
