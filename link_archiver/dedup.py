"""Content-addressed memo of links already submitted for archiving."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Iterable, Iterator, Union

from .logging import get_logger
from .models import fingerprint

logger = get_logger(__name__)


class DedupCache:
    """In-memory `fingerprint -> True` map with no eviction.

    Entries are only recorded after a confirmed submission. Persistence is
    opt-in through `save` and `load`.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, bool] = {}

    def contains(self, fp: str) -> bool:
        """Return True if the fingerprint was recorded."""
        return self._entries.get(fp, False)

    def record(self, fp: str) -> None:
        """Mark a fingerprint as submitted."""
        self._entries[fp] = True

    def record_links(self, links: Iterable[str]) -> int:
        """Record the fingerprint of every link; return how many were new."""
        added = 0
        for link in links:
            fp = fingerprint(link)
            if not self.contains(fp):
                added += 1
            self.record(fp)
        return added

    def __contains__(self, fp: object) -> bool:
        return isinstance(fp, str) and self.contains(fp)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    # Persistence ---------------------------------------------------------

    def save(self, path: Union[str, Path]) -> None:
        """Write the fingerprints to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"fingerprints": sorted(self._entries)}
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        logger.info("Dedup cache saved", path=str(path), entries=len(self))

    @classmethod
    def load(cls, path: Union[str, Path]) -> "DedupCache":
        """Restore a cache written by `save`; a missing file yields an empty cache.

        Raises:
            ValueError: If the file is not a cache written by `save`.
        """
        path = Path(path)
        cache = cls()
        if not path.exists():
            return cache

        try:
            data = json.loads(path.read_text(encoding="utf-8") or "{}")
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid dedup cache file {path}: {exc}") from exc

        fingerprints = data.get("fingerprints", []) if isinstance(data, dict) else None
        if not isinstance(fingerprints, list):
            raise ValueError(f"Invalid dedup cache file {path}: missing fingerprint list")
        for fp in fingerprints:
            cache.record(str(fp))

        logger.info("Dedup cache loaded", path=str(path), entries=len(cache))
        return cache


__all__ = ["fingerprint", "DedupCache"]
