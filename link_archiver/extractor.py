"""Extraction of Markdown inline link targets from free-form text."""

from __future__ import annotations

import re
from typing import Iterator
from urllib.parse import urlsplit

from .errors import ExtractionSkip
from .logging import get_logger
from .models import CandidateURL

logger = get_logger(__name__)


class ExtractedLinks:
    """Lazy view over the candidate links found in a block of text.

    Iterating starts a fresh scan, so the same object can be walked more
    than once.
    """

    def __init__(self, extractor: "LinkExtractor", text: str) -> None:
        self._extractor = extractor
        self._text = text

    def __iter__(self) -> Iterator[CandidateURL]:
        return self._extractor.iter_candidates(self._text)


class LinkExtractor:
    """Find `[label](target)` links and parse their targets."""

    LINK_PATTERN = re.compile(r"\[[^()]+\]\(([^\[\]()]+)\)")
    ALLOWED_SCHEMES = frozenset({"http", "https"})

    def extract(self, text: str) -> ExtractedLinks:
        """Return a restartable iterable of candidates found in text."""
        return ExtractedLinks(self, text)

    def iter_candidates(self, text: str) -> Iterator[CandidateURL]:
        """Yield candidates one match at a time, skipping unparsable targets."""
        for match in self.LINK_PATTERN.finditer(text or ""):
            link = self.sanitize(match.group(1))
            try:
                yield self.parse(link)
            except ExtractionSkip as exc:
                logger.info("Skipping non-URL link target", link=link, reason=exc.reason)

    @staticmethod
    def sanitize(target: str) -> str:
        """Truncate a target at its first literal space.

        Copy-pasted links (Wikipedia in particular) often carry trailing text
        after the URI; an unencoded space is never valid inside one.
        """
        if " " in target:
            return target.split(" ", 1)[0]
        return target

    @classmethod
    def parse(cls, link: str) -> CandidateURL:
        """Parse a link string into a candidate.

        Raises:
            ExtractionSkip: If the link is not a well-formed http(s) URL.
        """
        if not link:
            raise ExtractionSkip(link, "empty target")
        try:
            parts = urlsplit(link)
            host = parts.hostname
            # raises ValueError for a malformed or out-of-range port
            parts.port
        except ValueError as exc:
            raise ExtractionSkip(link, str(exc)) from exc

        scheme = parts.scheme.lower()
        if scheme not in cls.ALLOWED_SCHEMES:
            raise ExtractionSkip(link, f"unsupported scheme {scheme or '(none)'}")
        if not host:
            raise ExtractionSkip(link, "missing host")

        return CandidateURL(raw=link, scheme=scheme, host=host, path=parts.path or "/")


def extract_links(text: str) -> ExtractedLinks:
    """Module-level shortcut for `LinkExtractor().extract(text)`."""
    return LinkExtractor().extract(text)


__all__ = ["ExtractedLinks", "LinkExtractor", "extract_links"]
