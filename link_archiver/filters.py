"""Per-URL filter chain deciding what gets forwarded for archiving."""

from __future__ import annotations

import ipaddress
from typing import Collection, Iterable, List, Sequence

from .config import Settings
from .dedup import DedupCache
from .logging import get_logger
from .models import CandidateURL, FilterDecision, FilterReason

logger = get_logger(__name__)

PRIVATE_NETWORKS = (
    ipaddress.IPv4Network("10.0.0.0/8"),
    ipaddress.IPv4Network("172.16.0.0/12"),
    ipaddress.IPv4Network("192.168.0.0/16"),
)


def is_private_address(host: str) -> bool:
    """Return True if host is a dotted IPv4 literal inside a private range.

    Hostnames are never resolved; anything that is not a literal IPv4
    address is treated as public.
    """
    try:
        address = ipaddress.IPv4Address(host)
    except ValueError:
        return False
    return any(address in network for network in PRIVATE_NETWORKS)


def is_ignored_domain(host: str, domains: Sequence[str]) -> bool:
    """Exact, case-sensitive match of host against the ignore list."""
    return host in domains


class FilterChain:
    """Dedup, private-address and ignored-domain checks, in that order."""

    def __init__(self, dedup_cache: DedupCache) -> None:
        self.dedup_cache = dedup_cache

    def evaluate(
        self,
        candidate: CandidateURL,
        settings: Settings,
        pending: Collection[str] = (),
    ) -> FilterDecision:
        """Decide whether a candidate is forwarded.

        Args:
            candidate: Parsed link.
            settings: Current settings snapshot.
            pending: Fingerprints already queued for the next submission.

        Returns:
            The decision; the first failing check wins.
        """
        if settings.dedup_enabled:
            fp = candidate.fingerprint
            if self.dedup_cache.contains(fp):
                logger.info("Ignoring already archived link", link=candidate.raw)
                return FilterDecision(candidate, FilterReason.DUPLICATE)
            if fp in pending:
                logger.info("Ignoring link already queued", link=candidate.raw)
                return FilterDecision(candidate, FilterReason.PENDING)

        if settings.ignore_private_addresses and is_private_address(candidate.host):
            logger.info("Ignoring private address", host=candidate.host)
            return FilterDecision(candidate, FilterReason.PRIVATE_ADDRESS)

        domains = settings.ignored_domain_list
        if domains and is_ignored_domain(candidate.host, domains):
            logger.info("Ignoring host in the ignored domains list", host=candidate.host)
            return FilterDecision(candidate, FilterReason.IGNORED_DOMAIN)

        return FilterDecision(candidate, FilterReason.ACCEPTED)

    def evaluate_all(
        self,
        candidates: Iterable[CandidateURL],
        settings: Settings,
        pending: Collection[str] = (),
    ) -> List[FilterDecision]:
        """Evaluate candidates in order, treating earlier acceptances as pending."""
        queued = set(pending)
        decisions: List[FilterDecision] = []
        for candidate in candidates:
            decision = self.evaluate(candidate, settings, queued)
            if decision.accepted:
                queued.add(candidate.fingerprint)
            decisions.append(decision)
        return decisions


__all__ = ["PRIVATE_NETWORKS", "is_private_address", "is_ignored_domain", "FilterChain"]
